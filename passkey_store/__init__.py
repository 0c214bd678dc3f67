# (c) Copyright Datacraft, 2026
"""Passkey credential store."""
from .exceptions import (
	PasskeyStoreError,
	DuplicateId,
	NotFound,
	ReplayDetected,
	StorageUnavailable,
)
from .schema import PasskeyCredential
from .services import CredentialStore

__all__ = [
	"PasskeyStoreError",
	"DuplicateId",
	"NotFound",
	"ReplayDetected",
	"StorageUnavailable",
	"PasskeyCredential",
	"CredentialStore",
]

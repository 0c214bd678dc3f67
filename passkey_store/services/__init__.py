# (c) Copyright Datacraft, 2026
"""Credential storage services."""
from .store import CredentialStore, CredentialListing

__all__ = ["CredentialStore", "CredentialListing"]

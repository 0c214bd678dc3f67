# (c) Copyright Datacraft, 2026
"""Sealed vault exchange of passkeys."""

from .schema import OpenBox, SealedBox, Passkey, Vault
from .crypto import (
	LocalKeyPair,
	VaultCryptoError,
	PeerKeyError,
	OpeningError,
	DecodingError,
)
from .exchange import export_vault, import_vault, load_box, write_box

__all__ = [
	"OpenBox",
	"SealedBox",
	"Passkey",
	"Vault",
	"LocalKeyPair",
	"VaultCryptoError",
	"PeerKeyError",
	"OpeningError",
	"DecodingError",
	"export_vault",
	"import_vault",
	"load_box",
	"write_box",
]

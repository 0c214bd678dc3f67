# (c) Copyright Datacraft, 2026
"""Sealing vaults for a recipient.

- X25519 (ECDH) key agreement between ephemeral keys
- HKDF-SHA256 expands the shared secret with a random salt
- AES-256-GCM encrypts the vault JSON; the 12-byte nonce is prepended
"""
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from pydantic import ValidationError

from .schema import OpenBox, SealedBox, Vault

logger = logging.getLogger(__name__)

NONCE_SIZE = 12
SALT_SIZE = 32
KEY_SIZE = 32


class VaultCryptoError(Exception):
	"""Base vault crypto error."""
	pass


class PeerKeyError(VaultCryptoError):
	"""Could not use the peer's public key for X25519."""
	pass


class OpeningError(VaultCryptoError):
	"""Failed to open the sealed vault with the computed key."""
	pass


class DecodingError(VaultCryptoError):
	"""Decrypted vault is not valid vault JSON."""
	pass


def _derive_key(shared_secret: bytes, salt: bytes) -> AESGCM:
	hkdf = HKDF(
		algorithm=hashes.SHA256(),
		length=KEY_SIZE,
		salt=salt,
		info=None,
	)
	return AESGCM(hkdf.derive(shared_secret))


class LocalKeyPair:
	"""Ephemeral X25519 key pair for one vault exchange."""

	def __init__(self, private_key: X25519PrivateKey):
		self._private_key = private_key

	@classmethod
	def generate(cls) -> "LocalKeyPair":
		return cls(X25519PrivateKey.generate())

	@property
	def public_key(self) -> bytes:
		return self._private_key.public_key().public_bytes(
			encoding=serialization.Encoding.Raw,
			format=serialization.PublicFormat.Raw,
		)

	def to_open_box(self) -> OpenBox:
		return OpenBox(public_key=self.public_key)

	def _agree(self, peer_public_key: bytes) -> bytes:
		try:
			peer = X25519PublicKey.from_public_bytes(peer_public_key)
			return self._private_key.exchange(peer)
		except ValueError as e:
			raise PeerKeyError(f"Could not parse the peer's public key as X25519: {e}") from e

	def seal(self, open_box: OpenBox, vault: Vault) -> SealedBox:
		"""Encrypt ``vault`` for the holder of ``open_box``."""
		salt = os.urandom(SALT_SIZE)
		nonce = os.urandom(NONCE_SIZE)

		key = _derive_key(self._agree(open_box.public_key), salt)
		encoded_vault = vault.model_dump_json(by_alias=True).encode()
		ciphertext = key.encrypt(nonce, encoded_vault, None)

		logger.debug(f"Sealed vault with {len(vault.passkeys)} passkeys")
		return SealedBox(
			public_key=self.public_key,
			encrypted_vault=nonce + ciphertext,
			key_derivation_salt=salt,
		)

	def open(self, sealed: SealedBox) -> Vault:
		"""Decrypt a vault that was sealed for this key pair."""
		if len(sealed.encrypted_vault) <= NONCE_SIZE:
			raise OpeningError("Sealed vault is too short")
		nonce = sealed.encrypted_vault[:NONCE_SIZE]
		ciphertext = sealed.encrypted_vault[NONCE_SIZE:]

		key = _derive_key(self._agree(sealed.public_key), sealed.key_derivation_salt)
		try:
			plaintext = key.decrypt(nonce, ciphertext, None)
		except InvalidTag as e:
			raise OpeningError("Failed to open the sealed vault with the computed key") from e

		try:
			return Vault.model_validate_json(plaintext)
		except ValidationError as e:
			raise DecodingError(f"Failed to decode the vault json: {e}") from e

# (c) Copyright Datacraft, 2026
"""Vault interchange format.

Vaults travel as camelCase JSON. Byte fields are written as base64
without padding and read back from base64 or base64url, padded or not.
"""
import base64
import binascii
import re
from typing import Annotated

from pydantic import (
	BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer
)
from pydantic.alias_generators import to_camel
from webauthn.helpers import base64url_to_bytes

from passkey_store.schema import MAX_COUNTER, PasskeyCredential

OPEN_BOX_EXT = ".openbox"
SEALED_BOX_EXT = ".sealedbox"

_BASE64URL_ALPHABET = re.compile(r"^[A-Za-z0-9_-]*$")


def to_base64(data: bytes) -> str:
	"""Encode bytes as standard base64 without padding."""
	return base64.b64encode(data).decode("ascii").rstrip("=")


def try_from_base64(value: str) -> bytes | None:
	"""Decode standard base64 with or without padding."""
	stripped = value.rstrip("=")
	try:
		return base64.b64decode(stripped + "=" * (-len(stripped) % 4), validate=True)
	except (binascii.Error, ValueError):
		return None


def try_from_base64url(value: str) -> bytes | None:
	"""Decode base64url with or without padding."""
	stripped = value.rstrip("=")
	if not _BASE64URL_ALPHABET.match(stripped):
		return None
	try:
		return base64url_to_bytes(stripped)
	except (binascii.Error, ValueError):
		return None


def _decode_bytes(value):
	if isinstance(value, (bytes, bytearray)):
		return bytes(value)
	if not isinstance(value, str):
		raise ValueError("expected a base64 string")
	decoded = try_from_base64(value)
	if decoded is None:
		decoded = try_from_base64url(value)
	if decoded is None:
		raise ValueError("could not decode as base64 or base64url")
	return decoded


VaultBytes = Annotated[
	bytes,
	BeforeValidator(_decode_bytes),
	PlainSerializer(to_base64, return_type=str),
]


class VaultModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

	def to_json(self) -> str:
		return self.model_dump_json(by_alias=True, indent=2)


class OpenBox(VaultModel):
	"""Public key the importing side publishes to receive a vault."""
	public_key: VaultBytes


class SealedBox(VaultModel):
	"""Encrypted vault plus what the recipient needs to open it."""
	public_key: VaultBytes
	encrypted_vault: VaultBytes
	key_derivation_salt: VaultBytes


class Passkey(VaultModel):
	"""A passkey as exchanged between vaults."""
	credential_id: str
	relying_party_id: str
	relying_party_name: str
	user_handle: str
	user_display_name: str
	counter: str = "0"
	private_key: VaultBytes = Field(repr=False)

	@classmethod
	def from_credential(cls, credential: PasskeyCredential) -> "Passkey":
		key = try_from_base64(credential.key)
		if key is None:
			raise ValueError(f"Stored key of {credential.id} is not base64")
		return cls(
			credential_id=credential.id,
			relying_party_id=credential.rp_id,
			relying_party_name=credential.rp_name,
			user_handle=credential.user_id,
			user_display_name=credential.username,
			counter=str(credential.counter),
			private_key=key,
		)

	def to_credential(self) -> PasskeyCredential:
		if not (self.counter.isascii() and self.counter.isdigit()):
			raise ValueError(f"Counter of {self.credential_id} is not a non-negative integer")
		if int(self.counter) > MAX_COUNTER:
			raise ValueError(f"Counter of {self.credential_id} exceeds {MAX_COUNTER}")
		return PasskeyCredential(
			id=self.credential_id,
			rp_id=self.relying_party_id,
			rp_name=self.relying_party_name,
			user_id=self.user_handle,
			username=self.user_display_name,
			counter=int(self.counter),
			key=to_base64(self.private_key),
		)


class Vault(VaultModel):
	passkeys: list[Passkey] = []

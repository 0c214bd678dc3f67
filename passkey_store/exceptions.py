# (c) Copyright Datacraft, 2026
"""Errors raised by the passkey credential store."""


class PasskeyStoreError(Exception):
	"""Base credential store error."""
	pass


class DuplicateId(PasskeyStoreError):
	"""A credential with this id exists or was revoked."""

	def __init__(self, credential_id: str):
		super().__init__(f"Credential id already used: {credential_id}")
		self.credential_id = credential_id


class NotFound(PasskeyStoreError):
	"""No active credential with this id."""

	def __init__(self, credential_id: str):
		super().__init__(f"Credential not found: {credential_id}")
		self.credential_id = credential_id


class ReplayDetected(PasskeyStoreError):
	"""Proposed signature counter does not advance the stored one.

	Never retried; a cloned authenticator or a replayed assertion
	produces this.
	"""

	def __init__(self, credential_id: str, current: int, proposed: int):
		super().__init__(
			f"Counter for {credential_id} cannot move from {current} to {proposed}"
		)
		self.credential_id = credential_id
		self.current = current
		self.proposed = proposed


class StorageUnavailable(PasskeyStoreError):
	"""The underlying database failed. Callers may retry with backoff."""
	pass

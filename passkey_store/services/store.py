# (c) Copyright Datacraft, 2026
"""Passkey credential store with replay-safe counter updates."""
import logging
from contextlib import contextmanager
from typing import Iterable, Iterator

from sqlalchemy import Select, select, update, delete
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from passkey_store.db.orm import Passkey, RevokedPasskey
from passkey_store.exceptions import (
	DuplicateId,
	NotFound,
	ReplayDetected,
	StorageUnavailable,
)
from passkey_store.schema import MAX_COUNTER, PasskeyCredential

logger = logging.getLogger(__name__)


class CredentialListing:
	"""Lazy view over a credential query.

	Every iteration runs the query again in a fresh session, so a
	listing can be consumed more than once. Rows are loaded before the
	session closes, so abandoning an iteration holds no connection.
	"""

	def __init__(self, store: "CredentialStore", stmt: Select):
		self._store = store
		self._stmt = stmt

	def __iter__(self) -> Iterator[PasskeyCredential]:
		with self._store._session() as db:
			records = [PasskeyCredential.model_validate(row) for row in db.scalars(self._stmt)]
		return iter(records)


class CredentialStore:
	"""Durable mapping from credential id to passkey record.

	Each mutating call runs in its own transaction. Counter updates are
	a compare-and-set on the stored value, so two callers racing from the
	same base counter cannot both succeed.
	"""

	def __init__(self, session_factory: sessionmaker[Session]):
		self.session_factory = session_factory

	@contextmanager
	def _session(self) -> Iterator[Session]:
		try:
			with self.session_factory() as db:
				yield db
		except DBAPIError as e:
			logger.error(f"Passkey storage failure: {e}")
			raise StorageUnavailable(str(e)) from e

	def create(self, record: PasskeyCredential) -> str:
		"""Register a new credential. Its counter must start at 0."""
		if record.counter != 0:
			raise ValueError("New credentials start with counter 0")

		with self._session() as db:
			try:
				with db.begin():
					if (
						db.get(RevokedPasskey, record.id) is not None
						or db.get(Passkey, record.id) is not None
					):
						raise DuplicateId(record.id)
					db.add(Passkey(**record.model_dump()))
			except IntegrityError as e:
				raise DuplicateId(record.id) from e

		logger.info(f"Passkey {record.id} registered for user {record.user_id} on {record.rp_id}")
		return record.id

	def get_by_id(self, credential_id: str) -> PasskeyCredential:
		with self._session() as db:
			row = db.get(Passkey, credential_id)
			if row is None:
				raise NotFound(credential_id)
			return PasskeyCredential.model_validate(row)

	def list_by_user(self, rp_id: str, user_id: str) -> CredentialListing:
		"""Credentials a user registered with a relying party, by id."""
		stmt = (
			select(Passkey)
			.where(Passkey.rp_id == rp_id, Passkey.user_id == user_id)
			.order_by(Passkey.id)
		)
		return CredentialListing(self, stmt)

	def list_all(self) -> CredentialListing:
		return CredentialListing(self, select(Passkey).order_by(Passkey.id))

	def update_counter(self, credential_id: str, new_counter: int) -> int:
		"""Advance the signature counter and return the previous value.

		Raises:
			NotFound: no credential with this id
			ReplayDetected: ``new_counter`` does not exceed the stored
				counter, or a concurrent update advanced it first
		"""
		if new_counter < 0:
			raise ValueError("Counter cannot be negative")
		if new_counter > MAX_COUNTER:
			raise ValueError(f"Counter cannot exceed {MAX_COUNTER}")

		with self._session() as db:
			with db.begin():
				current = db.scalar(
					select(Passkey.counter)
					.where(Passkey.id == credential_id)
					.with_for_update()
				)
				if current is None:
					raise NotFound(credential_id)
				if new_counter <= current:
					logger.warning(
						f"Replay detected for passkey {credential_id}: "
						f"stored counter {current}, presented {new_counter}"
					)
					raise ReplayDetected(credential_id, current, new_counter)

				result = db.execute(
					update(Passkey)
					.where(Passkey.id == credential_id, Passkey.counter == current)
					.values(counter=new_counter)
					.execution_options(synchronize_session=False)
				)
				if result.rowcount == 0:
					# Lost the race: another writer changed or removed the row
					latest = db.scalar(
						select(Passkey.counter).where(Passkey.id == credential_id)
					)
					if latest is None:
						raise NotFound(credential_id)
					logger.warning(
						f"Replay detected for passkey {credential_id}: "
						f"counter moved to {latest} concurrently"
					)
					raise ReplayDetected(credential_id, latest, new_counter)

		logger.info(f"Passkey {credential_id} counter advanced {current} -> {new_counter}")
		return current

	def delete(self, credential_id: str) -> None:
		"""Revoke a credential. The id can never be registered again."""
		with self._session() as db:
			with db.begin():
				result = db.execute(
					delete(Passkey)
					.where(Passkey.id == credential_id)
					.execution_options(synchronize_session=False)
				)
				if result.rowcount == 0:
					raise NotFound(credential_id)
				db.add(RevokedPasskey(id=credential_id))

		logger.info(f"Passkey {credential_id} revoked")

	def import_many(self, records: Iterable[PasskeyCredential]) -> int:
		"""Insert or replace a batch of credentials in one transaction.

		A replaced record keeps its counter from going backwards and a
		revoked id is refused; either failure rolls back the whole batch.
		"""
		count = 0
		record = None
		with self._session() as db:
			try:
				with db.begin():
					for record in records:
						if db.get(RevokedPasskey, record.id) is not None:
							raise DuplicateId(record.id)

						existing = db.get(Passkey, record.id, with_for_update=True)
						if existing is None:
							db.add(Passkey(**record.model_dump()))
						else:
							if record.counter < existing.counter:
								logger.warning(
									f"Import would lower counter of passkey {record.id} "
									f"from {existing.counter} to {record.counter}"
								)
								raise ReplayDetected(record.id, existing.counter, record.counter)
							for field, value in record.model_dump().items():
								setattr(existing, field, value)
						db.flush()
						count += 1
			except IntegrityError as e:
				# A concurrent writer inserted the same id first
				raise DuplicateId(record.id) from e

		logger.info(f"Imported {count} passkeys")
		return count

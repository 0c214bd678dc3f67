# (c) Copyright Datacraft, 2026
"""Schema creation and version bookkeeping."""
import logging

from sqlalchemy import Engine, func, select
from sqlalchemy.exc import DBAPIError

from passkey_store.exceptions import StorageUnavailable
from .base import Base
from .orm import SchemaVersion

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


def init_db(engine: Engine) -> int:
	"""Create missing tables and record the schema version.

	Safe to call on every start. Returns the version the database is at.
	"""
	try:
		Base.metadata.create_all(engine, checkfirst=True)
		with engine.begin() as conn:
			current = conn.scalar(select(func.max(SchemaVersion.version)))
			if current is None:
				conn.execute(
					SchemaVersion.__table__.insert().values(version=SCHEMA_VERSION)
				)
				logger.info(f"Initialized passkey schema at version {SCHEMA_VERSION}")
				return SCHEMA_VERSION
	except DBAPIError as e:
		logger.error(f"Schema initialization failed: {e}")
		raise StorageUnavailable(f"Cannot initialize database: {e}") from e

	if current > SCHEMA_VERSION:
		raise StorageUnavailable(
			f"Database schema version {current} is newer than supported {SCHEMA_VERSION}"
		)
	return current

# (c) Copyright Datacraft, 2026
"""Database module for passkey-store."""
from .orm import Passkey, RevokedPasskey, SchemaVersion
from .base import Base
from .migrate import SCHEMA_VERSION, init_db

__all__ = [
	'Base',
	'Passkey',
	'RevokedPasskey',
	'SchemaVersion',
	'SCHEMA_VERSION',
	'init_db',
]

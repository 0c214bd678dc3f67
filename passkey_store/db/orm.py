# (c) Copyright Datacraft, 2026
"""Passkey credential tables."""
from datetime import datetime, timezone

from sqlalchemy import (
	CheckConstraint, DateTime, Index, Integer, Text, func
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


def utc_now() -> datetime:
	return datetime.now(timezone.utc)


class Passkey(Base):
	"""Server-side record of a registered passkey."""

	__tablename__ = "passkeys"

	id: Mapped[str] = mapped_column(Text, primary_key=True, nullable=False)
	rp_id: Mapped[str] = mapped_column(Text, nullable=False)
	rp_name: Mapped[str] = mapped_column(Text, nullable=False)
	user_id: Mapped[str] = mapped_column(Text, nullable=False)
	username: Mapped[str] = mapped_column(Text, nullable=False)
	counter: Mapped[int] = mapped_column(
		Integer, nullable=False, default=0, server_default="0"
	)
	key: Mapped[str] = mapped_column(Text, nullable=False)

	__table_args__ = (
		Index("idx_passkeys_rp_user", "rp_id", "user_id"),
		CheckConstraint("counter >= 0", name="ck_passkeys_counter_positive"),
	)

	def __repr__(self):
		return f"Passkey(id={self.id!r}, rp_id={self.rp_id!r}, counter={self.counter})"


class RevokedPasskey(Base):
	"""Tombstone keeping a revoked credential id from being reused."""

	__tablename__ = "revoked_passkeys"

	id: Mapped[str] = mapped_column(Text, primary_key=True)
	revoked_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), nullable=False, default=utc_now,
		server_default=func.now(),
	)


class SchemaVersion(Base):
	__tablename__ = "schema_version"

	version: Mapped[int] = mapped_column(Integer, primary_key=True)
	applied_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), nullable=False, default=utc_now,
		server_default=func.now(),
	)

# (c) Copyright Datacraft, 2026
from sqlalchemy import create_engine, Engine
from sqlalchemy.engine import make_url
from sqlalchemy.pool import NullPool, StaticPool
from sqlalchemy.orm import sessionmaker

from passkey_store.config import Settings, get_settings


def create_engine_from_settings(settings: Settings) -> Engine:
    """Build an engine for ``settings.db_url``.

    SQLite connections are opened with ``check_same_thread=False`` so
    sessions can run on worker threads. An in-memory SQLite database
    lives on a single shared connection.
    """
    url = make_url(settings.db_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(url, poolclass=NullPool, echo=settings.echo_sql)

    connect_args = {"check_same_thread": False}
    if url.database in (None, "", ":memory:"):
        return create_engine(
            url,
            poolclass=StaticPool,
            connect_args=connect_args,
            echo=settings.echo_sql,
        )
    return create_engine(
        url, poolclass=NullPool, connect_args=connect_args, echo=settings.echo_sql
    )


settings = get_settings()

engine = create_engine_from_settings(settings)

Session = sessionmaker(engine, expire_on_commit=False)


def get_engine() -> Engine:
    return engine

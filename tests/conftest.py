import pytest
from sqlalchemy.orm import sessionmaker

from passkey_store.config import Settings
from passkey_store.db import init_db
from passkey_store.db.engine import create_engine_from_settings
from passkey_store.schema import PasskeyCredential
from passkey_store.services.store import CredentialStore


def make_record(id="cred-1", user_id="u1", username="alice", **overrides) -> PasskeyCredential:
    fields = dict(
        id=id,
        rp_id="example.com",
        rp_name="Example",
        user_id=user_id,
        username=username,
        counter=0,
        key="cGstYmxvYg",
    )
    fields.update(overrides)
    return PasskeyCredential(**fields)


def build_store(db_path) -> CredentialStore:
    engine = create_engine_from_settings(Settings(db_url=f"sqlite:///{db_path}"))
    init_db(engine)
    return CredentialStore(sessionmaker(engine, expire_on_commit=False))


@pytest.fixture
def db_engine(tmp_path):
    engine = create_engine_from_settings(Settings(db_url=f"sqlite:///{tmp_path / 'passkeys.db'}"))
    yield engine
    engine.dispose()


@pytest.fixture
def store(db_engine) -> CredentialStore:
    init_db(db_engine)
    return CredentialStore(sessionmaker(db_engine, expire_on_commit=False))


@pytest.fixture
def other_store(tmp_path) -> CredentialStore:
    return build_store(tmp_path / "other.db")

import threading

import pytest
from sqlalchemy import Update, event, select
from sqlalchemy.orm import Session, sessionmaker

from passkey_store.db.orm import RevokedPasskey
from passkey_store.exceptions import (
    DuplicateId,
    NotFound,
    ReplayDetected,
    StorageUnavailable,
)
from passkey_store.schema import MAX_COUNTER
from passkey_store.services.store import CredentialStore

from .conftest import make_record


class TestCreateAndGet:
    def test_create_then_get_returns_same_record(self, store):
        record = make_record()

        assert store.create(record) == "cred-1"

        loaded = store.get_by_id("cred-1")
        assert loaded == record
        assert loaded.counter == 0

    def test_get_unknown_id(self, store):
        with pytest.raises(NotFound) as exc_info:
            store.get_by_id("missing")
        assert exc_info.value.credential_id == "missing"

    def test_duplicate_id_leaves_existing_record(self, store):
        store.create(make_record(username="alice"))

        with pytest.raises(DuplicateId):
            store.create(make_record(username="mallory", user_id="u2"))

        loaded = store.get_by_id("cred-1")
        assert loaded.username == "alice"
        assert loaded.user_id == "u1"

    def test_create_requires_zero_counter(self, store):
        with pytest.raises(ValueError):
            store.create(make_record(counter=3))
        with pytest.raises(NotFound):
            store.get_by_id("cred-1")

    def test_key_is_not_in_repr(self):
        record = make_record(key="c2VjcmV0LWtleQ")
        assert "c2VjcmV0LWtleQ" not in repr(record)


class TestUpdateCounter:
    def test_advances_and_returns_prior_value(self, store):
        store.create(make_record())

        assert store.update_counter("cred-1", 5) == 0
        assert store.update_counter("cred-1", 6) == 5
        assert store.get_by_id("cred-1").counter == 6

    def test_equal_or_lower_counter_is_replay(self, store):
        store.create(make_record())
        store.update_counter("cred-1", 4)

        with pytest.raises(ReplayDetected) as exc_info:
            store.update_counter("cred-1", 4)
        assert exc_info.value.current == 4
        assert exc_info.value.proposed == 4

        with pytest.raises(ReplayDetected):
            store.update_counter("cred-1", 3)

        assert store.get_by_id("cred-1").counter == 4

    def test_zero_on_fresh_record_is_replay(self, store):
        store.create(make_record())
        with pytest.raises(ReplayDetected):
            store.update_counter("cred-1", 0)

    def test_unknown_id(self, store):
        with pytest.raises(NotFound):
            store.update_counter("missing", 1)

    def test_negative_counter_rejected(self, store):
        store.create(make_record())
        with pytest.raises(ValueError):
            store.update_counter("cred-1", -1)

    def test_counter_above_signcount_width_rejected(self, store):
        store.create(make_record())
        assert store.update_counter("cred-1", MAX_COUNTER) == 0

        with pytest.raises(ValueError):
            store.update_counter("cred-1", 2**63)
        assert store.get_by_id("cred-1").counter == MAX_COUNTER

    def test_record_counter_is_bounded(self):
        with pytest.raises(ValueError):
            make_record(counter=MAX_COUNTER + 1)

    def test_concurrent_updates_from_same_base(self, store):
        store.create(make_record())

        for base in range(5):
            barrier = threading.Barrier(2)
            outcomes = []

            def advance():
                barrier.wait()
                try:
                    outcomes.append(store.update_counter("cred-1", base + 1))
                except ReplayDetected as e:
                    outcomes.append(e)

            threads = [threading.Thread(target=advance) for _ in range(2)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

            successes = [o for o in outcomes if isinstance(o, int)]
            replays = [o for o in outcomes if isinstance(o, ReplayDetected)]
            assert successes == [base]
            assert len(replays) == 1
            assert store.get_by_id("cred-1").counter == base + 1


class TestDelete:
    def test_delete_then_get(self, store):
        store.create(make_record())
        store.delete("cred-1")

        with pytest.raises(NotFound):
            store.get_by_id("cred-1")

    def test_delete_unknown_id(self, store):
        with pytest.raises(NotFound):
            store.delete("missing")

    def test_delete_twice(self, store):
        store.create(make_record())
        store.delete("cred-1")
        with pytest.raises(NotFound):
            store.delete("cred-1")

    def test_revoked_id_is_never_reused(self, store):
        store.create(make_record())
        store.delete("cred-1")

        with pytest.raises(DuplicateId):
            store.create(make_record())

    def test_delete_leaves_tombstone(self, store):
        store.create(make_record())
        store.delete("cred-1")

        with store.session_factory() as db:
            tombstone = db.scalar(select(RevokedPasskey).where(RevokedPasskey.id == "cred-1"))
        assert tombstone is not None
        assert tombstone.revoked_at is not None

    def test_counter_update_after_delete(self, store):
        store.create(make_record())
        store.delete("cred-1")
        with pytest.raises(NotFound):
            store.update_counter("cred-1", 1)


class TestListByUser:
    def test_lists_only_matching_credentials_by_id(self, store):
        store.create(make_record(id="cred-b"))
        store.create(make_record(id="cred-a"))
        store.create(make_record(id="cred-c", user_id="u2", username="bob"))
        store.create(make_record(id="cred-d", rp_id="other.org"))

        listed = [r.id for r in store.list_by_user("example.com", "u1")]

        assert listed == ["cred-a", "cred-b"]

    def test_no_match_is_empty(self, store):
        store.create(make_record())
        assert list(store.list_by_user("example.com", "nobody")) == []

    def test_listing_is_restartable_and_lazy(self, store):
        listing = store.list_by_user("example.com", "u1")
        assert list(listing) == []

        store.create(make_record(id="cred-1"))
        store.create(make_record(id="cred-2"))

        assert [r.id for r in listing] == ["cred-1", "cred-2"]
        assert [r.id for r in listing] == ["cred-1", "cred-2"]

    def test_list_all(self, store):
        store.create(make_record(id="cred-2", user_id="u2"))
        store.create(make_record(id="cred-1"))
        assert [r.id for r in store.list_all()] == ["cred-1", "cred-2"]


class TestImportMany:
    def test_inserts_records_with_counters(self, store):
        count = store.import_many([
            make_record(id="cred-1", counter=7),
            make_record(id="cred-2"),
        ])

        assert count == 2
        assert store.get_by_id("cred-1").counter == 7
        assert store.get_by_id("cred-2").counter == 0

    def test_replaces_existing_record(self, store):
        store.create(make_record(username="alice"))
        store.import_many([make_record(username="alice@example.com", counter=3)])

        loaded = store.get_by_id("cred-1")
        assert loaded.username == "alice@example.com"
        assert loaded.counter == 3

    def test_never_lowers_counter_and_rolls_back(self, store):
        store.create(make_record())
        store.update_counter("cred-1", 10)

        with pytest.raises(ReplayDetected):
            store.import_many([
                make_record(id="cred-0"),
                make_record(id="cred-1", counter=2),
            ])

        assert store.get_by_id("cred-1").counter == 10
        with pytest.raises(NotFound):
            store.get_by_id("cred-0")

    def test_refuses_revoked_ids(self, store):
        store.create(make_record())
        store.delete("cred-1")

        with pytest.raises(DuplicateId):
            store.import_many([make_record()])

    def test_same_id_twice_in_batch(self, store):
        store.import_many([
            make_record(counter=1),
            make_record(counter=4, username="alice2"),
        ])
        loaded = store.get_by_id("cred-1")
        assert loaded.counter == 4
        assert loaded.username == "alice2"


def test_scenario_register_authenticate_revoke(store):
    store.create(make_record(key="pk-blob"))

    assert store.update_counter("cred-1", 1) == 0
    with pytest.raises(ReplayDetected):
        store.update_counter("cred-1", 1)

    store.delete("cred-1")
    with pytest.raises(NotFound):
        store.get_by_id("cred-1")


def test_missing_tables_surface_as_storage_unavailable(db_engine):
    store = CredentialStore(sessionmaker(db_engine, expire_on_commit=False))

    with pytest.raises(StorageUnavailable):
        store.get_by_id("cred-1")
    with pytest.raises(StorageUnavailable):
        list(store.list_all())


def racing_store(engine, before_update=None, before_insert=None):
    """Store whose sessions let another writer commit mid-transaction.

    ``before_update`` runs once just before the counter UPDATE is sent,
    ``before_insert`` once just before new rows are flushed.
    """
    hooks = {"update": before_update, "insert": before_insert}

    class RacingSession(Session):
        def execute(self, statement, *args, **kwargs):
            if isinstance(statement, Update) and hooks.get("update"):
                hooks.pop("update")()
            return super().execute(statement, *args, **kwargs)

        def flush(self, objects=None):
            if self.new and hooks.get("insert"):
                hooks.pop("insert")()
            return super().flush(objects)

    return CredentialStore(sessionmaker(engine, class_=RacingSession, expire_on_commit=False))


class TestLostRace:
    def test_counter_advanced_between_read_and_write(self, db_engine, store):
        store.create(make_record())
        racing = racing_store(
            db_engine, before_update=lambda: store.update_counter("cred-1", 5)
        )

        with pytest.raises(ReplayDetected) as exc_info:
            racing.update_counter("cred-1", 1)

        assert exc_info.value.current == 5
        assert exc_info.value.proposed == 1
        assert store.get_by_id("cred-1").counter == 5

    def test_credential_revoked_between_read_and_write(self, db_engine, store):
        store.create(make_record())
        racing = racing_store(db_engine, before_update=lambda: store.delete("cred-1"))

        with pytest.raises(NotFound):
            racing.update_counter("cred-1", 1)

    def test_concurrent_import_of_same_new_id(self, db_engine, store):
        racing = racing_store(
            db_engine, before_insert=lambda: store.create(make_record(username="bob"))
        )

        with pytest.raises(DuplicateId) as exc_info:
            racing.import_many([make_record(counter=2)])

        assert exc_info.value.credential_id == "cred-1"
        loaded = store.get_by_id("cred-1")
        assert loaded.username == "bob"
        assert loaded.counter == 0


def test_abandoned_listing_returns_its_connection(db_engine, store):
    store.create(make_record(id="cred-1"))
    store.create(make_record(id="cred-2"))
    checked_out = []
    event.listen(db_engine, "checkout", lambda *args: checked_out.append(1))
    event.listen(db_engine, "checkin", lambda *args: checked_out.pop())

    listing = iter(store.list_all())
    assert next(listing).id == "cred-1"

    assert checked_out == []

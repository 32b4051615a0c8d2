from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from powforum.infrastructure.db import build_engine
from powforum.infrastructure.db.models import Account, ForumSetting, PresencePing
from powforum.infrastructure.document_store import Before, SqlAlchemyDocumentStore
from powforum.shared.errors import PersistenceUnavailableError

NOW = datetime(2024, 1, 1, tzinfo=UTC)


def test_insert_if_absent_never_overwrites(store: SqlAlchemyDocumentStore) -> None:
    assert store.insert_if_absent(ForumSetting, "type", ForumSetting(type="a", value="1"))
    assert not store.insert_if_absent(ForumSetting, "type", ForumSetting(type="a", value="2"))

    assert store.count_all(ForumSetting) == 1
    assert store.find_one(ForumSetting, {"type": "a"}).value == "1"


def test_before_filter_is_strict(store: SqlAlchemyDocumentStore) -> None:
    for seconds in (-10, 0, 10):
        seen_at = NOW + timedelta(seconds=seconds)
        store.save(PresencePing(account_id=1, connection_id=f"c{seconds}", seen_at=seen_at))

    older = store.find(PresencePing, {"seen_at": Before(NOW)})

    assert [ping.connection_id for ping in older] == ["c-10"]


def test_delete_many_returns_count(store: SqlAlchemyDocumentStore) -> None:
    for index in range(3):
        store.save(PresencePing(account_id=index, connection_id=f"c{index}", seen_at=NOW))
    store.save(PresencePing(account_id=9, connection_id="fresh", seen_at=NOW + timedelta(days=1)))

    deleted = store.delete_many(PresencePing, {"seen_at": Before(NOW + timedelta(hours=1))})

    assert deleted == 3
    assert store.count_all(PresencePing) == 1


def test_none_filter_matches_null(store: SqlAlchemyDocumentStore) -> None:
    store.insert_if_absent(Account, "username", Account(username="a", roles=frozenset()))
    store.insert_if_absent(
        Account, "username", Account(username="b", roles=frozenset(), premium_expiry=NOW)
    )

    assert [a.username for a in store.find(Account, {"premium_expiry": None})] == ["a"]


def test_save_bumps_revision_and_round_trips_roles(store: SqlAlchemyDocumentStore) -> None:
    store.insert_if_absent(Account, "username", Account(username="alice", roles=frozenset({"patron"})))
    account = store.find_one(Account, {"username": "alice"})
    assert account.revision == 0

    account.roles = frozenset({"vip", "admin"})
    store.save(account)

    reloaded = store.find_one(Account, {"username": "alice"})
    assert reloaded.revision == 1
    assert reloaded.roles == frozenset({"vip", "admin"})
    assert reloaded.updated_at.tzinfo is not None


def test_failed_save_leaves_caller_revision_alone(store: SqlAlchemyDocumentStore) -> None:
    store.insert_if_absent(Account, "username", Account(username="alice", roles=frozenset()))
    clash = Account(username="alice", roles=frozenset(), revision=0)

    with pytest.raises(PersistenceUnavailableError):
        store.save(clash)

    assert clash.revision == 0
    assert store.find_one(Account, {"username": "alice"}).revision == 0


def test_save_returns_bumped_copy(store: SqlAlchemyDocumentStore) -> None:
    store.insert_if_absent(Account, "username", Account(username="bob", roles=frozenset()))
    account = store.find_one(Account, {"username": "bob"})

    saved = store.save(account)

    assert saved.revision == 1
    assert account.revision == 0


def test_missing_schema_is_reported_as_persistence_unavailable() -> None:
    engine = build_engine("sqlite://")
    store = SqlAlchemyDocumentStore(sessionmaker(bind=engine))

    with pytest.raises(PersistenceUnavailableError) as excinfo:
        store.count_all(Account)
    assert excinfo.value.operation == "count_all:Account"
    engine.dispose()

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from flask import Flask, request
from werkzeug.test import EnvironBuilder

from powforum.domain import ANONYMOUS, ConnectionState, Identity
from powforum.infrastructure.auth import SessionResolver, SessionTokenSigner
from powforum.infrastructure.db.models import Account, PresencePing, SessionToken
from powforum.infrastructure.document_store import SqlAlchemyDocumentStore
from powforum.infrastructure.realtime import PRESENCE_PING_EVENT, ConnectionRegistry, SessionBridge
from powforum.infrastructure.repositories.users.sqlalchemy_user_repository import (
    SqlAlchemySessionTokenRepository,
)
from powforum.shared.config.settings import SessionConfig
from powforum.shared.errors import PersistenceUnavailableError
from powforum.tests.fakes import FakeTransport

NOW = datetime.now(UTC).replace(microsecond=0)


class FakeServer:
    def __init__(self) -> None:
        self.handlers: dict[str, Any] = {}

    def on(self, event: str, handler: Any = None) -> None:
        self.handlers[event] = handler


@pytest.fixture()
def signer() -> SessionTokenSigner:
    return SessionTokenSigner("test-secret")


@pytest.fixture()
def resolver(store: SqlAlchemyDocumentStore, signer: SessionTokenSigner) -> SessionResolver:
    return SessionResolver(store, signer, SessionConfig(), clock=lambda: NOW)


@pytest.fixture()
def registry() -> ConnectionRegistry:
    return ConnectionRegistry(FakeTransport())


@pytest.fixture()
def bridge(
    store: SqlAlchemyDocumentStore, resolver: SessionResolver, registry: ConnectionRegistry
) -> SessionBridge:
    return SessionBridge(Flask(__name__), resolver, registry, store, clock=lambda: NOW)


@pytest.fixture()
def alice(store: SqlAlchemyDocumentStore) -> Account:
    store.insert_if_absent(Account, "username", Account(username="alice", roles=frozenset()))
    return store.find_one(Account, {"username": "alice"})


@pytest.fixture()
def alice_cookie(session_factory, signer: SessionTokenSigner, alice: Account) -> str:
    tokens = SqlAlchemySessionTokenRepository(session_factory, signer, SessionConfig())
    return tokens.replace_for_account(alice.id).token


def _handshake(cookie: str | None = None, headers: dict[str, str] | None = None) -> dict:
    headers = dict(headers or {})
    if cookie is not None:
        headers["Cookie"] = f"auth_token={cookie}"
    builder = EnvironBuilder(
        path="/socket.io/", query_string="EIO=4&transport=polling", headers=headers
    )
    return builder.get_environ()


def _store_session(store, signer, account_id: int, *, created_at, expires_at, raw="raw-token") -> str:
    store.save(
        SessionToken(account_id=account_id, token=raw, created_at=created_at, expires_at=expires_at)
    )
    return signer.sign(raw)


def test_connect_with_session_cookie_inherits_identity(
    bridge: SessionBridge,
    registry: ConnectionRegistry,
    store: SqlAlchemyDocumentStore,
    alice: Account,
    alice_cookie: str,
) -> None:
    assert bridge.handle_connect("sid-1", _handshake(alice_cookie)) is True

    connection = registry.get("sid-1")
    assert connection.identity == Identity(account_id=alice.id, username="alice")
    assert connection.state is ConnectionState.ACTIVE
    assert [c.connection_id for c in registry.list_by_identity(connection.identity)] == ["sid-1"]
    assert store.count_all(PresencePing) == 1


def test_connect_with_bearer_header(
    bridge: SessionBridge, registry: ConnectionRegistry, alice: Account, alice_cookie: str
) -> None:
    bridge.handle_connect("sid-1", _handshake(headers={"Authorization": f"Bearer {alice_cookie}"}))

    assert registry.get("sid-1").identity.account_id == alice.id


def test_connect_without_credential_is_anonymous(
    bridge: SessionBridge, registry: ConnectionRegistry, store: SqlAlchemyDocumentStore
) -> None:
    assert bridge.handle_connect("sid-1", _handshake()) is True

    connection = registry.get("sid-1")
    assert connection.identity == ANONYMOUS
    assert registry.list_by_identity(ANONYMOUS) == [connection]
    assert store.count_all(PresencePing) == 0


@pytest.mark.parametrize("cookie", ["garbage", "a.b.c", ""])
def test_connect_with_invalid_credential_is_anonymous(
    bridge: SessionBridge, registry: ConnectionRegistry, cookie: str
) -> None:
    assert bridge.handle_connect("sid-1", _handshake(cookie)) is True
    assert registry.get("sid-1").identity == ANONYMOUS


def test_credential_signed_with_other_key_is_anonymous(
    bridge: SessionBridge, registry: ConnectionRegistry, store, alice: Account
) -> None:
    cookie = _store_session(
        store,
        SessionTokenSigner("another-secret"),
        alice.id,
        created_at=NOW,
        expires_at=NOW + timedelta(days=1),
    )

    bridge.handle_connect("sid-1", _handshake(cookie))

    assert registry.get("sid-1").identity == ANONYMOUS


def test_expired_session_is_anonymous(
    bridge: SessionBridge, registry: ConnectionRegistry, store, signer, alice: Account
) -> None:
    cookie = _store_session(
        store, signer, alice.id, created_at=NOW - timedelta(days=40), expires_at=NOW - timedelta(seconds=1)
    )

    bridge.handle_connect("sid-1", _handshake(cookie))

    assert registry.get("sid-1").identity == ANONYMOUS


def test_revoked_session_is_anonymous(
    bridge: SessionBridge, registry: ConnectionRegistry, session_factory, signer, alice_cookie: str
) -> None:
    SqlAlchemySessionTokenRepository(session_factory, signer, SessionConfig()).revoke(alice_cookie)

    bridge.handle_connect("sid-1", _handshake(alice_cookie))

    assert registry.get("sid-1").identity == ANONYMOUS


def test_http_and_handshake_resolve_identically(
    bridge: SessionBridge, registry: ConnectionRegistry, resolver: SessionResolver, alice_cookie: str
) -> None:
    app = Flask(__name__)
    with app.test_request_context("/api/auth/me", headers={"Cookie": f"auth_token={alice_cookie}"}):
        http_identity = resolver.resolve(request)

    bridge.handle_connect("sid-1", _handshake(alice_cookie))

    assert registry.get("sid-1").identity == http_identity
    assert not http_identity.is_anonymous


def test_disconnect_unregisters_once(
    bridge: SessionBridge, registry: ConnectionRegistry, alice_cookie: str
) -> None:
    bridge.handle_connect("sid-1", _handshake(alice_cookie))
    bridge.handle_connect("sid-2", _handshake(alice_cookie))
    connection = registry.get("sid-1")

    bridge.handle_disconnect("sid-1", "client disconnect")
    bridge.handle_disconnect("sid-1", "transport close")

    assert connection.state is ConnectionState.DISCONNECTED
    assert registry.get("sid-1") is None
    assert [c.connection_id for c in registry.list_by_identity(connection.identity)] == ["sid-2"]
    assert registry.online_count() == 1


def test_presence_ping(
    bridge: SessionBridge, store: SqlAlchemyDocumentStore, alice_cookie: str
) -> None:
    bridge.handle_connect("sid-1", _handshake(alice_cookie))

    assert bridge.handle_presence_ping("sid-1") == {"ok": True}
    assert bridge.handle_presence_ping("unknown") == {"ok": False}
    assert store.count_all(PresencePing) == 2


def test_attach_registers_handlers(bridge: SessionBridge) -> None:
    server = FakeServer()

    bridge.attach(server)  # type: ignore[arg-type]

    assert set(server.handlers) == {"connect", "disconnect", PRESENCE_PING_EVENT}
    assert server.handlers["connect"] == bridge.handle_connect


def test_rolling_expiry_is_extended(store, signer, resolver: SessionResolver, alice: Account) -> None:
    cookie = _store_session(
        store, signer, alice.id, created_at=NOW - timedelta(days=10), expires_at=NOW + timedelta(days=1)
    )
    app = Flask(__name__)

    with app.test_request_context(headers={"Authorization": f"Bearer {cookie}"}):
        assert resolver.resolve(request).account_id == alice.id

    session = store.find_one(SessionToken, {"token": "raw-token"})
    assert session.expires_at == NOW + timedelta(days=30)


def test_rolling_expiry_is_capped_by_max_age(
    store, signer, resolver: SessionResolver, alice: Account
) -> None:
    created_at = NOW - timedelta(days=364)
    cookie = _store_session(
        store, signer, alice.id, created_at=created_at, expires_at=NOW + timedelta(hours=1)
    )
    app = Flask(__name__)

    with app.test_request_context(headers={"Authorization": f"Bearer {cookie}"}):
        resolver.resolve(request)

    session = store.find_one(SessionToken, {"token": "raw-token"})
    assert session.expires_at == created_at + timedelta(days=365)


def test_store_outage_resolves_anonymous(signer: SessionTokenSigner) -> None:
    class DownStore:
        def find_one(self, kind, filter=None):
            raise PersistenceUnavailableError("find_one:SessionToken", "connection refused")

    resolver = SessionResolver(DownStore(), signer, SessionConfig())  # type: ignore[arg-type]
    app = Flask(__name__)

    with app.test_request_context(headers={"Authorization": f"Bearer {signer.sign('x')}"}):
        assert resolver.resolve(request) == ANONYMOUS

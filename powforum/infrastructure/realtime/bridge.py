# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Binds realtime handshakes to the HTTP session of the same browser."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any

import socketio
from flask import Flask
from flask import request as flask_request

from powforum.application.interfaces import DocumentStore
from powforum.domain.identity import Identity
from powforum.domain.realtime import Connection
from powforum.infrastructure.auth.session_resolver import SessionResolver
from powforum.infrastructure.db.models import PresencePing
from powforum.infrastructure.db.types import utcnow
from powforum.shared.errors import PersistenceUnavailableError
from powforum.shared.logging import clear_correlation_id, logger, set_correlation_id

from .registry import ConnectionRegistry

PRESENCE_PING_EVENT = "presence:ping"


class SessionBridge:
    def __init__(
        self,
        flask_app: Flask,
        resolver: SessionResolver,
        registry: ConnectionRegistry,
        store: DocumentStore,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._app = flask_app
        self._resolver = resolver
        self._registry = registry
        self._store = store
        self._clock = clock

    def attach(self, server: socketio.Server) -> None:
        server.on("connect", self.handle_connect)
        server.on("disconnect", self.handle_disconnect)
        server.on(PRESENCE_PING_EVENT, self.handle_presence_ping)

    def handle_connect(self, sid: str, environ: dict[str, Any], auth: Any = None) -> bool:
        """Resolve and register before any application handler sees ``sid``.

        The handshake is never refused: a failed resolution yields an
        anonymous connection.
        """

        set_correlation_id(f"sio-{sid[:12]}")
        try:
            with self._app.request_context(environ):
                identity = self._resolver.resolve(flask_request)

            connection = Connection(connection_id=sid, connected_at=self._clock())
            connection.resolve(identity)
            self._registry.register(connection)
            logger.info(
                f"realtime: connected sid={sid} identity={identity} "
                f"online={self._registry.online_count()}"
            )
            if not identity.is_anonymous:
                self._record_presence(identity, sid)
            return True
        finally:
            clear_correlation_id()

    def handle_disconnect(self, sid: str, reason: Any = None) -> None:
        set_correlation_id(f"sio-{sid[:12]}")
        try:
            connection = self._registry.unregister(sid)
            if connection is None:
                logger.debug(f"realtime: disconnect for unknown sid={sid}")
                return
            logger.info(
                f"realtime: disconnected sid={sid} identity={connection.identity} reason={reason}"
            )
        finally:
            clear_correlation_id()

    def handle_presence_ping(self, sid: str, data: Any = None) -> dict[str, bool]:
        connection = self._registry.get(sid)
        if connection is None or not connection.is_live:
            return {"ok": False}
        if not connection.identity.is_anonymous:
            self._record_presence(connection.identity, sid)
        return {"ok": True}

    def _record_presence(self, identity: Identity, sid: str) -> None:
        ping = PresencePing(account_id=identity.account_id, connection_id=sid, seen_at=self._clock())
        try:
            self._store.save(ping)
        except PersistenceUnavailableError as exc:
            logger.warning(f"realtime: presence for {identity} not recorded ({exc.operation})")


__all__ = ["PRESENCE_PING_EVENT", "SessionBridge"]

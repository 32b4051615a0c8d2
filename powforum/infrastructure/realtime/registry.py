# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""In-memory index of live realtime connections, keyed by identity."""

from __future__ import annotations

import threading
from typing import Any

from powforum.application.interfaces import RealtimeTransport
from powforum.domain.exceptions import InvariantViolation
from powforum.domain.identity import Identity
from powforum.domain.realtime import Connection
from powforum.infrastructure.observability import REALTIME_CONNECTIONS
from powforum.shared.logging import logger


class ConnectionRegistry:
    """One instance per process, handed to whoever needs to reach clients.

    Handlers run on transport worker threads, so every read and write of the
    index happens under ``_lock``. Broadcasts emit while holding it: a
    connection is either fully registered or fully gone for the duration.
    """

    def __init__(self, transport: RealtimeTransport) -> None:
        self._transport = transport
        self._connections: dict[str, Connection] = {}
        self._by_identity: dict[str, list[str]] = {}
        self._lock = threading.RLock()

    def register(self, connection: Connection) -> Connection:
        with self._lock:
            if connection.connection_id in self._connections:
                raise InvariantViolation(
                    f"connection {connection.connection_id} is already registered",
                    field="connection_id",
                )
            connection.activate()
            self._connections[connection.connection_id] = connection
            self._by_identity.setdefault(connection.identity.key, []).append(
                connection.connection_id
            )
            REALTIME_CONNECTIONS.set(len(self._connections))
        return connection

    def unregister(self, connection_id: str) -> Connection | None:
        """Remove a connection; unknown or already removed ids are a no-op."""

        with self._lock:
            connection = self._connections.pop(connection_id, None)
            if connection is None:
                return None
            key = connection.identity.key
            siblings = self._by_identity.get(key, [])
            if connection_id in siblings:
                siblings.remove(connection_id)
            if not siblings:
                self._by_identity.pop(key, None)
            connection.close()
            REALTIME_CONNECTIONS.set(len(self._connections))
        return connection

    def list_by_identity(self, identity: Identity) -> list[Connection]:
        with self._lock:
            return [self._connections[cid] for cid in self._by_identity.get(identity.key, ())]

    def broadcast_to(self, identity: Identity, event: str, payload: Any = None) -> int:
        """Emit to every live connection of ``identity``; returns how many were reached."""

        delivered = 0
        with self._lock:
            for connection_id in self._by_identity.get(identity.key, ()):
                try:
                    self._transport.emit(connection_id, event, payload)
                except Exception as exc:
                    logger.warning(
                        f"realtime: emit {event} to {connection_id} failed: "
                        f"{type(exc).__name__}: {exc}"
                    )
                    continue
                delivered += 1
        return delivered

    def get(self, connection_id: str) -> Connection | None:
        with self._lock:
            return self._connections.get(connection_id)

    def is_online(self, identity: Identity) -> bool:
        with self._lock:
            return bool(self._by_identity.get(identity.key))

    def online_count(self) -> int:
        with self._lock:
            return len(self._connections)


__all__ = ["ConnectionRegistry"]

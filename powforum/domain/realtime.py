# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from .exceptions import InvariantViolation
from .identity import ANONYMOUS, Identity


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"
    ACTIVE = "active"
    DISCONNECTED = "disconnected"


_TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.CONNECTING: frozenset(
        {ConnectionState.AUTHENTICATED, ConnectionState.ANONYMOUS, ConnectionState.DISCONNECTED}
    ),
    ConnectionState.AUTHENTICATED: frozenset(
        {ConnectionState.ACTIVE, ConnectionState.DISCONNECTED}
    ),
    ConnectionState.ANONYMOUS: frozenset({ConnectionState.ACTIVE, ConnectionState.DISCONNECTED}),
    ConnectionState.ACTIVE: frozenset({ConnectionState.DISCONNECTED}),
    ConnectionState.DISCONNECTED: frozenset(),
}


@dataclass(slots=True)
class Connection:
    """A live realtime channel; lives only in the registry."""

    connection_id: str
    identity: Identity = ANONYMOUS
    connected_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    state: ConnectionState = ConnectionState.CONNECTING

    def __post_init__(self) -> None:
        if not self.connection_id:
            raise InvariantViolation("connection id must not be empty", field="connection_id")

    def _move(self, target: ConnectionState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvariantViolation(
                f"cannot move from {self.state.value} to {target.value}", field="state"
            )
        self.state = target

    def resolve(self, identity: Identity) -> None:
        self.identity = identity
        self._move(ConnectionState.ANONYMOUS if identity.is_anonymous else ConnectionState.AUTHENTICATED)

    def activate(self) -> None:
        self._move(ConnectionState.ACTIVE)

    def close(self) -> bool:
        """Mark disconnected; returns False when it already was."""

        if self.state is ConnectionState.DISCONNECTED:
            return False
        self._move(ConnectionState.DISCONNECTED)
        return True

    @property
    def is_live(self) -> bool:
        return self.state is ConnectionState.ACTIVE


__all__ = ["Connection", "ConnectionState"]

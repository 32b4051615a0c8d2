# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from typing import Any

import socketio


class SocketIOTransport:
    def __init__(self, server: socketio.Server) -> None:
        self._server = server

    def emit(self, connection_id: str, event: str, payload: Any) -> None:
        self._server.emit(event, payload, to=connection_id)

    def broadcast(self, event: str, payload: Any) -> None:
        self._server.emit(event, payload)


__all__ = ["SocketIOTransport"]

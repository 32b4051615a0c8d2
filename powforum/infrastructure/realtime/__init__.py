# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .bridge import PRESENCE_PING_EVENT, SessionBridge
from .publisher import NotificationPublisher
from .registry import ConnectionRegistry
from .transport import SocketIOTransport

__all__ = [
    "ConnectionRegistry",
    "NotificationPublisher",
    "PRESENCE_PING_EVENT",
    "SessionBridge",
    "SocketIOTransport",
]

# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .interfaces import ConfigurationSurface, DocumentStore, PushService, RealtimeTransport

__all__ = [
    "ConfigurationSurface",
    "DocumentStore",
    "PushService",
    "RealtimeTransport",
]

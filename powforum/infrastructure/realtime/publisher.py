# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import json
from typing import Any

from powforum.application.interfaces import DocumentStore
from powforum.domain.identity import Identity
from powforum.infrastructure.db.models import TransientMessage
from powforum.infrastructure.db.types import utcnow
from powforum.shared.errors import PersistenceUnavailableError
from powforum.shared.logging import logger

from .registry import ConnectionRegistry


class NotificationPublisher:
    """Route-facing entry point for pushing an event to one identity."""

    def __init__(self, registry: ConnectionRegistry, store: DocumentStore) -> None:
        self._registry = registry
        self._store = store

    def publish(self, identity: Identity, event: str, payload: dict[str, Any] | None = None) -> int:
        payload = payload or {}
        if not identity.is_anonymous:
            # Kept for clients that reconnect later; pruned by maintenance.
            message = TransientMessage(
                recipient_id=identity.account_id,
                event=event,
                payload_json=json.dumps(payload, default=str),
                created_at=utcnow(),
            )
            try:
                self._store.save(message)
            except PersistenceUnavailableError as exc:
                logger.warning(f"realtime: could not store {event} for {identity}: {exc.operation}")

        delivered = self._registry.broadcast_to(identity, event, payload)
        logger.debug(f"realtime: {event} -> {identity} delivered={delivered}")
        return delivered


__all__ = ["NotificationPublisher"]

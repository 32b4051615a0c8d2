# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import threading
from dataclasses import dataclass

from powforum.shared.logging import logger


@dataclass(slots=True, frozen=True)
class VapidDetails:
    public_key: str
    private_key: str
    contact: str


class VapidPushService:
    """Holds the application-server identity used to sign push messages."""

    def __init__(self) -> None:
        self._details: VapidDetails | None = None
        self._lock = threading.Lock()

    def configure(self, public_key: str, private_key: str, contact: str) -> None:
        if not contact.startswith(("mailto:", "https://")):
            raise ValueError("push contact must be a mailto: or https:// URI")
        if not public_key or not private_key:
            raise ValueError("push keys must not be empty")
        with self._lock:
            changed = self._details is not None and self._details.public_key != public_key
            self._details = VapidDetails(public_key, private_key, contact)
        logger.info(f"push: configured (contact={contact}, rekeyed={changed})")

    @property
    def configured(self) -> bool:
        return self._details is not None

    @property
    def application_server_key(self) -> str | None:
        details = self._details
        return details.public_key if details else None

    @property
    def details(self) -> VapidDetails | None:
        return self._details


__all__ = ["VapidDetails", "VapidPushService"]

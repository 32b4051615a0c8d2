# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from powforum.application.interfaces import DocumentStore
from powforum.infrastructure.db.models import AuditLog
from powforum.infrastructure.db.types import utcnow
from powforum.shared.errors import PersistenceUnavailableError
from powforum.shared.logging import logger


class AuditAction(str, Enum):
    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"
    REGISTER = "register"

    BOOTSTRAP_ACCOUNT_CREATED = "bootstrap_account_created"
    PUSH_KEYS_ROTATED = "push_keys_rotated"
    MEMBERSHIP_DOWNGRADED = "membership_downgraded"


_SENSITIVE_KEYS = ("password", "token", "secret", "key", "cookie")


def _sanitize_details(details: dict[str, Any]) -> dict[str, Any]:
    return {
        key: "***REDACTED***" if any(s in key.lower() for s in _SENSITIVE_KEYS) else value
        for key, value in details.items()
    }


class AuditLogger:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def log(
        self,
        action: AuditAction,
        account_id: int | None = None,
        ip_address: str | None = None,
        details: dict[str, Any] | None = None,
        success: bool = True,
    ) -> None:
        safe_details = _sanitize_details(details) if details else {}

        message = (
            f"AUDIT: {action.value} | account_id={account_id} | ip={ip_address} | success={success}"
        )
        if safe_details:
            message += f" | details={safe_details}"
        if success:
            logger.info(message)
        else:
            logger.warning(message)

        entry = AuditLog(
            timestamp=utcnow(),
            action=action.value,
            account_id=account_id,
            ip_address=ip_address,
            success=success,
            details_json=json.dumps(safe_details, default=str) if safe_details else None,
        )
        try:
            self._store.save(entry)
        except PersistenceUnavailableError as exc:
            logger.warning(f"Failed to store audit log in database: {exc.context}")


__all__ = ["AuditAction", "AuditLogger"]

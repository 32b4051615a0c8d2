# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import UTC, datetime

from sqlalchemy import DateTime, String, TypeDecorator


class RoleSet(TypeDecorator):
    """A set of role names stored as a sorted JSON array."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value: Iterable[str] | None, dialect) -> str:
        if value is None:
            return "[]"
        if isinstance(value, str):
            raise TypeError("RoleSet expects an iterable of role names, not a string")
        return json.dumps(sorted({str(role) for role in value}))

    def process_result_value(self, value: str | None, dialect) -> frozenset[str]:
        if not value:
            return frozenset()
        return frozenset(json.loads(value))

    def coerce_compared_value(self, op, value):
        return String()


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend, SQLite included."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC).replace(tzinfo=None)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


def utcnow() -> datetime:
    return datetime.now(UTC)


__all__ = ["RoleSet", "UTCDateTime", "utcnow"]

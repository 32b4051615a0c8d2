# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True, frozen=True)
class Account:

    id: int
    username: str
    password_hash: str | None
    created_at: datetime
    roles: frozenset[str] = field(default_factory=frozenset)
    premium_expiry: datetime | None = None


@dataclass(slots=True, frozen=True)
class SessionToken:

    account_id: int
    token: str
    created_at: datetime
    expires_at: datetime

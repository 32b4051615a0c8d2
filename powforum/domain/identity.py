# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class Identity:
    """Who a request or a realtime connection acts as."""

    account_id: int | None = None
    username: str | None = None

    @property
    def is_anonymous(self) -> bool:
        return self.account_id is None

    @property
    def key(self) -> str:
        if self.account_id is None:
            return "anonymous"
        return f"account:{self.account_id}"

    def __str__(self) -> str:
        if self.account_id is None:
            return "anonymous"
        return f"{self.username or '?'}#{self.account_id}"


ANONYMOUS = Identity()


__all__ = ["ANONYMOUS", "Identity"]

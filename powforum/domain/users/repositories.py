# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from typing import Protocol

from .entities import Account, SessionToken


class AccountRepository(Protocol):
    def find_by_username(self, username: str) -> Account | None: ...
    def add(self, account: Account) -> Account: ...


class SessionTokenRepository(Protocol):
    def replace_for_account(self, account_id: int) -> SessionToken: ...
    def revoke(self, token: str) -> None: ...


class PasswordHasher(Protocol):
    def hash(self, password: str) -> str: ...
    def verify(self, password: str, hashed: str | None) -> bool: ...

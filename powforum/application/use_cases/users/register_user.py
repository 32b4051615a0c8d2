# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from datetime import UTC, datetime

from powforum.domain.users.entities import Account
from powforum.domain.users.exceptions import UserAlreadyExistsError
from powforum.domain.users.repositories import (
    AccountRepository,
    PasswordHasher,
    SessionTokenRepository,
)


class RegisterUserUseCase:
    def __init__(
        self,
        *,
        accounts: AccountRepository,
        tokens: SessionTokenRepository,
        password_hasher: PasswordHasher,
    ) -> None:
        self._accounts = accounts
        self._tokens = tokens
        self._password_hasher = password_hasher

    def execute(self, username: str, password: str) -> tuple[Account, str]:
        if self._accounts.find_by_username(username):
            raise UserAlreadyExistsError()
        hashed = self._password_hasher.hash(password)
        account = Account(
            id=0, username=username, password_hash=hashed, created_at=datetime.now(UTC)
        )
        persisted = self._accounts.add(account)
        token = self._tokens.replace_for_account(persisted.id)
        return persisted, token.token

# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from powforum.domain.users.entities import Account
from powforum.domain.users.exceptions import InvalidCredentialsError
from powforum.domain.users.repositories import (
    AccountRepository,
    PasswordHasher,
    SessionTokenRepository,
)


class LoginUserUseCase:
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
        account = self._accounts.find_by_username(username)
        if account is None or not self._password_hasher.verify(password, account.password_hash):
            raise InvalidCredentialsError()

        token = self._tokens.replace_for_account(account.id)
        return account, token.token

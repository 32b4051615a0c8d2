from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime

import pytest

from powforum.application.use_cases.users.login_user import LoginUserUseCase
from powforum.application.use_cases.users.logout_user import LogoutUserUseCase
from powforum.application.use_cases.users.register_user import RegisterUserUseCase
from powforum.domain.users.entities import Account, SessionToken
from powforum.domain.users.exceptions import InvalidCredentialsError, UserAlreadyExistsError
from powforum.domain.users.repositories import (
    AccountRepository,
    PasswordHasher,
    SessionTokenRepository,
)


class InMemoryAccountRepository(AccountRepository):
    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self._seq = 1

    def find_by_username(self, username: str) -> Account | None:
        return self._accounts.get(username)

    def add(self, account: Account) -> Account:
        new_account = replace(account, id=self._seq)
        self._seq += 1
        self._accounts[new_account.username] = new_account
        return new_account


class InMemoryTokenRepository(SessionTokenRepository):
    def __init__(self) -> None:
        self._tokens: dict[int, SessionToken] = {}

    def replace_for_account(self, account_id: int) -> SessionToken:
        now = datetime.now(UTC)
        token = SessionToken(
            account_id=account_id,
            token=f"token-{account_id}",
            created_at=now,
            expires_at=now,
        )
        self._tokens[account_id] = token
        return token

    def revoke(self, token: str) -> None:
        for key, value in list(self._tokens.items()):
            if value.token == token:
                self._tokens.pop(key, None)


class DeterministicHasher(PasswordHasher):
    def hash(self, password: str) -> str:
        return f"hashed:{password}"

    def verify(self, password: str, hashed: str | None) -> bool:
        return hashed == f"hashed:{password}"


@pytest.fixture()
def repositories() -> tuple[InMemoryAccountRepository, InMemoryTokenRepository]:
    return InMemoryAccountRepository(), InMemoryTokenRepository()


def test_register_user_success(
    repositories: tuple[InMemoryAccountRepository, InMemoryTokenRepository],
) -> None:
    accounts, tokens = repositories
    use_case = RegisterUserUseCase(
        accounts=accounts, tokens=tokens, password_hasher=DeterministicHasher()
    )

    account, token = use_case.execute("alice", "secret123")

    assert account.username == "alice"
    assert account.roles == frozenset()
    assert token == "token-1"
    assert accounts.find_by_username("alice") is not None


def test_register_user_duplicate_raises(
    repositories: tuple[InMemoryAccountRepository, InMemoryTokenRepository],
) -> None:
    accounts, tokens = repositories
    use_case = RegisterUserUseCase(
        accounts=accounts, tokens=tokens, password_hasher=DeterministicHasher()
    )
    use_case.execute("alice", "secret123")

    with pytest.raises(UserAlreadyExistsError):
        use_case.execute("alice", "other")


def test_login_user_success(
    repositories: tuple[InMemoryAccountRepository, InMemoryTokenRepository],
) -> None:
    accounts, tokens = repositories
    register = RegisterUserUseCase(
        accounts=accounts, tokens=tokens, password_hasher=DeterministicHasher()
    )
    register.execute("alice", "secret123")

    login = LoginUserUseCase(accounts=accounts, tokens=tokens, password_hasher=DeterministicHasher())
    account, token = login.execute("alice", "secret123")
    assert account.username == "alice"
    assert token == "token-1"


def test_login_user_invalid_credentials(
    repositories: tuple[InMemoryAccountRepository, InMemoryTokenRepository],
) -> None:
    accounts, tokens = repositories
    register = RegisterUserUseCase(
        accounts=accounts, tokens=tokens, password_hasher=DeterministicHasher()
    )
    register.execute("alice", "secret123")

    login = LoginUserUseCase(accounts=accounts, tokens=tokens, password_hasher=DeterministicHasher())
    with pytest.raises(InvalidCredentialsError):
        login.execute("alice", "wrong")
    with pytest.raises(InvalidCredentialsError):
        login.execute("nobody", "secret123")


def test_login_without_password_hash_is_rejected(
    repositories: tuple[InMemoryAccountRepository, InMemoryTokenRepository],
) -> None:
    accounts, tokens = repositories
    accounts.add(
        Account(id=0, username="admin", password_hash=None, created_at=datetime.now(UTC))
    )

    login = LoginUserUseCase(accounts=accounts, tokens=tokens, password_hasher=DeterministicHasher())
    with pytest.raises(InvalidCredentialsError):
        login.execute("admin", "")


def test_logout_user_removes_token(
    repositories: tuple[InMemoryAccountRepository, InMemoryTokenRepository],
) -> None:
    accounts, tokens = repositories
    register = RegisterUserUseCase(
        accounts=accounts, tokens=tokens, password_hasher=DeterministicHasher()
    )
    _, token = register.execute("alice", "secret123")
    logout = LogoutUserUseCase(tokens=tokens)

    logout.execute(token)

    assert tokens._tokens == {}

# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import secrets
from collections.abc import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from powforum.domain.users.entities import Account as DomainAccount
from powforum.domain.users.entities import SessionToken as DomainSessionToken
from powforum.domain.users.exceptions import UserAlreadyExistsError
from powforum.domain.users.repositories import AccountRepository, SessionTokenRepository
from powforum.infrastructure.auth.session_resolver import SessionTokenSigner
from powforum.infrastructure.db.models import Account, SessionToken
from powforum.infrastructure.db.types import utcnow
from powforum.infrastructure.unit_of_work import unit_of_work_scope
from powforum.shared.config.settings import SessionConfig
from powforum.shared.errors import SessionResolutionError


def _to_domain(row: Account) -> DomainAccount:
    return DomainAccount(
        id=row.id,
        username=row.username,
        password_hash=row.password_hash,
        created_at=row.created_at,
        roles=frozenset(row.roles or ()),
        premium_expiry=row.premium_expiry,
    )


class SqlAlchemyAccountRepository(AccountRepository):
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def find_by_username(self, username: str) -> DomainAccount | None:
        with unit_of_work_scope(self._session_factory) as session:
            row = session.query(Account).filter(Account.username == username).first()
            return _to_domain(row) if row else None

    def add(self, account: DomainAccount) -> DomainAccount:
        try:
            with unit_of_work_scope(self._session_factory) as session:
                row = Account(
                    username=account.username,
                    password_hash=account.password_hash,
                    roles=account.roles,
                    premium_expiry=account.premium_expiry,
                )
                session.add(row)
                session.flush()
                return _to_domain(row)
        except IntegrityError as exc:
            raise UserAlreadyExistsError() from exc


class SqlAlchemySessionTokenRepository(SessionTokenRepository):
    """Stores the raw token; callers only ever see its signed form."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        signer: SessionTokenSigner,
        config: SessionConfig,
    ) -> None:
        self._session_factory = session_factory
        self._signer = signer
        self._config = config

    def replace_for_account(self, account_id: int) -> DomainSessionToken:
        now = utcnow()
        token_value = secrets.token_urlsafe(48)
        expires_at = min(now + self._config.rolling, now + self._config.max_age)
        with unit_of_work_scope(self._session_factory) as session:
            session.query(SessionToken).filter(SessionToken.account_id == account_id).delete()
            session.add(
                SessionToken(
                    account_id=account_id,
                    token=token_value,
                    created_at=now,
                    expires_at=expires_at,
                )
            )
        return DomainSessionToken(
            account_id=account_id,
            token=self._signer.sign(token_value),
            created_at=now,
            expires_at=expires_at,
        )

    def revoke(self, token: str) -> None:
        try:
            raw = self._signer.unsign(token)
        except SessionResolutionError:
            return
        with unit_of_work_scope(self._session_factory) as session:
            session.query(SessionToken).filter(SessionToken.token == raw).delete()


__all__ = ["SqlAlchemyAccountRepository", "SqlAlchemySessionTokenRepository"]

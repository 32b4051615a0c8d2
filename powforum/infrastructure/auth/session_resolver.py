# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Request-to-identity resolution shared by HTTP routes and realtime handshakes."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from werkzeug.wrappers import Request

from powforum.application.interfaces import DocumentStore
from powforum.domain.identity import ANONYMOUS, Identity
from powforum.infrastructure.db.models import Account, SessionToken
from powforum.infrastructure.db.types import utcnow
from powforum.shared.config.settings import SessionConfig
from powforum.shared.errors import PersistenceUnavailableError, SessionResolutionError
from powforum.shared.logging import logger

# Rolling extension is written back only when it moves expiry at least this far.
_EXTEND_GRANULARITY = timedelta(hours=1)


class SessionTokenSigner:
    def __init__(self, secret: str, *, salt: str = "powforum.session") -> None:
        self._serializer = URLSafeTimedSerializer(secret, salt=salt)

    def sign(self, token: str) -> str:
        return self._serializer.dumps(token)

    def unsign(self, value: str, max_age: int | None = None) -> str:
        try:
            token = self._serializer.loads(value, max_age=max_age)
        except SignatureExpired as exc:
            raise SessionResolutionError("signature_expired") from exc
        except BadSignature as exc:
            raise SessionResolutionError("bad_signature") from exc
        if not isinstance(token, str) or not token:
            raise SessionResolutionError("malformed_token")
        return token


def extract_credential(request: Request, cookie_name: str) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        bearer = auth_header[7:].strip()
        if bearer:
            return bearer
    return request.cookies.get(cookie_name) or None


class SessionResolver:
    def __init__(
        self,
        store: DocumentStore,
        signer: SessionTokenSigner,
        config: SessionConfig,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._signer = signer
        self._config = config
        self._clock = clock

    def resolve(self, request: Request) -> Identity:
        """Never raises; anything short of a valid live session is anonymous."""

        try:
            return self._resolve(request)
        except SessionResolutionError as exc:
            logger.debug(f"session: unresolved ({exc.reason})")
        except PersistenceUnavailableError as exc:
            logger.warning(f"session: store unavailable during {exc.operation}")
        return ANONYMOUS

    def _resolve(self, request: Request) -> Identity:
        credential = extract_credential(request, self._config.cookie_name)
        if not credential:
            return ANONYMOUS

        token = self._signer.unsign(credential, max_age=self._config.max_age_seconds)
        session = self._store.find_one(SessionToken, {"token": token})
        if session is None:
            raise SessionResolutionError("unknown_token")

        now = self._clock()
        if session.expires_at <= now:
            raise SessionResolutionError("expired")

        account = self._store.find_one(Account, {"id": session.account_id})
        if account is None:
            raise SessionResolutionError("account_missing")

        self._extend(session, now)
        return Identity(account_id=account.id, username=account.username)

    def _extend(self, session: SessionToken, now: datetime) -> None:
        ceiling = session.created_at + self._config.max_age
        target = min(now + self._config.rolling, ceiling)
        if target - session.expires_at < _EXTEND_GRANULARITY:
            return
        session.expires_at = target
        self._store.save(session)


__all__ = ["SessionResolver", "SessionTokenSigner", "extract_credential"]

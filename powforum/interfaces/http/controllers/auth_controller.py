# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import Blueprint, Response, g, jsonify, request
from pydantic import ValidationError

from powforum.application.use_cases.users.login_user import LoginUserUseCase
from powforum.application.use_cases.users.logout_user import LogoutUserUseCase
from powforum.application.use_cases.users.register_user import RegisterUserUseCase
from powforum.domain.identity import ANONYMOUS
from powforum.domain.users.exceptions import InvalidCredentialsError
from powforum.infrastructure.audit import AuditAction, AuditLogger
from powforum.infrastructure.auth.session_resolver import extract_credential
from powforum.interfaces.http.dto.auth import (
    AuthSuccessDTO,
    IdentityDTO,
    LoginRequestDTO,
    RegisterRequestDTO,
)
from powforum.shared.config import AppConfig
from powforum.shared.errors.validation import raise_validation_error
from powforum.shared.logging import logger
from powforum.shared.middleware.rate_limit import rate_limit


def _get_client_ip() -> str | None:
    ip_address = request.headers.get("X-Forwarded-For", request.remote_addr)
    if ip_address and "," in ip_address:
        ip_address = ip_address.split(",")[0].strip()
    return ip_address


class AuthController:
    def __init__(
        self,
        *,
        register_use_case: RegisterUserUseCase,
        login_use_case: LoginUserUseCase,
        logout_use_case: LogoutUserUseCase,
        audit: AuditLogger,
        config: AppConfig,
    ) -> None:
        self._register_use_case = register_use_case
        self._login_use_case = login_use_case
        self._logout_use_case = logout_use_case
        self._audit = audit
        self._config = config

    def _session_response(self, token: str) -> Response:
        response = jsonify(AuthSuccessDTO().model_dump())
        response.set_cookie(
            self._config.session.cookie_name,
            token,
            httponly=True,
            samesite=self._config.security.cookie_samesite,
            secure=self._config.security.cookie_secure,
            max_age=self._config.session.rolling_seconds,
        )
        return response

    @rate_limit(limit=5, window_seconds=60.0)
    def register(self) -> tuple[Response, int]:
        try:
            dto = RegisterRequestDTO.model_validate(request.get_json(silent=True) or {})
        except ValidationError as exc:
            raise_validation_error(exc)

        account, token = self._register_use_case.execute(dto.username, dto.password)

        self._audit.log(
            AuditAction.REGISTER,
            account_id=account.id,
            ip_address=_get_client_ip(),
            details={"username": dto.username},
        )
        logger.info(f"auth.register: ok account_id={account.id}")
        return self._session_response(token), 200

    @rate_limit(limit=10, window_seconds=60.0)
    def login(self) -> tuple[Response, int]:
        try:
            dto = LoginRequestDTO.model_validate(request.get_json(silent=True) or {})
        except ValidationError as exc:
            raise_validation_error(exc)

        ip_address = _get_client_ip()
        try:
            account, token = self._login_use_case.execute(dto.username, dto.password)
        except InvalidCredentialsError:
            self._audit.log(
                AuditAction.LOGIN_FAILED,
                ip_address=ip_address,
                details={"username": dto.username},
                success=False,
            )
            raise

        self._audit.log(
            AuditAction.LOGIN_SUCCESS,
            account_id=account.id,
            ip_address=ip_address,
            details={"username": dto.username},
        )
        logger.info(f"auth.login: ok username={dto.username}")
        return self._session_response(token), 200

    def logout(self) -> tuple[Response, int]:
        token = extract_credential(request, self._config.session.cookie_name) or ""
        self._logout_use_case.execute(token)

        identity = getattr(g, "identity", ANONYMOUS)
        self._audit.log(
            AuditAction.LOGOUT,
            account_id=identity.account_id,
            ip_address=_get_client_ip(),
        )

        response = jsonify(AuthSuccessDTO().model_dump())
        response.delete_cookie(self._config.session.cookie_name)
        logger.info("auth.logout: ok")
        return response, 200

    def me(self) -> tuple[Response, int]:
        identity = getattr(g, "identity", ANONYMOUS)
        payload = IdentityDTO(
            authenticated=not identity.is_anonymous,
            account_id=identity.account_id,
            username=identity.username,
        )
        return jsonify(payload.model_dump()), 200

    def as_blueprint(self) -> Blueprint:
        bp = Blueprint("auth", __name__, url_prefix="/api/auth")
        bp.add_url_rule("/register", view_func=self.register, methods=["POST"])
        bp.add_url_rule("/login", view_func=self.login, methods=["POST"])
        bp.add_url_rule("/logout", view_func=self.logout, methods=["DELETE"])
        bp.add_url_rule("/me", view_func=self.me, methods=["GET"])
        return bp

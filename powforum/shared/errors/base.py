# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, cast


@dataclass(slots=True)
class AppError(Exception):
    code: str
    status: HTTPStatus
    context: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        Exception.__init__(self, self.code)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.code}
        if self.context:
            payload["context"] = dict(self.context)
        return payload


class DomainError(AppError):
    def __init__(
        self,
        *,
        code: str | None = None,
        status: HTTPStatus | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        resolved_code = code or cast(str, getattr(self, "code", "domain_error"))
        resolved_status = status or cast(
            HTTPStatus, getattr(self, "status", HTTPStatus.BAD_REQUEST)
        )
        super().__init__(code=resolved_code, status=resolved_status, context=context)


class InfrastructureError(AppError):
    def __init__(
        self,
        code: str = "infrastructure_error",
        *,
        status: HTTPStatus | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        resolved_status = status or HTTPStatus.INTERNAL_SERVER_ERROR
        super().__init__(code=code, status=resolved_status, context=context)


class ValidationError(AppError):
    def __init__(
        self,
        code: str = "validation_error",
        *,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code=code,
            status=HTTPStatus.UNPROCESSABLE_ENTITY,
            context=context,
        )


class ConfigMissingError(InfrastructureError):
    """A setting the process cannot start without is absent or unusable."""

    def __init__(self, name: str, reason: str | None = None) -> None:
        context = {"name": name}
        if reason:
            context["reason"] = reason
        super().__init__("config_missing", context=context)
        self.name = name


class SecretGenerationError(InfrastructureError):
    def __init__(self, name: str, reason: str) -> None:
        super().__init__("secret_generation_failed", context={"name": name, "reason": reason})
        self.name = name


class PersistenceUnavailableError(InfrastructureError):
    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(
            "persistence_unavailable",
            status=HTTPStatus.SERVICE_UNAVAILABLE,
            context={"operation": operation, "reason": reason},
        )
        self.operation = operation


class SessionResolutionError(AppError):
    """Raised inside the resolver only; callers see the anonymous identity."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            code="session_unresolved",
            status=HTTPStatus.UNAUTHORIZED,
            context={"reason": reason},
        )
        self.reason = reason

# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

import sys
from datetime import timedelta
from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from powforum.shared.errors.base import ConfigMissingError

_PLATFORM_MARKERS: tuple[str, ...] = ("RAILWAY_ENVIRONMENT", "DYNO", "K_SERVICE")


def _parse_flag(value: str | bool) -> bool:
    if isinstance(value, str):
        return value.lower() in ("1", "true", "yes")
    return bool(value)


class _Section(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_by_name=True,
    )


class DatabaseConfig(_Section):
    url: str | None = Field(
        None, validation_alias=AliasChoices("DATABASE_URL", "MONGO_URI", "MONGODB_URI")
    )
    pool_size: int = Field(10, ge=1, alias="DATABASE_POOL_SIZE")
    max_overflow: int = Field(5, ge=0, alias="DATABASE_MAX_OVERFLOW")
    pool_timeout: float = Field(30.0, ge=0.1, alias="DATABASE_POOL_TIMEOUT")


class SessionConfig(_Section):
    cookie_name: str = Field("auth_token", alias="SESSION_COOKIE_NAME")
    rolling_seconds: int = Field(30 * 24 * 3600, ge=60, alias="SESSION_ROLLING_SECONDS")
    max_age_seconds: int = Field(365 * 24 * 3600, ge=60, alias="SESSION_MAX_AGE_SECONDS")

    @property
    def rolling(self) -> timedelta:
        return timedelta(seconds=self.rolling_seconds)

    @property
    def max_age(self) -> timedelta:
        return timedelta(seconds=self.max_age_seconds)


class SecretsConfig(_Section):
    persist: bool = Field(True, alias="SECRETS_PERSIST")
    env_file: str = Field(".env", alias="SECRETS_ENV_FILE")
    push_contact: str = Field("mailto:admin@localhost", alias="VAPID_CONTACT")

    @field_validator("persist", mode="before")
    @classmethod
    def _parse_persist(cls, value: str | bool) -> bool:
        return _parse_flag(value)


class RetentionConfig(_Section):
    presence_seconds: int = Field(24 * 3600, ge=1, alias="RETENTION_PRESENCE_SECONDS")
    audit_days: int = Field(90, ge=1, alias="RETENTION_AUDIT_DAYS")
    transient_days: int = Field(30, ge=1, alias="RETENTION_TRANSIENT_DAYS")


class MaintenanceConfig(_Section):
    enabled: bool = Field(True, alias="MAINTENANCE_ENABLED")
    interval_seconds: float = Field(24 * 3600.0, ge=1.0, alias="MAINTENANCE_INTERVAL_SECONDS")

    @field_validator("enabled", mode="before")
    @classmethod
    def _parse_enabled(cls, value: str | bool) -> bool:
        return _parse_flag(value)


class BootstrapConfig(_Section):
    username: str = Field("admin", alias="BOOTSTRAP_USERNAME")
    password: str | None = Field(None, alias="BOOTSTRAP_PASSWORD")


class ResilienceConfig(_Section):
    max_retries: int = Field(2, ge=0, alias="RESILIENCE_RETRIES")
    backoff_base: float = Field(0.5, ge=0.0, alias="RESILIENCE_BACKOFF_BASE")
    backoff_cap: float = Field(8.0, ge=0.0, alias="RESILIENCE_BACKOFF_CAP")


class ObservabilityConfig(_Section):
    metrics_enabled: bool = Field(True, alias="METRICS_ENABLED")

    @field_validator("metrics_enabled", mode="before")
    @classmethod
    def _parse_metrics_enabled(cls, value: str | bool) -> bool:
        return _parse_flag(value)


class RealtimeConfig(_Section):
    socketio_path: str = Field("socket.io", alias="SOCKETIO_PATH")
    allowed_origins: str = Field("*", alias="SOCKETIO_ALLOWED_ORIGINS")

    @property
    def origins(self) -> list[str] | str:
        parsed = [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]
        if not parsed or "*" in parsed:
            return "*"
        return parsed


class SecurityConfig(_Section):
    cookie_secure: bool = Field(False, alias="COOKIE_SECURE")
    cookie_samesite: str = Field("Lax", alias="COOKIE_SAMESITE")

    enable_rate_limit: bool = Field(True, alias="ENABLE_RATE_LIMIT")
    rate_limit_requests: int = Field(10, alias="RL_LIMIT")
    rate_limit_window: float = Field(60.0, alias="RL_WINDOW")

    @field_validator("cookie_secure", "enable_rate_limit", mode="before")
    @classmethod
    def _parse_bool(cls, value: str | bool) -> bool:
        return _parse_flag(value)


class AppConfig(BaseSettings):
    app_env: str = Field("development", alias="APP_ENV")
    host: str = Field("0.0.0.0", alias="HOST")
    port: int = Field(8080, ge=1, le=65535, alias="PORT")
    debug_logging: bool = Field(False, alias="DEBUG_LOGGING")
    platform_marker: str | None = Field(
        None, validation_alias=AliasChoices(*_PLATFORM_MARKERS)
    )

    database: DatabaseConfig = Field(default_factory=lambda: DatabaseConfig())  # type: ignore[call-arg]
    session: SessionConfig = Field(default_factory=lambda: SessionConfig())  # type: ignore[call-arg]
    secrets: SecretsConfig = Field(default_factory=lambda: SecretsConfig())  # type: ignore[call-arg]
    retention: RetentionConfig = Field(default_factory=lambda: RetentionConfig())  # type: ignore[call-arg]
    maintenance: MaintenanceConfig = Field(default_factory=lambda: MaintenanceConfig())  # type: ignore[call-arg]
    bootstrap: BootstrapConfig = Field(default_factory=lambda: BootstrapConfig())  # type: ignore[call-arg]
    resilience: ResilienceConfig = Field(default_factory=lambda: ResilienceConfig())  # type: ignore[call-arg]
    observability: ObservabilityConfig = Field(default_factory=lambda: ObservabilityConfig())  # type: ignore[call-arg]
    realtime: RealtimeConfig = Field(default_factory=lambda: RealtimeConfig())  # type: ignore[call-arg]
    security: SecurityConfig = Field(default_factory=lambda: SecurityConfig())  # type: ignore[call-arg]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
        validate_by_name=True,
    )

    @field_validator("debug_logging", mode="before")
    @classmethod
    def _parse_debug_logging(cls, value: str | bool) -> bool:
        return _parse_flag(value)

    @model_validator(mode="after")
    def _warn_production_settings(self) -> "AppConfig":
        if not self.is_production():
            return self

        warnings = []
        if not self.security.cookie_secure:
            warnings.append("⚠️  Cookie Secure flag is DISABLED (use HTTPS!)")
        if self.realtime.origins == "*":
            warnings.append("⚠️  Socket.IO allows wildcard (*) origins")

        if warnings:
            print("\n⚠️  PRODUCTION SECURITY WARNINGS:", file=sys.stderr)
            for warning in warnings:
                print(f"   {warning}", file=sys.stderr)

        return self

    def is_production(self) -> bool:
        return self.app_env.lower() in ("production", "prod")

    def require_database_url(self) -> str:
        if not self.database.url:
            raise ConfigMissingError("DATABASE_URL")
        return self.database.url


@lru_cache(maxsize=1)
def load_config() -> AppConfig:
    return AppConfig()  # type: ignore[call-arg]


__all__ = ["AppConfig", "load_config"]

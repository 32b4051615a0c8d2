# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Callable
from functools import cached_property

import socketio
from sqlalchemy.orm import Session

from powforum.application.services.password_hashing import WerkzeugPasswordHasher
from powforum.application.services.secret_provisioner import (
    SESSION_SECRET,
    PersistenceCapability,
    SecretProvisioner,
)
from powforum.application.use_cases.bootstrap import BootstrapReconciler
from powforum.application.use_cases.maintenance import MaintenanceScheduler
from powforum.application.use_cases.users.login_user import LoginUserUseCase
from powforum.application.use_cases.users.logout_user import LogoutUserUseCase
from powforum.application.use_cases.users.register_user import RegisterUserUseCase
from powforum.infrastructure.audit import AuditLogger
from powforum.infrastructure.auth.session_resolver import SessionResolver, SessionTokenSigner
from powforum.infrastructure.config_surface import (
    DotEnvConfigurationSurface,
    EnvironmentConfigurationSurface,
)
from powforum.infrastructure.db import SessionLocal
from powforum.infrastructure.document_store import SqlAlchemyDocumentStore
from powforum.infrastructure.push import VapidPushService
from powforum.infrastructure.realtime import (
    ConnectionRegistry,
    NotificationPublisher,
    SocketIOTransport,
)
from powforum.infrastructure.repositories.users.sqlalchemy_user_repository import (
    SqlAlchemyAccountRepository,
    SqlAlchemySessionTokenRepository,
)
from powforum.interfaces.http.controllers.auth_controller import AuthController
from powforum.interfaces.http.controllers.misc_controller import MiscController
from powforum.shared.config import AppConfig


class Container:
    """Builds every long-lived collaborator once per process."""

    def __init__(
        self,
        config: AppConfig,
        *,
        session_factory: Callable[[], Session] = SessionLocal,
        surface: EnvironmentConfigurationSurface | None = None,
    ) -> None:
        self.config = config
        self._session_factory = session_factory
        self._surface = surface

    # Persistence

    @cached_property
    def store(self) -> SqlAlchemyDocumentStore:
        return SqlAlchemyDocumentStore(self._session_factory)

    @cached_property
    def audit(self) -> AuditLogger:
        return AuditLogger(self.store)

    # Secrets and push

    @cached_property
    def persistence_capability(self) -> PersistenceCapability:
        return PersistenceCapability.from_config(self.config)

    @cached_property
    def configuration_surface(self) -> EnvironmentConfigurationSurface:
        if self._surface is not None:
            return self._surface
        if self.persistence_capability.can_persist:
            return DotEnvConfigurationSurface(self.config.secrets.env_file)
        return EnvironmentConfigurationSurface()

    @cached_property
    def secrets(self) -> SecretProvisioner:
        return SecretProvisioner(self.configuration_surface, self.persistence_capability)

    @cached_property
    def push_service(self) -> VapidPushService:
        return VapidPushService()

    # Sessions

    @cached_property
    def password_hasher(self) -> WerkzeugPasswordHasher:
        return WerkzeugPasswordHasher()

    @cached_property
    def session_signer(self) -> SessionTokenSigner:
        return SessionTokenSigner(self.secrets.ensure_secret(SESSION_SECRET))

    @cached_property
    def session_resolver(self) -> SessionResolver:
        return SessionResolver(self.store, self.session_signer, self.config.session)

    @cached_property
    def account_repository(self) -> SqlAlchemyAccountRepository:
        return SqlAlchemyAccountRepository(self._session_factory)

    @cached_property
    def session_token_repository(self) -> SqlAlchemySessionTokenRepository:
        return SqlAlchemySessionTokenRepository(
            self._session_factory, self.session_signer, self.config.session
        )

    @cached_property
    def register_user_use_case(self) -> RegisterUserUseCase:
        return RegisterUserUseCase(
            accounts=self.account_repository,
            tokens=self.session_token_repository,
            password_hasher=self.password_hasher,
        )

    @cached_property
    def login_user_use_case(self) -> LoginUserUseCase:
        return LoginUserUseCase(
            accounts=self.account_repository,
            tokens=self.session_token_repository,
            password_hasher=self.password_hasher,
        )

    @cached_property
    def logout_user_use_case(self) -> LogoutUserUseCase:
        return LogoutUserUseCase(tokens=self.session_token_repository)

    # Realtime

    @cached_property
    def socketio_server(self) -> socketio.Server:
        return socketio.Server(
            async_mode="threading",
            cors_allowed_origins=self.config.realtime.origins,
            logger=False,
            engineio_logger=False,
        )

    @cached_property
    def realtime_transport(self) -> SocketIOTransport:
        return SocketIOTransport(self.socketio_server)

    @cached_property
    def connection_registry(self) -> ConnectionRegistry:
        return ConnectionRegistry(self.realtime_transport)

    @cached_property
    def notification_publisher(self) -> NotificationPublisher:
        return NotificationPublisher(self.connection_registry, self.store)

    # Lifecycle jobs

    @cached_property
    def bootstrap(self) -> BootstrapReconciler:
        return BootstrapReconciler(
            store=self.store,
            secrets=self.secrets,
            push=self.push_service,
            password_hasher=self.password_hasher,
            audit=self.audit,
            config=self.config,
        )

    @cached_property
    def maintenance(self) -> MaintenanceScheduler:
        return MaintenanceScheduler.from_config(self.config, store=self.store, audit=self.audit)

    # Controllers

    @cached_property
    def auth_controller(self) -> AuthController:
        return AuthController(
            register_use_case=self.register_user_use_case,
            login_use_case=self.login_user_use_case,
            logout_use_case=self.logout_user_use_case,
            audit=self.audit,
            config=self.config,
        )

    @cached_property
    def misc_controller(self) -> MiscController:
        return MiscController(
            registry=self.connection_registry,
            maintenance=self.maintenance,
            metrics_enabled=self.config.observability.metrics_enabled,
        )

# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from powforum.shared.config import AppConfig
from powforum.shared.errors import ConfigMissingError, PersistenceUnavailableError
from powforum.shared.logging import logger


class Base(DeclarativeBase):
    pass


SessionLocal = scoped_session(
    sessionmaker(autoflush=False, autocommit=False, expire_on_commit=False)
)

_engine: Engine | None = None


def build_engine(url: str, config: AppConfig | None = None) -> Engine:
    if url.startswith("sqlite"):
        kwargs: dict[str, object] = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, future=True, **kwargs)

    database = config.database if config else None
    return create_engine(
        url,
        future=True,
        pool_pre_ping=True,
        pool_size=database.pool_size if database else 10,
        max_overflow=database.max_overflow if database else 5,
        pool_timeout=database.pool_timeout if database else 30.0,
    )


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("database not initialised; call init_db() first")
    return _engine


def init_db(config: AppConfig) -> Engine:
    """Connect, ensure the schema and bind ``SessionLocal``.

    Raises ``ConfigMissingError`` without a usable connection string (unknown
    scheme or missing driver) and ``PersistenceUnavailableError`` when the
    database cannot be reached.
    """

    from powforum.infrastructure.db import models  # noqa: F401

    global _engine
    url = config.require_database_url()
    try:
        engine = build_engine(url, config)
    except (ArgumentError, ImportError) as exc:
        raise ConfigMissingError("DATABASE_URL", f"unusable connection string: {exc}") from exc

    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as exc:
        engine.dispose()
        raise PersistenceUnavailableError("init_db", str(exc)) from exc

    if _engine is not None and _engine is not engine:
        _engine.dispose()
    _engine = engine
    SessionLocal.remove()
    SessionLocal.configure(bind=engine)
    logger.info(f"Database connected ({engine.dialect.name}), schema ensured")
    return engine

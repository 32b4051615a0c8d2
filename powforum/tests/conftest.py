from __future__ import annotations

from collections.abc import Iterator

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from powforum.infrastructure.db import Base, build_engine
from powforum.infrastructure.db import models  # noqa: F401
from powforum.infrastructure.document_store import SqlAlchemyDocumentStore
from powforum.shared.config import load_config


@pytest.fixture(autouse=True)
def _no_rate_limit(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setenv("ENABLE_RATE_LIMIT", "false")
    load_config.cache_clear()
    yield
    load_config.cache_clear()


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def store(session_factory: sessionmaker[Session]) -> SqlAlchemyDocumentStore:
    return SqlAlchemyDocumentStore(session_factory)

# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Generic document operations over the SQLAlchemy models.

The core only ever talks to persistence through these six primitives, so a
different engine can be dropped in by implementing ``DocumentStore``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from powforum.infrastructure.db.models import Revisioned
from powforum.infrastructure.unit_of_work import unit_of_work_scope
from powforum.shared.errors import PersistenceUnavailableError
from powforum.shared.logging import logger

T = TypeVar("T")

Filter = Mapping[str, Any]


@dataclass(slots=True, frozen=True)
class Before:
    """Strictly-earlier-than comparison on a stored timestamp."""

    moment: datetime


def _criteria(kind: type, filter: Filter | None) -> list[Any]:
    clauses = []
    for name, expected in (filter or {}).items():
        column = getattr(kind, name)
        if isinstance(expected, Before):
            clauses.append(column < expected.moment)
        elif expected is None:
            clauses.append(column.is_(None))
        else:
            clauses.append(column == expected)
    return clauses


class SqlAlchemyDocumentStore:
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def find_one(self, kind: type[T], filter: Filter | None = None) -> T | None:
        try:
            with unit_of_work_scope(self._session_factory) as session:
                stmt = select(kind).where(*_criteria(kind, filter)).limit(1)
                return session.scalars(stmt).first()
        except SQLAlchemyError as exc:
            raise PersistenceUnavailableError(f"find_one:{kind.__name__}", str(exc)) from exc

    def find(self, kind: type[T], filter: Filter | None = None) -> list[T]:
        try:
            with unit_of_work_scope(self._session_factory) as session:
                stmt = select(kind).where(*_criteria(kind, filter)).order_by(kind.id)  # type: ignore[attr-defined]
                return list(session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            raise PersistenceUnavailableError(f"find:{kind.__name__}", str(exc)) from exc

    def insert_if_absent(self, kind: type[T], key: str, document: T) -> bool:
        """Insert unless a document with the same ``key`` value exists.

        Never overwrites. A concurrent insert losing the unique-constraint race
        counts as "already present".
        """

        value = getattr(document, key)
        try:
            with unit_of_work_scope(self._session_factory) as session:
                column = getattr(kind, key)
                exists = session.scalars(select(kind).where(column == value).limit(1)).first()
                if exists is not None:
                    return False
                session.add(document)
                session.flush()
                return True
        except IntegrityError:
            logger.info(f"store: {kind.__name__}.{key}={value!r} inserted concurrently, skipping")
            return False
        except SQLAlchemyError as exc:
            raise PersistenceUnavailableError(f"insert_if_absent:{kind.__name__}", str(exc)) from exc

    def delete_many(self, kind: type, filter: Filter | None = None) -> int:
        try:
            with unit_of_work_scope(self._session_factory) as session:
                deleted = (
                    session.query(kind)
                    .filter(*_criteria(kind, filter))
                    .delete(synchronize_session=False)
                )
                return int(deleted or 0)
        except SQLAlchemyError as exc:
            raise PersistenceUnavailableError(f"delete_many:{kind.__name__}", str(exc)) from exc

    def save(self, document: T) -> T:
        """Write ``document`` and return the persisted copy.

        The revision marker is bumped on the persisted copy only, so a failed
        write leaves the caller's object as it was.
        """

        try:
            with unit_of_work_scope(self._session_factory) as session:
                merged = session.merge(document)
                if isinstance(merged, Revisioned):
                    merged.bump_revision()
                session.flush()
                return merged
        except SQLAlchemyError as exc:
            raise PersistenceUnavailableError(f"save:{type(document).__name__}", str(exc)) from exc

    def count_all(self, kind: type) -> int:
        try:
            with unit_of_work_scope(self._session_factory) as session:
                return int(session.scalar(select(func.count()).select_from(kind)) or 0)
        except SQLAlchemyError as exc:
            raise PersistenceUnavailableError(f"count_all:{kind.__name__}", str(exc)) from exc


__all__ = ["Before", "Filter", "SqlAlchemyDocumentStore"]

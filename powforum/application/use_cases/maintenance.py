# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Recurring sweep: prune expired ephemeral records and reconcile lapsed memberships.

Every step is idempotent, so an interrupted or failed sweep is repaired by the
next one. Failures are collected into the report; nothing here stops the
process.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from powforum.application.interfaces import DocumentStore
from powforum.domain.membership import downgraded_roles
from powforum.infrastructure.audit import AuditAction, AuditLogger
from powforum.infrastructure.db.models import (
    Account,
    AuditLog,
    PresencePing,
    SessionToken,
    TransientMessage,
)
from powforum.infrastructure.db.types import utcnow
from powforum.infrastructure.document_store import Before
from powforum.infrastructure.observability import (
    MEMBERSHIP_DOWNGRADES,
    SWEEP_DELETED,
    SWEEP_ERRORS,
)
from powforum.infrastructure.resilience import resilient_call
from powforum.shared.config import AppConfig
from powforum.shared.config.settings import ResilienceConfig, RetentionConfig
from powforum.shared.logging import logger

MEMBERSHIP_STEP = "membership"


@dataclass(slots=True, frozen=True)
class EphemeralKind:
    name: str
    model: type
    timestamp_field: str
    window: timedelta


def default_kinds(retention: RetentionConfig) -> tuple[EphemeralKind, ...]:
    return (
        EphemeralKind("presence", PresencePing, "seen_at", timedelta(seconds=retention.presence_seconds)),
        EphemeralKind("audit", AuditLog, "timestamp", timedelta(days=retention.audit_days)),
        EphemeralKind(
            "transient_message", TransientMessage, "created_at", timedelta(days=retention.transient_days)
        ),
        EphemeralKind("session", SessionToken, "expires_at", timedelta(0)),
    )


@dataclass(slots=True, frozen=True)
class SweepError:
    step: str
    target: str
    message: str


@dataclass(slots=True)
class SweepReport:
    started_at: datetime
    finished_at: datetime | None = None
    deleted: dict[str, int] = field(default_factory=dict)
    accounts_examined: int = 0
    accounts_downgraded: int = 0
    errors: list[SweepError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class MaintenanceScheduler:
    def __init__(
        self,
        *,
        store: DocumentStore,
        audit: AuditLogger,
        kinds: tuple[EphemeralKind, ...],
        interval_seconds: float,
        resilience: ResilienceConfig,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._audit = audit
        self._kinds = kinds
        self._interval = interval_seconds
        self._resilience = resilience
        self._clock = clock

        # One sweep at a time, whether from the timer or a direct call.
        self._sweep_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.last_report: SweepReport | None = None

    @classmethod
    def from_config(cls, config: AppConfig, *, store: DocumentStore, audit: AuditLogger) -> MaintenanceScheduler:
        return cls(
            store=store,
            audit=audit,
            kinds=default_kinds(config.retention),
            interval_seconds=config.maintenance.interval_seconds,
            resilience=config.resilience,
        )

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def start(self) -> bool:
        """Sweep now, then every interval. Returns False if already running."""

        with self._state_lock:
            if self.running:
                return False
            self._stop = threading.Event()
            self._thread = threading.Thread(
                target=self._run, args=(self._stop,), name="maintenance", daemon=True
            )
            self._thread.start()
        logger.info(f"maintenance: scheduled every {self._interval:.0f}s")
        return True

    def stop(self, timeout: float | None = 10.0) -> None:
        with self._state_lock:
            thread = self._thread
            self._thread = None
            self._stop.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        logger.info("maintenance: stopped")

    def _run(self, stop: threading.Event) -> None:
        while not stop.is_set():
            try:
                self.sweep()
            except Exception:
                logger.exception("maintenance: sweep crashed, next tick continues")
            if stop.wait(self._interval):
                break

    def sweep(self, now: datetime | None = None) -> SweepReport:
        with self._sweep_lock:
            now = now or self._clock()
            if now.tzinfo is None:
                now = now.replace(tzinfo=UTC)
            report = SweepReport(started_at=now)

            for kind in self._kinds:
                self._prune(kind, now, report)
            self._reconcile_memberships(now, report)

            report.finished_at = self._clock()
            self.last_report = report

        for error in report.errors:
            SWEEP_ERRORS.labels(step=error.step).inc()
        logger.info(
            f"maintenance: sweep done deleted={report.deleted} "
            f"examined={report.accounts_examined} downgraded={report.accounts_downgraded} "
            f"errors={len(report.errors)}"
        )
        return report

    def _prune(self, kind: EphemeralKind, now: datetime, report: SweepReport) -> None:
        cutoff = now - kind.window
        try:
            deleted = resilient_call(
                self._store.delete_many,
                kind.model,
                {kind.timestamp_field: Before(cutoff)},
                config=self._resilience,
            )
        except Exception as exc:
            logger.warning(f"maintenance: prune {kind.name} failed: {type(exc).__name__}: {exc}")
            report.errors.append(SweepError(kind.name, kind.model.__name__, str(exc)))
            return
        report.deleted[kind.name] = deleted
        if deleted:
            SWEEP_DELETED.labels(kind=kind.name).inc(deleted)
            logger.debug(f"maintenance: pruned {deleted} {kind.name} older than {cutoff.isoformat()}")

    def _reconcile_memberships(self, now: datetime, report: SweepReport) -> None:
        try:
            accounts = resilient_call(
                self._store.find,
                Account,
                {"premium_expiry": Before(now)},
                config=self._resilience,
            )
        except Exception as exc:
            logger.warning(f"maintenance: loading lapsed memberships failed: {exc}")
            report.errors.append(SweepError(MEMBERSHIP_STEP, "accounts", str(exc)))
            return

        for account in accounts:
            report.accounts_examined += 1
            try:
                downgraded = self._downgrade(account, now)
            except Exception as exc:
                logger.warning(f"maintenance: downgrade of account {account.id} failed: {exc}")
                report.errors.append(SweepError(MEMBERSHIP_STEP, f"account:{account.id}", str(exc)))
                continue
            if downgraded:
                report.accounts_downgraded += 1
                MEMBERSHIP_DOWNGRADES.inc()

    def _downgrade(self, account: Account, now: datetime) -> bool:
        roles = downgraded_roles(account.roles, account.premium_expiry, now)
        if roles is None:
            return False
        previous = sorted(account.roles)
        account.roles = roles
        resilient_call(self._store.save, account, config=self._resilience)
        self._audit.log(
            AuditAction.MEMBERSHIP_DOWNGRADED,
            account_id=account.id,
            details={"from": previous, "to": sorted(roles)},
        )
        return True


__all__ = [
    "EphemeralKind",
    "MaintenanceScheduler",
    "SweepError",
    "SweepReport",
    "default_kinds",
]

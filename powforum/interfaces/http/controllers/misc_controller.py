# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import Blueprint, Response, jsonify

from powforum.application.use_cases.maintenance import MaintenanceScheduler
from powforum.infrastructure.health import check_database
from powforum.infrastructure.observability import render_metrics
from powforum.infrastructure.realtime import ConnectionRegistry


class MiscController:
    def __init__(
        self,
        *,
        registry: ConnectionRegistry,
        maintenance: MaintenanceScheduler | None = None,
        metrics_enabled: bool = False,
    ) -> None:
        self._registry = registry
        self._maintenance = maintenance
        self._metrics_enabled = metrics_enabled

    def as_blueprint(self) -> Blueprint:
        bp = Blueprint("misc", __name__)
        bp.add_url_rule("/api/health", view_func=self.health, methods=["GET"])
        if self._metrics_enabled:
            bp.add_url_rule("/metrics", view_func=self.metrics, methods=["GET"])
        return bp

    def health(self):
        database_ok = check_database()
        status: dict[str, object] = {
            "ok": database_ok,
            "database": "ok" if database_ok else "unreachable",
            "connections": self._registry.online_count(),
        }
        report = self._maintenance.last_report if self._maintenance else None
        if report is not None:
            status["maintenance"] = {
                "last_sweep": report.started_at.isoformat(),
                "ok": report.ok,
            }
        return jsonify(status), (200 if database_ok else 503)

    def metrics(self) -> Response:
        body, content_type = render_metrics()
        return Response(body, content_type=content_type)

# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

REQUEST_LATENCY = Histogram(
    "powforum_request_latency_seconds",
    "Request latency",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10),
)
REQUEST_COUNTER = Counter(
    "powforum_requests_total",
    "Number of processed requests",
    labelnames=("endpoint", "status"),
)
REALTIME_CONNECTIONS = Gauge("powforum_realtime_connections", "Live realtime connections")
SWEEP_DELETED = Counter(
    "powforum_sweep_deleted_total",
    "Ephemeral records removed by maintenance",
    labelnames=("kind",),
)
SWEEP_ERRORS = Counter(
    "powforum_sweep_errors_total",
    "Maintenance steps that failed",
    labelnames=("step",),
)
MEMBERSHIP_DOWNGRADES = Counter(
    "powforum_membership_downgrades_total",
    "Accounts moved from patron to vip after premium lapsed",
)


def observe_request(endpoint: str, status: int, duration: float) -> None:
    REQUEST_LATENCY.observe(duration)
    REQUEST_COUNTER.labels(endpoint=endpoint, status=str(status)).inc()


def render_metrics() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST


__all__ = [
    "MEMBERSHIP_DOWNGRADES",
    "REALTIME_CONNECTIONS",
    "REQUEST_COUNTER",
    "REQUEST_LATENCY",
    "SWEEP_DELETED",
    "SWEEP_ERRORS",
    "observe_request",
    "render_metrics",
]

# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import threading
import time
from collections import defaultdict, deque
from collections.abc import Callable
from functools import wraps

from flask import Request, jsonify, request

from powforum.shared.config import load_config


class InMemoryRateLimiter:
    def __init__(self, limit: int, window_seconds: float) -> None:
        self._limit = max(1, int(limit))
        self._window = max(0.1, float(window_seconds))
        self._lock = threading.Lock()
        self._hits: dict[str, deque[float]] = defaultdict(deque)

    def allow(self, key: str) -> bool:
        now = time.monotonic()
        with self._lock:
            hits = self._hits[key]
            while hits and (now - hits[0]) > self._window:
                hits.popleft()
            if len(hits) >= self._limit:
                return False
            hits.append(now)
            return True


def _client_key(req: Request) -> str:
    forwarded = req.headers.get("X-Forwarded-For", "").split(",")[0].strip()
    return forwarded or (req.remote_addr or "unknown")


def rate_limit(limit: int | None = None, window_seconds: float | None = None):
    """Per-client sliding window; settings are read on first use."""

    limiter: InMemoryRateLimiter | None = None

    def decorator(f: Callable):
        @wraps(f)
        def wrapper(*args, **kwargs):
            nonlocal limiter
            security = load_config().security
            if not security.enable_rate_limit:
                return f(*args, **kwargs)
            if limiter is None:
                limiter = InMemoryRateLimiter(
                    limit or security.rate_limit_requests,
                    window_seconds or security.rate_limit_window,
                )
            if not limiter.allow(f"{request.path}:{_client_key(request)}"):
                return jsonify({"error": "rate_limited"}), 429
            return f(*args, **kwargs)

        return wrapper

    return decorator


__all__ = ["rate_limit"]

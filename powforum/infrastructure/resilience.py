# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Retry helpers for store operations that may hit a transient outage."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from powforum.shared.config.settings import ResilienceConfig
from powforum.shared.errors import PersistenceUnavailableError
from powforum.shared.logging import logger

T = TypeVar("T")


def retrying(config: ResilienceConfig) -> Retrying:
    return Retrying(
        stop=stop_after_attempt(config.max_retries + 1),
        wait=wait_exponential(multiplier=config.backoff_base, max=config.backoff_cap),
        retry=retry_if_exception_type(PersistenceUnavailableError),
        reraise=True,
    )


def resilient_call(  # noqa: UP047
    func: Callable[..., T],
    *args: Any,
    config: ResilienceConfig,
    **kwargs: Any,
) -> T:
    """Run ``func`` retrying only on ``PersistenceUnavailableError``."""

    try:
        for attempt in retrying(config):
            with attempt:
                number = attempt.retry_state.attempt_number
                if number > 1:
                    logger.debug(f"resilience: attempt={number} func={getattr(func, '__name__', func)}")
                return func(*args, **kwargs)
    except RetryError as exc:
        last_exc = exc.last_attempt.exception()
        if last_exc is None:
            raise RuntimeError("resilience: retry failed without exception") from exc
        raise last_exc from exc
    raise RuntimeError("resilience: reached unexpected branch")


__all__ = ["resilient_call", "retrying"]

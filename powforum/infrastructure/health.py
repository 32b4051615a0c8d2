# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from powforum.infrastructure.db import get_engine
from powforum.shared.logging import logger


def check_database() -> bool:
    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
    except (SQLAlchemyError, RuntimeError) as exc:
        logger.warning(f"health: database check failed: {exc}")
        return False
    return True


__all__ = ["check_database"]

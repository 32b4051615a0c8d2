# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .exceptions import DomainError, InvariantViolation
from .identity import ANONYMOUS, Identity
from .membership import ADMIN, PATRON, VIP, downgraded_roles, premium_expired
from .realtime import Connection, ConnectionState

__all__ = [
    "ADMIN",
    "ANONYMOUS",
    "Connection",
    "ConnectionState",
    "DomainError",
    "Identity",
    "InvariantViolation",
    "PATRON",
    "VIP",
    "downgraded_roles",
    "premium_expired",
]

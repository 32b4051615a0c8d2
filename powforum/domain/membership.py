# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Membership tiers carried in an account's role set."""

from __future__ import annotations

from collections.abc import Set
from datetime import datetime

PATRON = "patron"
VIP = "vip"
ADMIN = "admin"


def premium_expired(premium_expiry: datetime | None, now: datetime) -> bool:
    return premium_expiry is not None and premium_expiry < now


def downgraded_roles(roles: Set[str], premium_expiry: datetime | None, now: datetime) -> frozenset[str] | None:
    """Return the reconciled role set, or ``None`` when nothing must change.

    Once premium has lapsed an account keeps ``vip`` and loses ``patron``.
    Nothing here ever grants ``patron`` back.
    """

    if not premium_expired(premium_expiry, now):
        return None
    if PATRON not in roles and VIP in roles:
        return None
    return frozenset((set(roles) - {PATRON}) | {VIP})


__all__ = ["ADMIN", "PATRON", "VIP", "downgraded_roles", "premium_expired"]

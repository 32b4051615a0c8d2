# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import re
from typing import Any

SENSITIVE_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"(secret\s*[:=]\s*['\"]?)([a-zA-Z0-9_\-\.]{16,})(['\"]?)", re.IGNORECASE), r"\1***REDACTED***\3"),
    (re.compile(r"(private[_-]?key\s*[:=]\s*['\"]?)([a-zA-Z0-9_\-]{16,})(['\"]?)", re.IGNORECASE), r"\1***REDACTED***\3"),
    (re.compile(r"(bearer\s+)([a-zA-Z0-9_\-\.:]{16,})", re.IGNORECASE), r"\1***REDACTED***"),
    (re.compile(r"(token\s*[:=]\s*['\"]?)([a-zA-Z0-9_\-\.:]{16,})(['\"]?)", re.IGNORECASE), r"\1***REDACTED***\3"),
    (re.compile(r"(password\s*[:=]\s*['\"]?)([^'\"\s]{4,})(['\"]?)", re.IGNORECASE), r"\1***REDACTED***\3"),
    (re.compile(r"(cookie\s*[:=]\s*['\"]?)([^'\"]{8,})(['\"]?)", re.IGNORECASE), r"\1***REDACTED***\3"),
    # Connection strings with credentials
    (re.compile(r"(postgres(?:ql)?|mysql|mongodb(?:\+srv)?)://([^:/@]+):([^@]+)@"), r"\1://\2:***REDACTED***@"),
]


def sanitize_message(message: str) -> str:
    sanitized = message
    for pattern, replacement in SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def sanitize_record(record: dict[str, Any]) -> bool:
    if "message" in record:
        record["message"] = sanitize_message(record["message"])
    return True

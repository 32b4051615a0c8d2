# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, TypeVar

T = TypeVar("T")


class DocumentStore(Protocol):
    def find_one(self, kind: type[T], filter: Mapping[str, Any] | None = None) -> T | None: ...

    def find(self, kind: type[T], filter: Mapping[str, Any] | None = None) -> list[T]: ...

    def insert_if_absent(self, kind: type[T], key: str, document: T) -> bool: ...

    def delete_many(self, kind: type, filter: Mapping[str, Any] | None = None) -> int: ...

    def save(self, document: T) -> T: ...

    def count_all(self, kind: type) -> int: ...


class ConfigurationSurface(Protocol):
    """Key-value store the deployment reads its configuration from."""

    def get(self, name: str) -> str | None: ...

    def set(self, name: str, value: str) -> None: ...


class PushService(Protocol):
    def configure(self, public_key: str, private_key: str, contact: str) -> None: ...


class RealtimeTransport(Protocol):
    def emit(self, connection_id: str, event: str, payload: Any) -> None: ...

    def broadcast(self, event: str, payload: Any) -> None: ...

from __future__ import annotations

from typing import Any

from powforum.shared.config import AppConfig
from powforum.shared.config.settings import (
    DatabaseConfig,
    MaintenanceConfig,
    ResilienceConfig,
    SecretsConfig,
)


def make_config(**overrides: Any) -> AppConfig:
    values: dict[str, Any] = {
        "database": DatabaseConfig(url="sqlite://"),
        "maintenance": MaintenanceConfig(enabled=False),
        "secrets": SecretsConfig(persist=False),
        "resilience": ResilienceConfig(max_retries=1, backoff_base=0.0, backoff_cap=0.0),
    }
    values.update(overrides)
    return AppConfig(**values)


class FakeSurface:
    def __init__(self, values: dict[str, str] | None = None, *, writable: bool = True) -> None:
        self.values = dict(values or {})
        self.writable = writable
        self.writes: list[str] = []

    def get(self, name: str) -> str | None:
        return self.values.get(name)

    def set(self, name: str, value: str) -> None:
        if not self.writable:
            raise PermissionError(name)
        self.values[name] = value
        self.writes.append(name)


class FakeTransport:
    def __init__(self) -> None:
        self.emitted: list[tuple[str, str, Any]] = []
        self.broadcasts: list[tuple[str, Any]] = []

    def emit(self, connection_id: str, event: str, payload: Any) -> None:
        self.emitted.append((connection_id, event, payload))

    def broadcast(self, event: str, payload: Any) -> None:
        self.broadcasts.append((event, payload))


class FakePushService:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str]] = []

    def configure(self, public_key: str, private_key: str, contact: str) -> None:
        self.calls.append((public_key, private_key, contact))

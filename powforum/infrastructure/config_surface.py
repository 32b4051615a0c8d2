# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import os
from collections.abc import MutableMapping
from pathlib import Path

from dotenv import dotenv_values, set_key

from powforum.shared.logging import logger


class EnvironmentConfigurationSurface:
    """Read-only view over injected environment variables."""

    def __init__(self, environ: MutableMapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def get(self, name: str) -> str | None:
        return self._environ.get(name) or None

    def set(self, name: str, value: str) -> None:
        raise PermissionError(f"environment variables are read-only here ({name})")


class DotEnvConfigurationSurface(EnvironmentConfigurationSurface):
    """Environment first, then a ``.env`` file that generated values are written to."""

    def __init__(self, path: str | Path, environ: MutableMapping[str, str] | None = None) -> None:
        super().__init__(environ)
        self._path = Path(path)

    def get(self, name: str) -> str | None:
        value = super().get(name)
        if value:
            return value
        if not self._path.is_file():
            return None
        return dotenv_values(self._path).get(name) or None

    def set(self, name: str, value: str) -> None:
        self._path.touch(exist_ok=True)
        ok, _, _ = set_key(str(self._path), name, value, quote_mode="never")
        if not ok:
            raise OSError(f"could not write {name} to {self._path}")
        self._environ[name] = value
        logger.debug(f"config_surface: wrote {name} to {self._path}")


__all__ = ["DotEnvConfigurationSurface", "EnvironmentConfigurationSurface"]

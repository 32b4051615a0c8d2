# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Process-wide cryptographic material, created at most once.

Values are looked up on the configuration surface first. Missing values are
generated, made available immediately and, when the deployment allows it,
written back so the next start reuses them.
"""

from __future__ import annotations

import base64
import secrets
import threading
from collections.abc import Callable
from dataclasses import dataclass

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from powforum.application.interfaces import ConfigurationSurface
from powforum.shared.config import AppConfig
from powforum.shared.errors import SecretGenerationError
from powforum.shared.logging import logger

SESSION_SECRET = "SESSION_SECRET"
VAPID_PUBLIC_KEY = "VAPID_PUBLIC_KEY"
VAPID_PRIVATE_KEY = "VAPID_PRIVATE_KEY"

SYMMETRIC_KEY_BYTES = 32


@dataclass(slots=True, frozen=True)
class PersistenceCapability:
    """Whether this deployment may write generated secrets back."""

    can_persist: bool
    reason: str | None = None

    @classmethod
    def from_config(cls, config: AppConfig) -> PersistenceCapability:
        if not config.secrets.persist:
            return cls(False, "SECRETS_PERSIST is disabled")
        if config.platform_marker:
            return cls(False, "managed platform does not allow writing configuration")
        return cls(True)


@dataclass(slots=True, frozen=True)
class KeyPair:
    public_key: str
    private_key: str


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def generate_symmetric_key() -> str:
    return secrets.token_bytes(SYMMETRIC_KEY_BYTES).hex()


def generate_push_key_pair() -> KeyPair:
    """ECDSA P-256 pair encoded the way Web Push application servers expect."""

    private = ec.generate_private_key(ec.SECP256R1())
    private_raw = private.private_numbers().private_value.to_bytes(32, "big")
    public_raw = private.public_key().public_bytes(Encoding.X962, PublicFormat.UncompressedPoint)
    return KeyPair(public_key=_b64url(public_raw), private_key=_b64url(private_raw))


class SecretProvisioner:
    def __init__(
        self,
        surface: ConfigurationSurface,
        capability: PersistenceCapability,
        *,
        symmetric_generator: Callable[[], str] = generate_symmetric_key,
        key_pair_generator: Callable[[], KeyPair] = generate_push_key_pair,
    ) -> None:
        self._surface = surface
        self._capability = capability
        self._symmetric_generator = symmetric_generator
        self._key_pair_generator = key_pair_generator
        self._values: dict[str, str] = {}
        self._generated: set[str] = set()
        self._lock = threading.Lock()

    def ensure_secret(self, name: str) -> str:
        with self._lock:
            cached = self._lookup(name)
            if cached:
                return cached
            value = self._generate(name, self._symmetric_generator)
            self._values[name] = value
            self._generated.add(name)
            self._persist({name: value})
            return value

    def ensure_key_pair(
        self,
        public_name: str = VAPID_PUBLIC_KEY,
        private_name: str = VAPID_PRIVATE_KEY,
    ) -> KeyPair:
        """Both halves come from the surface together or are generated together."""

        with self._lock:
            public = self._lookup(public_name)
            private = self._lookup(private_name)
            if public and private:
                return KeyPair(public_key=public, private_key=private)
            if public or private:
                logger.warning(
                    f"secrets: only one half of {public_name}/{private_name} is configured, "
                    "generating a new pair"
                )
            pair = self._generate(public_name, self._key_pair_generator)
            self._values[public_name] = pair.public_key
            self._values[private_name] = pair.private_key
            self._generated.update((public_name, private_name))
            self._persist({public_name: pair.public_key, private_name: pair.private_key})
            return pair

    def was_generated(self, name: str) -> bool:
        return name in self._generated

    def _lookup(self, name: str) -> str | None:
        if name in self._values:
            return self._values[name]
        value = self._surface.get(name)
        if value:
            self._values[name] = value
            return value
        return None

    def _generate(self, name: str, generator: Callable[[], object]):
        try:
            value = generator()
        except (NotImplementedError, OSError, UnsupportedAlgorithm) as exc:
            raise SecretGenerationError(name, str(exc) or type(exc).__name__) from exc
        if not value:
            raise SecretGenerationError(name, "generator returned an empty value")
        logger.info(f"secrets: generated {name}")
        return value

    def _persist(self, values: dict[str, str]) -> None:
        names = ", ".join(values)
        if not self._capability.can_persist:
            logger.warning(
                f"secrets: {names} kept in memory for this process only "
                f"({self._capability.reason}); dependent state resets on restart"
            )
            return
        try:
            for name, value in values.items():
                self._surface.set(name, value)
        except Exception as exc:
            logger.warning(
                f"secrets: could not persist {names} ({type(exc).__name__}: {exc}); "
                "kept in memory for this process only"
            )
            return
        logger.info(f"secrets: persisted {names}")


__all__ = [
    "KeyPair",
    "PersistenceCapability",
    "SESSION_SECRET",
    "SecretProvisioner",
    "VAPID_PRIVATE_KEY",
    "VAPID_PUBLIC_KEY",
    "generate_push_key_pair",
    "generate_symmetric_key",
]

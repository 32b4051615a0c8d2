from __future__ import annotations

import base64

import pytest

from powforum.application.services.secret_provisioner import (
    SESSION_SECRET,
    VAPID_PRIVATE_KEY,
    VAPID_PUBLIC_KEY,
    KeyPair,
    PersistenceCapability,
    SecretProvisioner,
    generate_push_key_pair,
    generate_symmetric_key,
)
from powforum.infrastructure.config_surface import (
    DotEnvConfigurationSurface,
    EnvironmentConfigurationSurface,
)
from powforum.shared.config.settings import SecretsConfig
from powforum.shared.errors import SecretGenerationError
from powforum.tests.fakes import FakeSurface, make_config

ALLOWED = PersistenceCapability(True)
FORBIDDEN = PersistenceCapability(False, "managed platform")


def _b64decode(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


class CountingGenerator:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        return f"generated-{self.calls}"


def test_same_secret_twice_returns_identical_value() -> None:
    generator = CountingGenerator()
    provisioner = SecretProvisioner(FakeSurface(), ALLOWED, symmetric_generator=generator)

    first = provisioner.ensure_secret(SESSION_SECRET)
    second = provisioner.ensure_secret(SESSION_SECRET)

    assert first == second == "generated-1"
    assert generator.calls == 1
    assert provisioner.was_generated(SESSION_SECRET)


def test_existing_secret_is_reused() -> None:
    generator = CountingGenerator()
    surface = FakeSurface({SESSION_SECRET: "from-config"})
    provisioner = SecretProvisioner(surface, ALLOWED, symmetric_generator=generator)

    assert provisioner.ensure_secret(SESSION_SECRET) == "from-config"
    assert generator.calls == 0
    assert not provisioner.was_generated(SESSION_SECRET)
    assert surface.writes == []


def test_generated_secret_is_persisted_when_allowed() -> None:
    surface = FakeSurface()
    provisioner = SecretProvisioner(surface, ALLOWED, symmetric_generator=CountingGenerator())

    value = provisioner.ensure_secret(SESSION_SECRET)

    assert surface.values[SESSION_SECRET] == value
    assert surface.writes == [SESSION_SECRET]


def test_forbidden_persistence_keeps_value_in_memory() -> None:
    surface = FakeSurface()
    provisioner = SecretProvisioner(surface, FORBIDDEN, symmetric_generator=CountingGenerator())

    value = provisioner.ensure_secret(SESSION_SECRET)

    assert value == "generated-1"
    assert surface.writes == []
    assert provisioner.ensure_secret(SESSION_SECRET) == value


def test_failed_write_does_not_fail_provisioning() -> None:
    surface = FakeSurface(writable=False)
    provisioner = SecretProvisioner(surface, ALLOWED, symmetric_generator=CountingGenerator())

    assert provisioner.ensure_secret(SESSION_SECRET) == "generated-1"


def test_generation_failure_is_fatal() -> None:
    def broken() -> str:
        raise OSError("no entropy")

    provisioner = SecretProvisioner(FakeSurface(), ALLOWED, symmetric_generator=broken)

    with pytest.raises(SecretGenerationError) as excinfo:
        provisioner.ensure_secret(SESSION_SECRET)
    assert excinfo.value.name == SESSION_SECRET


def test_empty_generated_value_is_rejected() -> None:
    provisioner = SecretProvisioner(FakeSurface(), ALLOWED, symmetric_generator=lambda: "")

    with pytest.raises(SecretGenerationError):
        provisioner.ensure_secret(SESSION_SECRET)


def test_key_pair_generated_once_and_persisted_together() -> None:
    calls: list[int] = []

    def pair() -> KeyPair:
        calls.append(1)
        return KeyPair(public_key="pub", private_key="priv")

    surface = FakeSurface()
    provisioner = SecretProvisioner(surface, ALLOWED, key_pair_generator=pair)

    assert provisioner.ensure_key_pair() == provisioner.ensure_key_pair()
    assert len(calls) == 1
    assert surface.values == {VAPID_PUBLIC_KEY: "pub", VAPID_PRIVATE_KEY: "priv"}
    assert provisioner.was_generated(VAPID_PUBLIC_KEY)
    assert provisioner.was_generated(VAPID_PRIVATE_KEY)


def test_half_configured_key_pair_is_regenerated() -> None:
    surface = FakeSurface({VAPID_PUBLIC_KEY: "stale"})
    provisioner = SecretProvisioner(
        surface, ALLOWED, key_pair_generator=lambda: KeyPair("pub", "priv")
    )

    pair = provisioner.ensure_key_pair()

    assert pair == KeyPair("pub", "priv")
    assert surface.values[VAPID_PUBLIC_KEY] == "pub"


def test_symmetric_key_is_256_bits() -> None:
    key = generate_symmetric_key()

    assert len(bytes.fromhex(key)) == 32
    assert generate_symmetric_key() != key


def test_push_key_pair_uses_uncompressed_p256_point() -> None:
    pair = generate_push_key_pair()

    public = _b64decode(pair.public_key)
    private = _b64decode(pair.private_key)
    assert len(public) == 65
    assert public[0] == 0x04
    assert len(private) == 32
    assert "=" not in pair.public_key


@pytest.mark.parametrize(
    ("overrides", "expected"),
    [
        ({}, True),
        ({"secrets": SecretsConfig(persist=False)}, False),
        ({"platform_marker": "production"}, False),
    ],
)
def test_persistence_capability_from_config(overrides: dict, expected: bool) -> None:
    values = {"secrets": SecretsConfig(persist=True), "platform_marker": None}
    values.update(overrides)

    capability = PersistenceCapability.from_config(make_config(**values))

    assert capability.can_persist is expected
    assert (capability.reason is None) is expected


def test_environment_surface_is_read_only() -> None:
    surface = EnvironmentConfigurationSurface({"SESSION_SECRET": "abc", "EMPTY": ""})

    assert surface.get("SESSION_SECRET") == "abc"
    assert surface.get("EMPTY") is None
    with pytest.raises(PermissionError):
        surface.set("SESSION_SECRET", "other")


def test_dotenv_surface_round_trips_through_file(tmp_path) -> None:
    env_file = tmp_path / ".env"
    environ: dict[str, str] = {}
    surface = DotEnvConfigurationSurface(env_file, environ)

    assert surface.get(SESSION_SECRET) is None
    surface.set(SESSION_SECRET, "deadbeef")

    assert environ[SESSION_SECRET] == "deadbeef"
    assert "SESSION_SECRET=deadbeef" in env_file.read_text()
    assert DotEnvConfigurationSurface(env_file, {}).get(SESSION_SECRET) == "deadbeef"


def test_provisioner_with_dotenv_surface_survives_restart(tmp_path) -> None:
    env_file = tmp_path / ".env"
    first = SecretProvisioner(DotEnvConfigurationSurface(env_file, {}), ALLOWED)
    value = first.ensure_secret(SESSION_SECRET)

    restarted = SecretProvisioner(DotEnvConfigurationSurface(env_file, {}), ALLOWED)

    assert restarted.ensure_secret(SESSION_SECRET) == value
    assert not restarted.was_generated(SESSION_SECRET)

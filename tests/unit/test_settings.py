from __future__ import annotations

import pytest

from src.runtime.settings import load_settings

_ENV_VARS = (
    "MAX_CONCURRENT_CONNECTIONS",
    "MAX_CONNECTIONS_PER_SOURCE",
    "CONNECTION_RATE_LIMIT_MS",
    "CONNECTION_IDLE_TIMEOUT_MS",
    "EMERGENCY_HIGH_WATER_FRACTION",
    "EMERGENCY_EVICTION_FRACTION",
    "TRUSTED_SOURCES",
    "WS_RECV_TICK_S",
    "WS_TRUST_FORWARDED_FOR",
    "LOCK_KEY_PREFIX",
    "IDLE_SWEEP_INTERVAL_S",
    "EMERGENCY_SWEEP_INTERVAL_S",
    "LOCK_SWEEP_INTERVAL_S",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = load_settings()
    admission = settings.admission
    assert admission.max_connections == 5000
    assert admission.max_connections_per_source == 100
    assert admission.min_admission_interval_ms == 100
    assert admission.idle_timeout_ms == 600_000
    assert admission.emergency_high_water_fraction == 0.8
    assert admission.emergency_eviction_fraction == 0.3
    assert admission.trusted_sources == ()
    assert settings.websocket.trust_forwarded_for is False
    assert settings.scheduler.lock_key_prefix == "scheduler:"


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAX_CONCURRENT_CONNECTIONS", "250")
    monkeypatch.setenv("MAX_CONNECTIONS_PER_SOURCE", "4")
    monkeypatch.setenv("CONNECTION_RATE_LIMIT_MS", "750")
    monkeypatch.setenv("TRUSTED_SOURCES", "127.0.0.1, ::1,,10.0.0.5")
    monkeypatch.setenv("WS_TRUST_FORWARDED_FOR", "yes")
    monkeypatch.setenv("LOCK_KEY_PREFIX", "jobs:")

    settings = load_settings()
    assert settings.admission.max_connections == 250
    assert settings.admission.max_connections_per_source == 4
    assert settings.admission.min_admission_interval_ms == 750
    assert settings.admission.trusted_sources == ("127.0.0.1", "::1", "10.0.0.5")
    assert settings.websocket.trust_forwarded_for is True
    assert settings.scheduler.lock_key_prefix == "jobs:"


def test_unparseable_values_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAX_CONCURRENT_CONNECTIONS", "lots")
    monkeypatch.setenv("WS_RECV_TICK_S", "-1")

    settings = load_settings()
    assert settings.admission.max_connections == 5000
    assert settings.websocket.recv_tick_s == 5.0


def test_caps_are_at_least_one(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAX_CONCURRENT_CONNECTIONS", "0")
    monkeypatch.setenv("MAX_CONNECTIONS_PER_SOURCE", "-3")

    settings = load_settings()
    assert settings.admission.max_connections == 1
    assert settings.admission.max_connections_per_source == 1


@pytest.mark.parametrize("name", ["EMERGENCY_HIGH_WATER_FRACTION", "EMERGENCY_EVICTION_FRACTION"])
def test_out_of_range_fraction_is_rejected(monkeypatch: pytest.MonkeyPatch, name: str) -> None:
    monkeypatch.setenv(name, "1.2")
    with pytest.raises(ValueError):
        load_settings()


@pytest.mark.parametrize("value", ["0", "-5"])
def test_non_positive_sweep_intervals_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch, value: str) -> None:
    monkeypatch.setenv("IDLE_SWEEP_INTERVAL_S", value)
    monkeypatch.setenv("EMERGENCY_SWEEP_INTERVAL_S", value)
    monkeypatch.setenv("LOCK_SWEEP_INTERVAL_S", value)

    settings = load_settings()
    assert settings.admission.idle_sweep_interval_s == 60.0
    assert settings.admission.emergency_sweep_interval_s == 30.0
    assert settings.scheduler.lock_sweep_interval_s == 30.0

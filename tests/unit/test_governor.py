from __future__ import annotations

import pytest

from src.state.settings import AdmissionSettings
from src.handlers.connections import ConnectionGovernor


class _Clock:
    def __init__(self) -> None:
        self.t = 1000.0

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


def _policy(**overrides) -> AdmissionSettings:
    values = {
        "max_connections": 3,
        "max_connections_per_source": 2,
        "min_admission_interval_ms": 500,
        "idle_timeout_ms": 60_000,
        "emergency_high_water_fraction": 0.8,
        "emergency_eviction_fraction": 0.3,
        "idle_sweep_interval_s": 60,
        "emergency_sweep_interval_s": 30,
    }
    values.update(overrides)
    return AdmissionSettings(**values)


def _governor(clock: _Clock, **overrides) -> ConnectionGovernor:
    return ConnectionGovernor(_policy(**overrides), now_fn=clock)


def test_admission_walkthrough() -> None:
    clock = _Clock()
    gov = _governor(clock)

    assert gov.admit("id1", "A", object()) is True
    clock.advance(1.0)
    assert gov.admit("id2", "A", object()) is True

    decision = gov.can_admit("A")
    assert decision.allowed is False
    assert decision.reason == "source limit"

    assert gov.admit("id3", "B", object()) is True
    assert gov.count == 3

    decision = gov.can_admit("C")
    assert decision.allowed is False
    assert decision.reason == "global limit"

    gov.remove("id1")
    assert gov.count == 2
    assert gov.source_count("A") == 1

    # Source A is back under its cap but its last admission was just now.
    assert gov.can_admit("A").reason == "rate limit"
    clock.advance(1.0)
    assert gov.can_admit("A").allowed is True


def test_global_cap_is_never_exceeded() -> None:
    clock = _Clock()
    gov = _governor(clock, max_connections_per_source=100)

    results = [gov.admit(f"c{i}", f"source-{i}", object()) for i in range(10)]

    assert results.count(True) == 3
    assert gov.count == 3
    for source in ("source-0", "source-9", "anything"):
        decision = gov.can_admit(source)
        assert decision.allowed is False
        assert decision.reason == "global limit"


def test_source_cap_does_not_affect_other_sources() -> None:
    clock = _Clock()
    gov = _governor(clock, max_connections=10, min_admission_interval_ms=0)

    assert gov.admit("a1", "A", object())
    assert gov.admit("a2", "A", object())

    assert gov.can_admit("A").reason == "source limit"
    assert gov.admit("a3", "A", object()) is False
    assert gov.can_admit("B").allowed is True
    assert gov.admit("b1", "B", object()) is True


def test_rate_limit_window() -> None:
    clock = _Clock()
    gov = _governor(clock, max_connections_per_source=10)

    assert gov.admit("c1", "A", object())
    clock.advance(0.2)
    assert gov.admit("c2", "A", object()) is False
    assert gov.can_admit("A").reason == "rate limit"

    clock.advance(0.4)
    assert gov.admit("c2", "A", object()) is True


def test_rejected_attempts_do_not_move_rate_limit_clock() -> None:
    clock = _Clock()
    gov = _governor(clock, max_connections_per_source=10)

    assert gov.admit("c1", "A", object())
    clock.advance(0.4)
    assert gov.admit("c2", "A", object()) is False
    clock.advance(0.15)
    # 550ms since the last accepted admission, 150ms since the rejected one.
    assert gov.admit("c2", "A", object()) is True


def test_can_admit_has_no_side_effects() -> None:
    clock = _Clock()
    gov = _governor(clock)
    gov.admit("c1", "A", object())

    first = gov.can_admit("A")
    second = gov.can_admit("A")
    assert first == second
    assert gov.count == 1
    assert gov.can_admit("B") == gov.can_admit("B")


def test_remove_is_idempotent() -> None:
    clock = _Clock()
    gov = _governor(clock)
    gov.admit("c1", "A", object())
    clock.advance(1.0)
    gov.admit("c2", "A", object())

    gov.remove("c1")
    snapshot = gov.stats()
    gov.remove("c1")
    gov.remove("never-admitted")

    assert gov.stats() == snapshot
    assert snapshot["total"] == 1
    assert snapshot["per_source"] == {"A": 1}


def test_remove_drops_zero_count_sources() -> None:
    clock = _Clock()
    gov = _governor(clock)
    gov.admit("c1", "A", object())
    gov.remove("c1")

    assert gov.stats()["per_source"] == {}
    assert gov.source_count("A") == 0


def test_touch_unknown_id_is_noop() -> None:
    clock = _Clock()
    gov = _governor(clock)
    gov.touch("missing")
    assert gov.count == 0


def test_duplicate_id_is_refused() -> None:
    clock = _Clock()
    gov = _governor(clock, min_admission_interval_ms=0)
    gov.admit("c1", "A", object())

    with pytest.raises(ValueError):
        gov.admit("c1", "B", object())
    assert gov.count == 1
    assert gov.source_count("B") == 0


def test_empty_source_key_is_refused() -> None:
    gov = _governor(_Clock())
    with pytest.raises(ValueError):
        gov.can_admit("")


def test_fractions_are_validated() -> None:
    with pytest.raises(ValueError):
        ConnectionGovernor(_policy(emergency_high_water_fraction=1.5))
    with pytest.raises(ValueError):
        ConnectionGovernor(_policy(emergency_eviction_fraction=-0.1))


def test_trusted_source_bypasses_source_and_rate_limits() -> None:
    clock = _Clock()
    gov = _governor(clock, max_connections=4, trusted_sources=("127.0.0.1",))

    assert all(gov.admit(f"local-{i}", "127.0.0.1", object()) for i in range(3))
    assert gov.source_count("127.0.0.1") == 3

    gov.admit("remote", "203.0.113.9", object())
    decision = gov.can_admit("127.0.0.1")
    assert decision.allowed is False
    assert decision.reason == "global limit"


def test_recorded_errors_shrink_source_limit() -> None:
    clock = _Clock()
    gov = _governor(
        clock,
        max_connections=100,
        max_connections_per_source=10,
        source_error_penalty=2,
        min_source_limit=5,
        source_error_reset_ms=60_000,
    )

    assert gov.effective_source_limit("A") == 10
    gov.record_error("A")
    gov.record_error("A")
    assert gov.effective_source_limit("A") == 6
    assert gov.effective_source_limit("B") == 10

    for _ in range(10):
        gov.record_error("A")
    assert gov.effective_source_limit("A") == 5

    clock.advance(61)
    assert gov.effective_source_limit("A") == 10


def test_recorded_errors_reject_at_reduced_limit() -> None:
    clock = _Clock()
    gov = _governor(
        clock,
        max_connections=100,
        max_connections_per_source=8,
        min_admission_interval_ms=0,
        source_error_penalty=1,
        min_source_limit=1,
    )
    for i in range(6):
        assert gov.admit(f"c{i}", "A", object())

    gov.record_error("A")
    gov.record_error("A")

    assert gov.can_admit("A").reason == "source limit"


def test_error_floor_never_exceeds_configured_cap() -> None:
    clock = _Clock()
    gov = _governor(clock, max_connections_per_source=2, min_source_limit=5)
    for _ in range(4):
        gov.record_error("A")
    assert gov.effective_source_limit("A") == 2


def test_stats_on_empty_registry() -> None:
    gov = _governor(_Clock())
    stats = gov.stats()
    assert stats["total"] == 0
    assert stats["per_source"] == {}
    assert stats["oldest_created_at"] is None
    assert stats["policy"]["max_connections"] == 3
    assert stats["policy"]["max_connections_per_source"] == 2


def test_stats_reports_oldest_connection() -> None:
    clock = _Clock()
    gov = _governor(clock, min_admission_interval_ms=0)
    gov.admit("c1", "A", object())
    first = clock()
    clock.advance(5)
    gov.admit("c2", "B", object())

    stats = gov.stats()
    assert stats["total"] == 2
    assert stats["per_source"] == {"A": 1, "B": 1}
    assert stats["oldest_created_at"] == first

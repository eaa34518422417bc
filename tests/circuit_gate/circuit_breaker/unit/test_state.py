import dataclasses

import pytest

from circuit_gate.circuit_breaker import BreakerCounters, CircuitState


def test_counters_are_replaced_not_mutated() -> None:
    start = BreakerCounters()

    after_failure = start.with_failure().with_failure()
    after_success = after_failure.with_success()

    assert start == BreakerCounters()
    assert after_failure.consecutive_failures == 2
    assert after_success == BreakerCounters(consecutive_successes=1)
    with pytest.raises(dataclasses.FrozenInstanceError):
        start.consecutive_failures = 3  # type: ignore[misc]


def test_failure_clears_success_chain() -> None:
    counters = BreakerCounters().with_success().with_success().with_failure()

    assert counters == BreakerCounters(consecutive_failures=1)


def test_half_open_attempts_survive_outcomes() -> None:
    counters = BreakerCounters().with_half_open_attempt().with_failure()

    assert counters.half_open_attempts == 1


def test_circuit_state_values() -> None:
    assert CircuitState("half_open") is CircuitState.HALF_OPEN
    assert str(CircuitState.OPEN) == "open"

"""Circuit breaker state primitives."""

from dataclasses import dataclass, replace
from enum import StrEnum


class CircuitState(StrEnum):
    """Circuit breaker state values."""

    CLOSED = "closed"
    HALF_OPEN = "half_open"
    OPEN = "open"


@dataclass(frozen=True, slots=True)
class BreakerCounters:
    """Consecutive outcome counters since the last state transition.

    Instances are immutable. Recording an outcome returns a new instance and a
    transition replaces the counters wholesale with ``BreakerCounters()``.

    Attributes:
        consecutive_failures: Failures in a row since the last success.
        consecutive_successes: Successes in a row since the last failure.
        half_open_attempts: Attempts admitted while ``HALF_OPEN``.
    """

    consecutive_failures: int = 0
    consecutive_successes: int = 0
    half_open_attempts: int = 0

    def with_success(self) -> "BreakerCounters":
        return replace(
            self,
            consecutive_failures=0,
            consecutive_successes=self.consecutive_successes + 1,
        )

    def with_failure(self) -> "BreakerCounters":
        return replace(
            self,
            consecutive_failures=self.consecutive_failures + 1,
            consecutive_successes=0,
        )

    def with_half_open_attempt(self) -> "BreakerCounters":
        return replace(self, half_open_attempts=self.half_open_attempts + 1)


@dataclass(frozen=True, slots=True)
class StateChange:
    """One observed transition between two distinct states."""

    old: CircuitState
    new: CircuitState


@dataclass(frozen=True, slots=True)
class BreakerSnapshot:
    """Point-in-time view of breaker internals useful for logging.

    Attributes:
        name: Breaker name.
        state: Current breaker state.
        counters: Counters accumulated since the last transition.
        timer_pending: Whether a recovery timer is scheduled.
    """

    name: str
    state: CircuitState
    counters: BreakerCounters
    timer_pending: bool

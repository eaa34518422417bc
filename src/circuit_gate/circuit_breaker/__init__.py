"""Framework-agnostic async circuit breaker.

This package implements the circuit breaker pattern from *Release It!* with a
probabilistic half-open phase.

Key behavior notes:
  - ``CLOSED`` admits every call. ``OPEN`` rejects every call and arms a single
    recovery timer that moves the breaker to ``HALF_OPEN``.
  - ``HALF_OPEN`` admits a sampled percentage of calls. Consecutive successes
    close the circuit; consecutive failures open it again. Sampled-out calls
    are rejected without touching counters.
  - Every transition resets counters. Outcomes of attempts admitted before a
    transition are discarded when they complete.
  - Timers are never cleaned up implicitly; call ``shutdown()`` on the breaker
    (or its registry) when discarding it.
"""

from circuit_gate.circuit_breaker.admission import RandomSource, allow
from circuit_gate.circuit_breaker.breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    circuit_breaker,
)
from circuit_gate.circuit_breaker.exceptions import (
    BreakerRejectedError,
    CircuitBreakerError,
    CircuitHalfOpenError,
    CircuitOpenError,
)
from circuit_gate.circuit_breaker.metrics import BreakerListener, QueueListener
from circuit_gate.circuit_breaker.outcome import Failed, Ok, invoke
from circuit_gate.circuit_breaker.state import (
    BreakerCounters,
    BreakerSnapshot,
    CircuitState,
    StateChange,
)
from circuit_gate.circuit_breaker.timer import (
    LoopScheduler,
    RecoveryTimer,
    Scheduler,
    TimerHandle,
)

__all__ = [
    "BreakerCounters",
    "BreakerListener",
    "BreakerRejectedError",
    "BreakerSnapshot",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerError",
    "CircuitHalfOpenError",
    "CircuitOpenError",
    "CircuitState",
    "Failed",
    "LoopScheduler",
    "Ok",
    "QueueListener",
    "RandomSource",
    "RecoveryTimer",
    "Scheduler",
    "StateChange",
    "TimerHandle",
    "allow",
    "circuit_breaker",
    "invoke",
]

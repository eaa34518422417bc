"""Admission decisions for incoming call attempts."""

import random
from collections.abc import Callable
from typing import TYPE_CHECKING

from circuit_gate.circuit_breaker.state import CircuitState

if TYPE_CHECKING:
    from circuit_gate.circuit_breaker.breaker import CircuitBreakerConfig

RandomSource = Callable[[int, int], int]

SAMPLE_LOW = 1
SAMPLE_HIGH = 100


def default_random_source(low: int, high: int) -> int:
    """Draw a uniform integer in ``[low, high]``."""
    return random.randint(low, high)


def allow(state: CircuitState, config: "CircuitBreakerConfig") -> bool:
    """Return whether an attempt in ``state`` may reach the operation.

    ``HALF_OPEN`` draws once from ``config.random_source`` over ``[1, 100]`` and
    admits draws strictly above ``100 - half_open_call_rate``. A rate of 100
    admits every draw and a rate of 0 admits none.
    """
    if state == CircuitState.CLOSED:
        return True
    if state == CircuitState.OPEN:
        return False
    draw = config.random_source(SAMPLE_LOW, SAMPLE_HIGH)
    return draw > SAMPLE_HIGH - config.half_open_call_rate

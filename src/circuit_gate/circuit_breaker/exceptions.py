"""Circuit breaker exceptions.

Callers can distinguish between:
  - A call being rejected because the circuit is open.
  - A call being rejected because it was not sampled in while half-open.
  - The wrapped operation failing, which re-raises the original exception.
"""

from circuit_gate.circuit_breaker.state import CircuitState


class CircuitBreakerError(Exception):
    """Base exception for the circuit breaker package."""


class BreakerRejectedError(CircuitBreakerError):
    """Raised when the breaker refuses a call without invoking the operation.

    Attributes:
        breaker_name: Name of the breaker rejecting the call.
        state: Breaker state at the time of rejection.
    """

    def __init__(self, breaker_name: str, state: CircuitState, message: str) -> None:
        self.breaker_name = breaker_name
        self.state = state
        super().__init__(message)


class CircuitOpenError(BreakerRejectedError):
    """Raised when a call is rejected because the circuit is open.

    Attributes:
        retry_after: Seconds until the recovery timer moves the breaker to
            ``HALF_OPEN``. ``0.0`` when no timer is pending.
    """

    def __init__(self, breaker_name: str, retry_after: float) -> None:
        """Initialize a circuit-open exception payload.

        Args:
            breaker_name: Breaker rejecting the call.
            retry_after: Seconds until the next probe window opens.
        """
        self.retry_after = retry_after
        super().__init__(
            breaker_name,
            CircuitState.OPEN,
            f"circuit_open: {breaker_name} retry_after={retry_after:g}s",
        )


class CircuitHalfOpenError(BreakerRejectedError):
    """Raised when a half-open call is not sampled in for probing."""

    def __init__(self, breaker_name: str) -> None:
        super().__init__(
            breaker_name,
            CircuitState.HALF_OPEN,
            f"circuit_half_open: {breaker_name} call not sampled",
        )

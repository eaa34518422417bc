"""Observability hooks for circuit breakers."""

import asyncio
from typing import Protocol

from circuit_gate.circuit_breaker.state import CircuitState, StateChange


class BreakerListener(Protocol):
    """Listener protocol for circuit breaker events.

    Hooks are synchronous because transitions also happen from timer callbacks
    and from ``reset()``/``trip()``. Listeners may implement any subset of the
    hooks; missing ones are skipped.

    Notes:
        ``on_state_change`` fires once per actual transition. Re-entering the
        current state (for example ``trip()`` while already ``OPEN``) is not
        reported.
    """

    def on_state_change(self, name: str, change: StateChange) -> None:
        """Handle circuit state transitions."""

    def on_call_rejected(self, name: str, state: CircuitState) -> None:
        """Handle call rejection while open or not sampled in while half-open."""

    def on_call_succeeded(self, name: str, elapsed: float) -> None:
        """Handle successful protected call completion."""

    def on_call_failed(self, name: str, exc: Exception, elapsed: float) -> None:
        """Handle failed protected call completion."""


class QueueListener:
    """Forward state changes into an ``asyncio.Queue`` for the host to consume."""

    def __init__(self, queue: "asyncio.Queue[StateChange] | None" = None) -> None:
        self.queue: asyncio.Queue[StateChange] = (
            asyncio.Queue() if queue is None else queue
        )

    def on_state_change(self, name: str, change: StateChange) -> None:
        _ = name
        self.queue.put_nowait(change)

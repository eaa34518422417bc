"""Named breaker collection with a single shutdown point."""

import threading
from collections.abc import Iterator
from typing import Any

from circuit_gate.circuit_breaker.breaker import CircuitBreaker
from circuit_gate.circuit_breaker.state import BreakerSnapshot
from circuit_gate.logging import StructuredLogger, get_logger, log_info


class BreakerRegistry:
    """Track breakers by name so the host can cancel every timer at shutdown."""

    def __init__(self, *, logger: StructuredLogger | None = None) -> None:
        self._breakers: dict[str, CircuitBreaker[Any]] = {}
        self._lock = threading.Lock()
        self._logger = get_logger() if logger is None else logger

    def register(self, breaker: CircuitBreaker[Any]) -> CircuitBreaker[Any]:
        """Add ``breaker``; names must be unique within the registry."""
        with self._lock:
            if breaker.name in self._breakers:
                raise ValueError(f"breaker already registered: {breaker.name}")
            self._breakers[breaker.name] = breaker
        return breaker

    def unregister(self, name: str) -> CircuitBreaker[Any] | None:
        with self._lock:
            return self._breakers.pop(name, None)

    def get(self, name: str) -> CircuitBreaker[Any]:
        with self._lock:
            return self._breakers[name]

    def snapshots(self) -> list[BreakerSnapshot]:
        with self._lock:
            breakers = list(self._breakers.values())
        return [breaker.snapshot() for breaker in breakers]

    def shutdown(self) -> None:
        """Cancel pending recovery timers on every registered breaker."""
        with self._lock:
            breakers = list(self._breakers.values())
        for breaker in breakers:
            breaker.shutdown()
        log_info(self._logger, "circuit_registry_shutdown", breakers=len(breakers))

    def __iter__(self) -> Iterator[CircuitBreaker[Any]]:
        with self._lock:
            return iter(list(self._breakers.values()))

    def __len__(self) -> int:
        return len(self._breakers)

    def __contains__(self, name: object) -> bool:
        return name in self._breakers

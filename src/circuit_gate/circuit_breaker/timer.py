"""Recovery timer that moves an open breaker to half-open."""

import asyncio
from collections.abc import Callable
from typing import Protocol


class TimerHandle(Protocol):
    """Cancellable handle returned by a scheduler."""

    def cancel(self) -> None:
        """Cancel the scheduled callback if it has not run yet."""


class Scheduler(Protocol):
    """Clock and delayed-callback facility used by the recovery timer."""

    def time(self) -> float:
        """Return the scheduler's monotonic clock in seconds."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` after ``delay`` seconds."""


class LoopScheduler:
    """Scheduler backed by the running asyncio event loop.

    The loop is resolved on each call so a breaker may be created before the
    loop that serves it. Arming a timer outside a running loop raises
    ``RuntimeError``.
    """

    @staticmethod
    def _loop() -> asyncio.AbstractEventLoop:
        try:
            return asyncio.get_running_loop()
        except RuntimeError as error:
            raise RuntimeError(
                "recovery timer requires a running event loop; "
                "pass scheduler= to schedule outside asyncio"
            ) from error

    def time(self) -> float:
        return self._loop().time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self._loop().call_later(delay, callback)


class RecoveryTimer:
    """Own at most one pending recovery callback."""

    def __init__(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler
        self._handle: TimerHandle | None = None
        self._due_at: float | None = None
        self._token = 0

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def remaining(self) -> float:
        """Return seconds until the pending callback fires, or ``0.0``."""
        if self._due_at is None:
            return 0.0
        return max(self._due_at - self._scheduler.time(), 0.0)

    def arm(self, delay: float, callback: Callable[[], None]) -> None:
        """Replace any pending callback with ``callback`` after ``delay``.

        The new callback is scheduled before the previous one is cancelled, so
        a scheduler error leaves the timer unchanged.
        """
        token = self._token + 1

        def _fire() -> None:
            if token != self._token:
                return
            self._handle = None
            self._due_at = None
            callback()

        due_at = self._scheduler.time() + delay
        handle = self._scheduler.call_later(delay, _fire)
        previous = self._handle
        self._token = token
        self._handle = handle
        self._due_at = due_at
        if previous is not None:
            previous.cancel()

    def cancel(self) -> None:
        """Cancel the pending callback, if any."""
        handle = self._handle
        self._handle = None
        self._due_at = None
        self._token += 1
        if handle is not None:
            handle.cancel()

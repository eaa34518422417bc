"""Core circuit breaker implementation."""

import functools
import threading
import types
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Generic, ParamSpec, TypeVar

from circuit_gate.circuit_breaker.admission import (
    RandomSource,
    allow,
    default_random_source,
)
from circuit_gate.circuit_breaker.exceptions import (
    BreakerRejectedError,
    CircuitHalfOpenError,
    CircuitOpenError,
)
from circuit_gate.circuit_breaker.metrics import BreakerListener
from circuit_gate.circuit_breaker.outcome import Failed, Ok, invoke
from circuit_gate.circuit_breaker.state import (
    BreakerCounters,
    BreakerSnapshot,
    CircuitState,
    StateChange,
)
from circuit_gate.circuit_breaker.timer import LoopScheduler, RecoveryTimer, Scheduler
from circuit_gate.logging import (
    StructuredLogger,
    get_logger,
    log_exception,
    log_info,
    log_warning,
)

T = TypeVar("T")
D = TypeVar("D")
P = ParamSpec("P")


@dataclass(frozen=True, slots=True)
class CircuitBreakerConfig:
    """Circuit breaker configuration values.

    Attributes:
        open_threshold: Consecutive failures while ``CLOSED`` before opening.
        close_threshold: Consecutive successes while ``HALF_OPEN`` before
            closing.
        half_open_reopen_threshold: Consecutive failures while ``HALF_OPEN``
            before opening again.
        half_open_timeout: Seconds spent ``OPEN`` before moving to
            ``HALF_OPEN``.
        half_open_call_rate: Percentage (0-100) of ``HALF_OPEN`` attempts
            admitted to the operation.
        initial_state: State applied at construction.
        random_source: Uniform integer draw over an inclusive range, used for
            half-open sampling.
    """

    open_threshold: int = 1
    close_threshold: int = 1
    half_open_reopen_threshold: int = 1
    half_open_timeout: float = 60.0
    half_open_call_rate: float = 50.0
    initial_state: CircuitState = CircuitState.CLOSED
    random_source: RandomSource = field(default=default_random_source, compare=False)

    def __post_init__(self) -> None:
        if self.open_threshold < 1:
            raise ValueError("open_threshold must be >= 1")
        if self.close_threshold < 1:
            raise ValueError("close_threshold must be >= 1")
        if self.half_open_reopen_threshold < 1:
            raise ValueError("half_open_reopen_threshold must be >= 1")
        if self.half_open_timeout < 0:
            raise ValueError("half_open_timeout must be >= 0")
        if not 0 <= self.half_open_call_rate <= 100:
            raise ValueError("half_open_call_rate must be between 0 and 100")
        object.__setattr__(self, "initial_state", CircuitState(self.initial_state))


class CircuitBreaker(Generic[T]):
    """Stateful proxy around a dangerous async operation.

    All reads and writes of state, counters and the recovery timer happen in
    short lock-guarded sections that never await. Each transition starts a new
    epoch; an attempt admitted in an earlier epoch does not touch counters when
    it completes.
    """

    def __init__(
        self,
        func: Callable[..., Awaitable[T]],
        *,
        name: str = "breaker",
        config: CircuitBreakerConfig | None = None,
        listeners: Iterable[BreakerListener] | None = None,
        scheduler: Scheduler | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        """Build a circuit breaker around ``func``.

        Args:
            func: Dangerous async callable to protect.
            name: Breaker name used in errors, logs and listener events.
            config: Breaker behavior configuration. Defaults to
                ``CircuitBreakerConfig()``.
            listeners: Optional listener hooks for breaker events.
            scheduler: Timer facility. Defaults to the running asyncio loop.
            logger: Structured logger. Defaults to the library logger.
        """
        self.name = name
        self.config = CircuitBreakerConfig() if config is None else config
        self._func = func
        self._listeners: list[BreakerListener] = list(listeners or ())
        self._logger = get_logger() if logger is None else logger
        self._timer = RecoveryTimer(LoopScheduler() if scheduler is None else scheduler)
        self._lock = threading.Lock()
        self._state = self.config.initial_state
        self._counters = BreakerCounters()
        self._epoch = 0
        self._shut_down = False
        with self._lock:
            self._enter(self.config.initial_state)

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state == CircuitState.OPEN

    @property
    def is_half_open(self) -> bool:
        return self._state == CircuitState.HALF_OPEN

    @property
    def is_closed(self) -> bool:
        return self._state == CircuitState.CLOSED

    @property
    def counters(self) -> BreakerCounters:
        return self._counters

    def snapshot(self) -> BreakerSnapshot:
        with self._lock:
            return BreakerSnapshot(
                name=self.name,
                state=self._state,
                counters=self._counters,
                timer_pending=self._timer.pending,
            )

    def subscribe(self, listener: BreakerListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _enter(self, new: CircuitState) -> StateChange | None:
        """Apply ``new`` as the current state. Caller must hold the lock.

        Counters are replaced and the epoch advances even when the state does
        not change, so forced re-entry discards in-flight outcomes. The timer
        is armed before anything is committed, so a scheduler error leaves the
        breaker untouched.
        """
        epoch = self._epoch + 1
        if new == CircuitState.OPEN:
            self._arm_timer(epoch)
        else:
            self._timer.cancel()
        old = self._state
        self._state = new
        self._counters = BreakerCounters()
        self._epoch = epoch
        if old == new:
            return None
        return StateChange(old, new)

    def _arm_timer(self, epoch: int) -> None:
        if self._shut_down:
            log_warning(
                self._logger,
                "circuit_timer_not_armed",
                breaker=self.name,
                reason="shutdown",
            )
            return
        self._timer.arm(
            self.config.half_open_timeout,
            functools.partial(self._on_recovery_timeout, epoch),
        )

    def _on_recovery_timeout(self, epoch: int) -> None:
        with self._lock:
            if self._state != CircuitState.OPEN or epoch != self._epoch:
                return
            change = self._enter(CircuitState.HALF_OPEN)
        self._publish(change)

    def _publish(self, change: StateChange | None) -> None:
        if change is None:
            return
        log_info(
            self._logger,
            "circuit_state_changed",
            breaker=self.name,
            old=str(change.old),
            new=str(change.new),
        )
        self._emit("on_state_change", change)

    def _emit(self, hook: str, *args: object) -> None:
        for listener in tuple(self._listeners):
            method = getattr(listener, hook, None)
            if method is None:
                continue
            try:
                method(self.name, *args)
            except Exception:
                log_exception(
                    self._logger,
                    "circuit_listener_failed",
                    breaker=self.name,
                    hook=hook,
                )

    def _record(self, outcome: Ok[T] | Failed, epoch: int) -> StateChange | None:
        """Apply one outcome to counters and evaluate transitions.

        Caller must hold the lock.
        """
        if epoch != self._epoch:
            return None

        state = self._state
        if isinstance(outcome, Ok):
            self._counters = self._counters.with_success()
            if (
                state == CircuitState.HALF_OPEN
                and self._counters.consecutive_successes
                >= self.config.close_threshold
            ):
                return self._enter(CircuitState.CLOSED)
            return None

        self._counters = self._counters.with_failure()
        failures = self._counters.consecutive_failures
        if state == CircuitState.CLOSED and failures >= self.config.open_threshold:
            return self._enter(CircuitState.OPEN)
        if (
            state == CircuitState.HALF_OPEN
            and failures >= self.config.half_open_reopen_threshold
        ):
            return self._enter(CircuitState.OPEN)
        return None

    async def _attempt(
        self, args: tuple[Any, ...], kwargs: dict[str, Any]
    ) -> tuple[Ok[T] | Failed, StateChange | None]:
        with self._lock:
            state = self._state
            admitted = allow(state, self.config)
            epoch = self._epoch
            retry_after = self._timer.remaining()
            if admitted and state == CircuitState.HALF_OPEN:
                self._counters = self._counters.with_half_open_attempt()

        if not admitted:
            self._emit("on_call_rejected", state)
            if state == CircuitState.OPEN:
                raise CircuitOpenError(self.name, retry_after=retry_after)
            raise CircuitHalfOpenError(self.name)

        outcome = await invoke(self._func, args, kwargs)

        with self._lock:
            change = self._record(outcome, epoch)
        self._publish(change)

        if isinstance(outcome, Ok):
            self._emit("on_call_succeeded", outcome.elapsed)
        else:
            self._emit("on_call_failed", outcome.error, outcome.elapsed)
        return outcome, change

    async def call(self, *args: Any, **kwargs: Any) -> T:
        """Invoke the protected operation under circuit breaker protection.

        Args:
            *args: Positional arguments forwarded to the operation.
            **kwargs: Keyword arguments forwarded to the operation.

        Returns:
            The operation's result when admitted and successful.

        Raises:
            CircuitOpenError: When the circuit is open, or when this call's
                failure opened it. In the latter case the operation's
                exception is chained as ``__cause__``.
            CircuitHalfOpenError: When the circuit is half-open and the call
                was not sampled in.
            Exception: The original exception raised by the operation, after
                counters and transitions are applied.
        """
        outcome, change = await self._attempt(args, kwargs)
        if isinstance(outcome, Ok):
            return outcome.value
        if change is not None and change.new == CircuitState.OPEN:
            raise CircuitOpenError(
                self.name, retry_after=self._timer.remaining()
            ) from outcome.error
        raise outcome.error

    async def call_or_default(
        self, *args: Any, fallback: D | None = None, **kwargs: Any
    ) -> T | D | None:
        """Like ``call`` but return ``fallback`` on rejection or failure.

        Counters and transitions are updated exactly as for ``call``. Every
        other keyword argument is passed to the operation.
        """
        try:
            outcome, _ = await self._attempt(args, kwargs)
        except BreakerRejectedError:
            return fallback
        if isinstance(outcome, Failed):
            return fallback
        return outcome.value

    def reset(self) -> None:
        """Force the breaker ``CLOSED``, clearing counters and the timer."""
        with self._lock:
            change = self._enter(CircuitState.CLOSED)
        self._publish(change)

    def trip(self) -> None:
        """Force the breaker ``OPEN``, clearing counters and re-arming the timer."""
        with self._lock:
            change = self._enter(CircuitState.OPEN)
        self._publish(change)

    def shutdown(self) -> None:
        """Cancel the pending recovery timer and stop arming new ones.

        The breaker remains callable. An ``OPEN`` breaker stays open until
        ``reset()`` is called.
        """
        with self._lock:
            self._shut_down = True
            self._timer.cancel()

    async def __aenter__(self) -> "CircuitBreaker[T]":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.shutdown()


class _ProtectedCallable(Generic[P, T]):
    """Async callable that routes every call through its breaker.

    Decorating a method binds it like a plain function. All instances share
    the one breaker.
    """

    def __init__(
        self, func: Callable[P, Awaitable[T]], breaker: CircuitBreaker[T]
    ) -> None:
        functools.update_wrapper(self, func)
        self.breaker = breaker

    async def __call__(self, *args: P.args, **kwargs: P.kwargs) -> T:
        return await self.breaker.call(*args, **kwargs)

    def __get__(self, instance: object, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return types.MethodType(self, instance)


def circuit_breaker(
    *,
    name: str | None = None,
    config: CircuitBreakerConfig | None = None,
    listeners: Iterable[BreakerListener] | None = None,
    scheduler: Scheduler | None = None,
    logger: StructuredLogger | None = None,
) -> Callable[[Callable[P, Awaitable[T]]], _ProtectedCallable[P, T]]:
    """Decorate an async function so every call goes through a breaker.

    The breaker is reachable as ``decorated.breaker``. Its name defaults to the
    function's qualified name.
    """

    def _decorate(func: Callable[P, Awaitable[T]]) -> _ProtectedCallable[P, T]:
        breaker_name = name
        if breaker_name is None:
            breaker_name = getattr(func, "__qualname__", None)
        if breaker_name is None:
            breaker_name = func.__class__.__qualname__
        breaker: CircuitBreaker[T] = CircuitBreaker(
            func,
            name=breaker_name,
            config=config,
            listeners=listeners,
            scheduler=scheduler,
            logger=logger,
        )
        return _ProtectedCallable(func, breaker)

    return _decorate

"""Single-attempt execution normalized into success or failure."""

import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful attempt carrying the operation result."""

    value: T
    elapsed: float = 0.0


@dataclass(frozen=True, slots=True)
class Failed:
    """Failed attempt carrying the exception raised by the operation."""

    error: Exception
    elapsed: float = 0.0


async def invoke(
    func: Callable[..., Awaitable[T]],
    args: Sequence[Any] = (),
    kwargs: Mapping[str, Any] | None = None,
) -> Ok[T] | Failed:
    """Invoke ``func`` exactly once and capture its outcome.

    Exceptions raised before the awaitable is produced (a plain function that
    raises, or a bad signature) are captured the same way as exceptions raised
    while awaiting it. Only ``Exception`` subclasses are captured; cancellation
    and interpreter exits propagate.
    """
    start = time.monotonic()
    try:
        value = await func(*args, **(kwargs or {}))
    except Exception as exc:
        return Failed(exc, max(time.monotonic() - start, 0.0))
    return Ok(value, max(time.monotonic() - start, 0.0))

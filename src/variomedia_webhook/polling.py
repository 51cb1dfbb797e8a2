"""Bounded polling with a tagged result."""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from variomedia_webhook.exceptions import SolverError

T = TypeVar("T")


@dataclass(frozen=True)
class Done(Generic[T]):
    """The observed value reached a terminal state."""

    value: T
    attempts: int


@dataclass(frozen=True)
class TimedOut(Generic[T]):
    """The attempt budget ran out before a terminal state was observed."""

    last: T
    attempts: int


@dataclass(frozen=True)
class Cancelled(Generic[T]):
    """The cancellation signal was set while waiting between attempts."""

    last: T
    attempts: int


@dataclass(frozen=True)
class Failed:
    """Fetching a fresh value raised."""

    error: SolverError
    attempts: int


PollResult = Done[T] | TimedOut[T] | Cancelled[T] | Failed


def poll_until(
    initial: T,
    fetch: Callable[[T], T],
    is_terminal: Callable[[T], bool],
    max_attempts: int,
    delay: float,
    cancel: threading.Event | None = None,
) -> PollResult[T]:
    """Re-fetch a value until it is terminal or the budget is exhausted.

    ``initial`` is checked first, so an already terminal value costs no
    fetch. Each fetch is preceded by ``delay`` seconds of waiting; when
    ``cancel`` is given the wait ends early once it is set.

    Args:
        initial: First observed value.
        fetch: Produces the next value from the last one.
        is_terminal: True when polling should stop.
        max_attempts: Maximum number of fetches.
        delay: Seconds to wait before each fetch.
        cancel: Optional cancellation signal.

    Returns:
        Done, TimedOut, Cancelled or Failed.
    """
    value = initial
    if is_terminal(value):
        return Done(value, attempts=0)

    for attempt in range(1, max_attempts + 1):
        if cancel is not None:
            if cancel.wait(delay):
                return Cancelled(value, attempts=attempt - 1)
        else:
            time.sleep(delay)

        try:
            value = fetch(value)
        except SolverError as e:
            return Failed(e, attempts=attempt)

        if is_terminal(value):
            return Done(value, attempts=attempt)

    return TimedOut(value, attempts=max_attempts)

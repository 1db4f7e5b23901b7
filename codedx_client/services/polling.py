"""
Waiting for a server-side job to finish.

The engine only orchestrates: it calls a status fetcher, stops on an error or a ready
status, and otherwise asks a PollingStrategy how long to wait (or whether to give up).
Strategies are plain decision objects; logging is layered on with LoggingStrategy.
"""
import time
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Callable, Optional, Protocol, Union

from codedx_client.core.logging import SafeLogger, get_safe_logger
from codedx_client.schemas.job import JobStatus
from codedx_client.services.result import ApiResult

logger = get_safe_logger(__name__)


class PollingStrategy(Protocol):
    """
    Decides how long to wait before re-checking the state of a poll.

    `next_wait` returns the wait duration, or None to end the poll right away with the
    latest state. `iteration_number` starts at 1 and goes up by one per status check.
    """

    def next_wait(self, iteration_number: int, state: Any) -> Optional[timedelta]:
        ...


StrategyFn = Callable[[int, Any], Optional[timedelta]]
StrategyLike = Union[PollingStrategy, StrategyFn]


class _CallableStrategy:
    def __init__(self, fn: StrategyFn):
        self._fn = fn

    def next_wait(self, iteration_number: int, state: Any) -> Optional[timedelta]:
        return self._fn(iteration_number, state)


def as_strategy(strategy: StrategyLike) -> PollingStrategy:
    """Accept either a strategy object or a bare `(iteration, state) -> wait` function."""
    if hasattr(strategy, "next_wait"):
        return strategy
    if callable(strategy):
        return _CallableStrategy(strategy)
    raise TypeError(f"Not a polling strategy: {strategy!r}")


class FixedWait:
    """Always waits the same interval; never gives up."""

    def __init__(self, interval: timedelta):
        if interval < timedelta(0):
            raise ValueError("interval must not be negative")
        self.interval = interval

    @classmethod
    def from_ms(cls, interval_ms: int) -> "FixedWait":
        return cls(timedelta(milliseconds=interval_ms))

    def next_wait(self, iteration_number: int, state: Any) -> Optional[timedelta]:
        return self.interval


class MaxIterations:
    """Gives up once `limit` status checks have been made."""

    def __init__(self, inner: StrategyLike, limit: int):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.inner = as_strategy(inner)
        self.limit = limit

    def next_wait(self, iteration_number: int, state: Any) -> Optional[timedelta]:
        if iteration_number >= self.limit:
            return None
        return self.inner.next_wait(iteration_number, state)


class ExponentialBackoff:
    """initial, initial * factor, initial * factor^2, ... capped at max_interval."""

    def __init__(
        self,
        initial: timedelta,
        factor: float = 2.0,
        max_interval: Optional[timedelta] = None,
    ):
        if factor < 1.0:
            raise ValueError("factor must be >= 1.0")
        self.initial = initial
        self.factor = factor
        self.max_interval = max_interval

    def next_wait(self, iteration_number: int, state: Any) -> Optional[timedelta]:
        # Cap the exponent; past this the max_interval has long taken over anyway
        exponent = min(iteration_number - 1, 20)
        wait = self.initial * (self.factor ** exponent)
        if self.max_interval is not None and wait > self.max_interval:
            return self.max_interval
        return wait


class Deadline:
    """
    Gives up once `timeout` has elapsed since the strategy was created.

    Waits from the inner strategy are shortened so the last check lands on the deadline.
    """

    def __init__(
        self,
        inner: StrategyLike,
        timeout: timedelta,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.inner = as_strategy(inner)
        self.timeout = timeout
        self._clock = clock
        self._started = clock()

    def next_wait(self, iteration_number: int, state: Any) -> Optional[timedelta]:
        remaining = self.timeout - timedelta(seconds=self._clock() - self._started)
        if remaining <= timedelta(0):
            return None
        wait = self.inner.next_wait(iteration_number, state)
        if wait is None:
            return None
        return min(wait, remaining)


class LoggingStrategy:
    """Logs every decision of the wrapped strategy; the decision itself is untouched."""

    def __init__(self, inner: StrategyLike, log: Optional[SafeLogger] = None):
        self.inner = as_strategy(inner)
        self._log = log or logger

    def next_wait(self, iteration_number: int, state: Any) -> Optional[timedelta]:
        wait = self.inner.next_wait(iteration_number, state)
        status = state.value if isinstance(state, Enum) else state
        if wait is None:
            self._log.info(
                "Polling job completion: giving up",
                iteration=iteration_number,
                status=status,
            )
        else:
            self._log.info(
                "Polling job completion",
                iteration=iteration_number,
                status=status,
                wait_ms=int(wait.total_seconds() * 1000),
            )
        return wait


class PollOutcome(str, Enum):
    READY = "ready"
    ABORTED = "aborted"
    FAILED = "failed"


@dataclass(frozen=True)
class PollReport:
    outcome: PollOutcome
    result: ApiResult[JobStatus]
    iterations: int


def poll_with_outcome(
    fetch_status: Callable[[], ApiResult[JobStatus]],
    strategy: StrategyLike,
    sleep: Callable[[float], None] = time.sleep,
) -> PollReport:
    """
    Fetch the status until it is ready, the strategy gives up, or a fetch fails.

    - a failed fetch ends the poll with that error; the strategy is not consulted
    - a ready status (completed/failed) ends the poll with that status
    - otherwise the strategy's wait is slept off, or None ends the poll with the
      latest non-ready status (giving up is not an error)
    """
    strategy = as_strategy(strategy)
    iteration_number = 0

    while True:
        iteration_number += 1
        result = fetch_status()

        if result.is_err:
            return PollReport(PollOutcome.FAILED, result, iteration_number)

        status = result.value
        if status.is_ready():
            return PollReport(PollOutcome.READY, result, iteration_number)

        wait = strategy.next_wait(iteration_number, status)
        if wait is None:
            return PollReport(PollOutcome.ABORTED, result, iteration_number)

        sleep(max(wait.total_seconds(), 0.0))


def poll_until_ready(
    fetch_status: Callable[[], ApiResult[JobStatus]],
    strategy: StrategyLike,
    sleep: Callable[[float], None] = time.sleep,
) -> ApiResult[JobStatus]:
    """Like poll_with_outcome, returning only the final result."""
    return poll_with_outcome(fetch_status, strategy, sleep).result

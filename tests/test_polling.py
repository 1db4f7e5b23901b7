"""
Tests for the polling engine and the built-in strategies.
"""
from datetime import timedelta
from unittest.mock import MagicMock

import httpx
import pytest

from codedx_client.schemas.job import JobStatus
from codedx_client.services.exceptions import ProtocolError
from codedx_client.services.polling import (
    Deadline,
    ExponentialBackoff,
    FixedWait,
    LoggingStrategy,
    MaxIterations,
    PollOutcome,
    as_strategy,
    poll_until_ready,
    poll_with_outcome,
)
from codedx_client.services.result import ApiResult


class ScriptedFetch:
    """Status fetcher that returns the given results in order."""

    def __init__(self, *results: ApiResult):
        self._results = list(results)
        self.calls = 0

    def __call__(self) -> ApiResult:
        self.calls += 1
        return self._results.pop(0)


class SpyStrategy:
    def __init__(self, wait=timedelta(0)):
        self.wait = wait
        self.seen: list[tuple[int, JobStatus]] = []

    def next_wait(self, iteration_number, state):
        self.seen.append((iteration_number, state))
        return self.wait


def ok(status: JobStatus) -> ApiResult:
    return ApiResult.ok(status)


class TestPollEngine:
    """Tests for poll_with_outcome / poll_until_ready."""

    def test_runs_until_ready(self):
        fetch = ScriptedFetch(ok(JobStatus.QUEUED), ok(JobStatus.RUNNING), ok(JobStatus.COMPLETED))
        strategy = SpyStrategy()
        sleeps = []

        report = poll_with_outcome(fetch, strategy, sleeps.append)

        assert report.outcome is PollOutcome.READY
        assert report.result.value is JobStatus.COMPLETED
        assert report.iterations == 3
        assert fetch.calls == 3
        assert strategy.seen == [(1, JobStatus.QUEUED), (2, JobStatus.RUNNING)]
        assert sleeps == [0.0, 0.0]

    def test_failed_job_is_ready_not_error(self):
        fetch = ScriptedFetch(ok(JobStatus.FAILED))

        result = poll_until_ready(fetch, SpyStrategy(), lambda s: None)

        assert result.value is JobStatus.FAILED

    def test_giving_up_returns_latest_status(self):
        fetch = ScriptedFetch(ok(JobStatus.QUEUED), ok(JobStatus.RUNNING), ok(JobStatus.COMPLETED))

        def give_up_at_two(iteration_number, state):
            return None if iteration_number == 2 else timedelta(0)

        report = poll_with_outcome(fetch, give_up_at_two, lambda s: None)

        assert report.outcome is PollOutcome.ABORTED
        assert report.result.value is JobStatus.RUNNING
        assert fetch.calls == 2

    def test_fetch_error_stops_without_consulting_strategy(self):
        error = ProtocolError(httpx.ConnectError("refused"))
        fetch = ScriptedFetch(ApiResult.err(error))
        strategy = SpyStrategy()
        sleep = MagicMock()

        report = poll_with_outcome(fetch, strategy, sleep)

        assert report.outcome is PollOutcome.FAILED
        assert report.result.error is error
        assert fetch.calls == 1
        assert strategy.seen == []
        sleep.assert_not_called()

    def test_cancelled_keeps_polling(self):
        fetch = ScriptedFetch(ok(JobStatus.CANCELLED), ok(JobStatus.CANCELLED))

        report = poll_with_outcome(fetch, MaxIterations(FixedWait(timedelta(0)), 2), lambda s: None)

        assert report.outcome is PollOutcome.ABORTED
        assert report.result.value is JobStatus.CANCELLED
        assert fetch.calls == 2

    def test_sleeps_strategy_wait(self):
        fetch = ScriptedFetch(ok(JobStatus.RUNNING), ok(JobStatus.COMPLETED))
        sleeps = []

        poll_until_ready(fetch, FixedWait(timedelta(milliseconds=1500)), sleeps.append)

        assert sleeps == [1.5]


class TestStrategies:
    """Tests for the built-in strategies."""

    def test_fixed_wait_never_gives_up(self):
        strategy = FixedWait.from_ms(200)
        for iteration in (1, 10, 10_000):
            assert strategy.next_wait(iteration, JobStatus.RUNNING) == timedelta(milliseconds=200)

    def test_fixed_wait_rejects_negative(self):
        with pytest.raises(ValueError):
            FixedWait(timedelta(seconds=-1))

    def test_max_iterations(self):
        strategy = MaxIterations(FixedWait(timedelta(seconds=1)), 3)
        assert strategy.next_wait(1, JobStatus.RUNNING) == timedelta(seconds=1)
        assert strategy.next_wait(2, JobStatus.RUNNING) == timedelta(seconds=1)
        assert strategy.next_wait(3, JobStatus.RUNNING) is None

    def test_max_iterations_requires_positive_limit(self):
        with pytest.raises(ValueError):
            MaxIterations(FixedWait(timedelta(0)), 0)

    def test_exponential_backoff(self):
        strategy = ExponentialBackoff(
            timedelta(milliseconds=100),
            factor=2.0,
            max_interval=timedelta(seconds=1),
        )
        waits = [strategy.next_wait(i, JobStatus.RUNNING) for i in range(1, 6)]
        assert waits == [
            timedelta(milliseconds=100),
            timedelta(milliseconds=200),
            timedelta(milliseconds=400),
            timedelta(milliseconds=800),
            timedelta(seconds=1),
        ]
        assert strategy.next_wait(10_000, JobStatus.RUNNING) == timedelta(seconds=1)

    def test_exponential_backoff_rejects_shrinking_factor(self):
        with pytest.raises(ValueError):
            ExponentialBackoff(timedelta(seconds=1), factor=0.5)

    def test_deadline_caps_and_expires(self):
        ticks = iter([0.0, 1.0, 9.5, 10.0])
        strategy = Deadline(FixedWait(timedelta(seconds=2)), timedelta(seconds=10), clock=lambda: next(ticks))

        assert strategy.next_wait(1, JobStatus.RUNNING) == timedelta(seconds=2)
        assert strategy.next_wait(2, JobStatus.RUNNING) == timedelta(seconds=0.5)
        assert strategy.next_wait(3, JobStatus.RUNNING) is None

    def test_deadline_respects_inner_give_up(self):
        strategy = Deadline(lambda i, state: None, timedelta(hours=1), clock=lambda: 0.0)
        assert strategy.next_wait(1, JobStatus.RUNNING) is None

    def test_bare_function_is_adapted(self):
        strategy = as_strategy(lambda i, state: timedelta(seconds=i))
        assert strategy.next_wait(3, JobStatus.QUEUED) == timedelta(seconds=3)

    def test_strategy_object_passes_through(self):
        fixed = FixedWait(timedelta(0))
        assert as_strategy(fixed) is fixed

    def test_non_callable_rejected(self):
        with pytest.raises(TypeError):
            as_strategy(42)


class TestLoggingStrategy:
    """Tests for the logging decorator."""

    def test_logs_wait_and_keeps_decision(self):
        log = MagicMock()
        strategy = LoggingStrategy(FixedWait(timedelta(milliseconds=750)), log=log)

        wait = strategy.next_wait(4, JobStatus.RUNNING)

        assert wait == timedelta(milliseconds=750)
        log.info.assert_called_once_with(
            "Polling job completion",
            iteration=4,
            status="running",
            wait_ms=750,
        )

    def test_logs_giving_up(self):
        log = MagicMock()
        strategy = LoggingStrategy(MaxIterations(FixedWait(timedelta(0)), 1), log=log)

        assert strategy.next_wait(1, JobStatus.QUEUED) is None
        log.info.assert_called_once_with(
            "Polling job completion: giving up",
            iteration=1,
            status="queued",
        )

"""Tests for connect_with_retry and RetryPolicy."""

import logging

import pytest

from vote_worker.exceptions import ConnectError
from vote_worker.retry import (
    ConnectionState,
    ConnectionTracker,
    RetryPolicy,
    connect_with_retry,
)


class TestConnectWithRetry:
    """Tests for the connect-until-success loop."""

    def test_first_attempt_succeeds_without_sleeping(self, sleeps, retry_policy):
        tracker = ConnectionTracker('redis')

        result = connect_with_retry(lambda: "conn", tracker, retry_policy, "Waiting...")

        assert result == "conn"
        assert sleeps == []
        assert tracker.state == ConnectionState.CONNECTED
        assert tracker.attempts == 1

    def test_retries_at_fixed_delay_until_success(self, sleeps, retry_policy, flaky_factory):
        tracker = ConnectionTracker('postgres')
        factory = flaky_factory([OSError("refused")] * 3, "conn")

        result = connect_with_retry(factory, tracker, retry_policy, "Waiting for database...")

        assert result == "conn"
        assert sleeps == [1.0, 1.0, 1.0]
        assert tracker.attempts == 4
        assert tracker.state == ConnectionState.CONNECTED
        assert tracker.last_error is None

    def test_logs_wait_notice_on_every_failure(self, caplog, retry_policy, flaky_factory):
        factory = flaky_factory([OSError("refused")] * 2, "conn")

        with caplog.at_level(logging.WARNING, logger="vote_worker.retry"):
            connect_with_retry(factory, ConnectionTracker('redis'), retry_policy, "Waiting for Redis...")

        waits = [r for r in caplog.records if "Waiting for Redis..." in r.getMessage()]
        assert len(waits) == 2

    def test_bounded_policy_gives_up(self, sleeps, flaky_factory):
        policy = RetryPolicy(delay=0.5, max_attempts=3, sleep=sleeps.append)
        tracker = ConnectionTracker('redis')
        factory = flaky_factory([OSError("refused")] * 10, "conn")

        with pytest.raises(ConnectError, match="3 attempts"):
            connect_with_retry(factory, tracker, policy, "Waiting...")

        assert tracker.state == ConnectionState.FAILED
        assert tracker.attempts == 3
        assert sleeps == [0.5, 0.5]
        assert isinstance(tracker.last_error, OSError)

    def test_should_stop_abandons_waiting(self, flaky_factory):
        stop = {"requested": False}
        slept = []

        def sleep(delay):
            slept.append(delay)
            stop["requested"] = True

        policy = RetryPolicy(delay=1.0, sleep=sleep, should_stop=lambda: stop["requested"])
        tracker = ConnectionTracker('postgres')
        factory = flaky_factory([OSError("refused")] * 10, "conn")

        with pytest.raises(ConnectError, match="Stopped waiting"):
            connect_with_retry(factory, tracker, policy, "Waiting...")

        assert slept == [1.0]
        assert tracker.state == ConnectionState.FAILED

    def test_unlisted_errors_propagate_immediately(self, sleeps, retry_policy):
        def factory():
            raise ValueError("bad dsn")

        with pytest.raises(ValueError):
            connect_with_retry(factory, ConnectionTracker('postgres'), retry_policy,
                               "Waiting...", retry_on=(OSError,))

        assert sleeps == []

    def test_default_policy_is_unbounded_one_second(self):
        policy = RetryPolicy()

        assert policy.delay == 1.0
        assert policy.max_attempts is None
        assert policy.should_stop() is False

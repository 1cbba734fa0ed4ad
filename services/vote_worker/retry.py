"""
Connect-until-success retry for the worker's external dependencies.

Neither Redis nor PostgreSQL is guaranteed to be up when the worker starts,
so both clients block here until their dependency answers. The wait between
attempts goes through RetryPolicy.sleep, which tests replace to simulate an
unavailable dependency without real delays.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple, Type, TypeVar

from prometheus_client import Counter

from .exceptions import ConnectError

logger = logging.getLogger(__name__)

T = TypeVar('T')

connect_attempts = Counter(
    'vote_worker_connect_attempts_total',
    'Total connection attempts to worker dependencies',
    ['dependency', 'status']
)


class ConnectionState(str, Enum):
    """Connection lifecycle of a single dependency."""
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


def _never_stop() -> bool:
    return False


@dataclass
class RetryPolicy:
    """
    Fixed-delay retry policy.

    Attributes:
        delay: Seconds to wait between attempts
        max_attempts: Give up after this many attempts (None retries forever)
        sleep: Function used to wait between attempts
        should_stop: Checked before every wait; True abandons the retry loop
    """
    delay: float = 1.0
    max_attempts: Optional[int] = None
    sleep: Callable[[float], None] = time.sleep
    should_stop: Callable[[], bool] = _never_stop


class ConnectionTracker:
    """Observable connection state for one dependency."""

    def __init__(self, name: str):
        self.name = name
        self.state = ConnectionState.CONNECTING
        self.attempts = 0
        self.last_error: Optional[BaseException] = None

    def __repr__(self):
        return f"ConnectionTracker({self.name!r}, state={self.state.value}, attempts={self.attempts})"


def connect_with_retry(
    factory: Callable[[], T],
    tracker: ConnectionTracker,
    policy: RetryPolicy,
    wait_message: str,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
) -> T:
    """
    Call factory until it returns a connection.

    Args:
        factory: Opens and verifies the connection
        tracker: Receives state, attempt count and last error
        policy: Delay, attempt bound and sleep function
        wait_message: Logged after every failed attempt
        retry_on: Exception types that count as "not reachable yet"

    Returns:
        Whatever factory returned on the first successful attempt

    Raises:
        ConnectError: If policy.max_attempts is exhausted or policy.should_stop()
            becomes true while waiting
    """
    tracker.state = ConnectionState.CONNECTING
    tracker.attempts = 0

    while True:
        tracker.attempts += 1
        try:
            connection = factory()
        except retry_on as e:
            tracker.last_error = e
            connect_attempts.labels(dependency=tracker.name, status='failure').inc()

            if policy.max_attempts is not None and tracker.attempts >= policy.max_attempts:
                tracker.state = ConnectionState.FAILED
                logger.error(f"Failed to connect to {tracker.name} after {tracker.attempts} attempts: {e}")
                raise ConnectError(
                    f"{tracker.name} unreachable after {tracker.attempts} attempts: {e}"
                ) from e

            if policy.should_stop():
                tracker.state = ConnectionState.FAILED
                raise ConnectError(f"Stopped waiting for {tracker.name}") from e

            logger.warning(f"{wait_message} (attempt {tracker.attempts}: {e})")
            policy.sleep(policy.delay)
            continue

        tracker.state = ConnectionState.CONNECTED
        tracker.last_error = None
        connect_attempts.labels(dependency=tracker.name, status='success').inc()
        logger.debug(f"Connected to {tracker.name} after {tracker.attempts} attempt(s)")
        return connection

"""
Main vote worker service.

Project: Distributed Voting System

Polls the Redis vote queue and keeps one row per voter in PostgreSQL:

    CONNECTING ──> POLLING ──> STOPPED (shutdown signal only)

Each polling iteration sleeps POLL_INTERVAL, pops one payload, parses it and
upserts it. Failures are isolated to the payload that caused them:

1. EMPTY QUEUE     - nothing to do, next iteration
2. MALFORMED       - logged and dropped, never retried
3. STORE FAILURE   - logged and dropped, the loop keeps polling
4. QUEUE FAILURE   - logged, retried on the next iteration

Dropped payloads are counted in vote_worker_votes_processed_total so the
loss is visible in monitoring.
"""

import signal
import sys
import logging
import time
from enum import Enum
from typing import Callable, Optional, Union
from prometheus_client import Counter, Histogram, Gauge, start_http_server

from .config import Config
from .database import VoteStore
from .exceptions import ConnectError, DatabaseError, ParseError, QueueError
from .models import QueueEmpty, parse_vote
from .redis_client import VoteQueue
from .retry import RetryPolicy

# Configure logging
logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Prometheus metrics
votes_processed = Counter(
    'vote_worker_votes_processed_total',
    'Total number of queue payloads handled',
    ['status']
)

processing_latency = Histogram(
    'vote_worker_processing_latency_seconds',
    'Time spent parsing and storing a vote',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

queue_size = Gauge(
    'vote_worker_queue_size',
    'Current number of payloads waiting in the vote queue'
)

# Refresh the queue size gauge every N iterations
QUEUE_METRICS_EVERY = 50

# Longest payload excerpt written to the log for a dropped message
LOG_PAYLOAD_LIMIT = 200


class WorkerState(str, Enum):
    """Lifecycle of the worker."""
    CONNECTING = "connecting"
    POLLING = "polling"
    STOPPED = "stopped"


class Outcome(str, Enum):
    """Result of one polling iteration."""
    EMPTY = "empty"
    PROCESSED = "processed"
    INVALID = "invalid"
    STORE_ERROR = "store_error"
    QUEUE_ERROR = "queue_error"


def _preview(payload: Union[str, bytes]) -> str:
    text = repr(payload)
    if len(text) > LOG_PAYLOAD_LIMIT:
        return text[:LOG_PAYLOAD_LIMIT] + '...'
    return text


class VoteWorker:
    """Main vote worker class."""

    def __init__(
        self,
        queue: Optional[VoteQueue] = None,
        store: Optional[VoteStore] = None,
        poll_interval: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        metrics_port: Optional[int] = None,
        install_signal_handlers: bool = True
    ):
        """
        Initialize the vote worker.

        Args:
            queue: Vote queue client (defaults to a VoteQueue from Config)
            store: Vote store client (defaults to a VoteStore from Config)
            poll_interval: Seconds to sleep before every pop
            sleep: Sleep function used for polling and connect retries
            metrics_port: Prometheus port; 0 disables the metrics server
            install_signal_handlers: Register SIGTERM/SIGINT handlers
        """
        self.shutdown_requested = False
        self.state = WorkerState.CONNECTING
        self.iterations = 0
        self.sleep = sleep
        self.poll_interval = Config.POLL_INTERVAL if poll_interval is None else poll_interval
        self.metrics_port = Config.METRICS_PORT if metrics_port is None else metrics_port

        retry_policy = RetryPolicy(
            delay=Config.CONNECT_RETRY_DELAY,
            sleep=sleep,
            should_stop=self._should_stop
        )
        self.queue = queue if queue is not None else VoteQueue(retry_policy=retry_policy)
        self.store = store if store is not None else VoteStore(retry_policy=retry_policy)

        if install_signal_handlers:
            signal.signal(signal.SIGTERM, self._handle_shutdown)
            signal.signal(signal.SIGINT, self._handle_shutdown)

        logger.info(f"Initializing vote worker: {Config.WORKER_ID}")

    def _handle_shutdown(self, signum, frame):
        """Handle graceful shutdown on SIGTERM/SIGINT."""
        logger.info(f"Shutdown signal received: {signum}")
        self.request_shutdown()

    def _should_stop(self) -> bool:
        return self.shutdown_requested

    def request_shutdown(self):
        """Ask the loop to stop after the current iteration."""
        self.shutdown_requested = True

    def initialize_clients(self):
        """Connect to PostgreSQL and Redis, blocking until both answer."""
        self.state = WorkerState.CONNECTING

        logger.info("Connecting to PostgreSQL...")
        self.store.connect()

        logger.info("Connecting to Redis...")
        self.queue.connect()

        logger.info("All clients initialized successfully")

    def process_payload(self, payload: Union[str, bytes]) -> Outcome:
        """
        Parse one payload and apply it to the store.

        Args:
            payload: Raw queue payload

        Returns:
            PROCESSED, INVALID or STORE_ERROR
        """
        start_time = time.time()

        try:
            event = parse_vote(payload)
        except ParseError as e:
            logger.error(f"Dropping malformed vote payload {_preview(payload)}: {e}")
            votes_processed.labels(status=Outcome.INVALID.value).inc()
            return Outcome.INVALID

        logger.info(f"Processing vote: {event.choice} by {event.voter_id}")

        try:
            self.store.upsert_vote(event.voter_id, event.choice)
        except DatabaseError as e:
            logger.error(f"Vote by {event.voter_id} not stored: {e}")
            votes_processed.labels(status=Outcome.STORE_ERROR.value).inc()
            return Outcome.STORE_ERROR

        votes_processed.labels(status=Outcome.PROCESSED.value).inc()
        processing_latency.observe(time.time() - start_time)
        return Outcome.PROCESSED

    def poll_once(self) -> Outcome:
        """
        Run one polling iteration: sleep, pop, and process what was popped.

        Returns:
            What happened in this iteration
        """
        self.sleep(self.poll_interval)

        try:
            result = self.queue.pop_next()
        except QueueError as e:
            logger.error(f"Could not read from vote queue: {e}")
            votes_processed.labels(status=Outcome.QUEUE_ERROR.value).inc()
            return Outcome.QUEUE_ERROR

        if isinstance(result, QueueEmpty):
            return Outcome.EMPTY

        return self.process_payload(result.payload)

    def update_queue_metrics(self):
        """Update queue size metrics."""
        try:
            queue_size.set(self.queue.length())
        except QueueError as e:
            logger.error(f"Error updating queue metrics: {e}")

    def run_loop(self, max_iterations: Optional[int] = None):
        """
        Poll until shutdown is requested.

        Args:
            max_iterations: Stop after this many iterations (None polls forever)
        """
        self.state = WorkerState.POLLING
        logger.info(f"Polling queue '{self.queue.queue_name}' every {self.poll_interval}s")

        while not self.shutdown_requested:
            if max_iterations is not None and self.iterations >= max_iterations:
                break

            self.poll_once()
            self.iterations += 1

            if self.iterations % QUEUE_METRICS_EVERY == 0:
                self.update_queue_metrics()

        self.state = WorkerState.STOPPED
        logger.info(f"Polling stopped after {self.iterations} iterations")

    def run(self, max_iterations: Optional[int] = None):
        """Run the vote worker."""
        try:
            self.initialize_clients()

            if self.metrics_port:
                logger.info(f"Starting Prometheus metrics server on port {self.metrics_port}")
                start_http_server(self.metrics_port)

            self.run_loop(max_iterations)

        except ConnectError as e:
            if self.shutdown_requested:
                logger.info(f"Shutdown requested while connecting: {e}")
            else:
                logger.error(f"Worker could not connect: {e}")
                sys.exit(1)
        except KeyboardInterrupt:
            logger.info("Worker interrupted by user")
        except Exception as e:
            logger.error(f"Worker error: {e}", exc_info=True)
            sys.exit(1)
        finally:
            self.state = WorkerState.STOPPED
            self.cleanup()

    def cleanup(self):
        """Cleanup resources on shutdown."""
        logger.info("Cleaning up resources...")
        self.queue.close()
        self.store.close()
        logger.info("Cleanup complete. Worker shutting down.")


def main():
    """Main entry point."""
    logger.info("=" * 60)
    logger.info("Starting Vote Worker Service")
    logger.info(f"Worker ID: {Config.WORKER_ID}")
    logger.info(f"Redis: {Config.REDIS_HOST}:{Config.REDIS_PORT} (queue '{Config.VOTES_QUEUE}')")
    logger.info(f"PostgreSQL: {Config.POSTGRES_HOST}:{Config.POSTGRES_PORT}/{Config.POSTGRES_DB}")
    logger.info(f"Poll interval: {Config.POLL_INTERVAL}s")
    logger.info("=" * 60)

    worker = VoteWorker()
    worker.run()


if __name__ == '__main__':
    main()

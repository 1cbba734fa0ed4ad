"""Redis list client used as the vote queue."""

import redis
import logging
from typing import Callable, Optional

from .config import Config
from .exceptions import QueueError
from .models import EMPTY, PopResult, QueueMessage
from .retry import ConnectionTracker, RetryPolicy, connect_with_retry

logger = logging.getLogger(__name__)


class VoteQueue:
    """FIFO vote queue backed by a Redis list (RPUSH in, LPOP out)."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        db: Optional[int] = None,
        password: Optional[str] = None,
        queue_name: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None,
        client_factory: Optional[Callable[[], redis.Redis]] = None
    ):
        """
        Configure the queue client. Nothing is opened until connect().

        Args:
            host: Redis host (defaults to Config.REDIS_HOST)
            port: Redis port (defaults to Config.REDIS_PORT)
            db: Redis database number (defaults to Config.REDIS_DB)
            password: Redis password (defaults to Config.REDIS_PASSWORD)
            queue_name: List key holding the votes (defaults to Config.VOTES_QUEUE)
            retry_policy: Connect retry policy (defaults to a fixed
                Config.CONNECT_RETRY_DELAY wait, retried forever)
            client_factory: Builds and pings a client; replaces the default
                redis.Redis construction
        """
        self.host = host or Config.REDIS_HOST
        self.port = Config.REDIS_PORT if port is None else port
        self.db = Config.REDIS_DB if db is None else db
        self.password = Config.REDIS_PASSWORD if password is None else password
        self.queue_name = queue_name or Config.VOTES_QUEUE
        self.retry_policy = retry_policy or RetryPolicy(delay=Config.CONNECT_RETRY_DELAY)
        self.tracker = ConnectionTracker('redis')
        self.client: Optional[redis.Redis] = None
        self._client_factory = client_factory or self._create_client

    def _create_client(self) -> redis.Redis:
        """Build a client and ping it so an unreachable server fails here."""
        client = redis.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30
        )
        try:
            client.ping()
        except redis.RedisError:
            client.close()
            raise
        return client

    def connect(self) -> redis.Redis:
        """
        Connect to Redis, waiting for as long as the retry policy allows.

        Returns:
            The connected Redis client
        """
        self.client = connect_with_retry(
            self._client_factory,
            self.tracker,
            self.retry_policy,
            "Waiting for Redis...",
            retry_on=(redis.RedisError,)
        )
        logger.info(f"Redis connection established: {self.host}:{self.port}/{self.db}")
        return self.client

    def _require_client(self) -> redis.Redis:
        if self.client is None:
            raise QueueError("Redis client is not connected")
        return self.client

    def pop_next(self) -> PopResult:
        """
        Pop the oldest payload without blocking.

        The payload is returned as the raw bytes Redis holds; parse_vote
        decodes it.

        Returns:
            QueueMessage with the payload, or EMPTY if the list is empty

        Raises:
            QueueError: If Redis fails
        """
        client = self._require_client()
        try:
            payload = client.lpop(self.queue_name)
        except redis.RedisError as e:
            logger.error(f"Redis error popping from {self.queue_name}: {e}")
            raise QueueError(f"Failed to pop from {self.queue_name}: {e}") from e

        if payload is None:
            return EMPTY
        return QueueMessage(payload=payload)

    def push(self, payload: str) -> int:
        """
        Append a payload to the tail of the queue.

        Args:
            payload: Serialized vote

        Returns:
            The queue length after the push
        """
        client = self._require_client()
        try:
            length = client.rpush(self.queue_name, payload)
            logger.debug(f"Pushed payload to {self.queue_name} (length {length})")
            return length
        except redis.RedisError as e:
            logger.error(f"Redis error pushing to {self.queue_name}: {e}")
            raise QueueError(f"Failed to push to {self.queue_name}: {e}") from e

    def length(self) -> int:
        """
        Get the number of payloads waiting in the queue.

        Returns:
            Current list length
        """
        client = self._require_client()
        try:
            return int(client.llen(self.queue_name))
        except redis.RedisError as e:
            logger.error(f"Redis error getting length of {self.queue_name}: {e}")
            raise QueueError(f"Failed to read length of {self.queue_name}: {e}") from e

    def close(self):
        """Close the Redis connection."""
        if self.client is None:
            return
        try:
            self.client.close()
            logger.info("Redis connection closed")
        except redis.RedisError as e:
            logger.error(f"Error closing Redis connection: {e}")
        finally:
            self.client = None

"""Pytest fixtures for integration tests.

Fixtures connect to real Redis and PostgreSQL servers and skip the test
when either is not reachable.
"""

import os
from typing import Generator

import psycopg2
import pytest
import redis
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT

from vote_worker.database import VoteStore
from vote_worker.redis_client import VoteQueue
from vote_worker.retry import RetryPolicy

TEST_QUEUE = "votes.integration"


def _postgres_dsn() -> str:
    return (
        f"host={os.getenv('POSTGRES_HOST', 'localhost')} "
        f"port={os.getenv('POSTGRES_PORT', '5432')} "
        f"dbname={os.getenv('POSTGRES_DB', 'postgres')} "
        f"user={os.getenv('POSTGRES_USER', 'postgres')} "
        f"password={os.getenv('POSTGRES_PASSWORD', 'postgres')}"
    )


@pytest.fixture(scope="session")
def redis_client() -> Generator[redis.Redis, None, None]:
    """Redis client for direct queue operations.

    Yields a connected Redis client for test assertions and setup.
    """
    client = redis.Redis(
        host=os.getenv("REDIS_HOST", "localhost"),
        port=int(os.getenv("REDIS_PORT", "6379")),
        db=int(os.getenv("REDIS_DB", "0")),
        decode_responses=True
    )

    try:
        client.ping()
    except redis.ConnectionError:
        pytest.skip("Redis not available")

    yield client

    client.delete(TEST_QUEUE)
    client.close()


@pytest.fixture(scope="session")
def postgres_connection():
    """PostgreSQL connection for direct table inspection."""
    try:
        conn = psycopg2.connect(_postgres_dsn(), connect_timeout=3)
    except psycopg2.OperationalError:
        pytest.skip("PostgreSQL not available")
    conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)

    yield conn

    conn.close()


@pytest.fixture
def postgres_client(postgres_connection):
    """PostgreSQL cursor for executing queries."""
    cursor = postgres_connection.cursor()
    yield cursor
    cursor.close()


@pytest.fixture
def vote_queue(redis_client) -> Generator[VoteQueue, None, None]:
    """Connected VoteQueue on a dedicated test list."""
    redis_client.delete(TEST_QUEUE)
    queue = VoteQueue(
        host=os.getenv("REDIS_HOST", "localhost"),
        port=int(os.getenv("REDIS_PORT", "6379")),
        db=int(os.getenv("REDIS_DB", "0")),
        queue_name=TEST_QUEUE,
        retry_policy=RetryPolicy(delay=0.1, max_attempts=3)
    )
    queue.connect()
    yield queue
    queue.close()


@pytest.fixture
def vote_store(postgres_connection) -> Generator[VoteStore, None, None]:
    """Connected VoteStore with an empty votes table."""
    store = VoteStore(dsn=_postgres_dsn(), retry_policy=RetryPolicy(delay=0.1, max_attempts=3))
    store.connect()

    with postgres_connection.cursor() as cursor:
        cursor.execute("TRUNCATE TABLE votes")

    yield store
    store.close()

"""Fixtures and in-memory doubles for unit tests.

FakeRedis implements the handful of list commands the queue uses.
FakePgConnection understands the statements in vote_worker.database and
keeps rows in a dict keyed by voter id, enforcing the same uniqueness the
votes table does.
"""

from collections import Counter, deque
from typing import Dict, List, Optional

import pytest

from vote_worker import database
from vote_worker.database import VoteStore
from vote_worker.redis_client import VoteQueue
from vote_worker.retry import RetryPolicy


class FakeRedis:
    """In-memory stand-in for the Redis list commands.

    Values are stored and returned as bytes, like a client built without
    decode_responses.
    """

    def __init__(self):
        self.lists: Dict[str, deque] = {}
        self.fail_next: Optional[Exception] = None
        self.closed = False

    def _maybe_fail(self):
        if self.fail_next is not None:
            error, self.fail_next = self.fail_next, None
            raise error

    def ping(self):
        return True

    def rpush(self, key, *values):
        self._maybe_fail()
        items = self.lists.setdefault(key, deque())
        items.extend(v if isinstance(v, bytes) else str(v).encode("utf-8") for v in values)
        return len(items)

    def lpop(self, key):
        self._maybe_fail()
        items = self.lists.get(key)
        if not items:
            return None
        return items.popleft()

    def llen(self, key):
        self._maybe_fail()
        return len(self.lists.get(key, ()))

    def close(self):
        self.closed = True


class FakeCursor:
    def __init__(self, connection: 'FakePgConnection'):
        self.connection = connection
        self._result: List[tuple] = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def execute(self, sql, params=None):
        conn = self.connection
        conn.statements.append((sql, params))

        if conn.fail_next is not None:
            error, conn.fail_next = conn.fail_next, None
            raise error

        if sql == database.CREATE_VOTES_TABLE_SQL:
            conn.table_created = True
        elif sql == database.UPSERT_VOTE_SQL:
            voter_id, choice = params
            conn.pending[voter_id] = choice
        elif sql == database.SELECT_VOTE_SQL:
            (voter_id,) = params
            self._result = [(conn.rows[voter_id],)] if voter_id in conn.rows else []
        elif sql == database.COUNT_VOTES_SQL:
            self._result = sorted(Counter(conn.rows.values()).items())
        elif sql == "SELECT 1":
            self._result = [(1,)]
        else:
            raise AssertionError(f"Unexpected SQL: {sql}")

    def fetchone(self):
        return self._result[0] if self._result else None

    def fetchall(self):
        return list(self._result)


class FakePgConnection:
    """DB-API connection double with transactional upserts."""

    def __init__(self):
        self.rows: Dict[str, str] = {}
        self.pending: Dict[str, str] = {}
        self.statements: List[tuple] = []
        self.table_created = False
        self.fail_next: Optional[Exception] = None
        self.closed = 0
        self.commits = 0
        self.rollbacks = 0

    def cursor(self):
        return FakeCursor(self)

    def commit(self):
        self.rows.update(self.pending)
        self.pending.clear()
        self.commits += 1

    def rollback(self):
        self.pending.clear()
        self.rollbacks += 1

    def close(self):
        self.closed = 1


@pytest.fixture
def sleeps():
    """Records every sleep requested instead of waiting."""
    return []


@pytest.fixture
def retry_policy(sleeps):
    return RetryPolicy(delay=1.0, sleep=sleeps.append)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def fake_pg():
    return FakePgConnection()


@pytest.fixture
def vote_queue(fake_redis, retry_policy):
    """VoteQueue wired to FakeRedis (not yet connected)."""
    return VoteQueue(
        queue_name='votes',
        retry_policy=retry_policy,
        client_factory=lambda: fake_redis
    )


@pytest.fixture
def vote_store(fake_pg, retry_policy):
    """VoteStore wired to FakePgConnection (not yet connected)."""
    return VoteStore(
        dsn='host=fake',
        retry_policy=retry_policy,
        connect_factory=lambda: fake_pg
    )


@pytest.fixture
def flaky_factory():
    """Build a factory that raises the given errors before returning a value."""
    def _build(errors, result):
        remaining = list(errors)

        def _factory():
            if remaining:
                raise remaining.pop(0)
            return result

        return _factory

    return _build


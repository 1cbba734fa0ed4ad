"""PostgreSQL client owning the votes table."""

import psycopg2
import logging
from typing import Any, Callable, Dict, Optional

from .config import Config
from .exceptions import DatabaseError
from .retry import ConnectionTracker, RetryPolicy, connect_with_retry

logger = logging.getLogger(__name__)

CREATE_VOTES_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS votes (
        id VARCHAR(255) NOT NULL UNIQUE,
        vote VARCHAR(255) NOT NULL
    )
"""

# Single atomic statement: inserts the voter's row or overwrites its vote
UPSERT_VOTE_SQL = """
    INSERT INTO votes (id, vote)
    VALUES (%s, %s)
    ON CONFLICT (id)
    DO UPDATE SET vote = EXCLUDED.vote
"""

SELECT_VOTE_SQL = "SELECT vote FROM votes WHERE id = %s"

COUNT_VOTES_SQL = "SELECT vote, COUNT(id) AS count FROM votes GROUP BY vote"


class VoteStore:
    """PostgreSQL store holding the current vote of every voter."""

    def __init__(
        self,
        dsn: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None,
        connect_factory: Optional[Callable[[], Any]] = None
    ):
        """
        Configure the store. Nothing is opened until connect().

        Args:
            dsn: libpq connection string (defaults to Config.get_postgres_dsn())
            retry_policy: Connect retry policy (defaults to a fixed
                Config.CONNECT_RETRY_DELAY wait, retried forever)
            connect_factory: Opens a DB-API connection; replaces psycopg2.connect
        """
        self.dsn = dsn or Config.get_postgres_dsn()
        self.retry_policy = retry_policy or RetryPolicy(delay=Config.CONNECT_RETRY_DELAY)
        self.tracker = ConnectionTracker('postgres')
        self.connection = None
        self._connect_factory = connect_factory or self._open_connection

    def _open_connection(self):
        return psycopg2.connect(self.dsn, connect_timeout=Config.POSTGRES_CONNECT_TIMEOUT)

    def connect(self):
        """
        Connect to PostgreSQL and make sure the votes table exists.

        Blocks for as long as the retry policy allows.

        Returns:
            The open connection
        """
        self.connection = connect_with_retry(
            self._connect_factory,
            self.tracker,
            self.retry_policy,
            "Waiting for database...",
            retry_on=(psycopg2.OperationalError,)
        )
        logger.info("PostgreSQL connection established")
        self.ensure_schema()
        return self.connection

    def ensure_schema(self):
        """Create the votes table if it does not exist yet."""
        conn = self._require_connection()
        try:
            with conn.cursor() as cursor:
                cursor.execute(CREATE_VOTES_TABLE_SQL)
            conn.commit()
            logger.info("Votes table ready")
        except psycopg2.Error as e:
            self._rollback()
            logger.error(f"Failed to create votes table: {e}")
            raise DatabaseError(f"Schema setup failed: {e}") from e

    def _require_connection(self):
        if self.connection is None:
            raise DatabaseError("Database is not connected")
        if self.connection.closed:
            logger.warning("Database connection lost, reconnecting...")
            self.connect()
        return self.connection

    def _rollback(self):
        try:
            if self.connection is not None and not self.connection.closed:
                self.connection.rollback()
        except psycopg2.Error as e:
            logger.warning(f"Rollback failed: {e}")

    def upsert_vote(self, voter_id: str, choice: str) -> None:
        """
        Record a voter's choice, replacing any earlier one.

        Safe to repeat: afterwards exactly one row exists for voter_id,
        holding the last choice applied.

        Args:
            voter_id: The voter's identifier (primary key)
            choice: The selected option

        Raises:
            DatabaseError: If the write fails
        """
        conn = self._require_connection()
        try:
            with conn.cursor() as cursor:
                cursor.execute(UPSERT_VOTE_SQL, (voter_id, choice))
            conn.commit()
            logger.debug(f"Upserted vote for {voter_id}: {choice}")
        except psycopg2.Error as e:
            self._rollback()
            logger.error(f"Database error upserting vote for {voter_id}: {e}")
            raise DatabaseError(f"Failed to upsert vote for {voter_id}: {e}") from e

    def get_vote(self, voter_id: str) -> Optional[str]:
        """
        Get the current choice of a voter.

        Args:
            voter_id: The voter's identifier

        Returns:
            The recorded choice, or None if the voter has no row
        """
        conn = self._require_connection()
        try:
            with conn.cursor() as cursor:
                cursor.execute(SELECT_VOTE_SQL, (voter_id,))
                row = cursor.fetchone()
            conn.commit()
            return row[0] if row else None
        except psycopg2.Error as e:
            self._rollback()
            logger.error(f"Database error reading vote for {voter_id}: {e}")
            raise DatabaseError(f"Failed to read vote for {voter_id}: {e}") from e

    def get_vote_counts(self) -> Dict[str, int]:
        """
        Count rows per choice, the same grouped query the results API runs.

        Returns:
            Dictionary mapping choice to number of voters
        """
        conn = self._require_connection()
        try:
            with conn.cursor() as cursor:
                cursor.execute(COUNT_VOTES_SQL)
                rows = cursor.fetchall()
            conn.commit()
            return {vote: int(count) for vote, count in rows}
        except psycopg2.Error as e:
            self._rollback()
            logger.error(f"Database error counting votes: {e}")
            raise DatabaseError(f"Failed to count votes: {e}") from e

    def health_check(self) -> bool:
        """
        Check database health.

        Returns:
            True if database is healthy, False otherwise
        """
        if self.connection is None or self.connection.closed:
            return False
        try:
            with self.connection.cursor() as cursor:
                cursor.execute("SELECT 1")
            self.connection.commit()
            return True
        except psycopg2.Error as e:
            self._rollback()
            logger.error(f"Database health check failed: {e}")
            return False

    def close(self):
        """Close the database connection."""
        if self.connection is None:
            return
        try:
            if not self.connection.closed:
                self.connection.close()
            logger.info("PostgreSQL connection closed")
        except psycopg2.Error as e:
            logger.error(f"Error closing database connection: {e}")
        finally:
            self.connection = None

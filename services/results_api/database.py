"""PostgreSQL read access for the results API."""
import asyncpg
from typing import Dict, Optional
import logging

from .config import settings

logger = logging.getLogger(__name__)

COUNT_VOTES_QUERY = "SELECT vote, COUNT(id) AS count FROM votes GROUP BY vote"


class DatabaseError(Exception):
    """Custom exception for database errors."""
    pass


class Database:
    """Async PostgreSQL database manager."""

    def __init__(self):
        self.pool: Optional[asyncpg.Pool] = None

    async def initialize(self):
        """Initialize database connection pool."""
        try:
            self.pool = await asyncpg.create_pool(
                settings.postgres_dsn,
                min_size=settings.POSTGRES_POOL_MIN_SIZE,
                max_size=settings.POSTGRES_POOL_MAX_SIZE,
                command_timeout=60
            )
            logger.info("PostgreSQL connection pool initialized successfully")

            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
                logger.info("PostgreSQL connection verified")

        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Failed to initialize PostgreSQL connection pool: {e}")
            raise

    async def get_vote_counts(self) -> Dict[str, int]:
        """
        Count voters per choice.

        The worker may be writing at the same time; this is a plain
        read and takes no locks that would block it.

        Returns:
            Dictionary mapping choice to number of voters

        Raises:
            DatabaseError: If the database is unreachable or the query fails
        """
        if self.pool is None:
            # Startup may have run before PostgreSQL was up
            try:
                await self.initialize()
            except (asyncpg.PostgresError, OSError) as e:
                raise DatabaseError(f"Database unavailable: {e}") from e

        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(COUNT_VOTES_QUERY)
        except asyncpg.UndefinedTableError:
            # The worker creates the table on its first connect
            logger.warning("votes table does not exist yet")
            return {}
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Database query error: {e}")
            raise DatabaseError(f"Vote count query failed: {e}") from e

        return {row["vote"]: int(row["count"]) for row in rows}

    async def health_check(self) -> bool:
        """Check that the database answers."""
        if self.pool is None:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Database health check failed: {e}")
            return False

    async def close(self):
        """Close database connection pool."""
        if self.pool:
            await self.pool.close()
            logger.info("PostgreSQL connection pool closed")


database = Database()

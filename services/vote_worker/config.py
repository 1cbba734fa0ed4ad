"""Configuration management for the vote worker service."""

import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Configuration class for the vote worker."""

    # Redis Configuration
    REDIS_HOST = os.getenv('REDIS_HOST', 'redis')
    REDIS_PORT = int(os.getenv('REDIS_PORT', '6379'))
    REDIS_DB = int(os.getenv('REDIS_DB', '0'))
    REDIS_PASSWORD = os.getenv('REDIS_PASSWORD', None)

    # Queue name (Redis list)
    VOTES_QUEUE = os.getenv('VOTES_QUEUE', 'votes')

    # PostgreSQL Configuration
    POSTGRES_HOST = os.getenv('POSTGRES_HOST', 'db')
    POSTGRES_PORT = int(os.getenv('POSTGRES_PORT', '5432'))
    POSTGRES_DB = os.getenv('POSTGRES_DB', 'postgres')
    POSTGRES_USER = os.getenv('POSTGRES_USER', 'postgres')
    POSTGRES_PASSWORD = os.getenv('POSTGRES_PASSWORD', 'postgres')
    POSTGRES_CONNECT_TIMEOUT = int(os.getenv('POSTGRES_CONNECT_TIMEOUT', '5'))

    # Polling / retry
    POLL_INTERVAL = float(os.getenv('POLL_INTERVAL', '0.1'))
    CONNECT_RETRY_DELAY = float(os.getenv('CONNECT_RETRY_DELAY', '1.0'))

    # Prometheus Metrics (0 disables the metrics server)
    METRICS_PORT = int(os.getenv('METRICS_PORT', '8001'))

    # Worker Configuration
    WORKER_ID = os.getenv('WORKER_ID', 'worker-1')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    @classmethod
    def get_postgres_dsn(cls):
        """Get PostgreSQL connection DSN."""
        return f"host={cls.POSTGRES_HOST} port={cls.POSTGRES_PORT} dbname={cls.POSTGRES_DB} user={cls.POSTGRES_USER} password={cls.POSTGRES_PASSWORD}"

    @classmethod
    def get_redis_url(cls):
        """Get Redis connection URL."""
        if cls.REDIS_PASSWORD:
            return f"redis://:{cls.REDIS_PASSWORD}@{cls.REDIS_HOST}:{cls.REDIS_PORT}/{cls.REDIS_DB}"
        return f"redis://{cls.REDIS_HOST}:{cls.REDIS_PORT}/{cls.REDIS_DB}"

"""
Async Redis Client Wrapper for the Companion Backend

Provides connection pooling and connection checks for the two credential
levels the backend uses:

- restricted: per-request reads/writes (quota checks, audio sessions)
- service: elevated access for payment records and background sweeps

Configuration is read from environment variables:
- REDIS_URL: Restricted-level connection string (default: redis://localhost:6379/0)
- REDIS_SERVICE_URL: Service-level connection string (default: REDIS_URL)
- COMPANION_REDIS_MAX_CONNECTIONS: Connection pool size (default: 50)
- COMPANION_REDIS_SOCKET_TIMEOUT: Socket timeout in seconds (default: 5.0)
- COMPANION_REDIS_SOCKET_CONNECT_TIMEOUT: Connect timeout in seconds (default: 5.0)
- COMPANION_REDIS_NAMESPACE: Key prefix for all records (default: companion)

Usage:
    from shared.redis_client import RedisConfig, RedisClients

    clients = await RedisClients.connect(RedisConfig.from_env())
    await clients.restricted.set("key", "value", ex=3600)
    await clients.close()
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)


@dataclass
class RedisConfig:
    """Redis configuration dataclass"""

    url: str = "redis://localhost:6379/0"
    service_url: Optional[str] = None
    max_connections: int = 50
    socket_timeout: float = 5.0
    socket_connect_timeout: float = 5.0
    namespace: str = "companion"

    @staticmethod
    def from_env() -> 'RedisConfig':
        """Load configuration from environment variables"""
        url = os.getenv("REDIS_URL", "redis://localhost:6379/0")
        return RedisConfig(
            url=url,
            service_url=os.getenv("REDIS_SERVICE_URL") or None,
            max_connections=int(os.getenv("COMPANION_REDIS_MAX_CONNECTIONS", "50")),
            socket_timeout=float(os.getenv("COMPANION_REDIS_SOCKET_TIMEOUT", "5.0")),
            socket_connect_timeout=float(os.getenv("COMPANION_REDIS_SOCKET_CONNECT_TIMEOUT", "5.0")),
            namespace=os.getenv("COMPANION_REDIS_NAMESPACE", "companion"),
        )

    def __post_init__(self):
        for name, value in (("url", self.url), ("service_url", self.service_url)):
            if value and not value.startswith(("redis://", "rediss://", "unix://")):
                raise ValueError(
                    f"{name} must start with redis://, rediss://, or unix://, got {value}"
                )
        if self.max_connections <= 0:
            raise ValueError(f"max_connections must be positive, got {self.max_connections}")
        if not self.namespace:
            raise ValueError("namespace must not be empty")

    @property
    def effective_service_url(self) -> str:
        """Service-level URL, falling back to the restricted URL."""
        return self.service_url or self.url


def create_redis_client(url: str, config: RedisConfig) -> redis.Redis:
    """
    Build an async Redis client backed by its own connection pool.

    decode_responses=True: every record is stored as a JSON string, so
    callers always get str back.
    """
    pool = redis.ConnectionPool.from_url(
        url,
        max_connections=config.max_connections,
        socket_timeout=config.socket_timeout,
        socket_connect_timeout=config.socket_connect_timeout,
        decode_responses=True,
    )
    return redis.Redis(connection_pool=pool)


async def ping_redis(client: redis.Redis) -> bool:
    """
    Test Redis connectivity with simple PING command.

    Returns:
        bool: True if PING successful, False otherwise
    """
    try:
        result = await client.ping()
        return result is True
    except Exception as e:
        logger.error(f"Redis PING failed: {e}")
        return False


async def connect_with_retry(client: redis.Redis, label: str, max_retries: int = 3) -> None:
    """
    PING the server with exponential backoff before handing the client out.

    Raises:
        redis.ConnectionError: If every attempt fails
    """
    retry_delays = [1.0, 2.0, 4.0]

    for attempt in range(max_retries):
        try:
            await client.ping()
            logger.info(f" Redis ({label}) connected successfully")
            return
        except redis.ConnectionError as e:
            if attempt < max_retries - 1:
                delay = retry_delays[min(attempt, len(retry_delays) - 1)]
                logger.warning(
                    f"Redis ({label}) connection attempt {attempt + 1}/{max_retries} failed: {e}. "
                    f"Retrying in {delay}s..."
                )
                await asyncio.sleep(delay)
            else:
                logger.error(f" Redis ({label}) connection failed after {max_retries} attempts: {e}")
                raise


@dataclass
class RedisClients:
    """Restricted and service-level clients, created once at startup."""

    restricted: redis.Redis
    service: redis.Redis

    @classmethod
    async def connect(cls, config: RedisConfig) -> "RedisClients":
        restricted = create_redis_client(config.url, config)
        await connect_with_retry(restricted, "restricted")

        if config.effective_service_url == config.url:
            service = restricted
        else:
            service = create_redis_client(config.effective_service_url, config)
            await connect_with_retry(service, "service")

        return cls(restricted=restricted, service=service)

    async def close(self) -> None:
        """Gracefully close both clients (once each if they are shared)."""
        seen = set()
        for label, client in (("restricted", self.restricted), ("service", self.service)):
            if id(client) in seen:
                continue
            seen.add(id(client))
            try:
                await client.aclose()
                await client.connection_pool.disconnect()
                logger.info(f"Redis ({label}) client closed")
            except Exception as e:
                logger.error(f"Error closing Redis ({label}) client: {e}")

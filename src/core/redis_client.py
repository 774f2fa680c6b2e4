"""Redis client backing the task store."""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from datetime import UTC, datetime
from functools import wraps
from typing import Any, TypeVar

from redis.asyncio import Redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError

from src.core.config import Constants, settings
from src.core.errors import StoreUnavailableError


logger = logging.getLogger(__name__)

# Type variable for generic retry decorator
T = TypeVar("T")


def with_retry(
    max_retries: int = Constants.REDIS_MAX_RETRIES,
    base_delay: float = Constants.REDIS_RETRY_BASE_DELAY_SECONDS,
) -> Callable[[Callable[..., Coroutine[Any, Any, T]]], Callable[..., Coroutine[Any, Any, T]]]:
    """Decorator to retry async functions with exponential backoff.

    Args:
        max_retries: Maximum number of attempts
        base_delay: Base delay in seconds for exponential backoff

    Returns:
        Decorated function with retry logic
    """

    def decorator(func: Callable[..., Coroutine[Any, Any, T]]) -> Callable[..., Coroutine[Any, Any, T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:  # noqa: ANN401
            last_exception = None
            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except RedisError as e:
                    last_exception = e
                    if attempt < max_retries - 1:
                        delay = base_delay * (2**attempt)
                        logger.warning(
                            "Redis operation failed (attempt %d/%d): %s. Retrying in %.2fs",
                            attempt + 1,
                            max_retries,
                            e,
                            delay,
                        )
                        await asyncio.sleep(delay)
                    else:
                        logger.error(
                            "Redis operation failed after %d attempts: %s",
                            max_retries,
                            e,
                        )
            raise StoreUnavailableError(f"Redis operation failed: {last_exception}") from last_exception

        return wrapper

    return decorator


class RedisClient:
    """Async Redis client wrapper with connection pooling."""

    def __init__(self, url: str | None = None) -> None:
        """Initialize Redis client."""
        self._url = url or settings.redis_url
        self._client: Redis | None = None
        self._pool: ConnectionPool | None = None

        # Health tracking
        self._last_successful_operation: datetime | None = None
        self._failure_count = 0
        self._total_operations = 0

        if self._url:
            self._pool = ConnectionPool.from_url(
                self._url,
                decode_responses=True,
                max_connections=Constants.REDIS_MAX_CONNECTIONS,
            )
            self._client = Redis(connection_pool=self._pool)
            logger.info("Redis client initialized with URL: %s", self._url)

    @property
    def is_available(self) -> bool:
        """Check if Redis is configured."""
        return self._client is not None

    def get_health_status(self) -> dict[str, Any]:
        """Get Redis health status."""
        return {
            "connected": self.is_available,
            "last_successful_operation": self._last_successful_operation.isoformat()
            if self._last_successful_operation
            else None,
            "failure_count": self._failure_count,
            "total_operations": self._total_operations,
        }

    def _record_success(self) -> None:
        self._last_successful_operation = datetime.now(UTC)
        self._total_operations += 1

    def _record_failure(self) -> None:
        self._failure_count += 1
        self._total_operations += 1

    def _require_client(self) -> Redis:
        if self._client is None:
            raise StoreUnavailableError("Redis URL not configured")
        return self._client

    async def _run(self, operation: Callable[[Redis], Coroutine[Any, Any, T]]) -> T:
        """Run a single Redis call with retries and health tracking."""
        client = self._require_client()

        @with_retry()
        async def _call() -> T:
            return await operation(client)

        try:
            result = await _call()
        except StoreUnavailableError:
            self._record_failure()
            raise
        self._record_success()
        return result

    async def hgetall(self, key: str) -> dict[str, str]:
        """Return all fields of a hash, empty if missing."""
        return await self._run(lambda c: c.hgetall(key))  # type: ignore[arg-type,return-value]

    async def hset(self, key: str, mapping: dict[str, str]) -> None:
        """Set hash fields."""
        if not mapping:
            return
        await self._run(lambda c: c.hset(key, mapping=mapping))  # type: ignore[arg-type]

    async def hdel(self, key: str, *fields: str) -> None:
        """Delete hash fields."""
        if not fields:
            return
        await self._run(lambda c: c.hdel(key, *fields))  # type: ignore[arg-type]

    async def keys(self, pattern: str) -> list[str]:
        """Find keys matching a pattern."""
        keys = await self._run(lambda c: c.keys(pattern))
        return [k.decode() if isinstance(k, bytes) else k for k in keys]

    async def smembers(self, key: str) -> set[str]:
        """Return members of a set."""
        members = await self._run(lambda c: c.smembers(key))  # type: ignore[arg-type]
        return {m.decode() if isinstance(m, bytes) else m for m in members}

    async def sadd(self, key: str, *members: str) -> None:
        """Add set members."""
        if not members:
            return
        await self._run(lambda c: c.sadd(key, *members))  # type: ignore[arg-type]

    async def srem(self, key: str, *members: str) -> None:
        """Remove set members."""
        if not members:
            return
        await self._run(lambda c: c.srem(key, *members))  # type: ignore[arg-type]

    async def ping(self) -> bool:
        """Ping Redis to check connection.

        Returns:
            True if Redis is responsive, False otherwise
        """
        if self._client is None:
            return False

        try:
            result = await self._client.ping()  # type: ignore[misc]
            return bool(result)
        except RedisError as e:
            logger.warning("Redis PING failed: %s", e)
            return False

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            logger.info("Redis client closed")

"""Key-value store protocol shared by the Redis client and the in-memory store."""

import logging
from typing import Protocol


logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Hash and set operations the task store relies on.

    Values are strings. There are no multi-key transactions; reads see the
    caller's own writes.
    """

    async def hgetall(self, key: str) -> dict[str, str]:
        """Return all fields of a hash, or an empty dict if the key does not exist."""
        ...

    async def hset(self, key: str, mapping: dict[str, str]) -> None:
        """Set fields on a hash, creating it if needed."""
        ...

    async def hdel(self, key: str, *fields: str) -> None:
        """Remove fields from a hash."""
        ...

    async def keys(self, pattern: str) -> list[str]:
        """Return keys matching a glob-style pattern."""
        ...

    async def smembers(self, key: str) -> set[str]:
        """Return the members of a set."""
        ...

    async def sadd(self, key: str, *members: str) -> None:
        """Add members to a set."""
        ...

    async def srem(self, key: str, *members: str) -> None:
        """Remove members from a set."""
        ...

    async def ping(self) -> bool:
        """Check that the store is reachable."""
        ...

    async def close(self) -> None:
        """Release connections."""
        ...


def create_kv_store() -> KeyValueStore:
    """Return the Redis-backed store when configured, otherwise an in-memory one."""
    from src.core.config import settings
    from src.core.memory_store import InMemoryStore
    from src.core.redis_client import RedisClient

    if settings.redis_url:
        return RedisClient(settings.redis_url)

    logger.info("Redis URL not configured. Using in-memory task store.")
    return InMemoryStore()

"""In-memory key-value store used when Redis is not configured."""

import copy
import fnmatch
import logging
import threading
import time
from typing import Any


logger = logging.getLogger(__name__)


class InMemoryStore:
    """Thread-safe in-memory hash and set store."""

    def __init__(self) -> None:
        """Initialize empty store."""
        self._hashes: dict[str, dict[str, str]] = {}
        self._sets: dict[str, set[str]] = {}
        self._lock = threading.Lock()

        # Health tracking
        self._last_successful_operation: float | None = None
        self._total_operations = 0

    @property
    def is_available(self) -> bool:
        """Check if store is available (always true for in-memory)."""
        return True

    def get_health_status(self) -> dict[str, Any]:
        """Get store health status."""
        return {
            "connected": True,
            "last_successful_operation": self._last_successful_operation,
            "total_operations": self._total_operations,
            "hashes": len(self._hashes),
            "sets": len(self._sets),
        }

    def _record_success(self) -> None:
        self._last_successful_operation = time.time()
        self._total_operations += 1

    async def hgetall(self, key: str) -> dict[str, str]:
        """Return a copy of all fields of a hash."""
        with self._lock:
            self._record_success()
            return copy.deepcopy(self._hashes.get(key, {}))

    async def hset(self, key: str, mapping: dict[str, str]) -> None:
        """Set hash fields."""
        with self._lock:
            self._hashes.setdefault(key, {}).update(mapping)
            self._record_success()

    async def hdel(self, key: str, *fields: str) -> None:
        """Delete hash fields, dropping the hash once it is empty."""
        with self._lock:
            record = self._hashes.get(key)
            if record is None:
                return
            for field in fields:
                record.pop(field, None)
            if not record:
                del self._hashes[key]
            self._record_success()

    async def keys(self, pattern: str) -> list[str]:
        """Find keys matching a glob pattern."""
        with self._lock:
            self._record_success()
            all_keys = [*self._hashes, *self._sets]
            return [key for key in all_keys if fnmatch.fnmatchcase(key, pattern)]

    async def smembers(self, key: str) -> set[str]:
        """Return a copy of a set."""
        with self._lock:
            self._record_success()
            return set(self._sets.get(key, set()))

    async def sadd(self, key: str, *members: str) -> None:
        """Add set members."""
        with self._lock:
            self._sets.setdefault(key, set()).update(members)
            self._record_success()

    async def srem(self, key: str, *members: str) -> None:
        """Remove set members."""
        with self._lock:
            current = self._sets.get(key)
            if current is None:
                return
            current.difference_update(members)
            if not current:
                del self._sets[key]
            self._record_success()

    async def ping(self) -> bool:
        """Always reachable."""
        return True

    async def close(self) -> None:
        """Close store (no-op for in-memory store)."""
        logger.info("In-memory store closed")

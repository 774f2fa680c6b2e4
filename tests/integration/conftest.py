"""Pytest configuration and fixtures for integration tests."""

import pytest

from src.core.redis_client import RedisClient
from src.modules.tasks.store import TaskStore


@pytest.fixture
def redis_task_store(redis_store: RedisClient) -> TaskStore:
    """Task store backed by a real Redis server."""
    return TaskStore(redis_store)

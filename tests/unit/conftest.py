"""Pytest configuration and fixtures for unit tests."""

from collections.abc import Callable
from datetime import datetime
from typing import Any

import pytest

from src.core.memory_store import InMemoryStore
from src.domain.task import Task, TaskCategory, TaskPriority, TaskStatus
from src.modules.tasks.store import TaskStore


@pytest.fixture
def kv() -> InMemoryStore:
    """Provides a fresh InMemoryStore for each test."""
    return InMemoryStore()


@pytest.fixture
def task_store(kv: InMemoryStore) -> TaskStore:
    """Task store over the in-memory key-value store."""
    return TaskStore(kv)


@pytest.fixture
def make_task(now: datetime) -> Callable[..., Task]:
    """Factory for tasks with sensible defaults."""
    counter = {"n": 0}

    def _make(**overrides: Any) -> Task:  # noqa: ANN401
        counter["n"] += 1
        data: dict[str, Any] = {
            "id": f"t{counter['n']}",
            "property_id": "p1",
            "title": f"Task {counter['n']}",
            "description": "Routine work",
            "category": TaskCategory.CLEANING,
            "priority": TaskPriority.MEDIUM,
            "assigned_to": ["alice@example.com"],
            "created_by": "owner@example.com",
            "created_at": now,
            "updated_at": now,
            "status": TaskStatus.PENDING,
        }
        data.update(overrides)
        return Task(**data)

    return _make


@pytest.fixture
def save_task(task_store: TaskStore, now: datetime) -> Callable[..., Any]:
    """Persist a task through the store, returning the saved copy."""

    async def _save(task: Task) -> Task:
        return await task_store.save_task(task, now=now)

    return _save

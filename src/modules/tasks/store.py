"""Task store adapter.

Tasks live in the key-value store as flat string hashes at
``task:{property_id}:{task_id}``; ``property:{property_id}:tasks`` is the set
used to enumerate a property's tasks. List-valued and nested fields are
JSON-encoded strings and dates are ISO-8601 strings. Nothing outside this
module sees the encoded form.
"""

import json
import logging
import re
import secrets
import string
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import pydantic

from src.core.dates import format_datetime, parse_datetime
from src.core.errors import NotFoundError, StoreCorruptionError, ValidationError
from src.core.kv_store import KeyValueStore
from src.domain.task import Task


logger = logging.getLogger(__name__)

_JSON_FIELDS = frozenset({"assigned_to", "completion_photos", "recurrence"})
_DATE_FIELDS = frozenset({"created_at", "updated_at", "due_date", "completed_at", "deleted_at"})
_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.@-]+$")
_ID_ALPHABET = string.ascii_lowercase + string.digits


def validate_id(value: str, *, kind: str = "task") -> str:
    """Validate an ID before it is interpolated into a key or key pattern."""
    if not value or not _ID_PATTERN.match(value):
        msg = f"Invalid {kind} ID: {value!r}"
        raise ValidationError(msg)
    return value


def task_key(property_id: str, task_id: str) -> str:
    """Hash key for a task."""
    return f"task:{property_id}:{task_id}"


def property_tasks_key(property_id: str) -> str:
    """Set key listing a property's task IDs."""
    return f"property:{property_id}:tasks"


def generate_id(prefix: str, now: datetime | None = None) -> str:
    """Generate an ID of the form ``{prefix}_{epoch_ms}_{random}``."""
    moment = now or datetime.now(UTC)
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}_{int(moment.timestamp() * 1000)}_{suffix}"


def generate_task_id(now: datetime | None = None) -> str:
    """Generate a new task ID."""
    return generate_id("task", now)


def _encode_value(name: str, value: Any) -> str:  # noqa: ANN401
    if name == "recurrence":
        return json.dumps(value.model_dump(mode="json"))
    if name in _JSON_FIELDS:
        return json.dumps(value)
    if isinstance(value, datetime):
        return format_datetime(value)
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def encode_task(task: Task) -> tuple[dict[str, str], list[str]]:
    """Flatten a task into hash fields.

    Returns:
        Tuple of (fields to write, fields to remove because they are unset)
    """
    mapping: dict[str, str] = {}
    cleared: list[str] = []
    for name in Task.model_fields:
        value = getattr(task, name)
        if value is None:
            cleared.append(name)
            continue
        mapping[name] = _encode_value(name, value)
    return mapping, cleared


def decode_task(key: str, raw: dict[str, str]) -> Task:
    """Rebuild a typed task from its hash fields.

    Raises:
        StoreCorruptionError: If an embedded JSON field, date or enum cannot be decoded
    """
    data: dict[str, Any] = {}
    for name, value in raw.items():
        if value == "":
            continue
        try:
            if name in _JSON_FIELDS:
                data[name] = json.loads(value)
            elif name in _DATE_FIELDS:
                data[name] = parse_datetime(value)
            else:
                data[name] = value
        except (ValueError, OverflowError) as e:
            raise StoreCorruptionError(key, f"field {name}: {e}") from e

    try:
        return Task.model_validate(data)
    except pydantic.ValidationError as e:
        raise StoreCorruptionError(key, str(e)) from e


class TaskStore:
    """Presents tasks as typed entities over a key-value store."""

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv

    @property
    def kv(self) -> KeyValueStore:
        """Underlying key-value store."""
        return self._kv

    async def find_task_key(self, task_id: str) -> str | None:
        """Locate the hash key of a task across all properties."""
        validate_id(task_id)
        keys = await self._kv.keys(f"task:*:{task_id}")
        if not keys:
            return None
        if len(keys) > 1:
            logger.warning("Task %s found under %d keys, using %s", task_id, len(keys), sorted(keys)[0])
        return sorted(keys)[0]

    async def load_task(self, task_id: str, *, property_id: str | None = None) -> Task:
        """Load a live task by ID.

        Raises:
            NotFoundError: If the task does not exist or is soft-deleted
            StoreCorruptionError: If the stored record cannot be decoded
        """
        if property_id is not None:
            key: str | None = task_key(validate_id(property_id, kind="property"), validate_id(task_id))
        else:
            key = await self.find_task_key(task_id)

        raw = await self._kv.hgetall(key) if key else {}
        if not raw or key is None:
            raise NotFoundError(f"Task not found: {task_id}")

        task = decode_task(key, raw)
        if task.deleted_at is not None:
            raise NotFoundError(f"Task not found: {task_id}")
        return task

    async def save_task(self, task: Task, *, now: datetime | None = None) -> Task:
        """Persist a task, stamping ``updated_at``.

        Returns:
            The task as written
        """
        validate_id(task.property_id, kind="property")
        validate_id(task.id)

        saved = task.model_copy(update={"updated_at": now or datetime.now(UTC)})
        mapping, cleared = encode_task(saved)
        key = task_key(saved.property_id, saved.id)

        await self._kv.hset(key, mapping)
        if cleared:
            await self._kv.hdel(key, *cleared)
        await self._kv.sadd(property_tasks_key(saved.property_id), saved.id)

        logger.debug("Saved task %s", key)
        return saved

    async def list_tasks_for_property(self, property_id: str) -> list[Task]:
        """Load every live task of a property.

        Corrupt records are skipped with a warning so that one bad record
        cannot fail a whole listing.
        """
        validate_id(property_id, kind="property")
        task_ids = sorted(await self._kv.smembers(property_tasks_key(property_id)))

        tasks: list[Task] = []
        for task_id in task_ids:
            key = task_key(property_id, task_id)
            raw = await self._kv.hgetall(key)
            if not raw:
                continue
            try:
                task = decode_task(key, raw)
            except StoreCorruptionError as e:
                logger.warning("Skipping corrupt task record: %s", e)
                continue
            if task.deleted_at is None:
                tasks.append(task)

        return tasks

    async def list_tasks_for_properties(self, property_ids: list[str]) -> list[Task]:
        """Load every live task across several properties."""
        tasks: list[Task] = []
        for property_id in property_ids:
            tasks.extend(await self.list_tasks_for_property(property_id))
        return tasks

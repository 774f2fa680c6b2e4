"""Unit tests for the bulk mutation engine."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from src.core.config import settings
from src.core.errors import EmptyOperationError, NoAccessibleTasksError, ValidationError
from src.domain.bulk import (
    AssignOperation,
    CancelOperation,
    CompleteOperation,
    DeadlineOperation,
    PriorityOperation,
    UnknownOperation,
    parse_bulk_operation,
)
from src.domain.task import RecurrencePattern, RecurrenceType, TaskCategory, TaskPriority, TaskStatus
from src.modules.tasks.bulk import apply_bulk_operation
from src.modules.tasks.store import TaskStore, task_key
from tests.unit.mocks import FlakyStore


@pytest.mark.unit
class TestParseBulkOperation:
    """Tests for bulk request validation."""

    def test_known_operation(self):
        """Known operation names select their typed variant."""
        operation = parse_bulk_operation({"operation": "priority", "value": "High", "task_ids": ["t1"]})

        assert isinstance(operation, PriorityOperation)
        assert operation.value == TaskPriority.HIGH

    def test_wrong_value_type_raises(self):
        """A value that does not fit the operation is rejected."""
        with pytest.raises(ValidationError, match="value"):
            parse_bulk_operation({"operation": "category", "value": "Gardening"})

    def test_deadline_is_normalized_to_utc(self):
        """Naive deadline values are read as UTC."""
        operation = parse_bulk_operation({"operation": "deadline", "value": "2025-03-01T09:00:00"})

        assert isinstance(operation, DeadlineOperation)
        assert operation.value == datetime(2025, 3, 1, 9, tzinfo=UTC)

    def test_unknown_operation_is_accepted(self):
        """Unrecognised names parse to the no-op variant."""
        operation = parse_bulk_operation({"operation": "archive", "value": 1})

        assert isinstance(operation, UnknownOperation)
        assert operation.operation == "archive"


@pytest.mark.unit
class TestApplyBulkOperation:
    """Tests for applying one operation to many tasks."""

    async def test_only_accessible_tasks_change(self, task_store, save_task, make_task, now):
        """Inaccessible tasks are silently left out."""
        await save_task(make_task(id="t1"))
        await save_task(make_task(id="t2"))

        result = await apply_bulk_operation(
            task_store,
            ["t1", "t2"],
            PriorityOperation(value=TaskPriority.HIGH),
            {"t1"},
            "owner@example.com",
            now=now,
        )

        assert result.updated_count == 1
        assert [t.id for t in result.tasks] == ["t1"]
        assert result.operation == "priority"
        assert (await task_store.load_task("t1")).priority == TaskPriority.HIGH
        assert (await task_store.load_task("t2")).priority == TaskPriority.MEDIUM

    async def test_empty_task_ids_raises(self, task_store):
        """An empty request is an error."""
        with pytest.raises(EmptyOperationError):
            await apply_bulk_operation(task_store, [], CancelOperation(), {"t1"}, "owner@example.com")

    async def test_no_accessible_tasks_raises(self, task_store):
        """A request with nothing accessible is an error."""
        with pytest.raises(NoAccessibleTasksError):
            await apply_bulk_operation(task_store, ["t9"], CancelOperation(), {"t1"}, "owner@example.com")

    async def test_assign_replaces_assignees(self, task_store, save_task, make_task, now):
        """Assignment replaces the list rather than appending."""
        await save_task(make_task(id="t1", assigned_to=["a", "b"]))

        await apply_bulk_operation(
            task_store, ["t1"], AssignOperation(value=["c"]), {"t1"}, "owner@example.com", now=now
        )

        assert (await task_store.load_task("t1")).assigned_to == ["c"]

    async def test_complete_stamps_completion(self, task_store, save_task, make_task, now):
        """Completion records the acting user and time."""
        await save_task(make_task(id="t1", status=TaskStatus.IN_PROGRESS))

        result = await apply_bulk_operation(
            task_store, ["t1"], CompleteOperation(), {"t1"}, "manager@example.com", now=now
        )

        stored = await task_store.load_task("t1")
        assert result.updated_count == 1
        assert stored.status == TaskStatus.COMPLETED
        assert stored.completed_by == "manager@example.com"
        assert stored.completed_at == now

    async def test_terminal_tasks_are_skipped(self, task_store, save_task, make_task, now):
        """Completed or cancelled tasks are not completed or cancelled again."""
        earlier = now - timedelta(days=2)
        await save_task(make_task(id="done", status=TaskStatus.COMPLETED, completed_at=earlier, completed_by="x"))
        await save_task(make_task(id="gone", status=TaskStatus.CANCELLED))
        await save_task(make_task(id="open"))

        ids = ["done", "gone", "open"]
        result = await apply_bulk_operation(task_store, ids, CancelOperation(), set(ids), "owner@example.com", now=now)

        assert [t.id for t in result.tasks] == ["open"]
        done = await task_store.load_task("done")
        assert done.status == TaskStatus.COMPLETED
        assert done.completed_at == earlier

    async def test_field_operations_apply_to_terminal_tasks(self, task_store, save_task, make_task, now):
        """Only complete and cancel skip terminal tasks."""
        await save_task(make_task(id="t1", status=TaskStatus.CANCELLED))

        result = await apply_bulk_operation(
            task_store,
            ["t1"],
            parse_bulk_operation({"operation": "category", "value": "Inspection"}),
            {"t1"},
            "owner@example.com",
            now=now,
        )

        assert result.updated_count == 1
        assert (await task_store.load_task("t1")).category == TaskCategory.INSPECTION

    async def test_unknown_operation_changes_nothing(self, task_store, save_task, make_task, now):
        """Unknown operations count no updates and leave tasks untouched."""
        await save_task(make_task(id="t1"))
        before = await task_store.load_task("t1")

        result = await apply_bulk_operation(
            task_store,
            ["t1"],
            parse_bulk_operation({"operation": "archive"}),
            {"t1"},
            "owner@example.com",
            now=now + timedelta(hours=1),
        )

        assert result.updated_count == 0
        assert result.operation == "archive"
        assert await task_store.load_task("t1") == before

    async def test_missing_and_duplicate_ids(self, task_store, save_task, make_task, now):
        """Missing tasks are skipped and repeated IDs are applied once."""
        await save_task(make_task(id="t1"))

        result = await apply_bulk_operation(
            task_store,
            ["t1", "t1", "ghost"],
            PriorityOperation(value=TaskPriority.LOW),
            {"t1", "ghost"},
            "owner@example.com",
            now=now,
        )

        assert [t.id for t in result.tasks] == ["t1"]

    async def test_partial_failure_keeps_earlier_writes(self, make_task, now):
        """A store failure on one task does not roll back the others."""
        kv = FlakyStore()
        store = TaskStore(kv)
        for task_id in ("t1", "t2", "t3"):
            await store.save_task(make_task(id=task_id), now=now)
        kv.failing_keys.add(task_key("p1", "t2"))

        result = await apply_bulk_operation(
            store,
            ["t1", "t2", "t3"],
            PriorityOperation(value=TaskPriority.CRITICAL),
            {"t1", "t2", "t3"},
            "owner@example.com",
            now=now,
        )

        assert [t.id for t in result.tasks] == ["t1", "t3"]
        assert (await store.load_task("t1")).priority == TaskPriority.CRITICAL
        assert (await store.load_task("t2")).priority == TaskPriority.MEDIUM
        assert task_key("p1", "t3") in kv.write_attempts

    async def test_bulk_complete_schedules_when_completion_triggered(
        self, task_store, save_task, make_task, now, monkeypatch
    ):
        """With completion-triggered recurrence, bulk completion spawns successors."""
        monkeypatch.setattr(settings, "recurrence_trigger", "completion")
        await save_task(make_task(id="t1", due_date=now, recurrence=RecurrencePattern(type=RecurrenceType.DAILY)))

        await apply_bulk_operation(task_store, ["t1"], CompleteOperation(), {"t1"}, "owner@example.com", now=now)

        tasks = await task_store.list_tasks_for_property("p1")
        assert len(tasks) == 2
        successor = next(t for t in tasks if t.id != "t1")
        assert successor.status == TaskStatus.PENDING
        assert successor.due_date == now + timedelta(days=1)

    async def test_task_properties_select_the_accessible_record(
        self, task_store, kv, save_task, make_task, now, monkeypatch
    ):
        """With known properties, tasks are read by key and never from another property."""
        await save_task(make_task(id="t1", property_id="p0"))
        await save_task(make_task(id="t1", property_id="p1"))
        keys_spy = AsyncMock(return_value=[])
        monkeypatch.setattr(kv, "keys", keys_spy)

        result = await apply_bulk_operation(
            task_store,
            ["t1"],
            PriorityOperation(value=TaskPriority.HIGH),
            {"t1"},
            "owner@example.com",
            task_properties={"t1": "p1"},
            now=now,
        )

        keys_spy.assert_not_awaited()
        assert [(t.property_id, t.priority) for t in result.tasks] == [("p1", TaskPriority.HIGH)]
        assert (await task_store.load_task("t1", property_id="p0")).priority == TaskPriority.MEDIUM

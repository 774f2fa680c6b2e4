"""Bulk mutation engine: apply one operation across many tasks."""

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from src.core.errors import EmptyOperationError, NoAccessibleTasksError, TaskServiceError
from src.core.logging import log_with_user_context, span
from src.domain.bulk import (
    AssignOperation,
    BulkOperation,
    CancelOperation,
    CategoryOperation,
    CompleteOperation,
    DeadlineOperation,
    PriorityOperation,
)
from src.domain.task import Task, TaskStatus
from src.models.service_models import BulkOperationResult
from src.modules.tasks.recurrence import schedule_after_completion
from src.modules.tasks.state_machine import apply_status, is_terminal
from src.modules.tasks.store import TaskStore


logger = logging.getLogger(__name__)


def _mutate(task: Task, operation: BulkOperation, *, actor: str, now: datetime) -> Task | None:
    """Apply the operation to one task, or return None to leave the task untouched."""
    update: dict[str, Any]
    match operation:
        case AssignOperation(value=assignees):
            update = {"assigned_to": list(assignees)}
        case PriorityOperation(value=priority):
            update = {"priority": priority}
        case CategoryOperation(value=category):
            update = {"category": category}
        case DeadlineOperation(value=due_date):
            update = {"due_date": due_date}
        case CompleteOperation():
            if is_terminal(task.status):
                return None
            return apply_status(task, TaskStatus.COMPLETED, now=now, actor=actor)
        case CancelOperation():
            if is_terminal(task.status):
                return None
            return apply_status(task, TaskStatus.CANCELLED, now=now)
        case _:
            return None
    return task.model_copy(update=update)


async def apply_bulk_operation(
    store: TaskStore,
    task_ids: list[str],
    operation: BulkOperation,
    accessible_task_ids: set[str],
    actor: str,
    *,
    task_properties: Mapping[str, str] | None = None,
    now: datetime | None = None,
) -> BulkOperationResult:
    """Apply one operation to every requested task the caller can access.

    Tasks that are inaccessible, missing, soft-deleted, unreadable or (for
    complete/cancel) already terminal are left out of the result rather than
    reported. Each task is written independently, so a failure partway through
    leaves earlier tasks updated.

    Args:
        store: Task store
        task_ids: Task IDs the caller asked to change
        operation: Typed bulk operation
        accessible_task_ids: Task IDs visible to the caller
        actor: User ID of the caller, recorded as ``completed_by``
        task_properties: Property of each accessible task, so tasks are read by key
            instead of being looked up across every property
        now: Current time

    Returns:
        Count and records of the tasks actually updated

    Raises:
        EmptyOperationError: If no task IDs were given
        NoAccessibleTasksError: If none of the task IDs are accessible
    """
    if not task_ids:
        raise EmptyOperationError("No task IDs provided")

    requested = list(dict.fromkeys(task_ids))
    targets = [task_id for task_id in requested if task_id in accessible_task_ids]
    if not targets:
        raise NoAccessibleTasksError("No accessible tasks found")

    moment = now or datetime.now(UTC)

    with span("bulk.apply_bulk_operation"):
        updated: list[Task] = []
        for task_id in targets:
            try:
                property_id = task_properties.get(task_id) if task_properties is not None else None
                task = await store.load_task(task_id, property_id=property_id)
                changed = _mutate(task, operation, actor=actor, now=moment)
                if changed is None:
                    continue
                saved = await store.save_task(changed, now=moment)
            except TaskServiceError as e:
                logger.warning("Bulk %s skipped task %s: %s", operation.operation, task_id, e)
                continue

            updated.append(saved)
            if isinstance(operation, CompleteOperation):
                await schedule_after_completion(store, saved, now=moment)

        log_with_user_context(
            logger,
            "info",
            "Bulk operation applied",
            user_id=actor,
            operation=operation.operation,
            requested=len(requested),
            updated=len(updated),
        )

        return BulkOperationResult(updated_count=len(updated), operation=operation.operation, tasks=updated)

"""Task service for CRUD operations, completion and soft deletion."""

import logging
from datetime import UTC, datetime
from typing import Any

from src.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from src.core.logging import log_with_user_context, span
from src.domain.create_models import TaskCompletion, TaskCreate, TaskUpdate, validate_payload
from src.domain.task import RecurrencePattern, Task, TaskCategory, TaskPriority, TaskStatus
from src.modules.tasks import recurrence, state_machine
from src.modules.tasks.analytics import sort_tasks
from src.modules.tasks.store import TaskStore, generate_task_id


logger = logging.getLogger(__name__)

# Patch fields that may not be cleared by sending null
_REQUIRED_PATCH_FIELDS = frozenset({"title", "description", "category", "priority", "assigned_to", "status"})


async def create_task(
    store: TaskStore,
    data: TaskCreate | dict[str, Any],
    *,
    property_id: str,
    created_by: str,
    now: datetime | None = None,
) -> Task:
    """Create a new task.

    With creation-triggered recurrence the next occurrence is scheduled right
    away; a scheduling failure is logged and does not fail the creation.

    Args:
        store: Task store
        data: Task fields
        property_id: Property the task belongs to
        created_by: User ID of the creator
        now: Current time

    Returns:
        Created task

    Raises:
        ValidationError: If the payload is invalid
    """
    with span("task_service.create_task"):
        payload = validate_payload(TaskCreate, data)
        moment = now or datetime.now(UTC)

        task = Task(
            id=generate_task_id(moment),
            property_id=property_id,
            title=payload.title,
            description=payload.description,
            instructions=payload.instructions,
            category=payload.category,
            priority=payload.priority,
            assigned_to=payload.assigned_to,
            created_by=created_by,
            created_at=moment,
            updated_at=moment,
            due_date=payload.due_date,
            estimated_duration=payload.estimated_duration,
            status=TaskStatus.PENDING,
            recurrence=RecurrencePattern(**payload.recurrence.model_dump()) if payload.recurrence else None,
            template_id=payload.template_id,
        )

        saved = await store.save_task(task, now=moment)
        log_with_user_context(logger, "info", "Created task", user_id=created_by, task_id=saved.id)

        await recurrence.schedule_after_creation(store, saved, now=moment)
        return saved


async def get_task(store: TaskStore, task_id: str, *, property_ids: list[str] | None = None) -> Task:
    """Get a live task, optionally restricted to a set of properties.

    Raises:
        NotFoundError: If the task does not exist, is deleted or is outside ``property_ids``
    """
    with span("task_service.get_task"):
        task = await store.load_task(task_id)
        if property_ids is not None and task.property_id not in property_ids:
            # Do not reveal tasks of other properties
            raise NotFoundError(f"Task not found: {task_id}")
        return task


async def list_tasks(
    store: TaskStore,
    property_ids: list[str],
    *,
    status: TaskStatus | None = None,
    category: TaskCategory | None = None,
    priority: TaskPriority | None = None,
    assigned_to: str | None = None,
    now: datetime | None = None,
) -> list[Task]:
    """List live tasks across properties, filtered and sorted by priority and due date.

    The status filter matches the status as readers see it, so ``Overdue``
    selects open tasks past their due date.
    """
    with span("task_service.list_tasks"):
        tasks = await store.list_tasks_for_properties(property_ids)

        if status is not None:
            tasks = [t for t in tasks if state_machine.effective_status(t, now) == status]
        if category is not None:
            tasks = [t for t in tasks if t.category == category]
        if priority is not None:
            tasks = [t for t in tasks if t.priority == priority]
        if assigned_to is not None:
            tasks = [t for t in tasks if assigned_to in t.assigned_to]

        return sort_tasks(tasks)


async def update_task(
    store: TaskStore,
    task_id: str,
    patch: TaskUpdate | dict[str, Any],
    *,
    actor: str,
    property_ids: list[str] | None = None,
    now: datetime | None = None,
) -> Task:
    """Apply a partial update to a task.

    Raises:
        NotFoundError: If the task does not exist
        ValidationError: If the patch is invalid
        InvalidStateTransitionError: If the status change is not allowed
    """
    with span("task_service.update_task"):
        update = validate_payload(TaskUpdate, patch)
        moment = now or datetime.now(UTC)
        task = await get_task(store, task_id, property_ids=property_ids)

        changes = {
            name: value
            for name, value in update.model_dump(exclude_unset=True).items()
            if value is not None or name not in _REQUIRED_PATCH_FIELDS
        }

        new_status = changes.pop("status", None)
        completing = False
        if new_status is not None and new_status != task.status:
            completing = new_status == TaskStatus.COMPLETED
            task = state_machine.apply_status(task, new_status, now=moment, actor=actor)

        saved = await store.save_task(task.model_copy(update=changes), now=moment)
        log_with_user_context(logger, "info", "Updated task", user_id=actor, task_id=task_id, fields=sorted(changes))

        if completing:
            await recurrence.schedule_after_completion(store, saved, now=moment)
        return saved


async def complete_task(
    store: TaskStore,
    task_id: str,
    completion: TaskCompletion | dict[str, Any],
    *,
    actor: str,
    property_ids: list[str] | None = None,
    now: datetime | None = None,
) -> Task:
    """Complete a task on behalf of one of its assignees.

    Raises:
        NotFoundError: If the task does not exist
        PermissionDeniedError: If the actor is not assigned to the task
        InvalidStateTransitionError: If the task is already completed or cancelled
    """
    with span("task_service.complete_task"):
        details = validate_payload(TaskCompletion, completion)
        moment = now or datetime.now(UTC)
        task = await get_task(store, task_id, property_ids=property_ids)

        if actor not in task.assigned_to:
            msg = "You are not assigned to this task"
            raise PermissionDeniedError(msg)

        completed = state_machine.apply_status(task, TaskStatus.COMPLETED, now=moment, actor=actor)
        completed = completed.model_copy(
            update={
                "completion_notes": details.completion_notes,
                "completion_photos": details.completion_photos,
                "quality_rating": details.quality_rating,
            }
        )

        saved = await store.save_task(completed, now=moment)
        log_with_user_context(logger, "info", "Completed task", user_id=actor, task_id=task_id)

        await recurrence.schedule_after_completion(store, saved, now=moment)
        return saved


async def add_completion_photos(
    store: TaskStore,
    task_id: str,
    photo_refs: list[str],
    *,
    actor: str,
    property_ids: list[str] | None = None,
    now: datetime | None = None,
) -> Task:
    """Append photo references to a task's completion photos.

    Raises:
        ValidationError: If no photo references are given
        NotFoundError: If the task does not exist
    """
    with span("task_service.add_completion_photos"):
        refs = [ref for ref in photo_refs if ref and ref.strip()]
        if not refs:
            msg = "No photos provided"
            raise ValidationError(msg)

        task = await get_task(store, task_id, property_ids=property_ids)
        updated = task.model_copy(update={"completion_photos": [*task.completion_photos, *refs]})

        saved = await store.save_task(updated, now=now)
        log_with_user_context(
            logger, "info", "Added completion photos", user_id=actor, task_id=task_id, count=len(refs)
        )
        return saved


async def delete_task(
    store: TaskStore,
    task_id: str,
    *,
    property_ids: list[str] | None = None,
    now: datetime | None = None,
) -> None:
    """Soft-delete a task so it disappears from listings and metrics.

    Raises:
        NotFoundError: If the task does not exist or is already deleted
    """
    with span("task_service.delete_task"):
        moment = now or datetime.now(UTC)
        task = await get_task(store, task_id, property_ids=property_ids)
        await store.save_task(task.model_copy(update={"deleted_at": moment}), now=moment)
        logger.info("Soft-deleted task %s", task_id)

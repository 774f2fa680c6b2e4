"""Recurrence engine: compute and persist the next occurrence of a recurring task."""

import logging
from datetime import UTC, datetime, timedelta

from dateutil.relativedelta import relativedelta

from src.core.config import settings
from src.core.dates import js_weekday
from src.core.errors import InvalidRecurrenceError, TaskServiceError
from src.core.logging import span
from src.domain.task import RecurrencePattern, RecurrenceType, Task, TaskStatus
from src.modules.tasks.store import TaskStore, generate_task_id


logger = logging.getLogger(__name__)


def calculate_next_due_date(due_date: datetime, pattern: RecurrencePattern) -> datetime:
    """Calculate the due date of the occurrence after ``due_date``.

    Monthly recurrence uses calendar arithmetic and clamps the day to the end
    of a shorter month (Jan 31 + 1 month is Feb 28/29).

    Raises:
        InvalidRecurrenceError: If a custom pattern has no days of the week
    """
    interval = pattern.interval

    if pattern.type == RecurrenceType.DAILY:
        return due_date + timedelta(days=interval)

    if pattern.type == RecurrenceType.WEEKLY:
        return due_date + timedelta(days=interval * 7)

    if pattern.type == RecurrenceType.MONTHLY:
        return due_date + relativedelta(months=interval)

    if pattern.type == RecurrenceType.CUSTOM:
        if not pattern.days_of_week:
            msg = "Custom recurrence requires at least one day of the week"
            raise InvalidRecurrenceError(msg)

        days = sorted(set(pattern.days_of_week))
        current_day = js_weekday(due_date)
        later_days = [day for day in days if day > current_day]
        if later_days:
            days_to_add = later_days[0] - current_day
        else:
            days_to_add = 7 - current_day + days[0]
        return due_date + timedelta(days=days_to_add)

    msg = f"Unsupported recurrence type: {pattern.type}"
    raise InvalidRecurrenceError(msg)


def rotate_assignees(assigned_to: list[str], *, rotation: bool) -> list[str]:
    """Assignee order for the next occurrence.

    With rotation on and more than one assignee the list becomes
    ``[old[1], ..., old[n-1], old[0]]``; otherwise it is copied unchanged.
    """
    if not rotation or len(assigned_to) <= 1:
        return list(assigned_to)
    return [*assigned_to[1:], assigned_to[0]]


def build_successor(task: Task, next_due: datetime, *, now: datetime, new_id: str) -> Task:
    """Clone a task into a fresh pending occurrence due at ``next_due``."""
    pattern = task.recurrence
    rotation = pattern.assignment_rotation if pattern else False

    return task.model_copy(
        update={
            "id": new_id,
            "due_date": next_due,
            "status": TaskStatus.PENDING,
            "assigned_to": rotate_assignees(task.assigned_to, rotation=rotation),
            "completed_at": None,
            "completed_by": None,
            "completion_notes": None,
            "quality_rating": None,
            "completion_photos": [],
            "deleted_at": None,
            "created_at": now,
            "updated_at": now,
        },
        deep=True,
    )


async def schedule_next_occurrence(store: TaskStore, task: Task, *, now: datetime | None = None) -> Task | None:
    """Persist the next occurrence of a recurring task.

    Never raises: a failure to schedule the successor must not undo the write
    that triggered it, so errors are logged and ``None`` is returned.

    Returns:
        The persisted successor, or None when nothing was scheduled
    """
    if task.recurrence is None or task.due_date is None:
        return None

    moment = now or datetime.now(UTC)

    with span("recurrence.schedule_next_occurrence"):
        try:
            next_due = calculate_next_due_date(task.due_date, task.recurrence)

            end_date = task.recurrence.end_date
            if end_date is not None and next_due > end_date:
                logger.info("Recurrence of task %s ended at %s", task.id, end_date.isoformat())
                return None

            successor = build_successor(task, next_due, now=moment, new_id=generate_task_id(moment))
            saved = await store.save_task(successor, now=moment)
        except (TaskServiceError, ValueError, OverflowError) as e:
            logger.warning("Failed to schedule next occurrence of task %s: %s", task.id, e)
            return None

        logger.info("Scheduled task %s as next occurrence of %s due %s", saved.id, task.id, next_due.isoformat())
        return saved


async def schedule_after_creation(store: TaskStore, task: Task, *, now: datetime | None = None) -> Task | None:
    """Schedule the next occurrence if recurrence is triggered by task creation."""
    if settings.recurrence_trigger != "creation":
        return None
    return await schedule_next_occurrence(store, task, now=now)


async def schedule_after_completion(store: TaskStore, task: Task, *, now: datetime | None = None) -> Task | None:
    """Schedule the next occurrence if recurrence is triggered by task completion."""
    if settings.recurrence_trigger != "completion":
        return None
    return await schedule_next_occurrence(store, task, now=now)

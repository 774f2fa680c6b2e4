"""Pure state transition functions for task lifecycle management."""

import logging
from datetime import UTC, datetime

from src.core.errors import InvalidStateTransitionError
from src.domain.task import Task, TaskStatus


logger = logging.getLogger(__name__)


TERMINAL_STATUSES: frozenset[TaskStatus] = frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED})

# Overdue is never a transition target; a persisted Overdue (legacy) behaves like Pending
TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.PENDING: {TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.CANCELLED},
    TaskStatus.OVERDUE: {TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.CANCELLED},
    TaskStatus.IN_PROGRESS: {TaskStatus.COMPLETED, TaskStatus.CANCELLED},
    TaskStatus.COMPLETED: set(),
    TaskStatus.CANCELLED: set(),
}


def is_terminal(status: TaskStatus) -> bool:
    """Check whether no transition leaves this status."""
    return status in TERMINAL_STATUSES


def is_overdue(task: Task, now: datetime | None = None) -> bool:
    """Check whether a task is overdue at ``now``.

    A task is overdue when it is not terminal and its due date has passed.
    Tasks without a due date are never overdue.
    """
    if task.due_date is None or is_terminal(task.status):
        return False
    return task.due_date < (now or datetime.now(UTC))


def effective_status(task: Task, now: datetime | None = None) -> TaskStatus:
    """Status as shown to readers, with Overdue derived from the due date."""
    if is_overdue(task, now):
        return TaskStatus.OVERDUE
    if task.status == TaskStatus.OVERDUE:
        # Legacy record whose due date moved or was cleared
        return TaskStatus.PENDING
    return task.status


def can_transition(current: TaskStatus, target: TaskStatus) -> bool:
    """Check whether ``current -> target`` is an allowed transition."""
    if current == target and not is_terminal(current):
        return True
    return target in TRANSITIONS.get(current, set())


def validate_transition(task: Task, target: TaskStatus) -> None:
    """Raise if the task cannot move to ``target``."""
    if not can_transition(task.status, target):
        msg = f"Cannot move task {task.id} from {task.status} to {target}"
        raise InvalidStateTransitionError(msg)


def apply_status(
    task: Task,
    target: TaskStatus,
    *,
    now: datetime | None = None,
    actor: str | None = None,
) -> Task:
    """Return a copy of the task in ``target`` status.

    Entering Completed stamps ``completed_at`` (and ``completed_by`` when an
    actor is supplied); any other status clears the completion stamps.
    """
    validate_transition(task, target)
    moment = now or datetime.now(UTC)

    if target == TaskStatus.COMPLETED:
        update: dict[str, object] = {"status": target, "completed_at": moment}
        if actor is not None:
            update["completed_by"] = actor
    else:
        update = {"status": target, "completed_at": None, "completed_by": None}

    logger.debug("Task %s: %s -> %s", task.id, task.status, target)
    return task.model_copy(update=update)

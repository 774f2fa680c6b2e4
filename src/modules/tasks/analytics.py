"""Aggregation engine: read-only derived views over task collections.

This module provides functions for:
- Counting overdue, completed and upcoming tasks
- Per-assignee and per-category metrics
- Daily productivity trends
- The personal dashboard and its productivity score

Key Concepts:
- Overdue: derived at read time from the due date, never a stored fact.
- Productivity Score: completion rate minus an overdue penalty plus a bonus
  for this week's completions, clamped to 0..100.
- Week: starts on Sunday at 00:00 UTC.

Every function takes ``now`` explicitly and never mutates its input.
"""

import logging
import math
from collections import defaultdict
from datetime import UTC, datetime, timedelta

from src.core.config import Constants
from src.core.dates import day_bounds, week_start
from src.domain.task import PRIORITY_RANK, Task, TaskCategory, TaskStatus
from src.models.service_models import (
    CategoryMetrics,
    PersonalDashboard,
    ProductivityTrend,
    TaskActivity,
    TaskMetrics,
    UserTaskMetrics,
)


logger = logging.getLogger(__name__)

_OPEN_EXCLUDED = frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED})
_END_OF_TIME = datetime.max.replace(tzinfo=UTC)


def _counts_as_overdue(task: Task, now: datetime) -> bool:
    if task.status == TaskStatus.OVERDUE:
        return True
    return task.due_date is not None and task.due_date < now and task.status != TaskStatus.COMPLETED


def _completion_hours(task: Task) -> float | None:
    if task.completed_at is None:
        return None
    return (task.completed_at - task.created_at).total_seconds() / 3600


def _average_completion_hours(tasks: list[Task]) -> float:
    hours = [h for h in (_completion_hours(t) for t in tasks) if h is not None]
    return sum(hours) / len(hours) if hours else 0.0


def _percentage(part: int, whole: int) -> float:
    return part / whole * 100 if whole else 0.0


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def overdue_count(tasks: list[Task], now: datetime) -> int:
    """Count tasks that are overdue at ``now``.

    A task counts when its stored status is Overdue, or when its due date has
    passed and it is not Completed.
    """
    return sum(1 for task in tasks if _counts_as_overdue(task, now))


def completed_in_window(tasks: list[Task], start: datetime, end: datetime) -> int:
    """Count Completed tasks whose completion falls within ``[start, end]``."""
    return sum(
        1
        for task in tasks
        if task.status == TaskStatus.COMPLETED and task.completed_at is not None and start <= task.completed_at <= end
    )


def upcoming_deadlines(
    tasks: list[Task],
    now: datetime,
    horizon_days: int = Constants.UPCOMING_DEADLINE_DAYS,
    limit: int = Constants.UPCOMING_DEADLINE_LIMIT,
) -> list[Task]:
    """Tasks not yet Completed that fall due within the next ``horizon_days``, soonest first."""
    horizon = now + timedelta(days=horizon_days)
    upcoming = [
        task
        for task in tasks
        if task.due_date is not None and now <= task.due_date <= horizon and task.status != TaskStatus.COMPLETED
    ]
    upcoming.sort(key=lambda t: t.due_date or _END_OF_TIME)
    return upcoming[:limit]


def workload_by_category(tasks: list[Task]) -> dict[TaskCategory, int]:
    """Open task count for every category, including zero counts."""
    workload = dict.fromkeys(TaskCategory, 0)
    for task in tasks:
        if task.status not in _OPEN_EXCLUDED:
            workload[task.category] += 1
    return workload


def productivity_score(assigned_tasks: list[Task], now: datetime) -> int:
    """Composite 0..100 score for a user's assigned tasks.

    ``completion rate - min(10 * overdue, 30) + min(2 * completed this week, 20)``,
    clamped and rounded half up.
    """
    total = len(assigned_tasks)
    completed = sum(1 for t in assigned_tasks if t.status == TaskStatus.COMPLETED)
    completion_rate = _percentage(completed, total)

    overdue_penalty = min(
        overdue_count(assigned_tasks, now) * Constants.OVERDUE_PENALTY_PER_TASK,
        Constants.OVERDUE_PENALTY_CAP,
    )
    completed_this_week = completed_in_window(assigned_tasks, week_start(now), _END_OF_TIME)
    activity_bonus = min(
        completed_this_week * Constants.RECENT_ACTIVITY_BONUS_PER_TASK,
        Constants.RECENT_ACTIVITY_BONUS_CAP,
    )

    score = max(0.0, min(float(Constants.PRODUCTIVITY_SCORE_MAX), completion_rate - overdue_penalty + activity_bonus))
    return _round_half_up(score)


def user_metrics(
    tasks: list[Task],
    now: datetime,
    user_names: dict[str, str] | None = None,
) -> dict[str, UserTaskMetrics]:
    """Metrics for every assignee; a task with N assignees counts once for each."""
    by_user: dict[str, list[Task]] = defaultdict(list)
    for task in tasks:
        for user_id in task.assigned_to:
            by_user[user_id].append(task)

    names = user_names or {}
    metrics: dict[str, UserTaskMetrics] = {}
    for user_id, user_tasks in by_user.items():
        completed = [t for t in user_tasks if t.status == TaskStatus.COMPLETED]
        ratings = [t.quality_rating for t in completed if t.quality_rating]
        metrics[user_id] = UserTaskMetrics(
            user_id=user_id,
            user_name=names.get(user_id) or f"User {user_id[-4:]}",
            total_assigned=len(user_tasks),
            total_completed=len(completed),
            completion_rate=_percentage(len(completed), len(user_tasks)),
            average_completion_time=_average_completion_hours(completed),
            overdue_count=overdue_count(user_tasks, now),
            quality_rating=sum(ratings) / len(ratings) if ratings else 0.0,
        )

    return metrics


def category_metrics(tasks: list[Task], now: datetime) -> dict[TaskCategory, CategoryMetrics]:
    """Metrics for every category, including empty ones."""
    metrics: dict[TaskCategory, CategoryMetrics] = {}
    for category in TaskCategory:
        category_tasks = [t for t in tasks if t.category == category]
        completed = [t for t in category_tasks if t.status == TaskStatus.COMPLETED]
        metrics[category] = CategoryMetrics(
            category=category,
            total_tasks=len(category_tasks),
            completed_tasks=len(completed),
            average_completion_time=_average_completion_hours(completed),
            overdue_rate=_percentage(overdue_count(category_tasks, now), len(category_tasks)),
        )
    return metrics


def productivity_trends(
    tasks: list[Task],
    now: datetime,
    days: int = Constants.PRODUCTIVITY_TREND_DAYS,
) -> list[ProductivityTrend]:
    """Daily completed/created counts for the ``days`` days before today, oldest first."""
    trends: list[ProductivityTrend] = []
    for offset in range(days, 0, -1):
        start, end = day_bounds(now - timedelta(days=offset))
        completed = [t for t in tasks if t.completed_at is not None and start <= t.completed_at <= end]
        created = sum(1 for t in tasks if start <= t.created_at <= end)
        trends.append(
            ProductivityTrend(
                date=start,
                tasks_completed=len(completed),
                tasks_created=created,
                average_completion_time=_average_completion_hours(completed),
            )
        )
    return trends


def sort_tasks(tasks: list[Task]) -> list[Task]:
    """Sort by priority (highest first), then due date (missing last), then newest first."""

    def key(task: Task) -> tuple[int, float, float]:
        due = task.due_date.timestamp() if task.due_date else math.inf
        return (-PRIORITY_RANK.get(task.priority, 0), due, -task.created_at.timestamp())

    return sorted(tasks, key=key)


def task_metrics(tasks: list[Task], now: datetime, user_names: dict[str, str] | None = None) -> TaskMetrics:
    """Portfolio-wide metrics over every live task."""
    completed = [t for t in tasks if t.status == TaskStatus.COMPLETED]

    return TaskMetrics(
        completion_rate=_percentage(len(completed), len(tasks)),
        average_completion_time=_average_completion_hours(completed),
        overdue_rate=_percentage(overdue_count(tasks, now), len(tasks)),
        tasks_by_user=user_metrics(tasks, now, user_names),
        tasks_by_category=category_metrics(tasks, now),
        productivity_trends=productivity_trends(tasks, now),
    )


def recent_activity(assigned_tasks: list[Task], user_id: str, user_name: str) -> list[TaskActivity]:
    """Latest completions among a user's tasks, newest first."""
    completed = sorted(
        (t for t in assigned_tasks if t.completed_at is not None),
        key=lambda t: t.completed_at or t.created_at,
        reverse=True,
    )[: Constants.RECENT_ACTIVITY_LIMIT]

    return [
        TaskActivity(
            id=f"activity-{task.id}-{index}",
            task_id=task.id,
            task_title=task.title,
            action="completed",
            timestamp=task.completed_at or task.created_at,
            user_id=user_id,
            user_name=user_name,
            details=task.completion_notes,
        )
        for index, task in enumerate(completed)
    ]


def personal_dashboard(user_id: str, user_name: str, tasks: list[Task], now: datetime) -> PersonalDashboard:
    """Summary of the work assigned to one user.

    Tasks with no assignees never appear here.
    """
    assigned = [t for t in tasks if user_id in t.assigned_to]
    today_start, today_end = day_bounds(now)

    dashboard = PersonalDashboard(
        user_id=user_id,
        assigned_tasks=[t for t in assigned if t.status not in _OPEN_EXCLUDED],
        completed_today=completed_in_window(assigned, today_start, today_end),
        completed_this_week=completed_in_window(assigned, week_start(now), _END_OF_TIME),
        overdue_count=overdue_count(assigned, now),
        upcoming_deadlines=upcoming_deadlines(assigned, now),
        workload_distribution=workload_by_category(assigned),
        productivity_score=productivity_score(assigned, now),
        recent_activity=recent_activity(assigned, user_id, user_name or "You"),
    )

    logger.debug("Built dashboard for %s over %d assigned tasks", user_id, len(assigned))
    return dashboard

"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, turning task
collections into typed, read-only views.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from src.domain.task import Task, TaskCategory


class BulkOperationResult(BaseModel):
    """Outcome of a bulk task operation."""

    updated_count: int
    operation: str | None
    tasks: list[Task]


class UserTaskMetrics(BaseModel):
    """Per-assignee task statistics."""

    user_id: str
    user_name: str
    total_assigned: int
    total_completed: int
    completion_rate: float
    average_completion_time: float = Field(description="Hours from creation to completion")
    overdue_count: int
    quality_rating: float


class CategoryMetrics(BaseModel):
    """Per-category task statistics."""

    category: TaskCategory
    total_tasks: int
    completed_tasks: int
    average_completion_time: float
    overdue_rate: float


class ProductivityTrend(BaseModel):
    """Task throughput for one calendar day."""

    date: datetime
    tasks_completed: int
    tasks_created: int
    average_completion_time: float


class TaskMetrics(BaseModel):
    """Portfolio-wide task metrics."""

    completion_rate: float
    average_completion_time: float
    overdue_rate: float
    tasks_by_user: dict[str, UserTaskMetrics]
    tasks_by_category: dict[TaskCategory, CategoryMetrics]
    productivity_trends: list[ProductivityTrend]


class TaskActivity(BaseModel):
    """Entry in a user's recent activity feed."""

    id: str
    task_id: str
    task_title: str
    action: str
    timestamp: datetime
    user_id: str
    user_name: str
    details: str | None = None


class PersonalDashboard(BaseModel):
    """Summary of one user's assigned work."""

    user_id: str
    assigned_tasks: list[Task]
    completed_today: int
    completed_this_week: int
    overdue_count: int
    upcoming_deadlines: list[Task]
    workload_distribution: dict[TaskCategory, int]
    productivity_score: int
    recent_activity: list[TaskActivity]


class TaskSearchResult(BaseModel):
    """A matching task with its relevance."""

    task: Task
    relevance_score: float
    matched_fields: list[str]


class TaskSearchResponse(BaseModel):
    """Paginated search results."""

    results: list[TaskSearchResult]
    total: int
    query: str

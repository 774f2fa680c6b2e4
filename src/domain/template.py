"""Task template domain model."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.domain.task import RecurrencePattern, TaskCategory, TaskPriority


class TaskTemplate(BaseModel):
    """Reusable blueprint for creating tasks."""

    id: str
    name: str
    description: str
    instructions: str | None = None
    category: TaskCategory
    priority: TaskPriority
    estimated_duration: int | None = None
    default_recurrence: RecurrencePattern | None = None
    is_public: bool = False
    created_by: str
    usage_count: int = Field(default=0, ge=0)
    created_at: datetime
    updated_at: datetime

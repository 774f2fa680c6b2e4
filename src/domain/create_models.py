"""Pydantic models for creating and changing task records."""

from datetime import datetime
from typing import Any, TypeVar

import pydantic
from pydantic import BaseModel, Field, field_validator

from src.core.config import Constants
from src.core.dates import to_utc
from src.core.errors import ValidationError
from src.domain.task import RecurrenceType, TaskCategory, TaskPriority, TaskStatus


ModelT = TypeVar("ModelT", bound=BaseModel)


def validate_payload(model: type[ModelT], data: ModelT | dict[str, Any]) -> ModelT:
    """Validate raw input into a model, raising the service ValidationError on failure."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        details = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        raise ValidationError(f"Validation failed: {details}") from e


def _aware(value: datetime | None) -> datetime | None:
    return to_utc(value) if value is not None else None


class RecurrenceCreate(BaseModel):
    """Recurrence pattern supplied when creating a task or template."""

    type: RecurrenceType
    interval: int = Field(..., gt=0)
    days_of_week: list[int] | None = None
    end_date: datetime | None = None
    assignment_rotation: bool = False

    @field_validator("days_of_week")
    @classmethod
    def validate_days_of_week(cls, v: list[int] | None) -> list[int] | None:
        """Validate days are 0 (Sunday) through 6 (Saturday)."""
        if v is not None and any(day < 0 or day > 6 for day in v):  # noqa: PLR2004
            msg = "Days of week must be between 0 (Sunday) and 6 (Saturday)"
            raise ValueError(msg)
        return v

    @field_validator("end_date")
    @classmethod
    def normalize_end_date(cls, v: datetime | None) -> datetime | None:
        """Store end dates as aware UTC datetimes."""
        return _aware(v)


class TaskCreate(BaseModel):
    """Pydantic model for creating a task."""

    title: str = Field(..., min_length=1, description="Task title")
    description: str = Field(..., min_length=1, description="Task description")
    instructions: str | None = None
    category: TaskCategory
    priority: TaskPriority
    assigned_to: list[str] = Field(default_factory=list)
    due_date: datetime | None = None
    estimated_duration: int | None = Field(default=None, gt=0)
    recurrence: RecurrenceCreate | None = None
    template_id: str | None = None

    @field_validator("title", "description")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Reject whitespace-only text."""
        if not v.strip():
            msg = "Field must not be blank"
            raise ValueError(msg)
        return v

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, v: datetime | None) -> datetime | None:
        """Store due dates as aware UTC datetimes."""
        return _aware(v)


class TaskUpdate(BaseModel):
    """Partial update for a task. Only fields that are set are applied."""

    title: str | None = Field(default=None, min_length=1)
    description: str | None = Field(default=None, min_length=1)
    instructions: str | None = None
    category: TaskCategory | None = None
    priority: TaskPriority | None = None
    assigned_to: list[str] | None = None
    due_date: datetime | None = None
    estimated_duration: int | None = Field(default=None, gt=0)
    status: TaskStatus | None = None

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, v: datetime | None) -> datetime | None:
        """Store due dates as aware UTC datetimes."""
        return _aware(v)

    @field_validator("status")
    @classmethod
    def reject_overdue(cls, v: TaskStatus | None) -> TaskStatus | None:
        """Overdue is derived from the due date and cannot be set directly."""
        if v == TaskStatus.OVERDUE:
            msg = "Overdue status is derived from the due date and cannot be set"
            raise ValueError(msg)
        return v


class TaskCompletion(BaseModel):
    """Completion details recorded when a task is completed."""

    completion_notes: str | None = None
    completion_photos: list[str] = Field(default_factory=list)
    quality_rating: float | None = Field(
        default=None,
        ge=Constants.QUALITY_RATING_MIN,
        le=Constants.QUALITY_RATING_MAX,
    )


class TemplateCreate(BaseModel):
    """Pydantic model for creating a task template."""

    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    instructions: str | None = None
    category: TaskCategory
    priority: TaskPriority
    estimated_duration: int | None = Field(default=None, gt=0)
    default_recurrence: RecurrenceCreate | None = None
    is_public: bool = False

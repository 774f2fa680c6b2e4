"""Task domain models and enums."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from src.core.dates import to_utc


class TaskCategory(StrEnum):
    """Kind of property-operational work."""

    CLEANING = "Cleaning"
    MAINTENANCE = "Maintenance"
    ADMINISTRATIVE = "Administrative"
    INSPECTION = "Inspection"
    EMERGENCY = "Emergency"
    OTHER = "Other"


class TaskPriority(StrEnum):
    """Task priority, ordered Low < Medium < High < Critical."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


PRIORITY_RANK: dict[str, int] = {
    TaskPriority.CRITICAL: 4,
    TaskPriority.HIGH: 3,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 1,
}


class TaskStatus(StrEnum):
    """Task lifecycle status.

    OVERDUE is a read-time classification; it is only persisted by legacy records.
    """

    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    OVERDUE = "Overdue"
    CANCELLED = "Cancelled"


class RecurrenceType(StrEnum):
    """How often a recurring task repeats."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class RecurrencePattern(BaseModel):
    """Rule for spawning the next occurrence of a task."""

    type: RecurrenceType
    interval: int = Field(default=1, ge=1, description="Number of days/weeks/months between occurrences")
    days_of_week: list[int] | None = Field(default=None, description="0=Sunday..6=Saturday, custom type only")
    end_date: datetime | None = Field(default=None, description="No occurrence is scheduled after this date")
    assignment_rotation: bool = Field(default=False, description="Rotate assignees between occurrences")

    @field_validator("end_date")
    @classmethod
    def normalize_end_date(cls, v: datetime | None) -> datetime | None:
        """Read end dates without a timezone as UTC."""
        return to_utc(v) if v is not None else None


class Task(BaseModel):
    """Task data transfer object."""

    id: str = Field(..., description="Unique task ID within a property")
    property_id: str = Field(..., description="Owning property ID")
    title: str = Field(..., description="Task title")
    description: str = Field(default="", description="Detailed task description")
    instructions: str | None = Field(default=None, description="Optional step-by-step instructions")
    category: TaskCategory = Field(default=TaskCategory.OTHER)
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    assigned_to: list[str] = Field(default_factory=list, description="Ordered assignee user IDs")
    created_by: str | None = Field(default=None, description="User who created the task")
    created_at: datetime
    updated_at: datetime
    due_date: datetime | None = None
    completed_at: datetime | None = None
    estimated_duration: int | None = Field(default=None, description="Estimated duration in minutes")
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    completed_by: str | None = None
    completion_notes: str | None = None
    quality_rating: float | None = Field(default=None, description="Completion quality rating (1-5)")
    completion_photos: list[str] = Field(default_factory=list, description="Completion photo references")
    recurrence: RecurrencePattern | None = None
    template_id: str | None = None
    deleted_at: datetime | None = None

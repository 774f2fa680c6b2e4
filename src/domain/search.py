"""Task search request models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from src.core.config import Constants
from src.core.dates import to_utc
from src.domain.task import TaskCategory, TaskPriority, TaskStatus


class DateRange(BaseModel):
    """Inclusive due-date range."""

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def normalize(cls, v: datetime) -> datetime:
        """Compare ranges in UTC."""
        return to_utc(v)


class TaskSearchFilters(BaseModel):
    """Filters applied before text matching; empty lists match everything."""

    status: list[TaskStatus] = Field(default_factory=list)
    priority: list[TaskPriority] = Field(default_factory=list)
    category: list[TaskCategory] = Field(default_factory=list)
    assignee: list[str] = Field(default_factory=list)
    date_range: DateRange | None = None


class TaskSearchQuery(BaseModel):
    """Full-text task search request."""

    query: str
    filters: TaskSearchFilters = Field(default_factory=TaskSearchFilters)
    sort_by: str = Field(default="relevance", description="'relevance' or a task field name")
    sort_order: Literal["asc", "desc"] = "desc"
    limit: int = Field(default=Constants.SEARCH_DEFAULT_LIMIT, ge=1, le=100)
    offset: int = Field(default=0, ge=0)

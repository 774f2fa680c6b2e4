"""Bulk task operation requests, modelled as a union tagged by the operation name."""

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal, Union

import pydantic
from pydantic import BaseModel, Discriminator, Field, Tag, TypeAdapter, field_validator

from src.core.dates import to_utc
from src.core.errors import ValidationError
from src.domain.task import TaskCategory, TaskPriority


class BulkOperationType(StrEnum):
    """Operations that can be applied to many tasks at once."""

    ASSIGN = "assign"
    PRIORITY = "priority"
    CATEGORY = "category"
    DEADLINE = "deadline"
    COMPLETE = "complete"
    CANCEL = "cancel"


class _BulkOperationBase(BaseModel):
    task_ids: list[str] = Field(default_factory=list, description="Task IDs the caller wants to change")


class AssignOperation(_BulkOperationBase):
    """Replace the assignee list of every task."""

    operation: Literal["assign"] = "assign"
    value: list[str]


class PriorityOperation(_BulkOperationBase):
    """Set the priority of every task."""

    operation: Literal["priority"] = "priority"
    value: TaskPriority


class CategoryOperation(_BulkOperationBase):
    """Set the category of every task."""

    operation: Literal["category"] = "category"
    value: TaskCategory


class DeadlineOperation(_BulkOperationBase):
    """Set the due date of every task."""

    operation: Literal["deadline"] = "deadline"
    value: datetime

    @field_validator("value")
    @classmethod
    def normalize_value(cls, v: datetime) -> datetime:
        """Store deadlines as aware UTC datetimes."""
        return to_utc(v)


class CompleteOperation(_BulkOperationBase):
    """Mark every task completed by the caller."""

    operation: Literal["complete"] = "complete"
    value: bool | None = None


class CancelOperation(_BulkOperationBase):
    """Cancel every task."""

    operation: Literal["cancel"] = "cancel"
    value: bool | None = None


class UnknownOperation(_BulkOperationBase):
    """An operation name this version does not understand; tasks are left untouched."""

    operation: str | None = None
    value: Any = None


def _operation_tag(data: Any) -> str:  # noqa: ANN401
    operation = data.get("operation") if isinstance(data, dict) else getattr(data, "operation", None)
    if operation in {op.value for op in BulkOperationType}:
        return str(operation)
    return "unknown"


BulkOperation = Annotated[
    Union[  # noqa: UP007
        Annotated[AssignOperation, Tag(BulkOperationType.ASSIGN.value)],
        Annotated[PriorityOperation, Tag(BulkOperationType.PRIORITY.value)],
        Annotated[CategoryOperation, Tag(BulkOperationType.CATEGORY.value)],
        Annotated[DeadlineOperation, Tag(BulkOperationType.DEADLINE.value)],
        Annotated[CompleteOperation, Tag(BulkOperationType.COMPLETE.value)],
        Annotated[CancelOperation, Tag(BulkOperationType.CANCEL.value)],
        Annotated[UnknownOperation, Tag("unknown")],
    ],
    Discriminator(_operation_tag),
]

_bulk_operation_adapter: TypeAdapter[BulkOperation] = TypeAdapter(BulkOperation)


def parse_bulk_operation(data: dict[str, Any]) -> BulkOperation:
    """Validate a raw bulk request into its typed operation variant.

    Raises:
        ValidationError: If the payload does not match the operation's value type
    """
    try:
        return _bulk_operation_adapter.validate_python(data)
    except pydantic.ValidationError as e:
        details = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        raise ValidationError(f"Validation failed: {details}") from e

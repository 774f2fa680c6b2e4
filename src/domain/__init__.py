"""Domain models and DTOs."""

from src.domain.bulk import BulkOperation, BulkOperationType, parse_bulk_operation
from src.domain.create_models import TaskCompletion, TaskCreate, TaskUpdate, TemplateCreate
from src.domain.task import RecurrencePattern, RecurrenceType, Task, TaskCategory, TaskPriority, TaskStatus
from src.domain.template import TaskTemplate
from src.domain.user import UserAccess, UserRole


__all__ = [
    "BulkOperation",
    "BulkOperationType",
    "RecurrencePattern",
    "RecurrenceType",
    "Task",
    "TaskCategory",
    "TaskCompletion",
    "TaskCreate",
    "TaskPriority",
    "TaskStatus",
    "TaskTemplate",
    "TaskUpdate",
    "TemplateCreate",
    "UserAccess",
    "UserRole",
    "parse_bulk_operation",
]

"""Error taxonomy and classification utilities for task operations."""

from enum import Enum

from pydantic import BaseModel


class TaskServiceError(Exception):
    """Base class for all task service errors."""


class NotFoundError(TaskServiceError):
    """Referenced task, template, property or user does not exist or is soft-deleted."""


class StoreCorruptionError(TaskServiceError):
    """A stored record could not be decoded."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Corrupt record at {key}: {reason}")
        self.key = key
        self.reason = reason


class StoreUnavailableError(TaskServiceError):
    """The key-value store is not configured or not reachable."""


class EmptyOperationError(TaskServiceError):
    """A bulk operation was requested without any task IDs."""


class NoAccessibleTasksError(TaskServiceError):
    """None of the requested task IDs are visible to the caller."""


class InvalidRecurrenceError(TaskServiceError):
    """A recurrence pattern cannot produce a next occurrence."""


class ValidationError(TaskServiceError):
    """Malformed input to a task operation."""


class InvalidStateTransitionError(TaskServiceError):
    """Requested status change is not allowed from the current status."""


class PermissionDeniedError(TaskServiceError):
    """Caller is not allowed to act on the task."""


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_EMPTY_OPERATION = "ERR_EMPTY_OPERATION"
    ERR_NO_ACCESSIBLE_TASKS = "ERR_NO_ACCESSIBLE_TASKS"
    ERR_INVALID_STATE_TRANSITION = "ERR_INVALID_STATE_TRANSITION"
    ERR_INVALID_RECURRENCE_PATTERN = "ERR_INVALID_RECURRENCE_PATTERN"
    ERR_PERMISSION_DENIED = "ERR_PERMISSION_DENIED"
    ERR_STORE_CORRUPTION = "ERR_STORE_CORRUPTION"
    ERR_STORE_UNAVAILABLE = "ERR_STORE_UNAVAILABLE"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity
    http_status: int


def classify_error_with_response(exception: Exception) -> ErrorResponse:  # noqa: PLR0911
    """Classify an error and return a structured response with recovery suggestions.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, severity and HTTP status
    """
    if isinstance(exception, NotFoundError):
        return ErrorResponse(
            code=ErrorCode.ERR_NOT_FOUND,
            message=str(exception) or "Not found.",
            suggestion="Check the ID and make sure the item has not been deleted.",
            severity=ErrorSeverity.LOW,
            http_status=404,
        )

    if isinstance(exception, ValidationError):
        return ErrorResponse(
            code=ErrorCode.ERR_VALIDATION,
            message=str(exception),
            suggestion="Fix the highlighted fields and try again.",
            severity=ErrorSeverity.LOW,
            http_status=400,
        )

    if isinstance(exception, EmptyOperationError):
        return ErrorResponse(
            code=ErrorCode.ERR_EMPTY_OPERATION,
            message="No task IDs provided.",
            suggestion="Select at least one task.",
            severity=ErrorSeverity.LOW,
            http_status=400,
        )

    if isinstance(exception, NoAccessibleTasksError):
        return ErrorResponse(
            code=ErrorCode.ERR_NO_ACCESSIBLE_TASKS,
            message="No accessible tasks found.",
            suggestion="You can only change tasks that belong to your properties.",
            severity=ErrorSeverity.MEDIUM,
            http_status=403,
        )

    if isinstance(exception, PermissionDeniedError):
        return ErrorResponse(
            code=ErrorCode.ERR_PERMISSION_DENIED,
            message=str(exception) or "Permission denied.",
            suggestion="Ask a property manager to assign the task to you.",
            severity=ErrorSeverity.MEDIUM,
            http_status=403,
        )

    if isinstance(exception, InvalidStateTransitionError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_STATE_TRANSITION,
            message=str(exception),
            suggestion="Reload the task to see its current status.",
            severity=ErrorSeverity.LOW,
            http_status=409,
        )

    if isinstance(exception, InvalidRecurrenceError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_RECURRENCE_PATTERN,
            message=str(exception),
            suggestion="Custom recurrence needs at least one day of the week.",
            severity=ErrorSeverity.LOW,
            http_status=400,
        )

    if isinstance(exception, StoreCorruptionError):
        return ErrorResponse(
            code=ErrorCode.ERR_STORE_CORRUPTION,
            message="The stored task record is damaged.",
            suggestion="Contact support with the task ID.",
            severity=ErrorSeverity.HIGH,
            http_status=500,
        )

    if isinstance(exception, StoreUnavailableError):
        return ErrorResponse(
            code=ErrorCode.ERR_STORE_UNAVAILABLE,
            message="The task store is unavailable.",
            suggestion="Please try again in a moment.",
            severity=ErrorSeverity.CRITICAL,
            http_status=503,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later.",
        severity=ErrorSeverity.HIGH,
        http_status=500,
    )

"""Unit tests for error classification utilities."""

import pytest

from src.core.errors import (
    EmptyOperationError,
    ErrorCode,
    ErrorSeverity,
    InvalidRecurrenceError,
    InvalidStateTransitionError,
    NoAccessibleTasksError,
    NotFoundError,
    PermissionDeniedError,
    StoreCorruptionError,
    StoreUnavailableError,
    TaskServiceError,
    ValidationError,
    classify_error_with_response,
)


@pytest.mark.unit
class TestClassifyErrorWithResponse:
    """Tests for classify_error_with_response function."""

    @pytest.mark.parametrize(
        ("exception", "code", "status"),
        [
            (NotFoundError("Task not found: t1"), ErrorCode.ERR_NOT_FOUND, 404),
            (ValidationError("title: required"), ErrorCode.ERR_VALIDATION, 400),
            (EmptyOperationError(), ErrorCode.ERR_EMPTY_OPERATION, 400),
            (NoAccessibleTasksError(), ErrorCode.ERR_NO_ACCESSIBLE_TASKS, 403),
            (PermissionDeniedError("no"), ErrorCode.ERR_PERMISSION_DENIED, 403),
            (InvalidStateTransitionError("x"), ErrorCode.ERR_INVALID_STATE_TRANSITION, 409),
            (InvalidRecurrenceError("x"), ErrorCode.ERR_INVALID_RECURRENCE_PATTERN, 400),
            (StoreCorruptionError("task:p1:t1", "bad json"), ErrorCode.ERR_STORE_CORRUPTION, 500),
            (StoreUnavailableError("down"), ErrorCode.ERR_STORE_UNAVAILABLE, 503),
        ],
    )
    def test_error_mapping(self, exception, code, status):
        """Each service error maps to its code and HTTP status."""
        response = classify_error_with_response(exception)

        assert response.code == code
        assert response.http_status == status
        assert response.suggestion

    def test_not_found_keeps_message(self):
        """Not-found responses carry the original message."""
        response = classify_error_with_response(NotFoundError("Task not found: t1"))

        assert response.message == "Task not found: t1"
        assert response.severity == ErrorSeverity.LOW

    def test_corruption_hides_details(self):
        """Corruption details are not echoed to callers."""
        response = classify_error_with_response(StoreCorruptionError("task:p1:t1", "Expecting value"))

        assert "Expecting value" not in response.message
        assert response.severity == ErrorSeverity.HIGH

    def test_unknown_error(self):
        """Unexpected exceptions map to a generic 500."""
        response = classify_error_with_response(RuntimeError("boom"))

        assert response.code == ErrorCode.ERR_UNKNOWN
        assert response.http_status == 500
        assert "boom" not in response.message


@pytest.mark.unit
class TestErrorHierarchy:
    """Tests for the error class hierarchy."""

    def test_all_errors_share_base(self):
        """Service errors can be caught with one except clause."""
        for error in (NotFoundError, ValidationError, StoreUnavailableError, PermissionDeniedError):
            assert issubclass(error, TaskServiceError)

    def test_corruption_error_keeps_key(self):
        """StoreCorruptionError exposes the damaged key."""
        error = StoreCorruptionError("task:p1:t1", "bad")

        assert error.key == "task:p1:t1"
        assert "task:p1:t1" in str(error)

"""Unit tests for task status transitions and overdue derivation."""

from datetime import timedelta

import pytest

from src.core.errors import InvalidStateTransitionError
from src.domain.task import TaskStatus
from src.modules.tasks.state_machine import (
    apply_status,
    can_transition,
    effective_status,
    is_overdue,
    validate_transition,
)


@pytest.mark.unit
class TestIsOverdue:
    """Tests for read-time overdue classification."""

    def test_no_due_date_is_never_overdue(self, make_task, now):
        """Tasks without a due date are never overdue."""
        task = make_task(due_date=None)

        assert is_overdue(task, now) is False
        assert is_overdue(task, now + timedelta(days=3650)) is False

    def test_completed_is_never_overdue(self, make_task, now):
        """Completed tasks are not overdue regardless of due date."""
        task = make_task(status=TaskStatus.COMPLETED, completed_at=now, due_date=now - timedelta(days=30))

        assert is_overdue(task, now) is False

    def test_cancelled_is_never_overdue(self, make_task, now):
        """Cancelled tasks are not overdue."""
        task = make_task(status=TaskStatus.CANCELLED, due_date=now - timedelta(days=1))

        assert is_overdue(task, now) is False

    @pytest.mark.parametrize("status", [TaskStatus.PENDING, TaskStatus.IN_PROGRESS])
    def test_open_task_past_due_is_overdue(self, make_task, now, status):
        """Open tasks past their due date are overdue."""
        task = make_task(status=status, due_date=now - timedelta(minutes=1))

        assert is_overdue(task, now) is True

    def test_due_exactly_now_is_not_overdue(self, make_task, now):
        """The due instant itself is not yet overdue."""
        task = make_task(due_date=now)

        assert is_overdue(task, now) is False


@pytest.mark.unit
class TestEffectiveStatus:
    """Tests for the status shown to readers."""

    def test_past_due_pending_reads_as_overdue(self, make_task, now):
        """Overdue is derived without being persisted."""
        task = make_task(due_date=now - timedelta(days=1))

        assert effective_status(task, now) == TaskStatus.OVERDUE
        assert task.status == TaskStatus.PENDING

    def test_legacy_overdue_not_past_due_reads_as_pending(self, make_task, now):
        """A stored Overdue whose due date moved ahead reads as Pending."""
        task = make_task(status=TaskStatus.OVERDUE, due_date=now + timedelta(days=1))

        assert effective_status(task, now) == TaskStatus.PENDING


@pytest.mark.unit
class TestTransitions:
    """Tests for the transition graph."""

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (TaskStatus.PENDING, TaskStatus.IN_PROGRESS),
            (TaskStatus.PENDING, TaskStatus.COMPLETED),
            (TaskStatus.PENDING, TaskStatus.CANCELLED),
            (TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED),
            (TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED),
            (TaskStatus.OVERDUE, TaskStatus.COMPLETED),
        ],
    )
    def test_allowed(self, current, target):
        """Forward transitions are allowed."""
        assert can_transition(current, target) is True

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (TaskStatus.COMPLETED, TaskStatus.PENDING),
            (TaskStatus.COMPLETED, TaskStatus.CANCELLED),
            (TaskStatus.CANCELLED, TaskStatus.PENDING),
            (TaskStatus.CANCELLED, TaskStatus.COMPLETED),
            (TaskStatus.IN_PROGRESS, TaskStatus.PENDING),
            (TaskStatus.PENDING, TaskStatus.OVERDUE),
        ],
    )
    def test_rejected(self, current, target):
        """Terminal statuses cannot be left and Overdue cannot be entered."""
        assert can_transition(current, target) is False

    def test_validate_transition_raises(self, make_task):
        """validate_transition raises on a forbidden change."""
        task = make_task(status=TaskStatus.CANCELLED)

        with pytest.raises(InvalidStateTransitionError, match="Cancelled"):
            validate_transition(task, TaskStatus.COMPLETED)


@pytest.mark.unit
class TestApplyStatus:
    """Tests for apply_status stamping."""

    def test_completion_stamps_time_and_actor(self, make_task, now):
        """Entering Completed sets completed_at and completed_by."""
        task = make_task()

        completed = apply_status(task, TaskStatus.COMPLETED, now=now, actor="bob@example.com")

        assert completed.status == TaskStatus.COMPLETED
        assert completed.completed_at == now
        assert completed.completed_by == "bob@example.com"
        assert task.status == TaskStatus.PENDING

    def test_other_status_clears_completion_stamps(self, make_task, now):
        """completed_at is only set while Completed."""
        task = make_task(status=TaskStatus.IN_PROGRESS)

        cancelled = apply_status(task, TaskStatus.CANCELLED, now=now)

        assert cancelled.completed_at is None
        assert cancelled.completed_by is None

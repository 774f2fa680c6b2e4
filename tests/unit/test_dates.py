"""Tests for date helpers."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from src.core.dates import day_bounds, format_datetime, js_weekday, parse_datetime, to_utc, week_start


@pytest.mark.unit
class TestDates:
    """Tests for parsing, formatting and calendar helpers."""

    def test_to_utc_converts_offsets(self):
        """Aware values are converted and naive values are read as UTC."""
        plus_two = datetime(2025, 1, 1, 14, tzinfo=timezone(timedelta(hours=2)))

        assert to_utc(plus_two) == datetime(2025, 1, 1, 12, tzinfo=UTC)
        assert to_utc(datetime(2025, 1, 1, 12)).tzinfo == UTC

    @pytest.mark.parametrize(
        "value",
        ["2025-01-01T12:00:00Z", "2025-01-01T13:00:00+01:00", "1735732800000", 1735732800000],
    )
    def test_parse_datetime(self, value):
        """ISO strings and epoch milliseconds parse to the same instant."""
        assert parse_datetime(value) == datetime(2025, 1, 1, 12, tzinfo=UTC)

    def test_parse_datetime_rejects_garbage(self):
        """Unparseable text raises ValueError."""
        with pytest.raises(ValueError):
            parse_datetime("next tuesday")

    def test_format_datetime(self):
        """Formatted values use a Z suffix."""
        assert format_datetime(datetime(2025, 1, 1, 12, tzinfo=UTC)) == "2025-01-01T12:00:00Z"

    def test_day_bounds(self, now):
        """Bounds cover the whole UTC day."""
        start, end = day_bounds(now)

        assert start == datetime(2025, 1, 1, tzinfo=UTC)
        assert end == datetime(2025, 1, 1, 23, 59, 59, 999999, tzinfo=UTC)

    def test_week_starts_on_sunday(self, now):
        """Wednesday 2025-01-01 belongs to the week starting Sunday 2024-12-29."""
        assert js_weekday(now) == 3
        assert week_start(now) == datetime(2024, 12, 29, tzinfo=UTC)
        assert week_start(datetime(2024, 12, 29, 5, tzinfo=UTC)) == datetime(2024, 12, 29, tzinfo=UTC)

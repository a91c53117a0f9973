"""Tests for time arithmetic and formatting helpers."""

from datetime import datetime, timedelta

import pytest

from time_utils import (
    COMPLETED,
    add_duration,
    format_clock,
    format_duration,
    format_relative_timestamp,
    is_valid_clock_time,
    normalize_clock_time,
    parse_clock_time,
    parse_completion_time,
    parse_duration_text,
    remaining_duration,
    remaining_minutes,
)

NOW = datetime(2024, 1, 1, 10, 0)


class TestAddDuration:
    def test_adds_minutes(self):
        assert add_duration(NOW, 90) == datetime(2024, 1, 1, 11, 30)

    def test_zero_is_identity(self):
        assert add_duration(NOW, 0) == NOW

    def test_negative_goes_back(self):
        assert add_duration(NOW, -15) == datetime(2024, 1, 1, 9, 45)

    def test_crosses_midnight(self):
        assert add_duration(datetime(2024, 1, 1, 23, 30), 45) == datetime(2024, 1, 2, 0, 15)


@pytest.mark.parametrize(
    "minutes, expected",
    [
        (0, "0m"),
        (45, "45m"),
        (60, "1h"),
        (90, "1h 30m"),
        (120, "2h"),
        (1441, "24h 1m"),
    ],
)
def test_format_duration(minutes, expected):
    assert format_duration(minutes) == expected


class TestFormatClock:
    @pytest.mark.parametrize(
        "hour, minute, expected",
        [
            (0, 5, "12:05 AM"),
            (9, 5, "9:05 AM"),
            (12, 0, "12:00 PM"),
            (18, 30, "6:30 PM"),
            (23, 59, "11:59 PM"),
        ],
    )
    def test_twelve_hour_clock(self, hour, minute, expected):
        assert format_clock(datetime(2024, 1, 1, hour, minute)) == expected


class TestFormatRelativeTimestamp:
    def test_same_day_is_clock_only(self):
        assert format_relative_timestamp(datetime(2024, 1, 1, 14, 5), NOW) == "2:05 PM"

    def test_next_day_is_tomorrow(self):
        assert format_relative_timestamp(datetime(2024, 1, 2, 9, 0), NOW) == "Tomorrow 9:00 AM"

    def test_later_day_shows_month_and_day(self):
        assert format_relative_timestamp(datetime(2024, 1, 5, 0, 30), NOW) == "Jan 5, 12:30 AM"

    def test_uses_calendar_day_not_24_hours(self):
        late = datetime(2024, 1, 1, 23, 59)
        assert format_relative_timestamp(datetime(2024, 1, 2, 0, 1), late) == "Tomorrow 12:01 AM"

    def test_earlier_day_shows_month_and_day(self):
        assert format_relative_timestamp(datetime(2023, 12, 31, 8, 0), NOW) == "Dec 31, 8:00 AM"


class TestRemainingDuration:
    def test_completed_when_end_reached(self):
        assert remaining_duration(NOW, NOW) == COMPLETED

    def test_completed_when_end_passed(self):
        assert remaining_duration(NOW - timedelta(minutes=5), NOW) == COMPLETED

    def test_one_second_left_rounds_up(self):
        assert remaining_duration(NOW + timedelta(seconds=1), NOW) == "1m"

    def test_exact_minutes(self):
        assert remaining_duration(NOW + timedelta(minutes=90), NOW) == "1h 30m"

    def test_partial_minute_rounds_up(self):
        assert remaining_duration(NOW + timedelta(minutes=60, seconds=1), NOW) == "1h 1m"

    def test_remaining_minutes_zero_after_end(self):
        assert remaining_minutes(NOW - timedelta(seconds=1), NOW) == 0


class TestClockParsing:
    def test_parse_valid(self):
        assert parse_clock_time("08:30") == (8, 30)
        assert parse_clock_time("8:30") == (8, 30)

    @pytest.mark.parametrize("text", ["24:00", "12:60", "noon", "8", "08:3", "", "08:30:00"])
    def test_parse_invalid_raises(self, text):
        with pytest.raises(ValueError):
            parse_clock_time(text)

    def test_is_valid_clock_time_non_string(self):
        assert is_valid_clock_time(None) is False  # type: ignore[arg-type]

    def test_normalize_pads_hour(self):
        assert normalize_clock_time("8:05") == "08:05"


class TestParseDurationText:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("90", 90),
            ("90m", 90),
            ("2h", 120),
            ("1h30m", 90),
            ("1h 30m", 90),
            ("1:30", 90),
            (" 45M ", 45),
        ],
    )
    def test_accepted_forms(self, text, expected):
        assert parse_duration_text(text) == expected

    @pytest.mark.parametrize("text", ["", None, "0", "0m", "abc", "1:75", "-5", "h", "1h30"])
    def test_rejected_forms(self, text):
        assert parse_duration_text(text) is None


class TestParseCompletionTime:
    def test_clock_only_uses_today(self):
        assert parse_completion_time("18:30", NOW) == datetime(2024, 1, 1, 18, 30)

    def test_date_and_clock(self):
        assert parse_completion_time("2024-01-03 07:15", NOW) == datetime(2024, 1, 3, 7, 15)

    @pytest.mark.parametrize("text", ["", "tomorrow", "2024-13-01 10:00", "2024-01-03 25:00"])
    def test_unparsable_returns_none(self, text):
        assert parse_completion_time(text, NOW) is None

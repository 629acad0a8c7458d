"""
test_duration.py — Unit tests for "HH:MM" duration arithmetic.

Tests cover:
  - round_half_up: halves always round up
  - parse_duration: blanks, bare hours, malformed input (lenient and strict)
  - format_duration: zero padding, negative rejection
  - elapsed_minutes: same-day spans and the overnight rollover
"""

import logging

import pytest

from opsboard.services.duration import (
    elapsed_minutes,
    format_duration,
    is_valid_hhmm,
    parse_duration,
    round_half_up,
)
from opsboard.services.errors import KPIValidationError


class TestRoundHalfUp:

    @pytest.mark.parametrize("value,expected", [
        (77.5, 78),
        (76.5, 77),
        (88.888, 89),
        (0.49, 0),
        (0.0, 0),
    ])
    def test_halves_round_up(self, value, expected):
        assert round_half_up(value) == expected


class TestParseDuration:

    def test_hours_and_minutes(self):
        assert parse_duration("08:30") == 510

    def test_single_digit_parts(self):
        assert parse_duration("8:5") == 485

    def test_none_and_blank_are_zero(self):
        assert parse_duration(None) == 0
        assert parse_duration("") == 0
        assert parse_duration("   ") == 0

    def test_bare_number_is_hours(self):
        assert parse_duration("8") == 480

    def test_malformed_is_zero_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="opsboard-kpi.duration"):
            assert parse_duration("abc") == 0
        assert "Unparseable duration" in caplog.text

    def test_minutes_over_59_rejected_in_strict_mode(self):
        with pytest.raises(KPIValidationError):
            parse_duration("07:75", strict=True)

    def test_strict_accepts_valid_input(self):
        assert parse_duration("00:15", strict=True) == 15


class TestFormatDuration:

    def test_zero_padding(self):
        assert format_duration(5) == "00:05"
        assert format_duration(485) == "08:05"

    def test_more_than_a_day(self):
        assert format_duration(1500) == "25:00"

    def test_negative_rejected(self):
        with pytest.raises(KPIValidationError):
            format_duration(-1)

    @pytest.mark.parametrize("text", ["00:00", "00:01", "07:59", "08:30", "12:00", "23:30", "23:59"])
    def test_parse_then_format_is_identity(self, text):
        assert format_duration(parse_duration(text, strict=True)) == text


class TestElapsedMinutes:

    def test_same_day_span(self):
        assert elapsed_minutes("08:00", "16:30") == 510

    def test_exit_before_entry_rejected(self):
        with pytest.raises(KPIValidationError):
            elapsed_minutes("22:00", "06:00")

    def test_overnight_rolls_to_next_day(self):
        """22:00 → 06:00 is 8 h when the exit falls on the following day."""
        assert elapsed_minutes("22:00", "06:00", overnight=True) == 480

    def test_malformed_clock_time_rejected(self):
        with pytest.raises(KPIValidationError):
            elapsed_minutes("8h00", "16:00")


def test_is_valid_hhmm():
    assert is_valid_hhmm("08:00")
    assert not is_valid_hhmm("08:60")
    assert not is_valid_hhmm("")

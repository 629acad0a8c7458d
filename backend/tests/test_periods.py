"""
test_periods.py — Month keys and weekly windows.
"""

from datetime import date, datetime

import pytest

from opsboard.services.errors import KPIValidationError
from opsboard.services.periods import (
    in_month,
    iso_week_number,
    month_bounds,
    month_key,
    records_in_window,
    to_date,
    week_bounds,
    week_key,
)


class TestMonthKey:

    def test_any_day_maps_to_first_of_month(self):
        assert month_key(date(2025, 3, 17)) == date(2025, 3, 1)

    def test_accepts_iso_strings_and_datetimes(self):
        assert month_key("2025-03-17") == date(2025, 3, 1)
        assert month_key("2025-03-17T08:00:00") == date(2025, 3, 1)
        assert month_key(datetime(2025, 3, 17, 8, 0)) == date(2025, 3, 1)

    def test_rejects_garbage(self):
        with pytest.raises(KPIValidationError):
            to_date("March")
        with pytest.raises(KPIValidationError):
            month_key(42)

    def test_month_bounds_handles_leap_february(self):
        assert month_bounds("2024-02-10") == (date(2024, 2, 1), date(2024, 2, 29))

    def test_in_month(self):
        assert in_month("2025-03-31", date(2025, 3, 1))
        assert not in_month("2025-04-01", date(2025, 3, 1))


class TestWeeks:

    def test_week_starts_on_monday(self):
        # 2025-03-13 is a Thursday
        assert week_key("2025-03-13") == date(2025, 3, 10)
        assert week_bounds("2025-03-13") == (date(2025, 3, 10), date(2025, 3, 16))

    def test_iso_week_number(self):
        assert iso_week_number("2025-01-01") == 1

    def test_records_in_window_is_inclusive(self):
        records = [
            {"date": "2025-03-09"},
            {"date": "2025-03-10"},
            {"date": "2025-03-16"},
            {"date": "2025-03-17"},
            {"note": "undated"},
        ]
        selected = records_in_window(records, "2025-03-10", "2025-03-16")
        assert [r["date"] for r in selected] == ["2025-03-10", "2025-03-16"]

"""Unit tests for week boundary calculation."""

from datetime import date, datetime

import pytest

from advanceweekly.weeks import (
    SUNDAY,
    iso_week_of,
    most_recently_completed_week,
    previous_week,
    week_from_bounds,
)


class TestIsoWeekOf:
    """Tests for iso_week_of."""

    def test_midweek_date(self):
        """Test a Wednesday resolves to its Monday-start week."""
        week = iso_week_of(date(2026, 10, 14))

        assert week.start == date(2026, 10, 12)
        assert week.end == date(2026, 10, 18)
        assert week.week_number == 42
        assert week.year == 2026
        assert week.key == "2026-W42"

    def test_monday_is_its_own_start(self):
        """Test a Monday starts its own week."""
        week = iso_week_of(date(2026, 10, 12))
        assert week.start == date(2026, 10, 12)

    def test_sunday_belongs_to_preceding_monday(self):
        """Test a Sunday closes the week that began on the previous Monday."""
        week = iso_week_of(date(2026, 10, 18))
        assert week.start == date(2026, 10, 12)

    def test_year_uses_iso_year_at_new_year(self):
        """Test 2024-12-31 falls in ISO week 1 of 2025."""
        week = iso_week_of(date(2024, 12, 31))

        assert week.start == date(2024, 12, 30)
        assert week.year == 2025
        assert week.week_number == 1
        assert week.key == "2025-W01"

    def test_week_53(self):
        """Test long ISO years produce week 53."""
        week = iso_week_of(date(2021, 1, 1))

        assert week.start == date(2020, 12, 28)
        assert week.key == "2020-W53"

    def test_datetime_is_reduced_to_date(self):
        """Test datetimes resolve the same as their date."""
        assert iso_week_of(datetime(2026, 10, 14, 23, 59)) == iso_week_of(date(2026, 10, 14))

    def test_sunday_start_weeks(self):
        """Test an explicit Sunday anchor."""
        week = iso_week_of(date(2026, 10, 14), week_starts_on=SUNDAY)

        assert week.start == date(2026, 10, 11)
        assert week.end == date(2026, 10, 17)

    def test_invalid_anchor_rejected(self):
        """Test weekday anchors outside 0-6 are rejected."""
        with pytest.raises(ValueError):
            iso_week_of(date(2026, 10, 14), week_starts_on=7)

    def test_contains(self):
        """Test contains covers Monday through Sunday inclusive."""
        week = iso_week_of(date(2026, 10, 14))

        assert week.contains(date(2026, 10, 12))
        assert week.contains(date(2026, 10, 18))
        assert not week.contains(date(2026, 10, 19))

    def test_to_dict(self):
        """Test the serialized week shape."""
        result = iso_week_of(date(2026, 10, 14)).to_dict()

        assert result == {
            "week_number": 42,
            "year": 2026,
            "week_start": "2026-10-12",
            "week_end": "2026-10-18",
            "week_key": "2026-W42",
        }


class TestRelativeWeeks:
    """Tests for previous and most recently completed weeks."""

    def test_previous_week(self):
        """Test stepping back one week."""
        week = previous_week(iso_week_of(date(2026, 10, 14)))

        assert week.start == date(2026, 10, 5)
        assert week.key == "2026-W41"

    def test_previous_week_across_year(self):
        """Test stepping back across the ISO year boundary."""
        week = previous_week(iso_week_of(date(2025, 1, 1)))

        assert week.start == date(2024, 12, 23)
        assert week.key == "2024-W52"

    def test_most_recently_completed_week_on_friday(self):
        """Test a Friday run targets the previous Monday to Sunday."""
        week = most_recently_completed_week(date(2026, 10, 16))

        assert week.start == date(2026, 10, 5)
        assert week.end == date(2026, 10, 11)

    def test_most_recently_completed_week_on_sunday(self):
        """Test Sunday's own week is not complete until it ends."""
        week = most_recently_completed_week(date(2026, 10, 18))
        assert week.key == "2026-W41"


class TestWeekFromBounds:
    """Tests for week_from_bounds."""

    def test_defaults_to_week_of_today(self):
        """Test no bounds means the week containing today."""
        assert week_from_bounds(None, None, date(2026, 10, 14)) == iso_week_of(date(2026, 10, 14))

    def test_explicit_start_wins(self):
        """Test an explicit Monday start selects that week."""
        week = week_from_bounds(date(2026, 10, 5), None, date(2026, 10, 14))

        assert week.start == date(2026, 10, 5)
        assert week.end == date(2026, 10, 11)
        assert week.key == "2026-W41"

    def test_wednesday_start_normalises_to_monday(self):
        """Test a midweek start selects its whole Monday-start week."""
        week = week_from_bounds(date(2026, 10, 14), None, date(2026, 10, 20))

        assert week == iso_week_of(date(2026, 10, 12))
        assert week.start == date(2026, 10, 12)
        assert week.key == "2026-W42"

    def test_sunday_start_keys_the_week_it_ends(self):
        """Test a Sunday start belongs to the week it closes."""
        week = week_from_bounds(date(2026, 10, 18), None, date(2026, 10, 20))

        assert week.start == date(2026, 10, 12)
        assert week.end == date(2026, 10, 18)
        assert week.key == "2026-W42"
        assert iso_week_of(week.end).key == week.key

    def test_end_inside_week_is_accepted(self):
        """Test an end date within the same week keeps the canonical bounds."""
        week = week_from_bounds(date(2026, 10, 5), date(2026, 10, 9), date(2026, 10, 14))

        assert week.end == date(2026, 10, 11)
        assert week.key == "2026-W41"

    def test_end_outside_week_is_rejected(self):
        """Test bounds spanning two weeks are rejected."""
        with pytest.raises(ValueError, match="outside week 2026-W42"):
            week_from_bounds(date(2026, 10, 18), date(2026, 10, 24), date(2026, 10, 20))

    def test_end_only(self):
        """Test an end date alone selects the week it falls in."""
        week = week_from_bounds(None, date(2026, 10, 11), date(2026, 10, 14))
        assert week.start == date(2026, 10, 5)

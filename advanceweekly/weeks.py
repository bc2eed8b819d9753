"""Week boundary calculation shared by the scheduler, handler and stores.

Every component that needs a week number, a week key or a week's start and end
dates goes through ``iso_week_of`` so that scheduling and content storage can
never disagree about which week a date belongs to.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta

MONDAY = 0
SUNDAY = 6


@dataclass(frozen=True)
class IsoWeek:
    """A week identified by its ISO number and ISO year."""

    week_number: int
    year: int
    start: date
    end: date

    @property
    def key(self) -> str:
        """Stable identifier used for dedup, e.g. ``2026-W07``."""
        return f"{self.year}-W{self.week_number:02d}"

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def to_dict(self) -> dict:
        return {
            "week_number": self.week_number,
            "year": self.year,
            "week_start": self.start.isoformat(),
            "week_end": self.end.isoformat(),
            "week_key": self.key,
        }


def iso_week_of(day: date | datetime, week_starts_on: int = MONDAY) -> IsoWeek:
    """Return the week containing ``day``.

    Args:
        day: Any date or datetime. Datetimes are reduced to their date part
            as-is, so convert to the user's timezone first.
        week_starts_on: Weekday the week starts on (0 = Monday, 6 = Sunday).

    Returns:
        IsoWeek whose number and year are the ISO week number and ISO year of
        the week's first day. The ISO year can differ from ``start.year``
        around New Year (e.g. 2024-12-30 is 2025-W01).
    """
    if isinstance(day, datetime):
        day = day.date()
    if not 0 <= week_starts_on <= 6:
        raise ValueError(f"week_starts_on must be between 0 and 6, got {week_starts_on}")

    offset = (day.weekday() - week_starts_on) % 7
    start = day - timedelta(days=offset)
    end = start + timedelta(days=6)
    iso_year, iso_week, _ = start.isocalendar()
    return IsoWeek(week_number=iso_week, year=iso_year, start=start, end=end)


def previous_week(week: IsoWeek) -> IsoWeek:
    """Return the week immediately before ``week`` with the same anchor day."""
    return iso_week_of(week.start - timedelta(days=7), week_starts_on=week.start.weekday())


def most_recently_completed_week(day: date | datetime) -> IsoWeek:
    """Return the last Monday-start week that ended before ``day``'s week began."""
    return previous_week(iso_week_of(day))


def week_from_bounds(week_start: date | None, week_end: date | None, today: date) -> IsoWeek:
    """Resolve a target week from optional explicit bounds.

    Any date inside a week selects that whole Monday-start week; otherwise the
    week containing ``today`` is used.

    Raises:
        ValueError: If ``week_start`` and ``week_end`` fall in different weeks.
    """
    if week_start is not None:
        week = iso_week_of(week_start)
        if week_end is not None and not week.contains(week_end):
            raise ValueError(
                f"week_end {week_end.isoformat()} is outside week {week.key} "
                f"({week.start.isoformat()} to {week.end.isoformat()})"
            )
        return week
    if week_end is not None:
        return iso_week_of(week_end)
    return iso_week_of(today)

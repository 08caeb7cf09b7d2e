"""Timezone-correct local time helpers.

All instants handled here are timezone-aware datetimes. Local calendar
arithmetic goes through pytz ``localize``/``normalize`` so that results stay
correct across daylight saving transitions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterator

import pytz

_TIME_PATTERN = re.compile(r"^(\d{2}):(\d{2})$")

UTC = pytz.utc


class InvalidLocalTimeError(ValueError):
    """Raised when a time-of-day string is not a valid HH:MM value."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid local time '{value}': expected HH:MM between 00:00 and 24:00")


@dataclass(frozen=True, order=True)
class LocalTime:
    """Wall-clock time of day. ``24:00`` denotes the end of the day."""

    hour: int
    minute: int

    def __post_init__(self) -> None:
        if not (0 <= self.hour <= 24 and 0 <= self.minute <= 59):
            raise InvalidLocalTimeError(f"{self.hour:02d}:{self.minute:02d}")
        if self.hour == 24 and self.minute != 0:
            raise InvalidLocalTimeError(f"{self.hour:02d}:{self.minute:02d}")

    @classmethod
    def parse(cls, value: str) -> LocalTime:
        """Parse an ``HH:MM`` string."""
        if not isinstance(value, str):
            raise InvalidLocalTimeError(value)
        match = _TIME_PATTERN.match(value.strip())
        if match is None:
            raise InvalidLocalTimeError(value)
        return cls(int(match.group(1)), int(match.group(2)))

    @classmethod
    def parse_optional(cls, value: str | None) -> LocalTime | None:
        """Parse a nullable column value."""
        if value is None or value == "":
            return None
        return cls.parse(value)

    @property
    def is_end_of_day(self) -> bool:
        return self.hour == 24

    @property
    def minutes(self) -> int:
        """Minutes since midnight (1440 for ``24:00``)."""
        return self.hour * 60 + self.minute

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


MIDNIGHT = LocalTime(0, 0)
END_OF_DAY = LocalTime(24, 0)


def get_timezone(name: str) -> tzinfo:
    """Resolve an IANA timezone name."""
    return pytz.timezone(name)


def ensure_aware(instant: datetime) -> datetime:
    """Treat naive datetimes (as returned by some drivers) as UTC."""
    if instant.tzinfo is None:
        return UTC.localize(instant)
    return instant


def _localize(tz: tzinfo, naive: datetime) -> datetime:
    # is_dst=False resolves both ambiguous and non-existent wall times
    # without raising; normalize() shifts a skipped time onto the real clock.
    if hasattr(tz, "localize"):
        return tz.normalize(tz.localize(naive, is_dst=False))
    return naive.replace(tzinfo=tz)


def local_date(instant: datetime, tz: tzinfo) -> date:
    """Calendar date of an instant in ``tz``."""
    return ensure_aware(instant).astimezone(tz).date()


def local_time_of_day(instant: datetime, tz: tzinfo) -> LocalTime:
    local = ensure_aware(instant).astimezone(tz)
    return LocalTime(local.hour, local.minute)


def local_instant(day: date, at: LocalTime, tz: tzinfo) -> datetime:
    """Build the instant for wall-clock ``at`` on local ``day``.

    ``24:00`` yields the following day's ``00:00``.
    """
    if at.is_end_of_day:
        day = day + timedelta(days=1)
        at = MIDNIGHT
    naive = datetime.combine(day, time(at.hour, at.minute))
    return _localize(tz, naive).astimezone(UTC)


def local_midnight(instant: datetime, tz: tzinfo) -> datetime:
    """Start of the local day containing ``instant``."""
    return local_instant(local_date(instant, tz), MIDNIGHT, tz)


def local_day_of_week(instant: datetime, tz: tzinfo) -> int:
    """Local day of week, 0=Sunday through 6=Saturday."""
    return day_of_week(local_date(instant, tz))


def day_of_week(day: date) -> int:
    """Day of week for a calendar date, 0=Sunday through 6=Saturday."""
    return day.isoweekday() % 7


def next_local_midnight(instant: datetime, tz: tzinfo) -> datetime:
    """Advance to the next local midnight, always strictly after ``instant``."""
    instant = ensure_aware(instant)
    candidate = local_instant(local_date(instant, tz) + timedelta(days=1), MIDNIGHT, tz)
    if candidate > instant:
        return candidate

    candidate = local_midnight(instant + timedelta(hours=25), tz)
    if candidate > instant:
        return candidate

    return instant + timedelta(hours=24)


def iter_local_days(start: datetime, end: datetime, tz: tzinfo) -> Iterator[date]:
    """Yield each local calendar date touched by ``[start, end)``."""
    end = ensure_aware(end)
    cursor = local_midnight(start, tz)
    while cursor < end:
        yield local_date(cursor, tz)
        cursor = next_local_midnight(cursor, tz)


def time_wraps(start: LocalTime, end: LocalTime) -> bool:
    """True when a ``[start, end)`` window runs past local midnight."""
    return end.is_end_of_day or end <= start


def local_window(
    day: date, start: LocalTime, end: LocalTime, tz: tzinfo
) -> tuple[datetime, datetime]:
    """Instants bounding a time-of-day window that opens on local ``day``."""
    window_start = local_instant(day, start, tz)
    if end.is_end_of_day or end > start:
        window_end = local_instant(day, end, tz)
    else:
        window_end = local_instant(day + timedelta(days=1), end, tz)
    return window_start, window_end


def intersect(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> tuple[datetime, datetime] | None:
    """Overlap of two half-open intervals, or None when they are disjoint."""
    start = max(a_start, b_start)
    end = min(a_end, b_end)
    if start >= end:
        return None
    return start, end

"""Pay period boundaries and Australian tax years."""

from __future__ import annotations

import calendar
import re
from datetime import date, timedelta
from enum import Enum

# Fortnightly periods are counted from this Monday
FORTNIGHT_ANCHOR = date(1970, 1, 5)

_TAX_YEAR_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


class PayPeriodType(str, Enum):
    """Supported pay frequencies."""

    WEEKLY = "weekly"
    FORTNIGHTLY = "fortnightly"
    MONTHLY = "monthly"

    @property
    def periods_per_year(self) -> int:
        return PERIODS_PER_YEAR[self]


PERIODS_PER_YEAR: dict[PayPeriodType, int] = {
    PayPeriodType.WEEKLY: 52,
    PayPeriodType.FORTNIGHTLY: 26,
    PayPeriodType.MONTHLY: 12,
}


def week_start(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def period_bounds(day: date, period_type: PayPeriodType | str) -> tuple[date, date]:
    """First and last date of the pay period containing ``day``."""
    period_type = PayPeriodType(period_type)

    if period_type == PayPeriodType.WEEKLY:
        start = week_start(day)
        return start, start + timedelta(days=6)

    if period_type == PayPeriodType.FORTNIGHTLY:
        offset = (day - FORTNIGHT_ANCHOR).days % 14
        start = day - timedelta(days=offset)
        return start, start + timedelta(days=13)

    last_day = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last_day)


def tax_year_for(day: date) -> str:
    """Australian tax year (1 July - 30 June) containing ``day``, e.g. ``2024-25``."""
    start_year = day.year if day.month >= 7 else day.year - 1
    return f"{start_year}-{(start_year + 1) % 100:02d}"


def tax_year_bounds(tax_year: str) -> tuple[date, date]:
    """First and last day of a ``YYYY-YY`` tax year."""
    match = _TAX_YEAR_PATTERN.match(tax_year or "")
    if match is None:
        raise ValueError(f"Invalid tax year string: {tax_year!r}")
    start_year = int(match.group(1))
    if (start_year + 1) % 100 != int(match.group(2)):
        raise ValueError(f"Invalid tax year string: {tax_year!r}")
    return date(start_year, 7, 1), date(start_year + 1, 6, 30)

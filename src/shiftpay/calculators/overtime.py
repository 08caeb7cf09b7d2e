"""Overtime threshold tracking and overtime frame resolution."""

from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from decimal import Decimal
from typing import Callable, Iterable

from shiftpay.calculators.local_time import (
    LocalTime,
    day_of_week,
    ensure_aware,
    intersect,
    local_date,
    local_window,
)
from shiftpay.calculators.pay_periods import week_start
from shiftpay.calculators.types import OvertimeFrame, PayGuideRules, SECONDS_PER_HOUR, ShiftInput


def seconds_from_hours(hours: Decimal) -> int:
    return int(hours * SECONDS_PER_HOUR)


def opening_day(
    instant: datetime,
    start: LocalTime,
    end: LocalTime,
    tz: tzinfo,
    day_matches: Callable[[date], bool],
) -> date | None:
    """Local day whose ``[start, end)`` window contains ``instant``.

    Windows that wrap past midnight are opened on the previous local day, so
    both today and yesterday are checked. Returns None when neither applies.
    """
    today = local_date(instant, tz)
    for day in (today, today - timedelta(days=1)):
        if not day_matches(day):
            continue
        window_start, window_end = local_window(day, start, end, tz)
        if window_start <= instant < window_end:
            return day
    return None


class OvertimeTracker:
    """Identifies which worked time is overtime and at what tiered rate.

    Two triggers are supported and may combine:
    - span boundary: time outside the day's ordinary-hours span
    - threshold: worked time after the daily limit, or after the weekly limit
      once earlier shifts of the same week are taken into account
    """

    def __init__(self, rules: PayGuideRules, tz: tzinfo):
        self.rules = rules
        self.tz = tz

    def threshold_allowance_seconds(self, prior_week_seconds: int = 0) -> int | None:
        """Worked seconds this shift may accrue before threshold overtime begins.

        None when no daily or weekly threshold is active.
        """
        allowances: list[int] = []
        rules = self.rules

        if rules.overtime_on_daily_limit and rules.daily_overtime_hours is not None:
            allowances.append(seconds_from_hours(rules.daily_overtime_hours))

        if rules.overtime_on_weekly_limit and rules.weekly_overtime_hours is not None:
            weekly = seconds_from_hours(rules.weekly_overtime_hours)
            allowances.append(max(0, weekly - prior_week_seconds))

        if not allowances:
            return None
        return min(allowances)

    @property
    def first_tier_seconds(self) -> int:
        return seconds_from_hours(self.rules.overtime_first_tier_hours)

    def is_outside_span(self, instant: datetime) -> bool:
        """True if ``instant`` falls outside its day's ordinary-hours span.

        Days without a configured span impose no span restriction.
        """
        if not self.rules.overtime_on_span_boundary or not self.rules.ordinary_spans:
            return False

        spans = self.rules.ordinary_spans
        today = local_date(instant, self.tz)
        if day_of_week(today) not in spans:
            return False

        for day in (today, today - timedelta(days=1)):
            day_span = spans.get(day_of_week(day))
            if day_span is None:
                continue
            window_start, window_end = local_window(day, day_span.start, day_span.end, self.tz)
            if window_start <= instant < window_end:
                return False
        return True

    def match_frame(self, instant: datetime) -> OvertimeFrame | None:
        """Highest-ranked overtime frame applying at ``instant``."""
        candidates = [f for f in self.rules.overtime_frames if self._applies(f, instant)]
        if not candidates:
            return None
        # Rank first, then declaration order
        return min(candidates, key=lambda f: (-f.rank, f.order))

    def _applies(self, frame: OvertimeFrame, instant: datetime) -> bool:
        def day_matches(day: date) -> bool:
            if frame.is_public_holiday:
                return day in self.rules.public_holidays
            if frame.day_of_week is not None:
                return day_of_week(day) == frame.day_of_week
            return True

        if frame.start is None or frame.end is None:
            return day_matches(local_date(instant, self.tz))
        return opening_day(instant, frame.start, frame.end, self.tz, day_matches) is not None


def paid_seconds(shift: ShiftInput) -> int:
    """Shift duration minus break overlap, in whole seconds."""
    start = ensure_aware(shift.start).replace(microsecond=0)
    end = ensure_aware(shift.end).replace(microsecond=0)
    total = int((end - start).total_seconds())
    for brk in shift.breaks:
        overlap = intersect(
            start,
            end,
            ensure_aware(brk.start).replace(microsecond=0),
            ensure_aware(brk.end).replace(microsecond=0),
        )
        if overlap is not None:
            total -= int((overlap[1] - overlap[0]).total_seconds())
    return max(total, 0)


def prior_week_seconds(target: ShiftInput, others: Iterable[ShiftInput], tz: tzinfo) -> int:
    """Worked seconds of shifts starting earlier in ``target``'s local week.

    Weeks start on Monday in local time. Ties on start time are broken by
    shift id so the ordering is total.
    """
    week = week_start(local_date(target.start, tz))
    target_key = (ensure_aware(target.start), str(target.shift_id))
    total = 0
    for other in others:
        if other.shift_id is not None and other.shift_id == target.shift_id:
            continue
        if week_start(local_date(other.start, tz)) != week:
            continue
        if (ensure_aware(other.start), str(other.shift_id)) < target_key:
            total += paid_seconds(other)
    return total

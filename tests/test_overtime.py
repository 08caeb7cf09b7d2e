"""Tests for the overtime threshold tracker."""

from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from uuid import UUID

import pytz

from shiftpay.calculators.local_time import LocalTime
from shiftpay.calculators.overtime import OvertimeTracker, paid_seconds, prior_week_seconds
from shiftpay.calculators.types import BreakSpan, OrdinarySpan, ShiftInput

SYDNEY = pytz.timezone("Australia/Sydney")
HOUR = 3600


def sydney(*args) -> datetime:
    return SYDNEY.localize(datetime(*args))


def tracker(rules) -> OvertimeTracker:
    return OvertimeTracker(rules, SYDNEY)


class TestThresholdAllowance:
    """Worked time allowed before threshold overtime."""

    def test_daily_limit_applies_first(self, retail_rules):
        assert tracker(retail_rules).threshold_allowance_seconds() == 9 * HOUR

    def test_weekly_remainder_when_smaller(self, retail_rules):
        assert tracker(retail_rules).threshold_allowance_seconds(36 * HOUR) == 2 * HOUR

    def test_weekly_limit_exhausted(self, retail_rules):
        assert tracker(retail_rules).threshold_allowance_seconds(45 * HOUR) == 0

    def test_no_active_thresholds(self, retail_rules):
        rules = replace(retail_rules, overtime_on_daily_limit=False, overtime_on_weekly_limit=False)
        assert tracker(rules).threshold_allowance_seconds(45 * HOUR) is None

    def test_fractional_threshold(self, retail_rules):
        rules = replace(retail_rules, daily_overtime_hours=Decimal("7.6"))
        assert tracker(rules).threshold_allowance_seconds() == 27360

    def test_first_tier_seconds(self, retail_rules):
        assert tracker(retail_rules).first_tier_seconds == 3 * HOUR


class TestSpanBoundary:
    """Time outside the ordinary-hours span."""

    def test_inside_and_outside_weekday_span(self, retail_rules):
        ot = tracker(retail_rules)
        assert ot.is_outside_span(sydney(2024, 7, 15, 6, 59)) is True
        assert ot.is_outside_span(sydney(2024, 7, 15, 7)) is False
        assert ot.is_outside_span(sydney(2024, 7, 15, 20, 59)) is False
        assert ot.is_outside_span(sydney(2024, 7, 15, 21)) is True

    def test_day_without_span_is_unrestricted(self, retail_rules):
        rules = replace(retail_rules, ordinary_spans={1: OrdinarySpan(LocalTime(7, 0), LocalTime(21, 0))})
        assert tracker(rules).is_outside_span(sydney(2024, 7, 16, 23)) is False

    def test_span_trigger_disabled(self, retail_rules):
        rules = replace(retail_rules, overtime_on_span_boundary=False)
        assert tracker(rules).is_outside_span(sydney(2024, 7, 15, 23)) is False


class TestFrameMatching:
    """Overtime frame precedence."""

    def test_general_frame_on_weekday(self, retail_rules):
        assert tracker(retail_rules).match_frame(sydney(2024, 7, 15, 22)).name == "Overtime"

    def test_day_specific_frame_beats_general(self, retail_rules):
        assert tracker(retail_rules).match_frame(sydney(2024, 7, 21, 19)).name == "Sunday Overtime"

    def test_public_holiday_frame_ranks_highest(self, retail_rules):
        frame = tracker(retail_rules).match_frame(sydney(2024, 12, 25, 19))
        assert frame.name == "Public Holiday Overtime"

    def test_no_frames(self, retail_rules):
        rules = replace(retail_rules, overtime_frames=())
        assert tracker(rules).match_frame(sydney(2024, 7, 15, 22)) is None


class TestPriorWeekSeconds:
    """Worked time of earlier shifts in the same local week."""

    def _shift(self, shift_id, start, end, breaks=()):
        return ShiftInput(
            shift_id=UUID(int=shift_id),
            start=start,
            end=end,
            breaks=tuple(BreakSpan(s, e) for s, e in breaks),
        )

    def test_paid_seconds_excludes_breaks(self):
        shift = self._shift(
            1,
            sydney(2024, 7, 16, 9),
            sydney(2024, 7, 16, 15),
            breaks=[(sydney(2024, 7, 16, 12), sydney(2024, 7, 16, 12, 30))],
        )
        assert paid_seconds(shift) == 5 * HOUR + 1800

    def test_sums_earlier_shifts_of_the_week(self):
        previous_week = self._shift(1, sydney(2024, 7, 14, 9), sydney(2024, 7, 14, 17))
        monday = self._shift(2, sydney(2024, 7, 15, 9), sydney(2024, 7, 15, 17))
        tuesday = self._shift(
            3,
            sydney(2024, 7, 16, 9),
            sydney(2024, 7, 16, 15),
            breaks=[(sydney(2024, 7, 16, 12), sydney(2024, 7, 16, 12, 30))],
        )
        target = self._shift(4, sydney(2024, 7, 17, 9), sydney(2024, 7, 17, 17))
        later = self._shift(5, sydney(2024, 7, 18, 9), sydney(2024, 7, 18, 17))

        others = [later, target, tuesday, previous_week, monday]
        assert prior_week_seconds(target, others, SYDNEY) == 8 * HOUR + 5 * HOUR + 1800

    def test_sunday_belongs_to_the_week_before(self):
        monday = self._shift(1, sydney(2024, 7, 15, 9), sydney(2024, 7, 15, 17))
        sunday = self._shift(2, sydney(2024, 7, 21, 9), sydney(2024, 7, 21, 17))
        next_monday = self._shift(3, sydney(2024, 7, 22, 9), sydney(2024, 7, 22, 17))

        assert prior_week_seconds(sunday, [monday, next_monday], SYDNEY) == 8 * HOUR
        assert prior_week_seconds(next_monday, [monday, sunday], SYDNEY) == 0

    def test_identical_start_ordered_by_id(self):
        first = self._shift(1, sydney(2024, 7, 15, 9), sydney(2024, 7, 15, 12))
        second = self._shift(2, sydney(2024, 7, 15, 9), sydney(2024, 7, 15, 11))

        assert prior_week_seconds(second, [first, second], SYDNEY) == 3 * HOUR
        assert prior_week_seconds(first, [first, second], SYDNEY) == 0

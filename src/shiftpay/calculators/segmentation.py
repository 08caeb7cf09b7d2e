"""Rule segmentation engine.

Splits a shift span into priced, non-overlapping segments. The span is cut
at every instant where a rule could change (local midnights, ordinary span
edges, penalty and overtime windows, break edges, the threshold cutoff and
the overtime tier boundary). Each elementary piece is then classified once,
at its start instant, and adjacent pieces with the same pricing are merged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, tzinfo
from decimal import Decimal
from typing import Iterable, Iterator
from uuid import UUID

from shiftpay.calculators.breakdown import BreakdownBuilder
from shiftpay.calculators.local_time import (
    END_OF_DAY,
    MIDNIGHT,
    UTC,
    day_of_week,
    ensure_aware,
    get_timezone,
    iter_local_days,
    local_date,
    local_window,
)
from shiftpay.calculators.overtime import OvertimeTracker, opening_day
from shiftpay.calculators.types import (
    Additive,
    BreakSpan,
    OvertimeFrame,
    PayGuideRules,
    PenaltyFrame,
    Segment,
    SegmentKind,
    ShiftCalculation,
    ShiftInput,
)
from shiftpay.calculators.validation import ensure_valid_pay_guide, ensure_valid_shift

logger = logging.getLogger(__name__)

ORDINARY_NAME = "Ordinary"
ZERO = Decimal("0")


def _whole_seconds(instant: datetime) -> datetime:
    return ensure_aware(instant).astimezone(UTC).replace(microsecond=0)


def _seconds(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds())


@dataclass(frozen=True)
class _Piece:
    """Elementary interval of paid time with a single classification."""

    start: datetime
    end: datetime
    penalty: PenaltyFrame | None = None
    overtime_frame: OvertimeFrame | None = None
    tier: int | None = None

    @property
    def seconds(self) -> int:
        return _seconds(self.start, self.end)

    @property
    def is_overtime(self) -> bool:
        return self.overtime_frame is not None


@dataclass(frozen=True)
class _Pricing:
    kind: SegmentKind
    name: str
    multiplier: Decimal
    time_frame_id: UUID | None = None
    tier: int | None = None


class SegmentationEngine:
    """Prices shifts against a pay guide.

    Precedence for any instant: public holiday > weekend day rate >
    evening/night or other window > ordinary rate. Within the same rank the
    higher multiplier wins, then declaration order.
    """

    def __init__(self, rules: PayGuideRules):
        ensure_valid_pay_guide(rules)
        self.rules = rules
        self.tz: tzinfo = get_timezone(rules.timezone)
        self.overtime = OvertimeTracker(rules, self.tz)

    def calculate(self, shift: ShiftInput) -> ShiftCalculation:
        """Split ``shift`` into priced segments and total them."""
        start = _whole_seconds(shift.start)
        end = _whole_seconds(shift.end)
        breaks = tuple(
            BreakSpan(_whole_seconds(b.start), _whole_seconds(b.end)) for b in shift.breaks
        )
        ensure_valid_shift(start, end, breaks)
        end = self._apply_minimum_length(start, end)

        paid = self._paid_intervals(start, end, breaks)
        cuts = self._cut_points(start, end, breaks)
        pieces = [
            _Piece(a, b)
            for a, b in zip(cuts, cuts[1:])
            if any(ps <= a < pe for ps, pe in paid)
        ]

        allowance = self.overtime.threshold_allowance_seconds(shift.prior_week_seconds)
        if allowance is not None:
            pieces = self._split_after(pieces, allowance)

        classified = self._classify(pieces, allowance)
        tiered = self._assign_tiers(classified)
        segments = self._price(tiered)

        worked_seconds = sum(s.seconds for s in segments)
        base_pay = sum((s.pay for s in segments if s.kind == SegmentKind.ORDINARY), ZERO)
        penalty_pay = sum((s.pay for s in segments if s.kind == SegmentKind.PENALTY), ZERO)
        overtime_pay = sum((s.pay for s in segments if s.kind == SegmentKind.OVERTIME), ZERO)

        logger.debug(
            "Priced shift %s into %d segments (%d seconds)",
            shift.shift_id,
            len(segments),
            worked_seconds,
        )

        return ShiftCalculation(
            segments=tuple(segments),
            worked_seconds=worked_seconds,
            base_pay=base_pay,
            penalty_pay=penalty_pay,
            overtime_pay=overtime_pay,
            total_pay=base_pay + penalty_pay + overtime_pay,
        )

    # ----- interval construction -----

    def _apply_minimum_length(self, start: datetime, end: datetime) -> datetime:
        """Extend a shift shorter than the guide's minimum to that minimum."""
        minimum = self.rules.minimum_shift_hours
        if not minimum:
            return end
        minimum_end = start + timedelta(seconds=int(minimum * 3600))
        if end < minimum_end:
            logger.debug("Extending shift ending %s to minimum length %s hours", end, minimum)
            return minimum_end
        return end

    @staticmethod
    def _paid_intervals(
        start: datetime, end: datetime, breaks: Iterable[BreakSpan]
    ) -> list[tuple[datetime, datetime]]:
        """Shift span minus break periods."""
        intervals: list[tuple[datetime, datetime]] = []
        cursor = start
        for brk in sorted(breaks, key=lambda b: b.start):
            if brk.start > cursor:
                intervals.append((cursor, brk.start))
            cursor = max(cursor, brk.end)
        if cursor < end:
            intervals.append((cursor, end))
        return intervals

    def _cut_points(
        self, start: datetime, end: datetime, breaks: Iterable[BreakSpan]
    ) -> list[datetime]:
        points = {start, end}
        for brk in breaks:
            points.update((brk.start, brk.end))
        # Start a day early so windows opened yesterday that wrap into the
        # shift's first day are included.
        for day in iter_local_days(start - timedelta(days=1), end, self.tz):
            points.update(self._day_edges(day))
        return sorted(p for p in points if start <= p <= end)

    def _day_edges(self, day: date) -> Iterator[datetime]:
        """Every instant on or after local ``day`` where a rule may change."""
        yield from local_window(day, MIDNIGHT, END_OF_DAY, self.tz)

        span = self.rules.ordinary_spans.get(day_of_week(day))
        if span is not None:
            yield from local_window(day, span.start, span.end, self.tz)

        for frame in (*self.rules.penalty_frames, *self.rules.overtime_frames):
            if frame.start is not None and frame.end is not None:
                yield from local_window(day, frame.start, frame.end, self.tz)

    @staticmethod
    def _split_after(pieces: list[_Piece], allowance: int) -> list[_Piece]:
        """Cut the piece in which cumulative worked time reaches ``allowance``."""
        result: list[_Piece] = []
        worked = 0
        for piece in pieces:
            if worked < allowance < worked + piece.seconds:
                cut = piece.start + timedelta(seconds=allowance - worked)
                result.append(replace(piece, end=cut))
                result.append(replace(piece, start=cut))
            else:
                result.append(piece)
            worked += piece.seconds
        return result

    # ----- classification -----

    def _classify(self, pieces: list[_Piece], allowance: int | None) -> list[_Piece]:
        result: list[_Piece] = []
        worked = 0
        for piece in pieces:
            after_threshold = allowance is not None and worked >= allowance
            worked += piece.seconds

            penalty = self._winning_penalty(piece.start)
            overtime_frame = None
            if after_threshold or self.overtime.is_outside_span(piece.start):
                # Without a matching overtime frame the time keeps its
                # penalty or ordinary rate.
                overtime_frame = self.overtime.match_frame(piece.start)
            result.append(replace(piece, penalty=penalty, overtime_frame=overtime_frame))
        return result

    def _winning_penalty(self, instant: datetime) -> PenaltyFrame | None:
        candidates = [
            f for f in self.rules.penalty_frames if self._penalty_applies(f, instant)
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda f: (-f.rank, -f.multiplier, f.order))

    def _penalty_applies(self, frame: PenaltyFrame, instant: datetime) -> bool:
        holidays = self.rules.public_holidays

        def day_matches(day: date) -> bool:
            if frame.is_public_holiday:
                return day in holidays
            if frame.day_of_week is not None:
                return day_of_week(day) == frame.day_of_week
            return True

        if frame.start is None or frame.end is None:
            return day_matches(local_date(instant, self.tz))
        return opening_day(instant, frame.start, frame.end, self.tz, day_matches) is not None

    def _assign_tiers(self, pieces: list[_Piece]) -> list[_Piece]:
        """Split overtime into first and second tiers, chronologically."""
        first_tier = self.overtime.first_tier_seconds
        result: list[_Piece] = []
        overtime_so_far = 0
        for piece in pieces:
            if not piece.is_overtime:
                result.append(piece)
                continue
            remaining = first_tier - overtime_so_far
            if remaining <= 0:
                result.append(replace(piece, tier=2))
            elif remaining >= piece.seconds:
                result.append(replace(piece, tier=1))
            else:
                cut = piece.start + timedelta(seconds=remaining)
                result.append(replace(piece, end=cut, tier=1))
                result.append(replace(piece, start=cut, tier=2))
            overtime_so_far += piece.seconds
        return result

    # ----- pricing -----

    def _pricing(self, piece: _Piece) -> _Pricing:
        penalty = piece.penalty
        frame = piece.overtime_frame

        if frame is not None and piece.tier is not None:
            overtime_multiplier = frame.multiplier_for_tier(piece.tier)
            if penalty is None:
                return _Pricing(
                    SegmentKind.OVERTIME, frame.name, overtime_multiplier,
                    frame.frame_id, piece.tier,
                )
            if isinstance(self.rules.combination, Additive):
                return _Pricing(
                    SegmentKind.OVERTIME,
                    f"{frame.name} + {penalty.name}",
                    self.rules.combination.combine(overtime_multiplier, penalty.multiplier),
                    frame.frame_id,
                    piece.tier,
                )
            if overtime_multiplier >= penalty.multiplier:
                return _Pricing(
                    SegmentKind.OVERTIME, frame.name, overtime_multiplier,
                    frame.frame_id, piece.tier,
                )

        if penalty is not None:
            return _Pricing(SegmentKind.PENALTY, penalty.name, penalty.multiplier, penalty.frame_id)

        return _Pricing(SegmentKind.ORDINARY, ORDINARY_NAME, self.rules.ordinary_multiplier)

    def _price(self, pieces: list[_Piece]) -> list[Segment]:
        merged: list[tuple[_Pricing, datetime, datetime, int]] = []
        for piece in pieces:
            pricing = self._pricing(piece)
            if merged and merged[-1][0] == pricing:
                prev_pricing, seg_start, _, seconds = merged[-1]
                merged[-1] = (prev_pricing, seg_start, piece.end, seconds + piece.seconds)
            else:
                merged.append((pricing, piece.start, piece.end, piece.seconds))

        segments: list[Segment] = []
        offset = 0
        for pricing, seg_start, seg_end, seconds in merged:
            if seconds <= 0:
                continue
            segments.append(
                Segment(
                    kind=pricing.kind,
                    name=pricing.name,
                    start=seg_start,
                    end=seg_end,
                    seconds=seconds,
                    multiplier=pricing.multiplier,
                    pay=BreakdownBuilder.price(seconds, self.rules.base_rate, pricing.multiplier),
                    time_frame_id=pricing.time_frame_id,
                    tier=pricing.tier,
                    offset_seconds=offset,
                )
            )
            offset += seconds
        return segments


def calculate_shift(rules: PayGuideRules, shift: ShiftInput) -> ShiftCalculation:
    """Convenience wrapper: price one shift against ``rules``."""
    return SegmentationEngine(rules).calculate(shift)


"""Shift pay service - prices shifts and persists their segments."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence, Union
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from shiftpay.calculators.breakdown import BreakdownBuilder, CalculationBreakdown
from shiftpay.calculators.local_time import ensure_aware, get_timezone, local_date
from shiftpay.calculators.overtime import prior_week_seconds
from shiftpay.calculators.pay_periods import week_start
from shiftpay.calculators.segmentation import SegmentationEngine
from shiftpay.calculators.types import BreakSpan, PayGuideRules, ShiftCalculation, ShiftInput
from shiftpay.config import Settings, get_settings
from shiftpay.repositories.shift_repository import (
    ReplaceResult,
    ShiftCalculationData,
    ShiftRepository,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShiftRecalculated:
    """A shift was priced and its segments replaced (or it vanished meanwhile)."""

    shift_id: UUID
    calculation: ShiftCalculation
    breakdown: CalculationBreakdown
    result: ReplaceResult


@dataclass(frozen=True)
class ShiftCalculationSkipped:
    """The shift cannot be calculated (missing shift, or no active pay guide in effect)."""

    shift_id: UUID
    reason: str


ShiftOutcome = Union[ShiftRecalculated, ShiftCalculationSkipped]


class ShiftPayService:
    """Service for shift pay calculation.

    Operations:
    - recalculate_shift: price a persisted shift and replace its segments,
      then recalculate later shifts of the same week
    - recalculate_week: recalculate every shift after a point in a week
    - preview_shift: price an unsaved span without touching the database

    The caller owns the transaction (see ``database.get_session``).
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self.repository = ShiftRepository(session, self.settings.default_timezone)

    async def recalculate_shift(self, shift_id: UUID, cascade: bool = True) -> ShiftOutcome:
        """Price a shift against its pay guide and persist the segments."""
        data = await self.repository.load_calculation_data(shift_id)
        if data is None:
            logger.info("Shift %s cannot be calculated: shift or pay guide in effect missing", shift_id)
            return ShiftCalculationSkipped(shift_id, "Shift or pay guide in effect not found")

        week_shifts = await self.repository.list_period_shifts(data.pay_period_id)
        outcome = await self._calculate_and_store(data, week_shifts)

        if cascade:
            await self._recalculate_later(data.shift, data.rules, data.pay_period_id, week_shifts)
        return outcome

    async def recalculate_week(
        self,
        pay_period_id: UUID | None,
        after: datetime,
        timezone: str | None = None,
    ) -> list[ShiftOutcome]:
        """Recalculate shifts starting at or after ``after`` in its local week.

        Used when an earlier shift of the week is deleted or moved.
        """
        tz = get_timezone(timezone or self.settings.default_timezone)
        after = ensure_aware(after)
        week = week_start(local_date(after, tz))
        outcomes: list[ShiftOutcome] = []
        for shift in await self.repository.list_period_shifts(pay_period_id):
            if shift.start >= after and week_start(local_date(shift.start, tz)) == week:
                outcomes.append(await self.recalculate_shift(shift.shift_id, cascade=False))
        return outcomes

    def preview_shift(
        self,
        rules: PayGuideRules,
        start: datetime,
        end: datetime,
        breaks: Sequence[BreakSpan] = (),
        prior_seconds: int = 0,
    ) -> CalculationBreakdown:
        """Price a span without persistence."""
        shift = ShiftInput(start=start, end=end, breaks=tuple(breaks), prior_week_seconds=prior_seconds)
        calculation = SegmentationEngine(rules).calculate(shift)
        return BreakdownBuilder.build(calculation, rules.base_rate)

    async def preview_for_pay_guide(
        self,
        pay_guide_id: UUID,
        start: datetime,
        end: datetime,
        breaks: Sequence[BreakSpan] = (),
    ) -> CalculationBreakdown | None:
        """Preview against a stored pay guide; None if it is missing, inactive or not in effect."""
        rules = await self.repository.load_rules(pay_guide_id, as_of=start)
        if rules is None:
            return None
        return self.preview_shift(rules, start, end, breaks)

    async def _calculate_and_store(
        self, data: ShiftCalculationData, week_shifts: list[ShiftInput]
    ) -> ShiftRecalculated:
        tz = get_timezone(data.rules.timezone)
        prior = prior_week_seconds(data.shift, week_shifts, tz)
        shift = ShiftInput(
            shift_id=data.shift.shift_id,
            start=data.shift.start,
            end=data.shift.end,
            breaks=data.shift.breaks,
            prior_week_seconds=prior,
        )

        calculation = SegmentationEngine(data.rules).calculate(shift)
        breakdown = BreakdownBuilder.build(calculation, data.rules.base_rate)
        result = await self.repository.replace_segments(
            shift.shift_id, calculation, breakdown.fingerprint
        )

        logger.debug(
            "Recalculated shift %s: total %s over %s hours",
            shift.shift_id,
            calculation.total_pay,
            calculation.total_hours,
        )
        return ShiftRecalculated(shift.shift_id, calculation, breakdown, result)

    async def _recalculate_later(
        self,
        shift: ShiftInput,
        rules: PayGuideRules,
        pay_period_id: UUID | None,
        week_shifts: list[ShiftInput],
    ) -> None:
        """Weekly overtime of later shifts depends on this one; refresh them."""
        tz = get_timezone(rules.timezone)
        week = week_start(local_date(shift.start, tz))
        key = (shift.start, str(shift.shift_id))
        for other in week_shifts:
            if other.shift_id == shift.shift_id:
                continue
            if week_start(local_date(other.start, tz)) != week:
                continue
            if (other.start, str(other.shift_id)) > key:
                await self.recalculate_shift(other.shift_id, cascade=False)

"""Shift persistence: loading calculation inputs and replacing computed segments."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Union
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shiftpay.calculators.local_time import UTC, ensure_aware, get_timezone, local_date
from shiftpay.calculators.types import (
    PayGuideRules,
    SegmentKind,
    ShiftCalculation,
    ShiftInput,
)
from shiftpay.models import (
    PayGuide,
    Shift,
    ShiftOvertimeSegment,
    ShiftPenaltySegment,
)
from shiftpay.repositories.adapters import pay_guide_to_rules, shift_to_input

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Replaced:
    """Segments and aggregates were written."""

    shift_id: UUID
    segment_count: int


@dataclass(frozen=True)
class ParentGone:
    """The shift no longer exists; nothing was written."""

    shift_id: UUID


ReplaceResult = Union[Replaced, ParentGone]


@dataclass(frozen=True)
class ShiftCalculationData:
    """Everything needed to price one persisted shift."""

    shift: ShiftInput
    rules: PayGuideRules
    pay_period_id: UUID | None


class ShiftRepository:
    """Loads shifts and pay guides as value types and writes calculation results."""

    def __init__(self, session: AsyncSession, default_timezone: str):
        self.session = session
        self.default_timezone = default_timezone

    async def get_shift(self, shift_id: UUID) -> Shift | None:
        result = await self.session.execute(
            select(Shift)
            .where(Shift.shift_id == shift_id)
            .options(selectinload(Shift.break_periods))
        )
        return result.scalar_one_or_none()

    async def load_rules(
        self, pay_guide_id: UUID, as_of: datetime | None = None
    ) -> PayGuideRules | None:
        """Pay guide rules, or None if the guide is missing or inactive.

        With ``as_of``, a guide whose effective dates do not cover that
        instant's local date is treated as inactive.
        """
        result = await self.session.execute(
            select(PayGuide)
            .where(PayGuide.pay_guide_id == pay_guide_id)
            .options(
                selectinload(PayGuide.ordinary_spans),
                selectinload(PayGuide.penalty_time_frames),
                selectinload(PayGuide.overtime_time_frames),
                selectinload(PayGuide.public_holidays),
            )
        )
        guide = result.scalar_one_or_none()
        if guide is None or not guide.is_active:
            return None
        if as_of is not None and not self._in_effect(guide, as_of):
            logger.info("Pay guide %s is not in effect at %s", pay_guide_id, as_of)
            return None
        return pay_guide_to_rules(guide, self.default_timezone)

    def _in_effect(self, guide: PayGuide, as_of: datetime) -> bool:
        tz = get_timezone(guide.timezone or self.default_timezone)
        day = local_date(ensure_aware(as_of), tz)
        if day < guide.effective_from:
            return False
        return guide.effective_to is None or day <= guide.effective_to

    async def load_calculation_data(self, shift_id: UUID) -> ShiftCalculationData | None:
        """Calculation inputs for a shift; None when it cannot be calculated."""
        shift = await self.get_shift(shift_id)
        if shift is None:
            return None
        rules = await self.load_rules(shift.pay_guide_id, as_of=shift.start_time)
        if rules is None:
            return None
        return ShiftCalculationData(
            shift=shift_to_input(shift),
            rules=rules,
            pay_period_id=shift.pay_period_id,
        )

    async def list_period_shifts(self, pay_period_id: UUID | None) -> list[ShiftInput]:
        """All shifts in a pay period (or unassigned shifts), in start order."""
        if pay_period_id is None:
            condition = Shift.pay_period_id.is_(None)
        else:
            condition = Shift.pay_period_id == pay_period_id
        result = await self.session.execute(
            select(Shift)
            .where(condition)
            .options(selectinload(Shift.break_periods))
            .order_by(Shift.start_time, Shift.shift_id)
        )
        return [shift_to_input(s) for s in result.scalars().all()]

    async def replace_segments(
        self,
        shift_id: UUID,
        calculation: ShiftCalculation,
        calculation_hash: str | None = None,
    ) -> ReplaceResult:
        """Replace a shift's computed segments and aggregates as one unit.

        Runs inside the caller's transaction. The aggregate update goes first:
        if it matches no row the shift was deleted, and nothing else is written.
        """
        result = await self.session.execute(
            update(Shift)
            .where(Shift.shift_id == shift_id)
            .values(
                total_hours=calculation.total_hours,
                base_pay=calculation.base_pay,
                penalty_pay=calculation.penalty_pay,
                overtime_pay=calculation.overtime_pay,
                total_pay=calculation.total_pay,
                calculation_hash=calculation_hash,
            )
            .execution_options(synchronize_session="evaluate")
        )
        if not result.rowcount:
            logger.info("Shift %s vanished before segments were written; skipping", shift_id)
            return ParentGone(shift_id)

        await self.session.execute(
            delete(ShiftPenaltySegment).where(ShiftPenaltySegment.shift_id == shift_id)
        )
        await self.session.execute(
            delete(ShiftOvertimeSegment).where(ShiftOvertimeSegment.shift_id == shift_id)
        )

        for sequence, segment in enumerate(calculation.segments):
            common = dict(
                shift_id=shift_id,
                sequence=sequence,
                name=segment.name,
                multiplier=segment.multiplier,
                hours=segment.hours,
                pay=segment.pay,
                start_time=segment.start.astimezone(UTC),
                end_time=segment.end.astimezone(UTC),
            )
            if segment.kind == SegmentKind.OVERTIME:
                self.session.add(
                    ShiftOvertimeSegment(
                        overtime_time_frame_id=segment.time_frame_id,
                        tier=segment.tier,
                        **common,
                    )
                )
            else:
                self.session.add(
                    ShiftPenaltySegment(penalty_time_frame_id=segment.time_frame_id, **common)
                )

        await self.session.flush()
        return Replaced(shift_id, len(calculation.segments))

    async def get_segments(
        self, shift_id: UUID
    ) -> tuple[list[ShiftPenaltySegment], list[ShiftOvertimeSegment]]:
        penalty = await self.session.execute(
            select(ShiftPenaltySegment)
            .where(ShiftPenaltySegment.shift_id == shift_id)
            .order_by(ShiftPenaltySegment.sequence)
        )
        overtime = await self.session.execute(
            select(ShiftOvertimeSegment)
            .where(ShiftOvertimeSegment.shift_id == shift_id)
            .order_by(ShiftOvertimeSegment.sequence)
        )
        return list(penalty.scalars().all()), list(overtime.scalars().all())

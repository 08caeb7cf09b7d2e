"""Pay period lifecycle and extras management."""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shiftpay.calculators.local_time import UTC
from shiftpay.calculators.pay_periods import PayPeriodType, period_bounds
from shiftpay.models import PayPeriod, PayPeriodExtra, PayPeriodExtraTemplate
from shiftpay.services.period_status import (
    PayPeriodLockedError,
    PayPeriodStateMachine,
    PayPeriodStatus,
)

logger = logging.getLogger(__name__)

_EXTRA_FIELDS = {"extra_type", "description", "amount", "taxable"}


class PayPeriodNotFoundError(Exception):
    """Raised when a pay period does not exist."""

    def __init__(self, pay_period_id: UUID):
        self.pay_period_id = pay_period_id
        super().__init__(f"Pay period {pay_period_id} not found")


class PayPeriodExtraNotFoundError(Exception):
    """Raised when a pay period extra does not exist."""

    def __init__(self, extra_id: UUID):
        self.extra_id = extra_id
        super().__init__(f"Pay period extra {extra_id} not found")


class PayPeriodService:
    """Service for pay periods.

    Operations:
    - find_or_create_period: period containing a date for a pay frequency;
      new periods receive the active extra templates
    - add_extra_template / apply_default_extras
    - transition_status / mark_processed / verify / reopen
    - add_extra / update_extra / delete_extra, rejected while verified
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_period(self, pay_period_id: UUID, load_extras: bool = False) -> PayPeriod | None:
        """Load a pay period with optional extras."""
        query = select(PayPeriod).where(PayPeriod.pay_period_id == pay_period_id)
        if load_extras:
            query = query.options(selectinload(PayPeriod.extras))
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def require_period(self, pay_period_id: UUID, load_extras: bool = False) -> PayPeriod:
        period = await self.get_period(pay_period_id, load_extras=load_extras)
        if period is None:
            raise PayPeriodNotFoundError(pay_period_id)
        return period

    async def require_editable(self, pay_period_id: UUID) -> PayPeriod:
        """Load a period, raising PayPeriodLockedError if it is verified."""
        period = await self.require_period(pay_period_id)
        try:
            PayPeriodStateMachine.require_editable(period)
        except PayPeriodLockedError:
            logger.info("Rejected change to locked pay period %s", pay_period_id)
            raise
        return period

    async def find_or_create_period(
        self, day: date, period_type: PayPeriodType | str = PayPeriodType.FORTNIGHTLY
    ) -> PayPeriod:
        """Pay period containing ``day``, created open if it does not exist."""
        period_type = PayPeriodType(period_type)
        start, end = period_bounds(day, period_type)
        result = await self.session.execute(
            select(PayPeriod).where(PayPeriod.start_date == start, PayPeriod.end_date == end)
        )
        period = result.scalar_one_or_none()
        if period is not None:
            return period

        period = PayPeriod(
            start_date=start,
            end_date=end,
            period_type=period_type.value,
            status=PayPeriodStatus.OPEN.value,
        )
        self.session.add(period)
        await self.session.flush()
        logger.info("Created %s pay period %s - %s", period_type.value, start, end)
        await self.apply_default_extras(period.pay_period_id)
        return period

    async def transition_status(self, pay_period_id: UUID, to_status: str) -> PayPeriod:
        """Move a period to ``to_status`` if the transition is allowed."""
        period = await self.require_period(pay_period_id)
        from_status = period.status
        to_value = PayPeriodStatus(to_status).value
        PayPeriodStateMachine.validate_transition(from_status, to_value)

        period.status = to_value
        if to_value == PayPeriodStatus.VERIFIED.value:
            period.verified_at = datetime.now(UTC)
        elif PayPeriodStateMachine.is_reopen(from_status, to_value):
            period.verified_at = None

        await self.session.flush()
        logger.info("Pay period %s: %s -> %s", pay_period_id, from_status, to_value)
        return period

    async def mark_processed(self, pay_period_id: UUID) -> PayPeriod:
        return await self.transition_status(pay_period_id, PayPeriodStatus.PROCESSED)

    async def verify(self, pay_period_id: UUID) -> PayPeriod:
        return await self.transition_status(pay_period_id, PayPeriodStatus.VERIFIED)

    async def reopen(self, pay_period_id: UUID) -> PayPeriod:
        """Explicitly unlock a processed or verified period."""
        return await self.transition_status(pay_period_id, PayPeriodStatus.OPEN)

    async def add_extra(
        self,
        pay_period_id: UUID,
        extra_type: str,
        amount: Decimal,
        description: str | None = None,
        taxable: bool = True,
    ) -> PayPeriodExtra:
        await self.require_editable(pay_period_id)
        extra = PayPeriodExtra(
            pay_period_id=pay_period_id,
            extra_type=extra_type,
            description=description,
            amount=amount,
            taxable=taxable,
        )
        self.session.add(extra)
        await self.session.flush()
        return extra

    async def update_extra(self, extra_id: UUID, **changes: Any) -> PayPeriodExtra:
        unknown = set(changes) - _EXTRA_FIELDS
        if unknown:
            raise ValueError(f"Unknown pay period extra fields: {sorted(unknown)}")

        extra = await self._require_extra(extra_id)
        await self.require_editable(extra.pay_period_id)
        for name, value in changes.items():
            setattr(extra, name, value)
        await self.session.flush()
        return extra

    async def delete_extra(self, extra_id: UUID) -> None:
        extra = await self._require_extra(extra_id)
        await self.require_editable(extra.pay_period_id)
        await self.session.delete(extra)
        await self.session.flush()

    async def add_extra_template(
        self,
        label: str,
        amount: Decimal,
        description: str | None = None,
        taxable: bool = True,
        sort_order: int = 0,
    ) -> PayPeriodExtraTemplate:
        template = PayPeriodExtraTemplate(
            label=label,
            description=description,
            amount=amount,
            taxable=taxable,
            sort_order=sort_order,
        )
        self.session.add(template)
        await self.session.flush()
        return template

    async def apply_default_extras(self, pay_period_id: UUID) -> int:
        """Copy active templates onto a period that has no extras yet.

        Returns the number of extras created.
        """
        existing = await self.session.scalar(
            select(func.count())
            .select_from(PayPeriodExtra)
            .where(PayPeriodExtra.pay_period_id == pay_period_id)
        )
        if existing:
            return 0

        result = await self.session.execute(
            select(PayPeriodExtraTemplate)
            .where(PayPeriodExtraTemplate.is_active.is_(True))
            .order_by(PayPeriodExtraTemplate.sort_order, PayPeriodExtraTemplate.created_at)
        )
        templates = result.scalars().all()
        for template in templates:
            self.session.add(
                PayPeriodExtra(
                    pay_period_id=pay_period_id,
                    extra_type=template.label,
                    description=template.description,
                    amount=template.amount,
                    taxable=template.taxable,
                )
            )
        if templates:
            await self.session.flush()
            logger.info("Applied %d default extras to pay period %s", len(templates), pay_period_id)
        return len(templates)

    async def _require_extra(self, extra_id: UUID) -> PayPeriodExtra:
        result = await self.session.execute(
            select(PayPeriodExtra).where(PayPeriodExtra.pay_period_extra_id == extra_id)
        )
        extra = result.scalar_one_or_none()
        if extra is None:
            raise PayPeriodExtraNotFoundError(extra_id)
        return extra

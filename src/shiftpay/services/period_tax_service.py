"""Period tax orchestration: aggregate a pay period and apply withholding."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shiftpay.calculators.local_time import UTC
from shiftpay.calculators.pay_periods import PayPeriodType, tax_year_for
from shiftpay.calculators.types import HOURS_PRECISION, TaxSettingsData, WithholdingResult
from shiftpay.calculators.withholding import WithholdingCalculator
from shiftpay.models import PayPeriod, PayPeriodExtra, Shift
from shiftpay.repositories.tax_repository import TaxRepository
from shiftpay.services.pay_period_service import PayPeriodService
from shiftpay.services.period_status import PayPeriodStatus
from shiftpay.services.tax_table_cache import TaxTableCache, get_tax_table_cache

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class UncalculatedShiftsError(Exception):
    """Raised when a period contains shifts without a calculated total pay."""

    def __init__(self, pay_period_id: UUID, shift_ids: list[UUID]):
        self.pay_period_id = pay_period_id
        self.shift_ids = shift_ids
        super().__init__(
            f"Pay period {pay_period_id} has {len(shift_ids)} shift(s) with no calculated total pay"
        )


@dataclass(frozen=True)
class PeriodTaxCalculation:
    """Aggregated pay and withholding for one pay period."""

    pay_period_id: UUID
    period_type: PayPeriodType
    tax_year: str
    total_hours: Decimal
    shift_pay: Decimal
    taxable_extras: Decimal
    non_taxable_extras: Decimal
    withholding: WithholdingResult

    @property
    def gross_pay(self) -> Decimal:
        return self.withholding.gross

    @property
    def net_pay(self) -> Decimal:
        """Take-home pay: withheld net plus untaxed extras."""
        return self.withholding.net + self.non_taxable_extras


class PeriodTaxService:
    """Service for pay period withholding.

    Operations:
    - calculate_period_tax: compute and write totals (rejected while verified)
    - preview_period_tax: identical computation, nothing written
    - process_period: calculate, then mark the period processed
    - preview_tax: withholding for a hypothetical gross amount
    """

    def __init__(self, session: AsyncSession, cache: TaxTableCache | None = None):
        self.session = session
        self.cache = cache if cache is not None else get_tax_table_cache()
        self.periods = PayPeriodService(session)
        self.tax_repository = TaxRepository(session)

    async def calculate_period_tax(
        self, pay_period_id: UUID, settings: TaxSettingsData | None = None
    ) -> PeriodTaxCalculation:
        """Compute withholding for a period and persist the totals."""
        period = await self.periods.require_editable(pay_period_id)
        calculation = await self._compute(period, settings)

        withholding = calculation.withholding
        period.total_hours = calculation.total_hours
        period.total_pay = withholding.gross
        period.payg_withholding = withholding.payg
        period.medicare_levy = withholding.medicare
        period.stsl_amount = withholding.stsl
        period.total_withholdings = withholding.total_withholding
        period.net_pay = calculation.net_pay
        period.tax_year = withholding.tax_year
        period.tax_data_source = withholding.data_source.value
        period.calculated_at = datetime.now(UTC)
        await self.session.flush()

        logger.info(
            "Pay period %s: gross %s, withheld %s, net %s (%s tables)",
            pay_period_id,
            withholding.gross,
            withholding.total_withholding,
            calculation.net_pay,
            withholding.data_source.value,
        )
        return calculation

    async def preview_period_tax(
        self, pay_period_id: UUID, settings: TaxSettingsData | None = None
    ) -> PeriodTaxCalculation:
        """Same as calculate_period_tax without writing anything."""
        period = await self.periods.require_period(pay_period_id)
        return await self._compute(period, settings)

    async def process_period(
        self, pay_period_id: UUID, settings: TaxSettingsData | None = None
    ) -> PeriodTaxCalculation:
        """Calculate withholding and move an open period to processed."""
        calculation = await self.calculate_period_tax(pay_period_id, settings)
        period = await self.periods.require_period(pay_period_id)
        if period.status == PayPeriodStatus.OPEN.value:
            await self.periods.transition_status(pay_period_id, PayPeriodStatus.PROCESSED)
        return calculation

    async def preview_tax(
        self,
        gross: Decimal,
        period_type: PayPeriodType | str,
        tax_year: str,
        settings: TaxSettingsData | None = None,
    ) -> WithholdingResult:
        """Withholding for a hypothetical gross amount."""
        if settings is None:
            settings = await self.tax_repository.load_tax_settings()
        tables = await self.cache.get_tables(tax_year)
        return WithholdingCalculator(tables).calculate(
            gross, PayPeriodType(period_type).periods_per_year, settings
        )

    async def _compute(
        self, period: PayPeriod, settings: TaxSettingsData | None
    ) -> PeriodTaxCalculation:
        shifts_result = await self.session.execute(
            select(Shift).where(Shift.pay_period_id == period.pay_period_id)
        )
        shifts = list(shifts_result.scalars().all())
        missing = [s.shift_id for s in shifts if s.total_pay is None]
        if missing:
            raise UncalculatedShiftsError(period.pay_period_id, missing)

        extras_result = await self.session.execute(
            select(PayPeriodExtra).where(PayPeriodExtra.pay_period_id == period.pay_period_id)
        )
        extras = list(extras_result.scalars().all())

        shift_pay = sum((s.total_pay for s in shifts), ZERO)
        total_hours = sum((s.total_hours or ZERO for s in shifts), ZERO).quantize(HOURS_PRECISION)
        taxable_extras = sum((e.amount for e in extras if e.taxable), ZERO)
        non_taxable_extras = sum((e.amount for e in extras if not e.taxable), ZERO)

        if settings is None:
            settings = await self.tax_repository.load_tax_settings()

        period_type = PayPeriodType(period.period_type)
        tax_year = tax_year_for(period.start_date)
        tables = await self.cache.get_tables(tax_year)
        withholding = WithholdingCalculator(tables).calculate(
            shift_pay + taxable_extras, period_type.periods_per_year, settings
        )

        return PeriodTaxCalculation(
            pay_period_id=period.pay_period_id,
            period_type=period_type,
            tax_year=tax_year,
            total_hours=total_hours,
            shift_pay=shift_pay,
            taxable_extras=taxable_extras,
            non_taxable_extras=non_taxable_extras,
            withholding=withholding,
        )

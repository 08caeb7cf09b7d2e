"""Tests for pay period withholding."""

from datetime import date, datetime
from decimal import Decimal

import pytest
import pytest_asyncio
import pytz
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from shiftpay.calculators.local_time import UTC
from shiftpay.calculators.types import DataSource
from shiftpay.calculators.withholding import TaxYearNotFoundError
from shiftpay.models import PayPeriod, Shift, TaxSettings
from shiftpay.services import (
    PayPeriodLockedError,
    PayPeriodService,
    PeriodTaxService,
    ShiftPayService,
    TaxTableCache,
    UncalculatedShiftsError,
)

pytestmark = pytest.mark.asyncio

SYDNEY = pytz.timezone("Australia/Sydney")


def sydney(*args) -> datetime:
    return SYDNEY.localize(datetime(*args)).astimezone(UTC)


async def add_shift(session, guide, period, start, end) -> Shift:
    shift = Shift(
        pay_guide_id=guide.pay_guide_id,
        pay_period_id=period.pay_period_id,
        start_time=start,
        end_time=end,
        break_periods=[],
    )
    session.add(shift)
    await session.flush()
    return shift


@pytest_asyncio.fixture
async def worked_week(session, retail_guide):
    """Weekly period: Monday 6h, Saturday 8h and Sunday 8h, all calculated."""
    period = await PayPeriodService(session).find_or_create_period(date(2024, 7, 15), "weekly")
    shifts = [
        await add_shift(session, retail_guide, period, sydney(2024, 7, 15, 9), sydney(2024, 7, 15, 15)),
        await add_shift(session, retail_guide, period, sydney(2024, 7, 20, 9), sydney(2024, 7, 20, 17)),
        await add_shift(session, retail_guide, period, sydney(2024, 7, 21, 9), sydney(2024, 7, 21, 17)),
    ]
    service = ShiftPayService(session)
    for shift in shifts:
        await service.recalculate_shift(shift.shift_id, cascade=False)
    return period


async def stored(session, period, column):
    return await session.scalar(select(column).where(PayPeriod.pay_period_id == period.pay_period_id))


class TestCalculatePeriodTax:
    """Aggregation and persistence of period figures."""

    async def test_shift_pay_only(self, session, seeded_tax_tables, tax_cache, worked_week):
        calculation = await PeriodTaxService(session, tax_cache).calculate_period_tax(
            worked_week.pay_period_id
        )

        assert calculation.shift_pay == Decimal("889.43")
        assert calculation.total_hours == Decimal("22.000000")
        assert calculation.tax_year == "2024-25"
        withholding = calculation.withholding
        assert withholding.payg == Decimal("112.00")
        assert withholding.medicare == Decimal("17.00")
        assert calculation.net_pay == Decimal("760.43")

        assert await stored(session, worked_week, PayPeriod.total_pay) == Decimal("889.43")
        assert await stored(session, worked_week, PayPeriod.payg_withholding) == Decimal("112.00")
        assert await stored(session, worked_week, PayPeriod.total_withholdings) == Decimal("129.00")
        assert await stored(session, worked_week, PayPeriod.net_pay) == Decimal("760.43")
        assert await stored(session, worked_week, PayPeriod.tax_data_source) == "live"
        assert worked_week.calculated_at is not None

    async def test_extras(self, session, seeded_tax_tables, tax_cache, worked_week):
        periods = PayPeriodService(session)
        await periods.add_extra(worked_week.pay_period_id, "allowance", Decimal("100"))
        await periods.add_extra(
            worked_week.pay_period_id, "reimbursement", Decimal("50"), taxable=False
        )

        calculation = await PeriodTaxService(session, tax_cache).calculate_period_tax(
            worked_week.pay_period_id
        )

        assert calculation.gross_pay == Decimal("989.43")
        assert calculation.withholding.total_withholding == Decimal("153.00")
        # Untaxed extras are paid on top of the withheld net
        assert calculation.net_pay == Decimal("886.43")

    async def test_stored_tax_settings_apply(self, session, seeded_tax_tables, tax_cache, worked_week):
        session.add(TaxSettings(claimed_tax_free_threshold=False))
        await session.flush()

        calculation = await PeriodTaxService(session, tax_cache).calculate_period_tax(
            worked_week.pay_period_id
        )

        assert calculation.withholding.scale.value == "scale1"

    async def test_verified_period_is_locked(self, session, seeded_tax_tables, tax_cache, worked_week):
        periods = PayPeriodService(session)
        service = PeriodTaxService(session, tax_cache)
        await service.process_period(worked_week.pay_period_id)
        await periods.verify(worked_week.pay_period_id)

        with pytest.raises(PayPeriodLockedError):
            await service.calculate_period_tax(worked_week.pay_period_id)

        preview = await service.preview_period_tax(worked_week.pay_period_id)
        assert preview.net_pay == Decimal("760.43")

    async def test_preview_writes_nothing(self, session, seeded_tax_tables, tax_cache, worked_week):
        preview = await PeriodTaxService(session, tax_cache).preview_period_tax(
            worked_week.pay_period_id
        )

        assert preview.withholding.payg == Decimal("112.00")
        assert await stored(session, worked_week, PayPeriod.total_pay) is None
        assert worked_week.calculated_at is None

    async def test_process_period(self, session, seeded_tax_tables, tax_cache, worked_week):
        service = PeriodTaxService(session, tax_cache)

        await service.process_period(worked_week.pay_period_id)
        assert worked_week.status == "processed"

        # Processed periods may be recalculated without changing status
        await service.process_period(worked_week.pay_period_id)
        assert worked_week.status == "processed"

    async def test_uncalculated_shift(self, session, seeded_tax_tables, tax_cache, retail_guide, worked_week):
        pending = await add_shift(
            session, retail_guide, worked_week, sydney(2024, 7, 16, 9), sydney(2024, 7, 16, 12)
        )

        with pytest.raises(UncalculatedShiftsError) as exc_info:
            await PeriodTaxService(session, tax_cache).calculate_period_tax(
                worked_week.pay_period_id
            )

        assert exc_info.value.shift_ids == [pending.shift_id]

    async def test_unknown_tax_year(self, session, seeded_tax_tables, tax_cache):
        period = await PayPeriodService(session).find_or_create_period(date(2031, 7, 7), "weekly")

        with pytest.raises(TaxYearNotFoundError):
            await PeriodTaxService(session, tax_cache).calculate_period_tax(period.pay_period_id)

    async def test_database_failure_uses_fallback(self, session, worked_week):
        async def broken_loader(tax_year):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        service = PeriodTaxService(session, TaxTableCache(broken_loader))
        calculation = await service.calculate_period_tax(worked_week.pay_period_id)

        assert calculation.withholding.data_source == DataSource.FALLBACK
        assert calculation.withholding.payg == Decimal("112.00")
        assert await stored(session, worked_week, PayPeriod.tax_data_source) == "fallback"


class TestPreviewTax:
    """Hypothetical gross amounts."""

    async def test_preview_tax(self, session, seeded_tax_tables, tax_cache):
        result = await PeriodTaxService(session, tax_cache).preview_tax(
            Decimal("2000"), "fortnightly", "2024-25"
        )

        assert result.payg == Decimal("274.00")
        assert result.periods_per_year == 26

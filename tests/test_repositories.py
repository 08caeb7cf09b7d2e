"""Tests for row adapters and the tax repository."""

from datetime import date, datetime
from decimal import Decimal

import pytest
import pytz

from shiftpay.calculators.local_time import UTC
from shiftpay.calculators.types import DataSource, Exclusive, MedicareExemption
from shiftpay.models import TaxSettings
from shiftpay.repositories import ShiftRepository, TaxRepository
from shiftpay.repositories.adapters import pay_guide_to_rules

pytestmark = pytest.mark.asyncio

SYDNEY = pytz.timezone("Australia/Sydney")


def sydney(*args) -> datetime:
    return SYDNEY.localize(datetime(*args)).astimezone(UTC)


class TestPayGuideAdapter:
    """Pay guide rows become engine rules."""

    async def test_inactive_rows_are_dropped(self, retail_guide):
        retail_guide.public_holidays[0].is_active = False

        rules = pay_guide_to_rules(retail_guide, "UTC")

        assert "Retired Night Rate" not in [f.name for f in rules.penalty_frames]
        assert rules.public_holidays == frozenset()

    async def test_declaration_order(self, retail_guide):
        rules = pay_guide_to_rules(retail_guide, "UTC")

        names = [f.name for f in rules.penalty_frames]
        assert names[:5] == [f"Evening {day}" for day in (1, 2, 3, 4, 5)]
        assert names[5:] == ["Saturday", "Sunday", "Public Holiday"]
        assert rules.timezone == "Australia/Sydney"
        assert isinstance(rules.combination, Exclusive)
        assert rules.ordinary_spans[0].start.minutes == 9 * 60

    async def test_guide_timezone_defaults(self, retail_guide):
        retail_guide.timezone = None

        assert pay_guide_to_rules(retail_guide, "Australia/Perth").timezone == "Australia/Perth"

    async def test_minimum_shift_hours(self, retail_guide):
        assert pay_guide_to_rules(retail_guide, "UTC").minimum_shift_hours is None

        retail_guide.minimum_shift_hours = Decimal("3")

        assert pay_guide_to_rules(retail_guide, "UTC").minimum_shift_hours == Decimal("3")

    async def test_load_rules_respects_effective_dates(self, session, retail_guide):
        repository = ShiftRepository(session, "Australia/Sydney")
        retail_guide.effective_to = date(2024, 12, 31)
        await session.flush()

        assert await repository.load_rules(retail_guide.pay_guide_id, as_of=sydney(2024, 7, 1, 0)) is not None
        assert await repository.load_rules(retail_guide.pay_guide_id, as_of=sydney(2024, 12, 31, 23)) is not None
        assert await repository.load_rules(retail_guide.pay_guide_id, as_of=sydney(2024, 6, 30, 23)) is None
        assert await repository.load_rules(retail_guide.pay_guide_id, as_of=sydney(2025, 1, 1, 0)) is None

    async def test_load_rules_for_inactive_guide(self, session, retail_guide):
        repository = ShiftRepository(session, "Australia/Sydney")
        assert await repository.load_rules(retail_guide.pay_guide_id) is not None

        retail_guide.is_active = False
        await session.flush()

        assert await repository.load_rules(retail_guide.pay_guide_id) is None


class TestTaxRepository:
    """Storing and loading tax-year tables."""

    async def test_store_then_load(self, session, fallback_live_tables):
        repository = TaxRepository(session)

        assert await repository.store_tax_tables(fallback_live_tables) is True
        assert await repository.store_tax_tables(fallback_live_tables) is False

        loaded = await repository.load_tax_tables(fallback_live_tables.tax_year)

        assert loaded.data_source == DataSource.LIVE
        assert set(loaded.coefficients) == set(fallback_live_tables.coefficients)
        assert set(loaded.stsl_rates) == set(fallback_live_tables.stsl_rates)
        assert set(loaded.hecs_thresholds) == set(fallback_live_tables.hecs_thresholds)
        assert loaded.medicare == fallback_live_tables.medicare

    async def test_unknown_year(self, session):
        assert await TaxRepository(session).load_tax_tables("1999-00") is None

    async def test_settings_default_when_unset(self, session):
        settings = await TaxRepository(session).load_tax_settings()

        assert settings.claimed_tax_free_threshold is True
        assert settings.medicare_exemption == MedicareExemption.NONE
        assert settings.extra_withholding == Decimal("0")

    async def test_saved_settings(self, session):
        session.add(
            TaxSettings(
                claimed_tax_free_threshold=False,
                medicare_exemption="half",
                has_stsl_debt=True,
                extra_withholding=Decimal("25.00"),
            )
        )
        await session.flush()

        settings = await TaxRepository(session).load_tax_settings()

        assert settings.claimed_tax_free_threshold is False
        assert settings.medicare_exemption == MedicareExemption.HALF
        assert settings.has_stsl_debt is True
        assert settings.extra_withholding == Decimal("25.00")

"""Pytest fixtures for shift pay tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shiftpay.calculators.local_time import LocalTime
from shiftpay.calculators.tax_tables import fallback_tables
from shiftpay.calculators.types import (
    DataSource,
    OrdinarySpan,
    OvertimeFrame,
    PayGuideRules,
    PenaltyFrame,
    TaxTables,
)
from shiftpay.models import (
    Base,
    OrdinaryHoursSpan,
    OvertimeTimeFrame,
    PayGuide,
    PenaltyTimeFrame,
    PublicHoliday,
)
from shiftpay.repositories import TaxRepository
from shiftpay.services import TaxTableCache

# In-memory SQLite shared by every session of a test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

CHRISTMAS = date(2024, 12, 25)

_WEEKDAYS = (1, 2, 3, 4, 5)


def _t(value: str) -> LocalTime:
    return LocalTime.parse(value)


@pytest.fixture
def retail_rules() -> PayGuideRules:
    """Casual retail award: evening, weekend and public holiday rates.

    Ordinary hours run Mon-Fri 07:00-21:00, Sat 07:00-18:00 and
    Sun 09:00-18:00; overtime after 9 hours a day or 38 a week.
    """
    spans = {day: OrdinarySpan(_t("07:00"), _t("21:00")) for day in _WEEKDAYS}
    spans[6] = OrdinarySpan(_t("07:00"), _t("18:00"))
    spans[0] = OrdinarySpan(_t("09:00"), _t("18:00"))

    evenings = tuple(
        PenaltyFrame(
            name="Evening",
            multiplier=Decimal("1.5"),
            day_of_week=day,
            start=_t("18:00"),
            end=_t("24:00"),
            order=day,
        )
        for day in _WEEKDAYS
    )

    return PayGuideRules(
        name="Retail Casual",
        base_rate=Decimal("26.55"),
        casual_loading=Decimal("0.25"),
        timezone="Australia/Sydney",
        ordinary_spans=spans,
        penalty_frames=evenings
        + (
            PenaltyFrame(name="Saturday", multiplier=Decimal("1.5"), day_of_week=6, order=10),
            PenaltyFrame(name="Sunday", multiplier=Decimal("1.75"), day_of_week=0, order=11),
            PenaltyFrame(
                name="Public Holiday",
                multiplier=Decimal("2.5"),
                is_public_holiday=True,
                order=12,
            ),
        ),
        overtime_frames=(
            OvertimeFrame(
                name="Overtime",
                first_tier_multiplier=Decimal("1.75"),
                second_tier_multiplier=Decimal("2.25"),
                order=0,
            ),
            OvertimeFrame(
                name="Sunday Overtime",
                first_tier_multiplier=Decimal("2.25"),
                second_tier_multiplier=Decimal("2.25"),
                day_of_week=0,
                order=1,
            ),
            OvertimeFrame(
                name="Public Holiday Overtime",
                first_tier_multiplier=Decimal("2.5"),
                second_tier_multiplier=Decimal("2.5"),
                is_public_holiday=True,
                order=2,
            ),
        ),
        public_holidays=frozenset({CHRISTMAS}),
        daily_overtime_hours=Decimal("9"),
        weekly_overtime_hours=Decimal("38"),
    )


@pytest.fixture
def weekend_rules() -> PayGuideRules:
    """Flat $20/hour with weekend penalties and no overtime rules."""
    return PayGuideRules(
        name="Weekend Only",
        base_rate=Decimal("20"),
        timezone="Australia/Sydney",
        penalty_frames=(
            PenaltyFrame(name="Saturday", multiplier=Decimal("1.5"), day_of_week=6),
            PenaltyFrame(name="Sunday", multiplier=Decimal("1.75"), day_of_week=0, order=1),
        ),
    )


@pytest.fixture
def fallback_live_tables() -> TaxTables:
    """Built-in tables presented as if they were loaded from the database."""
    tables = fallback_tables()
    return TaxTables(
        tax_year=tables.tax_year,
        coefficients=tables.coefficients,
        medicare=tables.medicare,
        stsl_rates=tables.stsl_rates,
        hecs_thresholds=tables.hecs_thresholds,
        data_source=DataSource.LIVE,
    )


# ----- database -----


@pytest_asyncio.fixture
async def engine():
    """Create test database engine with the full schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def retail_guide(session: AsyncSession) -> PayGuide:
    """The retail award stored as a pay guide with all of its rules."""
    spans = [
        OrdinaryHoursSpan(day_of_week=day, start_time="07:00", end_time="21:00")
        for day in _WEEKDAYS
    ]
    spans.append(OrdinaryHoursSpan(day_of_week=6, start_time="07:00", end_time="18:00"))
    spans.append(OrdinaryHoursSpan(day_of_week=0, start_time="09:00", end_time="18:00"))

    penalties = [
        PenaltyTimeFrame(
            name=f"Evening {day}",
            multiplier=Decimal("1.5"),
            day_of_week=day,
            start_time="18:00",
            end_time="24:00",
            sort_order=day,
        )
        for day in _WEEKDAYS
    ]
    penalties += [
        PenaltyTimeFrame(name="Saturday", multiplier=Decimal("1.5"), day_of_week=6, sort_order=10),
        PenaltyTimeFrame(name="Sunday", multiplier=Decimal("1.75"), day_of_week=0, sort_order=11),
        PenaltyTimeFrame(
            name="Public Holiday",
            multiplier=Decimal("2.5"),
            is_public_holiday=True,
            sort_order=12,
        ),
        PenaltyTimeFrame(
            name="Retired Night Rate",
            multiplier=Decimal("3"),
            start_time="00:00",
            end_time="24:00",
            is_active=False,
            sort_order=13,
        ),
    ]

    guide = PayGuide(
        name="Retail Casual",
        base_rate=Decimal("26.55"),
        casual_loading=Decimal("0.25"),
        timezone="Australia/Sydney",
        effective_from=date(2024, 7, 1),
        daily_overtime_hours=Decimal("9"),
        weekly_overtime_hours=Decimal("38"),
        overtime_first_tier_hours=Decimal("3"),
        penalty_combination="exclusive",
        ordinary_spans=spans,
        penalty_time_frames=penalties,
        overtime_time_frames=[
            OvertimeTimeFrame(
                name="Overtime",
                first_tier_multiplier=Decimal("1.75"),
                second_tier_multiplier=Decimal("2.25"),
                sort_order=0,
            ),
            OvertimeTimeFrame(
                name="Sunday Overtime",
                first_tier_multiplier=Decimal("2.25"),
                second_tier_multiplier=Decimal("2.25"),
                day_of_week=0,
                sort_order=1,
            ),
        ],
        public_holidays=[PublicHoliday(name="Christmas Day", holiday_date=CHRISTMAS)],
    )
    session.add(guide)
    await session.flush()
    return guide


@pytest_asyncio.fixture
async def seeded_tax_tables(session: AsyncSession, fallback_live_tables: TaxTables) -> TaxTables:
    """Store the built-in tables for their tax year."""
    await TaxRepository(session).store_tax_tables(fallback_live_tables)
    return fallback_live_tables


@pytest.fixture
def tax_cache(session: AsyncSession) -> TaxTableCache:
    """Cache reading through the test session."""

    async def load(tax_year: str):
        return await TaxRepository(session).load_tax_tables(tax_year)

    return TaxTableCache(load)

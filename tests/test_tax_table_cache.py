"""Tests for the tax table cache."""

import logging

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import async_sessionmaker

from shiftpay.calculators.types import DataSource
from shiftpay.calculators.withholding import TaxYearNotFoundError
from shiftpay.repositories import TaxRepository
from shiftpay.services.tax_table_cache import TaxTableCache, database_loader

pytestmark = pytest.mark.asyncio


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class RecordingLoader:
    """Loader returning fixed tables and counting calls."""

    def __init__(self, tables=None, error=None):
        self.tables = tables
        self.error = error
        self.calls: list[str] = []

    async def __call__(self, tax_year: str):
        self.calls.append(tax_year)
        if self.error is not None:
            raise self.error
        return self.tables


class TestTaxTableCache:
    """TTL, fallback and invalidation behaviour."""

    async def test_serves_from_cache_within_ttl(self, fallback_live_tables):
        loader = RecordingLoader(fallback_live_tables)
        clock = FakeClock()
        cache = TaxTableCache(loader, ttl_seconds=60, clock=clock)

        first = await cache.get_tables("2024-25")
        clock.now += 59
        second = await cache.get_tables("2024-25")

        assert first is second
        assert loader.calls == ["2024-25"]

    async def test_reloads_after_ttl(self, fallback_live_tables):
        loader = RecordingLoader(fallback_live_tables)
        clock = FakeClock()
        cache = TaxTableCache(loader, ttl_seconds=60, clock=clock)

        await cache.get_tables("2024-25")
        clock.now += 60
        await cache.get_tables("2024-25")

        assert loader.calls == ["2024-25", "2024-25"]

    async def test_unknown_year_is_not_cached(self):
        loader = RecordingLoader(None)
        cache = TaxTableCache(loader, clock=FakeClock())

        with pytest.raises(TaxYearNotFoundError) as exc_info:
            await cache.get_tables("2031-32")
        with pytest.raises(TaxYearNotFoundError):
            await cache.get_tables("2031-32")

        assert exc_info.value.tax_year == "2031-32"
        assert loader.calls == ["2031-32", "2031-32"]
        assert cache.cached_years() == []

    @pytest.mark.parametrize("tax_year", ["2024-2025", "2024-26", "24-25", ""])
    async def test_malformed_year_is_rejected_before_loading(self, tax_year):
        loader = RecordingLoader(None)
        cache = TaxTableCache(loader, clock=FakeClock())

        with pytest.raises(ValueError, match="Invalid tax year"):
            await cache.get_tables(tax_year)

        assert loader.calls == []

    async def test_database_error_serves_fallback(self, caplog):
        loader = RecordingLoader(error=OperationalError("SELECT 1", {}, Exception("db down")))
        cache = TaxTableCache(loader, clock=FakeClock())

        with caplog.at_level(logging.WARNING, logger="shiftpay.services.tax_table_cache"):
            tables = await cache.get_tables("2024-25")

        assert tables.data_source == DataSource.FALLBACK
        assert tables.tax_year == "2024-25"
        assert tables.coefficients
        assert "serving built-in" in caplog.text

        # The fallback is cached for the TTL
        await cache.get_tables("2024-25")
        assert len(loader.calls) == 1

    async def test_clear(self, fallback_live_tables):
        loader = RecordingLoader(fallback_live_tables)
        cache = TaxTableCache(loader, clock=FakeClock())

        await cache.get_tables("2024-25")
        await cache.get_tables("2023-24")
        assert cache.cached_years() == ["2023-24", "2024-25"]

        cache.clear("2024-25")
        assert cache.cached_years() == ["2023-24"]

        await cache.get_tables("2024-25")
        assert loader.calls.count("2024-25") == 2

        cache.clear_all()
        assert cache.cached_years() == []


class TestDatabaseLoader:
    """Loading through a fresh session per call."""

    async def test_loads_committed_tables(self, engine, fallback_live_tables):
        session_factory = async_sessionmaker(engine, expire_on_commit=False)
        async with session_factory() as session:
            await TaxRepository(session).store_tax_tables(fallback_live_tables)
            await session.commit()

        cache = TaxTableCache(database_loader(session_factory), clock=FakeClock())
        tables = await cache.get_tables("2024-25")

        assert tables.data_source == DataSource.LIVE
        assert len(tables.coefficients) == len(fallback_live_tables.coefficients)
        with pytest.raises(TaxYearNotFoundError):
            await cache.get_tables("2030-31")

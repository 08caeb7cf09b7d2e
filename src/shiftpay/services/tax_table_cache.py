"""In-memory, TTL-based cache of withholding tables per tax year."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Awaitable, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shiftpay.calculators.pay_periods import tax_year_bounds
from shiftpay.calculators.tax_tables import fallback_tables
from shiftpay.config import get_settings
from shiftpay.calculators.types import TaxTables
from shiftpay.calculators.withholding import TaxYearNotFoundError
from shiftpay.database import init_db
from shiftpay.repositories.tax_repository import TaxRepository

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60 * 60

TaxTableLoader = Callable[[str], Awaitable["TaxTables | None"]]


def database_loader(session_factory: async_sessionmaker[AsyncSession]) -> TaxTableLoader:
    """Loader reading tables through a fresh session per load."""

    async def load(tax_year: str) -> TaxTables | None:
        async with session_factory() as session:
            return await TaxRepository(session).load_tax_tables(tax_year)

    return load


@dataclass(frozen=True)
class _Entry:
    tables: TaxTables
    expires_at: float


class TaxTableCache:
    """Serves tax tables, reloading an entry once its TTL has passed.

    Failure handling:
    - the loader returns None for an unknown year: TaxYearNotFoundError,
      nothing is cached
    - the loader raises a database error: the built-in fallback tables are
      served (tagged DataSource.FALLBACK) and cached for one TTL

    Cached tables are immutable value objects, so no locking is needed.
    """

    def __init__(
        self,
        loader: TaxTableLoader,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._loader = loader
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _Entry] = {}

    async def get_tables(self, tax_year: str) -> TaxTables:
        """Tables for ``tax_year``, from cache when fresh.

        Raises ValueError for a malformed ``YYYY-YY`` string before any load.
        """
        tax_year_bounds(tax_year)
        entry = self._entries.get(tax_year)
        now = self._clock()
        if entry is not None and now < entry.expires_at:
            logger.debug("Tax table cache hit for %s", tax_year)
            return entry.tables

        logger.debug("Tax table cache miss for %s", tax_year)
        try:
            tables = await self._loader(tax_year)
        except SQLAlchemyError as exc:
            tables = fallback_tables()
            logger.warning(
                "Could not load tax tables for %s (%s); serving built-in %s tables",
                tax_year,
                exc,
                tables.tax_year,
            )
        else:
            if tables is None:
                raise TaxYearNotFoundError(tax_year)

        self._entries[tax_year] = _Entry(tables, now + self._ttl_seconds)
        return tables

    def clear(self, tax_year: str) -> None:
        """Drop the cached entry for one tax year (after an admin edit)."""
        self._entries.pop(tax_year, None)

    def clear_all(self) -> None:
        self._entries.clear()

    def cached_years(self) -> list[str]:
        return sorted(self._entries)


@lru_cache(maxsize=1)
def get_tax_table_cache() -> TaxTableCache:
    """Process-wide cache over the application database."""
    _, session_factory = init_db()
    return TaxTableCache(
        database_loader(session_factory),
        ttl_seconds=get_settings().tax_cache_ttl_seconds,
    )

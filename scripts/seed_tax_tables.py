"""Seed script for withholding tables.

Run with:
    python scripts/seed_tax_tables.py

Creates the schema if needed and stores the built-in tables for their tax
year, so period calculations read live rows instead of the fallback.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace

from shiftpay.calculators.tax_tables import fallback_tables
from shiftpay.calculators.types import DataSource
from shiftpay.database import create_schema, get_session
from shiftpay.repositories import TaxRepository


async def main():
    """Run seed script."""
    print("Seeding tax tables...")
    await create_schema()

    tables = replace(fallback_tables(), data_source=DataSource.LIVE)
    async with get_session() as session:
        created = await TaxRepository(session).store_tax_tables(tables)

    if created:
        print(f"\nDone! Tax tables for {tables.tax_year} seeded successfully.")
    else:
        print(f"Tax tables for {tables.tax_year} already exist, skipping...")


if __name__ == "__main__":
    asyncio.run(main())

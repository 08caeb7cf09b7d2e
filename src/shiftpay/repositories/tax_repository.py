"""Loading withholding tables and tax settings."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shiftpay.calculators.tax_tables import FALLBACK_MEDICARE
from shiftpay.calculators.types import CoefficientBracket, DataSource, TaxSettingsData, TaxTables
from shiftpay.models import HecsThreshold, StslRate, TaxCoefficient, TaxRateConfig, TaxSettings
from shiftpay.repositories.adapters import (
    coefficient_from_row,
    hecs_from_row,
    medicare_from_row,
    tax_settings_from_row,
)


class TaxRepository:
    """Reads and stores tax-year tables."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load_tax_tables(self, tax_year: str) -> TaxTables | None:
        """All active tables for ``tax_year``; None if the year is unknown.

        A year with coefficient rows but no rate config row still loads; the
        Medicare configuration then comes from the built-in table.
        """
        config_result = await self.session.execute(
            select(TaxRateConfig).where(
                TaxRateConfig.tax_year == tax_year,
                TaxRateConfig.is_active.is_(True),
            )
        )
        config = config_result.scalar_one_or_none()

        coefficient_result = await self.session.execute(
            select(TaxCoefficient)
            .where(TaxCoefficient.tax_year == tax_year, TaxCoefficient.is_active.is_(True))
            .order_by(TaxCoefficient.scale, TaxCoefficient.earnings_from)
        )
        coefficients = coefficient_result.scalars().all()

        stsl_result = await self.session.execute(
            select(StslRate)
            .where(StslRate.tax_year == tax_year, StslRate.is_active.is_(True))
            .order_by(StslRate.scale, StslRate.earnings_from)
        )
        stsl_rates = stsl_result.scalars().all()

        if config is None and not coefficients and not stsl_rates:
            return None

        hecs_result = await self.session.execute(
            select(HecsThreshold)
            .where(HecsThreshold.tax_year == tax_year, HecsThreshold.is_active.is_(True))
            .order_by(HecsThreshold.income_from)
        )

        return TaxTables(
            tax_year=tax_year,
            coefficients=tuple(coefficient_from_row(c) for c in coefficients),
            medicare=medicare_from_row(config) if config is not None else FALLBACK_MEDICARE,
            stsl_rates=tuple(coefficient_from_row(r) for r in stsl_rates),
            hecs_thresholds=tuple(hecs_from_row(h) for h in hecs_result.scalars().all()),
            data_source=DataSource.LIVE,
        )

    async def load_tax_settings(self) -> TaxSettingsData:
        """The payee's withholding declaration (defaults when unset)."""
        result = await self.session.execute(
            select(TaxSettings).order_by(TaxSettings.created_at.desc()).limit(1)
        )
        return tax_settings_from_row(result.scalar_one_or_none())

    async def store_tax_tables(self, tables: TaxTables) -> bool:
        """Insert ``tables`` unless the tax year already has a rate config.

        Returns True if rows were written.
        """
        existing = await self.session.execute(
            select(TaxRateConfig).where(TaxRateConfig.tax_year == tables.tax_year)
        )
        if existing.scalar_one_or_none() is not None:
            return False

        medicare = tables.medicare
        self.session.add(
            TaxRateConfig(
                tax_year=tables.tax_year,
                medicare_rate=medicare.rate,
                medicare_low_income_threshold=medicare.low_income_threshold,
                medicare_high_income_threshold=medicare.high_income_threshold,
                medicare_shading_rate=medicare.shading_rate,
            )
        )
        for bracket in tables.coefficients:
            self.session.add(TaxCoefficient(tax_year=tables.tax_year, **_bracket_columns(bracket)))
        for bracket in tables.stsl_rates:
            self.session.add(StslRate(tax_year=tables.tax_year, **_bracket_columns(bracket)))
        for hecs in tables.hecs_thresholds:
            self.session.add(
                HecsThreshold(
                    tax_year=tables.tax_year,
                    income_from=hecs.income_from,
                    income_to=hecs.income_to,
                    rate=hecs.rate,
                )
            )
        await self.session.flush()
        return True


def _bracket_columns(bracket: CoefficientBracket) -> dict:
    return {
        "scale": bracket.scale,
        "earnings_from": bracket.earnings_from,
        "earnings_to": bracket.earnings_to,
        "coefficient_a": bracket.coefficient_a,
        "coefficient_b": bracket.coefficient_b,
    }

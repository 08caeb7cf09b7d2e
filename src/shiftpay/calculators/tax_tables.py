"""Hardcoded withholding tables used when the database cannot be read.

Versioned by tax year. Only the most recent verified year is kept here;
anything newer must come from the database.
"""

from __future__ import annotations

from decimal import Decimal

from shiftpay.calculators.types import (
    CoefficientBracket,
    DataSource,
    HecsBracket,
    MedicareConfig,
    TaxScale,
    TaxTables,
)

FALLBACK_TAX_YEAR = "2024-25"


def _bracket(scale: TaxScale, low: int, high: int | None, a: str, b: str) -> CoefficientBracket:
    return CoefficientBracket(
        scale=scale.value,
        earnings_from=Decimal(low),
        earnings_to=Decimal(high) if high is not None else None,
        coefficient_a=Decimal(a),
        coefficient_b=Decimal(b),
    )


_S1 = TaxScale.NO_TAX_FREE_THRESHOLD
_S2 = TaxScale.TAX_FREE_THRESHOLD

FALLBACK_COEFFICIENTS: tuple[CoefficientBracket, ...] = (
    # Scale 2: tax-free threshold claimed
    _bracket(_S2, 0, 371, "0", "0"),
    _bracket(_S2, 371, 515, "0.19", "70.5385"),
    _bracket(_S2, 515, 721, "0.2348", "93.4615"),
    _bracket(_S2, 721, 1282, "0.219", "82.1154"),
    _bracket(_S2, 1282, 2307, "0.3477", "247.1154"),
    _bracket(_S2, 2307, None, "0.45", "482.6731"),
    # Scale 1: tax-free threshold not claimed (ATO schedule 1, from 1 July 2024)
    _bracket(_S1, 0, 150, "0.16", "0.16"),
    _bracket(_S1, 150, 371, "0.2117", "7.755"),
    _bracket(_S1, 371, 515, "0.189", "-0.6702"),
    _bracket(_S1, 515, 932, "0.3227", "68.3068"),
    _bracket(_S1, 932, 1957, "0.32", "65.791"),
    _bracket(_S1, 1957, 3111, "0.39", "202.791"),
    _bracket(_S1, 3111, None, "0.47", "451.791"),
)


def _hecs(low: int, high: int | None, rate: str) -> HecsBracket:
    return HecsBracket(
        income_from=Decimal(low),
        income_to=Decimal(high) if high is not None else None,
        rate=Decimal(rate),
    )


FALLBACK_HECS_THRESHOLDS: tuple[HecsBracket, ...] = (
    _hecs(51550, 59518, "0.01"),
    _hecs(59518, 63090, "0.02"),
    _hecs(63090, 66662, "0.025"),
    _hecs(66662, 70235, "0.03"),
    _hecs(70235, 74808, "0.035"),
    _hecs(74808, 79381, "0.04"),
    _hecs(79381, 84981, "0.045"),
    _hecs(84981, 90554, "0.05"),
    _hecs(90554, 96127, "0.055"),
    _hecs(96127, 101700, "0.06"),
    _hecs(101700, 109177, "0.065"),
    _hecs(109177, 116653, "0.07"),
    _hecs(116653, 124130, "0.075"),
    _hecs(124130, 131607, "0.08"),
    _hecs(131607, 139083, "0.085"),
    _hecs(139083, 147560, "0.09"),
    _hecs(147560, 156037, "0.095"),
    _hecs(156037, None, "0.10"),
)

FALLBACK_MEDICARE = MedicareConfig(
    rate=Decimal("0.02"),
    low_income_threshold=Decimal("27222"),
    high_income_threshold=Decimal("34027"),
    shading_rate=Decimal("0.10"),
)


def fallback_tables() -> TaxTables:
    """The hardcoded tables, tagged as a fallback data source."""
    return TaxTables(
        tax_year=FALLBACK_TAX_YEAR,
        coefficients=FALLBACK_COEFFICIENTS,
        medicare=FALLBACK_MEDICARE,
        stsl_rates=(),
        hecs_thresholds=FALLBACK_HECS_THRESHOLDS,
        data_source=DataSource.FALLBACK,
    )

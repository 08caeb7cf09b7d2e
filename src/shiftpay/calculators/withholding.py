"""PAYG, Medicare levy, and study-loan withholding using ATO coefficient formulas.

Coefficient brackets are keyed on a weekly earnings figure:

    x = floor(annual gross / 52) + 0.99
    weekly withholding = A * x - B

The weekly amount is converted back to the pay period and rounded down to
whole dollars. Medicare levy and HECS thresholds work on annual income.
"""

from __future__ import annotations

import logging
from decimal import ROUND_DOWN, Decimal

from shiftpay.calculators.breakdown import BreakdownBuilder
from shiftpay.calculators.types import (
    CoefficientBracket,
    MedicareExemption,
    StslScale,
    TaxScale,
    TaxSettingsData,
    TaxTables,
    WithholdingResult,
)

logger = logging.getLogger(__name__)

WEEKS_PER_YEAR = Decimal("52")
WEEKLY_CENTS_OFFSET = Decimal("0.99")
NO_TFN_RESIDENT_RATE = Decimal("0.47")
NO_TFN_FOREIGN_RESIDENT_RATE = Decimal("0.45")
ZERO = Decimal("0")


class TaxYearNotFoundError(Exception):
    """Raised when no withholding tables exist for the requested tax year."""

    def __init__(self, tax_year: str):
        self.tax_year = tax_year
        super().__init__(f"No tax configuration found for tax year {tax_year}")


class CoefficientBracketNotFoundError(Exception):
    """Raised when no coefficient bracket covers an earnings figure."""

    def __init__(self, scale: str, earnings: Decimal):
        self.scale = scale
        self.earnings = earnings
        super().__init__(f"No coefficient bracket for scale '{scale}' covering {earnings}")


def select_scale(settings: TaxSettingsData) -> TaxScale:
    """Pick the withholding scale implied by a payee's declaration."""
    if not settings.has_tax_file_number:
        return TaxScale.NO_TFN
    if settings.is_foreign_resident:
        return TaxScale.FOREIGN_RESIDENT
    if settings.medicare_exemption == MedicareExemption.FULL:
        return TaxScale.FULL_MEDICARE_EXEMPTION
    if settings.medicare_exemption == MedicareExemption.HALF:
        return TaxScale.HALF_MEDICARE_EXEMPTION
    if settings.claimed_tax_free_threshold:
        return TaxScale.TAX_FREE_THRESHOLD
    return TaxScale.NO_TAX_FREE_THRESHOLD


def select_stsl_scale(settings: TaxSettingsData) -> StslScale:
    if settings.claimed_tax_free_threshold or settings.is_foreign_resident:
        return StslScale.WITH_TFT_OR_FR
    return StslScale.NO_TFT


def weekly_earnings_figure(annual: Decimal) -> Decimal:
    """Whole weekly dollars plus 99 cents, as the coefficient tables expect."""
    weekly = (annual / WEEKS_PER_YEAR).quantize(Decimal("1"), rounding=ROUND_DOWN)
    return weekly + WEEKLY_CENTS_OFFSET


def find_bracket(
    brackets: list[CoefficientBracket], earnings: Decimal, scale: str
) -> CoefficientBracket:
    for bracket in brackets:
        if bracket.contains(earnings):
            return bracket
    raise CoefficientBracketNotFoundError(scale, earnings)


class WithholdingCalculator:
    """Computes period withholding from one tax year's tables."""

    def __init__(self, tables: TaxTables):
        self.tables = tables

    def calculate(
        self,
        gross: Decimal,
        periods_per_year: int,
        settings: TaxSettingsData,
    ) -> WithholdingResult:
        """Withholding for a period's gross pay.

        ``net + total_withholding == gross`` always holds.
        """
        gross = BreakdownBuilder.round_to_cents(max(gross, ZERO))
        ppy = Decimal(periods_per_year)
        annual = gross * ppy
        scale = select_scale(settings)

        payg = self._payg(gross, annual, ppy, scale, settings)
        medicare = self._medicare(annual, ppy, settings)
        stsl = self._stsl(annual, ppy, settings)
        extra = BreakdownBuilder.round_to_cents(settings.extra_withholding)

        total = payg + medicare + stsl + extra
        net = gross - total

        logger.debug(
            "Withholding for gross %s (%s, %s): payg=%s medicare=%s stsl=%s",
            gross,
            self.tables.tax_year,
            scale.value,
            payg,
            medicare,
            stsl,
        )

        return WithholdingResult(
            gross=gross,
            payg=payg,
            medicare=medicare,
            stsl=stsl,
            extra_withholding=extra,
            total_withholding=total,
            net=net,
            scale=scale,
            tax_year=self.tables.tax_year,
            periods_per_year=periods_per_year,
            data_source=self.tables.data_source,
        )

    def _brackets_for_scale(self, scale: TaxScale, settings: TaxSettingsData) -> list[CoefficientBracket]:
        brackets = self.tables.brackets_for(scale.value)
        if brackets:
            return brackets

        # Tables often carry only scales 1 and 2
        if scale == TaxScale.FOREIGN_RESIDENT or not settings.claimed_tax_free_threshold:
            substitute = TaxScale.NO_TAX_FREE_THRESHOLD
        else:
            substitute = TaxScale.TAX_FREE_THRESHOLD
        return self.tables.brackets_for(substitute.value)

    def _payg(
        self,
        gross: Decimal,
        annual: Decimal,
        ppy: Decimal,
        scale: TaxScale,
        settings: TaxSettingsData,
    ) -> Decimal:
        if scale == TaxScale.NO_TFN:
            rate = (
                NO_TFN_FOREIGN_RESIDENT_RATE
                if settings.is_foreign_resident
                else NO_TFN_RESIDENT_RATE
            )
            return BreakdownBuilder.floor_to_dollars(gross * rate)

        if gross == ZERO:
            return BreakdownBuilder.floor_to_dollars(ZERO)

        x = weekly_earnings_figure(annual)
        bracket = find_bracket(self._brackets_for_scale(scale, settings), x, scale.value)
        weekly = max(ZERO, bracket.coefficient_a * x - bracket.coefficient_b)
        return BreakdownBuilder.floor_to_dollars(weekly * WEEKS_PER_YEAR / ppy)

    def _medicare(self, annual: Decimal, ppy: Decimal, settings: TaxSettingsData) -> Decimal:
        config = self.tables.medicare
        if settings.medicare_exemption == MedicareExemption.FULL:
            return BreakdownBuilder.floor_to_dollars(ZERO)
        if annual <= config.low_income_threshold:
            return BreakdownBuilder.floor_to_dollars(ZERO)

        full_levy = config.rate * annual
        if annual >= config.high_income_threshold:
            levy = full_levy
        else:
            levy = min(full_levy, config.shading_rate * (annual - config.low_income_threshold))

        if settings.medicare_exemption == MedicareExemption.HALF:
            levy = levy / 2

        return BreakdownBuilder.floor_to_dollars(levy / ppy)

    def _stsl(self, annual: Decimal, ppy: Decimal, settings: TaxSettingsData) -> Decimal:
        if not settings.has_stsl_debt or annual == ZERO:
            return BreakdownBuilder.floor_to_dollars(ZERO)

        stsl_scale = select_stsl_scale(settings)
        brackets = self.tables.stsl_brackets_for(stsl_scale.value)
        if brackets:
            x = weekly_earnings_figure(annual)
            bracket = find_bracket(brackets, x, stsl_scale.value)
            weekly = max(ZERO, bracket.coefficient_a * x - bracket.coefficient_b)
            return BreakdownBuilder.floor_to_dollars(weekly * WEEKS_PER_YEAR / ppy)

        for threshold in self.tables.hecs_thresholds:
            if threshold.contains(annual):
                return BreakdownBuilder.floor_to_dollars(threshold.rate * annual / ppy)
        return BreakdownBuilder.floor_to_dollars(ZERO)

"""Shift pay and withholding calculation engine."""

from shiftpay.calculators.breakdown import BreakdownBuilder, CalculationBreakdown
from shiftpay.calculators.overtime import OvertimeTracker
from shiftpay.calculators.segmentation import SegmentationEngine, calculate_shift
from shiftpay.calculators.withholding import (
    CoefficientBracketNotFoundError,
    TaxYearNotFoundError,
    WithholdingCalculator,
)

__all__ = [
    "BreakdownBuilder",
    "CalculationBreakdown",
    "OvertimeTracker",
    "SegmentationEngine",
    "calculate_shift",
    "CoefficientBracketNotFoundError",
    "TaxYearNotFoundError",
    "WithholdingCalculator",
]

"""Persistence boundary: repositories and row adapters."""

from shiftpay.repositories.shift_repository import (
    ParentGone,
    Replaced,
    ReplaceResult,
    ShiftCalculationData,
    ShiftRepository,
)
from shiftpay.repositories.tax_repository import TaxRepository

__all__ = [
    "ParentGone",
    "Replaced",
    "ReplaceResult",
    "ShiftCalculationData",
    "ShiftRepository",
    "TaxRepository",
]

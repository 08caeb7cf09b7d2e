"""Input validation for shifts and pay guides."""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Sequence

from shiftpay.calculators.types import BreakSpan, PayGuideRules


class ShiftValidationError(Exception):
    """Raised when a shift span or its breaks are inconsistent."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("Invalid shift: " + "; ".join(errors))


class PayGuideValidationError(Exception):
    """Raised when a pay guide cannot be used for calculation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("Invalid pay guide: " + "; ".join(errors))


def validate_shift_times(
    start: datetime, end: datetime, breaks: Sequence[BreakSpan] = ()
) -> list[str]:
    """Check a shift span and its breaks.

    Returns list of error messages (empty if valid).
    """
    errors: list[str] = []
    if end <= start:
        errors.append("Shift end time must be after start time")
        return errors

    total_break = timedelta(0)
    for index, brk in enumerate(breaks, start=1):
        if brk.end <= brk.start:
            errors.append(f"Break {index} end time must be after its start time")
            continue
        if brk.start < start or brk.end > end:
            errors.append(f"Break {index} must fall within the shift")
        total_break += brk.end - brk.start

    ordered = sorted(breaks, key=lambda b: b.start)
    for previous, current in zip(ordered, ordered[1:]):
        if current.start < previous.end:
            errors.append("Break periods must not overlap")
            break

    if total_break >= end - start:
        errors.append("Total break time must be less than the shift duration")

    return errors


def ensure_valid_shift(
    start: datetime, end: datetime, breaks: Sequence[BreakSpan] = ()
) -> None:
    errors = validate_shift_times(start, end, breaks)
    if errors:
        raise ShiftValidationError(errors)


def validate_pay_guide(rules: PayGuideRules) -> list[str]:
    """Check the numeric configuration of a pay guide."""
    errors: list[str] = []
    if rules.base_rate <= 0:
        errors.append("Base rate must be greater than 0")
    if rules.casual_loading < 0:
        errors.append("Casual loading must not be negative")
    if rules.daily_overtime_hours is not None and rules.daily_overtime_hours <= 0:
        errors.append("Daily overtime threshold must be greater than 0")
    if rules.weekly_overtime_hours is not None and rules.weekly_overtime_hours <= 0:
        errors.append("Weekly overtime threshold must be greater than 0")
    if (
        rules.daily_overtime_hours is not None
        and rules.weekly_overtime_hours is not None
        and rules.weekly_overtime_hours < rules.daily_overtime_hours
    ):
        errors.append("Weekly overtime threshold must not be less than the daily threshold")
    if rules.overtime_first_tier_hours < Decimal("0"):
        errors.append("Overtime first tier hours must not be negative")
    if rules.minimum_shift_hours is not None and rules.minimum_shift_hours <= 0:
        errors.append("Minimum shift hours must be greater than 0")
    for frame in rules.penalty_frames:
        if frame.multiplier <= 0:
            errors.append(f"Penalty '{frame.name}' multiplier must be greater than 0")
    return errors


def ensure_valid_pay_guide(rules: PayGuideRules) -> None:
    errors = validate_pay_guide(rules)
    if errors:
        raise PayGuideValidationError(errors)

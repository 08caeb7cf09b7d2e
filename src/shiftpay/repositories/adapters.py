"""Map ORM rows into engine value types.

This is the only place where database rows are converted; the engine never
sees an ORM object.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from shiftpay.calculators.local_time import LocalTime, ensure_aware
from shiftpay.calculators.types import (
    BreakSpan,
    CoefficientBracket,
    HecsBracket,
    MedicareConfig,
    MedicareExemption,
    OrdinarySpan,
    OvertimeFrame,
    PayGuideRules,
    PenaltyFrame,
    ShiftInput,
    TaxSettingsData,
    combination_policy_from_code,
)
from shiftpay.models import (
    BreakPeriod,
    HecsThreshold,
    OrdinaryHoursSpan,
    OvertimeTimeFrame,
    PayGuide,
    PenaltyTimeFrame,
    Shift,
    StslRate,
    TaxCoefficient,
    TaxRateConfig,
    TaxSettings,
)


def _decimal(value: Decimal | int | float | None) -> Decimal | None:
    if value is None:
        return None
    return value if isinstance(value, Decimal) else Decimal(str(value))


def penalty_frame_from_row(row: PenaltyTimeFrame) -> PenaltyFrame:
    return PenaltyFrame(
        frame_id=row.penalty_time_frame_id,
        name=row.name,
        multiplier=_decimal(row.multiplier),
        day_of_week=row.day_of_week,
        start=LocalTime.parse_optional(row.start_time),
        end=LocalTime.parse_optional(row.end_time),
        is_public_holiday=row.is_public_holiday,
        order=row.sort_order,
    )


def overtime_frame_from_row(row: OvertimeTimeFrame) -> OvertimeFrame:
    return OvertimeFrame(
        frame_id=row.overtime_time_frame_id,
        name=row.name,
        first_tier_multiplier=_decimal(row.first_tier_multiplier),
        second_tier_multiplier=_decimal(row.second_tier_multiplier),
        day_of_week=row.day_of_week,
        start=LocalTime.parse_optional(row.start_time),
        end=LocalTime.parse_optional(row.end_time),
        is_public_holiday=row.is_public_holiday,
        order=row.sort_order,
    )


def ordinary_spans_from_rows(rows: Iterable[OrdinaryHoursSpan]) -> dict[int, OrdinarySpan]:
    return {
        row.day_of_week: OrdinarySpan(LocalTime.parse(row.start_time), LocalTime.parse(row.end_time))
        for row in rows
    }


def _by_declaration(rows):
    return sorted(rows, key=lambda r: (r.sort_order, r.name))


def pay_guide_to_rules(guide: PayGuide, default_timezone: str) -> PayGuideRules:
    """Build engine rules from a pay guide and its loaded children.

    Inactive frames and holidays are dropped here.
    """
    return PayGuideRules(
        pay_guide_id=guide.pay_guide_id,
        name=guide.name,
        base_rate=_decimal(guide.base_rate),
        casual_loading=_decimal(guide.casual_loading) or Decimal("0"),
        timezone=guide.timezone or default_timezone,
        ordinary_spans=ordinary_spans_from_rows(guide.ordinary_spans),
        penalty_frames=tuple(
            penalty_frame_from_row(f)
            for f in _by_declaration(guide.penalty_time_frames)
            if f.is_active
        ),
        overtime_frames=tuple(
            overtime_frame_from_row(f)
            for f in _by_declaration(guide.overtime_time_frames)
            if f.is_active
        ),
        public_holidays=frozenset(h.holiday_date for h in guide.public_holidays if h.is_active),
        daily_overtime_hours=_decimal(guide.daily_overtime_hours),
        weekly_overtime_hours=_decimal(guide.weekly_overtime_hours),
        overtime_first_tier_hours=_decimal(guide.overtime_first_tier_hours),
        overtime_on_span_boundary=guide.overtime_on_span_boundary,
        overtime_on_daily_limit=guide.overtime_on_daily_limit,
        overtime_on_weekly_limit=guide.overtime_on_weekly_limit,
        combination=combination_policy_from_code(guide.penalty_combination),
        minimum_shift_hours=_decimal(guide.minimum_shift_hours),
    )


def break_from_row(row: BreakPeriod) -> BreakSpan:
    return BreakSpan(start=ensure_aware(row.start_time), end=ensure_aware(row.end_time))


def shift_to_input(shift: Shift, prior_week_seconds: int = 0) -> ShiftInput:
    return ShiftInput(
        shift_id=shift.shift_id,
        start=ensure_aware(shift.start_time),
        end=ensure_aware(shift.end_time),
        breaks=tuple(break_from_row(b) for b in shift.break_periods),
        prior_week_seconds=prior_week_seconds,
    )


def tax_settings_from_row(row: TaxSettings | None) -> TaxSettingsData:
    """Declaration for withholding; defaults when none has been saved."""
    if row is None:
        return TaxSettingsData()
    return TaxSettingsData(
        claimed_tax_free_threshold=row.claimed_tax_free_threshold,
        is_foreign_resident=row.is_foreign_resident,
        has_tax_file_number=row.has_tax_file_number,
        medicare_exemption=MedicareExemption(row.medicare_exemption),
        has_stsl_debt=row.has_stsl_debt,
        extra_withholding=_decimal(row.extra_withholding) or Decimal("0"),
    )


def coefficient_from_row(row: TaxCoefficient | StslRate) -> CoefficientBracket:
    return CoefficientBracket(
        scale=row.scale,
        earnings_from=_decimal(row.earnings_from),
        earnings_to=_decimal(row.earnings_to),
        coefficient_a=_decimal(row.coefficient_a),
        coefficient_b=_decimal(row.coefficient_b),
    )


def hecs_from_row(row: HecsThreshold) -> HecsBracket:
    return HecsBracket(
        income_from=_decimal(row.income_from),
        income_to=_decimal(row.income_to),
        rate=_decimal(row.rate),
    )


def medicare_from_row(row: TaxRateConfig) -> MedicareConfig:
    return MedicareConfig(
        rate=_decimal(row.medicare_rate),
        low_income_threshold=_decimal(row.medicare_low_income_threshold),
        high_income_threshold=_decimal(row.medicare_high_income_threshold),
        shading_rate=_decimal(row.medicare_shading_rate),
    )

"""SQLAlchemy ORM models."""

from shiftpay.models.base import Base, TimestampMixin
from shiftpay.models.pay_guide import (
    OrdinaryHoursSpan,
    OvertimeTimeFrame,
    PayGuide,
    PenaltyTimeFrame,
    PublicHoliday,
)
from shiftpay.models.pay_period import (
    PayPeriod,
    PayPeriodExtra,
    PayPeriodExtraTemplate,
    TaxSettings,
)
from shiftpay.models.shift import BreakPeriod, Shift, ShiftOvertimeSegment, ShiftPenaltySegment
from shiftpay.models.tax import HecsThreshold, StslRate, TaxCoefficient, TaxRateConfig

__all__ = [
    "Base",
    "TimestampMixin",
    "PayGuide",
    "OrdinaryHoursSpan",
    "PenaltyTimeFrame",
    "OvertimeTimeFrame",
    "PublicHoliday",
    "Shift",
    "BreakPeriod",
    "ShiftPenaltySegment",
    "ShiftOvertimeSegment",
    "PayPeriod",
    "PayPeriodExtra",
    "PayPeriodExtraTemplate",
    "TaxSettings",
    "TaxCoefficient",
    "StslRate",
    "HecsThreshold",
    "TaxRateConfig",
]

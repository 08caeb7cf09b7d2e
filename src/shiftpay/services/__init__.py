"""Shift pay services."""

from shiftpay.services.period_status import (
    InvalidTransitionError,
    PayPeriodLockedError,
    PayPeriodStateMachine,
    PayPeriodStatus,
)
from shiftpay.services.pay_period_service import PayPeriodService
from shiftpay.services.period_tax_service import PeriodTaxService, UncalculatedShiftsError
from shiftpay.services.shift_pay_service import ShiftPayService
from shiftpay.services.tax_table_cache import TaxTableCache

__all__ = [
    "InvalidTransitionError",
    "PayPeriodLockedError",
    "PayPeriodStateMachine",
    "PayPeriodStatus",
    "PayPeriodService",
    "PeriodTaxService",
    "UncalculatedShiftsError",
    "ShiftPayService",
    "TaxTableCache",
]

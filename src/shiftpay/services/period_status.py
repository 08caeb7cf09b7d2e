"""Pay period status machine and lock guard."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from shiftpay.models import PayPeriod


class PayPeriodStatus(str, Enum):
    """Pay period status values."""

    OPEN = "open"
    PROCESSED = "processed"
    VERIFIED = "verified"


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PayPeriodLockedError(Exception):
    """Raised when a verified pay period would be mutated.

    Callers should ask the user to reopen the period first.
    """

    def __init__(self, pay_period_id: UUID | str):
        self.pay_period_id = pay_period_id
        super().__init__(
            f"Pay period {pay_period_id} is verified and locked; reopen it before making changes"
        )


def _status_value(status: str) -> str:
    return status.value if isinstance(status, PayPeriodStatus) else status


class PayPeriodStateMachine:
    """State machine for pay period status transitions.

    Allowed transitions:
    - open → processed
    - processed → verified
    - processed → open (reopen)
    - verified → open (reopen)
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayPeriodStatus.OPEN.value: [PayPeriodStatus.PROCESSED],
        PayPeriodStatus.PROCESSED.value: [PayPeriodStatus.VERIFIED, PayPeriodStatus.OPEN],
        PayPeriodStatus.VERIFIED.value: [PayPeriodStatus.OPEN],
    }

    # Statuses where extras and recalculation are rejected
    LOCKED = {PayPeriodStatus.VERIFIED.value}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(_status_value(from_status), [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def is_locked(cls, status: str) -> bool:
        return _status_value(status) in cls.LOCKED

    @classmethod
    def is_reopen(cls, from_status: str, to_status: str) -> bool:
        return to_status == PayPeriodStatus.OPEN and from_status != PayPeriodStatus.OPEN

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        return cls.VALID_TRANSITIONS.get(_status_value(current_status), [])

    @classmethod
    def require_editable(cls, period: PayPeriod) -> None:
        """Raise PayPeriodLockedError if ``period`` is locked."""
        if cls.is_locked(period.status):
            raise PayPeriodLockedError(period.pay_period_id)

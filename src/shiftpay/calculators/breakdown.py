"""Calculation breakdown builder with deterministic fingerprinting."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Any

from shiftpay.calculators.types import SECONDS_PER_HOUR, Segment, SegmentKind, ShiftCalculation


@dataclass(frozen=True)
class BreakdownLine:
    """One priced component of a shift, as shown to consumers."""

    kind: SegmentKind
    name: str
    start: datetime
    end: datetime
    hours: Decimal
    multiplier: Decimal
    rate: Decimal
    amount: Decimal
    tier: int | None = None

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "kind": self.kind.value,
            "name": self.name,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "hours": str(self.hours),
            "multiplier": str(self.multiplier),
            "rate": str(self.rate),
            "amount": str(self.amount),
            "tier": self.tier,
        }


@dataclass(frozen=True)
class CalculationBreakdown:
    """Per-component lines plus totals for a shift calculation."""

    lines: tuple[BreakdownLine, ...]
    total_hours: Decimal
    base_pay: Decimal
    penalty_pay: Decimal
    overtime_pay: Decimal
    total_pay: Decimal
    fingerprint: str = field(default="")

    def to_canonical_dict(self) -> dict[str, Any]:
        return {
            "lines": [line.to_canonical_dict() for line in self.lines],
            "total_hours": str(self.total_hours),
            "base_pay": str(self.base_pay),
            "penalty_pay": str(self.penalty_pay),
            "overtime_pay": str(self.overtime_pay),
            "total_pay": str(self.total_pay),
        }


class BreakdownBuilder:
    """Money rounding and breakdown assembly.

    Rounding policy:
    - durations are exact integer seconds throughout
    - each segment's pay is rounded half-up to cents once, at the pay step
    - totals are sums of rounded segment pays, so they reconcile exactly
    - withholding components round down to whole dollars
    """

    OUTPUT_PRECISION = Decimal("0.01")
    DOLLAR = Decimal("1")

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places (cents)."""
        return amount.quantize(BreakdownBuilder.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def floor_to_dollars(amount: Decimal) -> Decimal:
        """Round a non-negative amount down to whole dollars, kept at cent scale."""
        return amount.quantize(BreakdownBuilder.DOLLAR, rounding=ROUND_DOWN).quantize(
            BreakdownBuilder.OUTPUT_PRECISION
        )

    @staticmethod
    def price(seconds: int, base_rate: Decimal, multiplier: Decimal) -> Decimal:
        """Pay for ``seconds`` of work at ``base_rate * multiplier``."""
        return BreakdownBuilder.round_to_cents(
            Decimal(seconds) * base_rate * multiplier / SECONDS_PER_HOUR
        )

    @staticmethod
    def compute_fingerprint(canonical: dict[str, Any]) -> str:
        """Deterministic hash of a canonical dict.

        Identical inputs produce identical fingerprints, which makes repeated
        recalculation checkable for idempotence.
        """
        json_str = json.dumps(canonical, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()

    @classmethod
    def line_from_segment(cls, segment: Segment, base_rate: Decimal) -> BreakdownLine:
        return BreakdownLine(
            kind=segment.kind,
            name=segment.name,
            start=segment.start,
            end=segment.end,
            hours=segment.hours,
            multiplier=segment.multiplier,
            rate=base_rate * segment.multiplier,
            amount=segment.pay,
            tier=segment.tier,
        )

    @classmethod
    def build(cls, calculation: ShiftCalculation, base_rate: Decimal) -> CalculationBreakdown:
        """Assemble the consumer-facing breakdown of a shift calculation."""
        lines = tuple(cls.line_from_segment(s, base_rate) for s in calculation.segments)
        unsigned = CalculationBreakdown(
            lines=lines,
            total_hours=calculation.total_hours,
            base_pay=calculation.base_pay,
            penalty_pay=calculation.penalty_pay,
            overtime_pay=calculation.overtime_pay,
            total_pay=calculation.total_pay,
        )
        return replace(unsigned, fingerprint=cls.compute_fingerprint(unsigned.to_canonical_dict()))

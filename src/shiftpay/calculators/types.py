"""Type definitions for the calculation pipeline.

These are the value types the engine works with. Database rows are mapped
into them once, by the repository adapters, and never passed in directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Union
from uuid import UUID

from shiftpay.calculators.local_time import LocalTime

SECONDS_PER_HOUR = Decimal("3600")
HOURS_PRECISION = Decimal("0.000001")


def hours_from_seconds(seconds: int) -> Decimal:
    """Convert whole seconds to hours at the persisted precision."""
    return (Decimal(seconds) / SECONDS_PER_HOUR).quantize(HOURS_PRECISION)


# ===== Shift rules =====


class SegmentKind(str, Enum):
    """Classification of a priced time segment."""

    ORDINARY = "ORDINARY"
    PENALTY = "PENALTY"
    OVERTIME = "OVERTIME"


@dataclass(frozen=True)
class Exclusive:
    """Only the larger of the overtime and penalty multipliers applies."""

    code = "exclusive"

    def combine(self, overtime: Decimal, penalty: Decimal) -> Decimal:
        return max(overtime, penalty)


@dataclass(frozen=True)
class Additive:
    """Overtime tier multiplier plus the penalty's uplift above 1.0.

    Only applies where a penalty frame overlaps overtime; the result is
    ``overtime + (penalty - 1)``. A 2.25 overtime tier worked under a 1.75
    Sunday penalty pays 3.00, not 2.25 or 4.00.
    """

    code = "additive"

    def combine(self, overtime: Decimal, penalty: Decimal) -> Decimal:
        return overtime + (penalty - Decimal("1"))


CombinationPolicy = Union[Exclusive, Additive]

_COMBINATION_POLICIES: dict[str, CombinationPolicy] = {
    Exclusive.code: Exclusive(),
    Additive.code: Additive(),
}


def combination_policy_from_code(code: str) -> CombinationPolicy:
    """Resolve a stored policy code, rejecting unknown values."""
    try:
        return _COMBINATION_POLICIES[code]
    except KeyError:
        raise ValueError(f"Unknown penalty combination policy '{code}'") from None


@dataclass(frozen=True)
class OrdinarySpan:
    """Ordinary-hours window for a weekday."""

    start: LocalTime
    end: LocalTime


@dataclass(frozen=True)
class PenaltyFrame:
    """Penalty rule: multiplier for hours matching a day/time condition."""

    name: str
    multiplier: Decimal
    frame_id: UUID | None = None
    day_of_week: int | None = None  # 0=Sunday
    start: LocalTime | None = None
    end: LocalTime | None = None
    is_public_holiday: bool = False
    order: int = 0

    @property
    def rank(self) -> int:
        """Precedence rank: public holiday > weekend day > other windows."""
        if self.is_public_holiday:
            return 3
        if self.day_of_week in (0, 6):
            return 2
        return 1


@dataclass(frozen=True)
class OvertimeFrame:
    """Overtime rule: tiered multipliers for hours already identified as overtime."""

    name: str
    first_tier_multiplier: Decimal
    second_tier_multiplier: Decimal
    frame_id: UUID | None = None
    day_of_week: int | None = None
    start: LocalTime | None = None
    end: LocalTime | None = None
    is_public_holiday: bool = False
    order: int = 0

    @property
    def rank(self) -> int:
        """Precedence rank: public holiday > day-specific > general."""
        if self.is_public_holiday:
            return 3
        if self.day_of_week is not None:
            return 2
        return 1

    def multiplier_for_tier(self, tier: int) -> Decimal:
        return self.first_tier_multiplier if tier == 1 else self.second_tier_multiplier


@dataclass(frozen=True)
class PayGuideRules:
    """Everything the engine needs to know about a pay guide."""

    name: str
    base_rate: Decimal
    timezone: str
    casual_loading: Decimal = Decimal("0")
    pay_guide_id: UUID | None = None
    ordinary_spans: dict[int, OrdinarySpan] = field(default_factory=dict)
    penalty_frames: tuple[PenaltyFrame, ...] = ()
    overtime_frames: tuple[OvertimeFrame, ...] = ()
    public_holidays: frozenset[date] = frozenset()
    daily_overtime_hours: Decimal | None = None
    weekly_overtime_hours: Decimal | None = None
    overtime_first_tier_hours: Decimal = Decimal("3")
    overtime_on_span_boundary: bool = True
    overtime_on_daily_limit: bool = True
    overtime_on_weekly_limit: bool = True
    combination: CombinationPolicy = Exclusive()
    # Shorter shifts are paid as if they ran this long
    minimum_shift_hours: Decimal | None = None

    @property
    def ordinary_multiplier(self) -> Decimal:
        """Multiplier for ordinary hours (casual loading included)."""
        return Decimal("1") + self.casual_loading


@dataclass(frozen=True)
class BreakSpan:
    """Unpaid break interval."""

    start: datetime
    end: datetime


@dataclass(frozen=True)
class ShiftInput:
    """A shift span to be priced."""

    start: datetime
    end: datetime
    breaks: tuple[BreakSpan, ...] = ()
    shift_id: UUID | None = None
    # Worked seconds of earlier shifts in the same local week and pay period
    prior_week_seconds: int = 0


@dataclass(frozen=True)
class Segment:
    """A priced, non-overlapping slice of a shift."""

    kind: SegmentKind
    name: str
    start: datetime
    end: datetime
    seconds: int  # worked seconds; break time inside [start, end) is excluded
    multiplier: Decimal
    pay: Decimal
    time_frame_id: UUID | None = None
    tier: int | None = None
    # Worked seconds of the shift before this segment
    offset_seconds: int = 0

    @property
    def hours(self) -> Decimal:
        """Hours between rounded cumulative boundaries, so segment hours sum to the shift total."""
        return hours_from_seconds(self.offset_seconds + self.seconds) - hours_from_seconds(
            self.offset_seconds
        )


@dataclass(frozen=True)
class ShiftCalculation:
    """Result of pricing one shift."""

    segments: tuple[Segment, ...]
    worked_seconds: int
    base_pay: Decimal
    penalty_pay: Decimal
    overtime_pay: Decimal
    total_pay: Decimal

    @property
    def total_hours(self) -> Decimal:
        return hours_from_seconds(self.worked_seconds)

    @property
    def overtime_seconds(self) -> int:
        return sum(s.seconds for s in self.segments if s.kind == SegmentKind.OVERTIME)

    def segments_of(self, kind: SegmentKind) -> list[Segment]:
        return [s for s in self.segments if s.kind == kind]


# ===== Tax =====


class TaxScale(str, Enum):
    """PAYG withholding scales."""

    NO_TAX_FREE_THRESHOLD = "scale1"
    TAX_FREE_THRESHOLD = "scale2"
    FOREIGN_RESIDENT = "scale3"
    NO_TFN = "scale4"
    FULL_MEDICARE_EXEMPTION = "scale5"
    HALF_MEDICARE_EXEMPTION = "scale6"


class StslScale(str, Enum):
    """Study and training support loan component scales."""

    WITH_TFT_OR_FR = "WITH_TFT_OR_FR"
    NO_TFT = "NO_TFT"


class MedicareExemption(str, Enum):
    NONE = "none"
    HALF = "half"
    FULL = "full"


class DataSource(str, Enum):
    """Where a set of tax tables came from."""

    LIVE = "live"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class CoefficientBracket:
    """Bracket for the ``A * x - B`` withholding formula."""

    scale: str
    earnings_from: Decimal
    earnings_to: Decimal | None  # None = no upper limit
    coefficient_a: Decimal
    coefficient_b: Decimal

    def contains(self, earnings: Decimal) -> bool:
        if earnings < self.earnings_from:
            return False
        return self.earnings_to is None or earnings < self.earnings_to


@dataclass(frozen=True)
class HecsBracket:
    """Annual-income repayment rate bracket."""

    income_from: Decimal
    income_to: Decimal | None
    rate: Decimal

    def contains(self, income: Decimal) -> bool:
        if income < self.income_from:
            return False
        return self.income_to is None or income < self.income_to


@dataclass(frozen=True)
class MedicareConfig:
    """Medicare levy rate and low-income shading thresholds (annual amounts)."""

    rate: Decimal
    low_income_threshold: Decimal
    high_income_threshold: Decimal
    shading_rate: Decimal = Decimal("0.10")


@dataclass(frozen=True)
class TaxTables:
    """All withholding tables for one tax year."""

    tax_year: str
    coefficients: tuple[CoefficientBracket, ...]
    medicare: MedicareConfig
    stsl_rates: tuple[CoefficientBracket, ...] = ()
    hecs_thresholds: tuple[HecsBracket, ...] = ()
    data_source: DataSource = DataSource.LIVE

    def brackets_for(self, scale: str) -> list[CoefficientBracket]:
        return sorted(
            (b for b in self.coefficients if b.scale == scale),
            key=lambda b: b.earnings_from,
        )

    def stsl_brackets_for(self, scale: str) -> list[CoefficientBracket]:
        return sorted(
            (b for b in self.stsl_rates if b.scale == scale),
            key=lambda b: b.earnings_from,
        )


@dataclass(frozen=True)
class TaxSettingsData:
    """Payee's withholding declaration."""

    claimed_tax_free_threshold: bool = True
    is_foreign_resident: bool = False
    has_tax_file_number: bool = True
    medicare_exemption: MedicareExemption = MedicareExemption.NONE
    has_stsl_debt: bool = False
    extra_withholding: Decimal = Decimal("0")


DEFAULT_TAX_SETTINGS = TaxSettingsData()


@dataclass(frozen=True)
class WithholdingResult:
    """Withholding breakdown for one pay period."""

    gross: Decimal
    payg: Decimal
    medicare: Decimal
    stsl: Decimal
    extra_withholding: Decimal
    total_withholding: Decimal
    net: Decimal
    scale: TaxScale
    tax_year: str
    periods_per_year: int
    data_source: DataSource = DataSource.LIVE

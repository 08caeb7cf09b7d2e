"""Pay guide, penalty/overtime time frame, and public holiday models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shiftpay.models.base import Base, TimestampMixin


class PayGuide(Base, TimestampMixin):
    """Named rate-and-rules configuration a shift is evaluated against."""

    __tablename__ = "pay_guide"

    pay_guide_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    base_rate: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False)
    casual_loading: Mapped[Decimal] = mapped_column(
        Numeric(6, 4), nullable=False, default=Decimal("0")
    )
    timezone: Mapped[str | None] = mapped_column(String, nullable=True)
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Overtime thresholds and triggers
    daily_overtime_hours: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    weekly_overtime_hours: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    overtime_first_tier_hours: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), nullable=False, default=Decimal("3")
    )
    overtime_on_span_boundary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    overtime_on_daily_limit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    overtime_on_weekly_limit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    penalty_combination: Mapped[str] = mapped_column(
        String, nullable=False, default="exclusive"
    )
    minimum_shift_hours: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)

    __table_args__ = (
        CheckConstraint("base_rate > 0", name="pay_guide_base_rate_check"),
        CheckConstraint(
            "minimum_shift_hours IS NULL OR minimum_shift_hours > 0",
            name="pay_guide_minimum_shift_hours_check",
        ),
        CheckConstraint(
            "penalty_combination IN ('exclusive', 'additive')",
            name="pay_guide_penalty_combination_check",
        ),
        CheckConstraint(
            "effective_to IS NULL OR effective_to >= effective_from",
            name="pay_guide_dates_check",
        ),
    )

    # Relationships
    ordinary_spans: Mapped[list[OrdinaryHoursSpan]] = relationship(
        back_populates="pay_guide", cascade="all, delete-orphan"
    )
    penalty_time_frames: Mapped[list[PenaltyTimeFrame]] = relationship(
        back_populates="pay_guide", cascade="all, delete-orphan"
    )
    overtime_time_frames: Mapped[list[OvertimeTimeFrame]] = relationship(
        back_populates="pay_guide", cascade="all, delete-orphan"
    )
    public_holidays: Mapped[list[PublicHoliday]] = relationship(
        back_populates="pay_guide", cascade="all, delete-orphan"
    )


class OrdinaryHoursSpan(Base):
    """Ordinary-hours window for one weekday (0=Sunday)."""

    __tablename__ = "ordinary_hours_span"

    ordinary_hours_span_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    pay_guide_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_guide.pay_guide_id", ondelete="CASCADE"),
        nullable=False,
    )
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)

    __table_args__ = (
        UniqueConstraint("pay_guide_id", "day_of_week", name="ordinary_span_day_unique"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ordinary_span_dow_check"),
    )

    pay_guide: Mapped[PayGuide] = relationship(back_populates="ordinary_spans")


class PenaltyTimeFrame(Base, TimestampMixin):
    """Penalty multiplier applying to hours matching a day/time condition."""

    __tablename__ = "penalty_time_frame"

    penalty_time_frame_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    pay_guide_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_guide.pay_guide_id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    multiplier: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)
    day_of_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    end_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    is_public_holiday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("multiplier > 0", name="penalty_frame_multiplier_check"),
        CheckConstraint(
            "day_of_week IS NULL OR day_of_week BETWEEN 0 AND 6",
            name="penalty_frame_dow_check",
        ),
    )

    pay_guide: Mapped[PayGuide] = relationship(back_populates="penalty_time_frames")


class OvertimeTimeFrame(Base, TimestampMixin):
    """Tiered overtime multipliers applying once threshold hours are identified."""

    __tablename__ = "overtime_time_frame"

    overtime_time_frame_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    pay_guide_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_guide.pay_guide_id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    first_tier_multiplier: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)
    second_tier_multiplier: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)
    day_of_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    end_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    is_public_holiday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint(
            "first_tier_multiplier > 0 AND second_tier_multiplier > 0",
            name="overtime_frame_multiplier_check",
        ),
        CheckConstraint(
            "day_of_week IS NULL OR day_of_week BETWEEN 0 AND 6",
            name="overtime_frame_dow_check",
        ),
    )

    pay_guide: Mapped[PayGuide] = relationship(back_populates="overtime_time_frames")


class PublicHoliday(Base, TimestampMixin):
    """Public holiday date scoped to a pay guide."""

    __tablename__ = "public_holiday"

    public_holiday_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    pay_guide_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_guide.pay_guide_id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    holiday_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("pay_guide_id", "holiday_date", name="public_holiday_date_unique"),
    )

    pay_guide: Mapped[PayGuide] = relationship(back_populates="public_holidays")

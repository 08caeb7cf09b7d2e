"""Shift, break period, and computed segment models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shiftpay.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from shiftpay.models.pay_guide import PayGuide
    from shiftpay.models.pay_period import PayPeriod


class Shift(Base, TimestampMixin):
    """Worked shift. Aggregate pay fields are derived by recalculation only."""

    __tablename__ = "shift"

    shift_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    pay_guide_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_guide.pay_guide_id", ondelete="RESTRICT"),
        nullable=False,
    )
    pay_period_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("pay_period.pay_period_id", ondelete="SET NULL"),
        nullable=True,
    )
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Derived aggregates
    total_hours: Mapped[Decimal | None] = mapped_column(Numeric(10, 6), nullable=True)
    base_pay: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    penalty_pay: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    overtime_pay: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    total_pay: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    calculation_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="shift_times_check"),
    )

    # Relationships
    pay_guide: Mapped[PayGuide] = relationship()
    pay_period: Mapped[PayPeriod | None] = relationship(back_populates="shifts")
    break_periods: Mapped[list[BreakPeriod]] = relationship(
        back_populates="shift", cascade="all, delete-orphan"
    )
    penalty_segments: Mapped[list[ShiftPenaltySegment]] = relationship(
        back_populates="shift", cascade="all, delete-orphan"
    )
    overtime_segments: Mapped[list[ShiftOvertimeSegment]] = relationship(
        back_populates="shift", cascade="all, delete-orphan"
    )


class BreakPeriod(Base):
    """Unpaid break inside a shift."""

    __tablename__ = "break_period"

    break_period_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    shift_id: Mapped[UUID] = mapped_column(
        ForeignKey("shift.shift_id", ondelete="CASCADE"),
        nullable=False,
    )
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="break_period_times_check"),
    )

    shift: Mapped[Shift] = relationship(back_populates="break_periods")


class ShiftPenaltySegment(Base):
    """Computed ordinary/penalty segment. Replaced wholesale on recalculation."""

    __tablename__ = "shift_penalty_segment"

    segment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    shift_id: Mapped[UUID] = mapped_column(
        ForeignKey("shift.shift_id", ondelete="CASCADE"),
        nullable=False,
    )
    penalty_time_frame_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("penalty_time_frame.penalty_time_frame_id", ondelete="SET NULL"),
        nullable=True,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    multiplier: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)
    hours: Mapped[Decimal] = mapped_column(Numeric(10, 6), nullable=False)
    pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    shift: Mapped[Shift] = relationship(back_populates="penalty_segments")


class ShiftOvertimeSegment(Base):
    """Computed overtime segment. Replaced wholesale on recalculation."""

    __tablename__ = "shift_overtime_segment"

    segment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    shift_id: Mapped[UUID] = mapped_column(
        ForeignKey("shift.shift_id", ondelete="CASCADE"),
        nullable=False,
    )
    overtime_time_frame_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("overtime_time_frame.overtime_time_frame_id", ondelete="SET NULL"),
        nullable=True,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    tier: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    multiplier: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)
    hours: Mapped[Decimal] = mapped_column(Numeric(10, 6), nullable=False)
    pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("tier IN (1, 2)", name="overtime_segment_tier_check"),
    )

    shift: Mapped[Shift] = relationship(back_populates="overtime_segments")

"""Pay period, period extras, and tax settings models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shiftpay.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from shiftpay.models.shift import Shift


class PayPeriod(Base, TimestampMixin):
    """Pay period with withholding totals."""

    __tablename__ = "pay_period"

    pay_period_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    period_type: Mapped[str] = mapped_column(String, nullable=False, default="fortnightly")
    status: Mapped[str] = mapped_column(String, nullable=False, default="open")

    # Totals (written by period tax calculation)
    total_hours: Mapped[Decimal | None] = mapped_column(Numeric(10, 6), nullable=True)
    total_pay: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    payg_withholding: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    medicare_levy: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    stsl_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    total_withholdings: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    net_pay: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    tax_year: Mapped[str | None] = mapped_column(String(7), nullable=True)
    tax_data_source: Mapped[str | None] = mapped_column(String, nullable=True)
    calculated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("start_date", "end_date", name="pay_period_dates_unique"),
        CheckConstraint(
            "status IN ('open', 'processed', 'verified')",
            name="pay_period_status_check",
        ),
        CheckConstraint(
            "period_type IN ('weekly', 'fortnightly', 'monthly')",
            name="pay_period_type_check",
        ),
        CheckConstraint("end_date >= start_date", name="pay_period_dates_check"),
    )

    # Relationships
    shifts: Mapped[list[Shift]] = relationship(back_populates="pay_period")
    extras: Mapped[list[PayPeriodExtra]] = relationship(
        back_populates="pay_period", cascade="all, delete-orphan"
    )


class PayPeriodExtra(Base, TimestampMixin):
    """Allowance, bonus, or other amount attached to a pay period."""

    __tablename__ = "pay_period_extra"

    pay_period_extra_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    pay_period_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_period.pay_period_id", ondelete="CASCADE"),
        nullable=False,
    )
    extra_type: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    taxable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    pay_period: Mapped[PayPeriod] = relationship(back_populates="extras")


class PayPeriodExtraTemplate(Base, TimestampMixin):
    """Extra copied onto every new pay period while active."""

    __tablename__ = "pay_period_extra_template"

    pay_period_extra_template_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    label: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    taxable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class TaxSettings(Base, TimestampMixin):
    """Withholding declaration for the (single) payee."""

    __tablename__ = "tax_settings"

    tax_settings_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    claimed_tax_free_threshold: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_foreign_resident: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_tax_file_number: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    medicare_exemption: Mapped[str] = mapped_column(String, nullable=False, default="none")
    has_stsl_debt: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    extra_withholding: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )

    __table_args__ = (
        CheckConstraint(
            "medicare_exemption IN ('none', 'half', 'full')",
            name="tax_settings_medicare_exemption_check",
        ),
    )

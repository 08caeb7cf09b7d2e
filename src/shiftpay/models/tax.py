"""Tax-year coefficient, threshold, and rate configuration models."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Boolean, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from shiftpay.models.base import Base, TimestampMixin


class TaxCoefficient(Base, TimestampMixin):
    """PAYG withholding coefficient bracket (withholding = A * x - B)."""

    __tablename__ = "tax_coefficient"

    tax_coefficient_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tax_year: Mapped[str] = mapped_column(String(7), nullable=False, index=True)
    scale: Mapped[str] = mapped_column(String, nullable=False)
    earnings_from: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    earnings_to: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    coefficient_a: Mapped[Decimal] = mapped_column(Numeric(10, 6), nullable=False)
    coefficient_b: Mapped[Decimal] = mapped_column(Numeric(12, 6), nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint(
            "tax_year", "scale", "earnings_from", name="tax_coefficient_bracket_unique"
        ),
    )


class StslRate(Base, TimestampMixin):
    """Study and training support loan component coefficient bracket."""

    __tablename__ = "stsl_rate"

    stsl_rate_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tax_year: Mapped[str] = mapped_column(String(7), nullable=False, index=True)
    scale: Mapped[str] = mapped_column(String, nullable=False)
    earnings_from: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    earnings_to: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    coefficient_a: Mapped[Decimal] = mapped_column(Numeric(10, 6), nullable=False)
    coefficient_b: Mapped[Decimal] = mapped_column(Numeric(12, 6), nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("tax_year", "scale", "earnings_from", name="stsl_rate_bracket_unique"),
    )


class HecsThreshold(Base, TimestampMixin):
    """Annual-income repayment rate bracket for study loans."""

    __tablename__ = "hecs_threshold"

    hecs_threshold_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tax_year: Mapped[str] = mapped_column(String(7), nullable=False, index=True)
    income_from: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    income_to: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    rate: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("tax_year", "income_from", name="hecs_threshold_bracket_unique"),
    )


class TaxRateConfig(Base, TimestampMixin):
    """Per-year Medicare levy rate and shading thresholds."""

    __tablename__ = "tax_rate_config"

    tax_rate_config_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tax_year: Mapped[str] = mapped_column(String(7), nullable=False, unique=True)
    medicare_rate: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)
    medicare_low_income_threshold: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    medicare_high_income_threshold: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    medicare_shading_rate: Mapped[Decimal] = mapped_column(
        Numeric(6, 4), nullable=False, default=Decimal("0.10")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

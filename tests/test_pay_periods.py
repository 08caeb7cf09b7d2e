"""Tests for pay period boundaries and tax years."""

from datetime import date, timedelta

import pytest

from shiftpay.calculators.pay_periods import (
    PayPeriodType,
    period_bounds,
    tax_year_bounds,
    tax_year_for,
    week_start,
)


class TestPeriodBounds:
    """Pay period containing a date."""

    def test_week_start_is_monday(self):
        assert week_start(date(2024, 7, 21)) == date(2024, 7, 15)
        assert week_start(date(2024, 7, 15)) == date(2024, 7, 15)

    def test_weekly(self):
        assert period_bounds(date(2024, 7, 17), PayPeriodType.WEEKLY) == (
            date(2024, 7, 15),
            date(2024, 7, 21),
        )

    def test_fortnightly(self):
        assert period_bounds(date(2024, 7, 17), "fortnightly") == (
            date(2024, 7, 8),
            date(2024, 7, 21),
        )

    def test_consecutive_fortnights(self):
        start, end = period_bounds(date(2024, 7, 17), PayPeriodType.FORTNIGHTLY)
        next_start, next_end = period_bounds(end + timedelta(days=1), PayPeriodType.FORTNIGHTLY)

        assert start.weekday() == 0
        assert next_start == end + timedelta(days=1)
        assert next_end - next_start == timedelta(days=13)

    def test_monthly_leap_february(self):
        assert period_bounds(date(2024, 2, 10), PayPeriodType.MONTHLY) == (
            date(2024, 2, 1),
            date(2024, 2, 29),
        )

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            period_bounds(date(2024, 7, 17), "quarterly")

    def test_periods_per_year(self):
        assert PayPeriodType.WEEKLY.periods_per_year == 52
        assert PayPeriodType.FORTNIGHTLY.periods_per_year == 26
        assert PayPeriodType.MONTHLY.periods_per_year == 12


class TestTaxYears:
    """Australian tax years run 1 July to 30 June."""

    def test_tax_year_for(self):
        assert tax_year_for(date(2024, 7, 1)) == "2024-25"
        assert tax_year_for(date(2024, 6, 30)) == "2023-24"
        assert tax_year_for(date(1999, 12, 31)) == "1999-00"

    def test_tax_year_bounds(self):
        assert tax_year_bounds("2024-25") == (date(2024, 7, 1), date(2025, 6, 30))

    @pytest.mark.parametrize("value", ["2024-26", "2024", "24-25", ""])
    def test_invalid_tax_year(self, value):
        with pytest.raises(ValueError):
            tax_year_bounds(value)

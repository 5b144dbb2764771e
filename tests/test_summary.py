"""Tests for dashboard summaries and number coercion."""

from datetime import datetime
from decimal import Decimal

import pytest

from agentbooks.calculators.summary import (
    expenses_by_category,
    mileage_cost,
    mileage_totals,
    monthly_net_income,
)
from agentbooks.models import Deal, Expense, MileageEntry
from agentbooks.money import quantize_money, safe_number


class TestSafeNumber:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (12, Decimal("12")),
            (0.1, Decimal("0.1")),
            ("  42.5 ", Decimal("42.5")),
            (Decimal("7.25"), Decimal("7.25")),
            ("", Decimal("0")),
            ("abc", Decimal("0")),
            (None, Decimal("0")),
            (True, Decimal("0")),
            ("NaN", Decimal("0")),
            (float("inf"), Decimal("0")),
            ([1, 2], Decimal("0")),
            ("1e100", Decimal("0")),
            ("-1e120", Decimal("0")),
        ],
    )
    def test_coercion(self, raw, expected):
        assert safe_number(raw) == expected

    def test_quantize_rounds_half_up(self):
        assert quantize_money(Decimal("2.005")) == Decimal("2.01")
        assert quantize_money(Decimal("-2.005")) == Decimal("-2.01")

    def test_quantize_wider_than_context_precision(self):
        assert quantize_money(Decimal("1e30")) == Decimal("1000000000000000000000000000000.00")
        assert quantize_money(Decimal("123456789012345678901234567890.125")) == Decimal("123456789012345678901234567890.13")


class TestMonthlyNetIncome:
    """Test the six-month income chart."""

    def test_deals_minus_expenses_per_month(self):
        deals = [
            Deal(close_date="2025-06-03", net_income=Decimal("4000")),
            Deal(close_date="2025-04-20", net_income=Decimal("1500")),
            Deal(close_date="2024-11-30", net_income=Decimal("9999")),  # outside window
            Deal(close_date="", net_income=Decimal("100")),
        ]
        expenses = [
            Expense(date="2025-06-10", amount=Decimal("250")),
            Expense(date="2025-01-05", amount=Decimal("80")),
        ]

        result = monthly_net_income(deals, expenses, datetime(2025, 6, 15))

        assert [month for month, _ in result] == [
            "Jan 2025", "Feb 2025", "Mar 2025", "Apr 2025", "May 2025", "Jun 2025",
        ]
        values = dict(result)
        assert values["Jun 2025"] == Decimal("3750")
        assert values["Apr 2025"] == Decimal("1500")
        assert values["Jan 2025"] == Decimal("-80")
        assert values["Mar 2025"] == Decimal("0")

    def test_window_crosses_year_boundary(self):
        result = monthly_net_income([], [], datetime(2025, 2, 1), months=3)

        assert [month for month, _ in result] == ["Dec 2024", "Jan 2025", "Feb 2025"]


class TestExpensesAndMileage:

    def test_expenses_by_category(self):
        expenses = [
            Expense(category="Meals", amount=Decimal("20")),
            Expense(category="Meals", amount=Decimal("15.5")),
            Expense(category="", amount=Decimal("9")),
        ]

        assert expenses_by_category(expenses) == {"Meals": Decimal("35.5"), "Other": Decimal("9")}

    def test_mileage_cost_one_way(self):
        assert mileage_cost("12.5", "0.70") == (Decimal("12.5"), Decimal("0.70"), Decimal("8.75"))

    def test_round_trip_doubles_distance(self):
        miles, rate, total = mileage_cost(10, 0.5, round_trip=True)

        assert miles == Decimal("20")
        assert total == Decimal("10.00")

    def test_missing_rate_uses_default(self):
        _, rate, total = mileage_cost(100, None)

        assert rate == Decimal("0.67")
        assert total == Decimal("67.00")

    def test_mileage_totals(self):
        entries = [
            MileageEntry(miles=Decimal("10"), total_cost=Decimal("6.70")),
            MileageEntry(miles=Decimal("20"), total_cost=Decimal("14.00")),
        ]

        totals = mileage_totals(entries)

        assert totals["total_miles"] == Decimal("30")
        assert totals["total_cost"] == Decimal("20.70")
        assert totals["average_cost_per_mile"] == Decimal("0.69")

    def test_mileage_totals_empty(self):
        assert mileage_totals([])["average_cost_per_mile"] == Decimal("0")

"""
Unit Tests for Commission Calculator

Tests verify the breakdown for percentage and fixed commission profiles,
including partially remaining and exhausted caps.
"""

import pytest
from decimal import Decimal
from agentbooks.calculators.commission import CommissionCalculator, capped_deduction, compute_breakdown
from agentbooks.models import CommissionMode, CommissionProfile


def make_profile(**overrides) -> CommissionProfile:
    values = dict(
        commission_mode=CommissionMode.PERCENTAGE,
        commission_percent=Decimal("3"),
        company_split_percent=Decimal("30"),
        company_split_cap=Decimal("6000"),
        royalty_percent=Decimal("6"),
        royalty_cap=Decimal("3000"),
        estimated_tax_percent=Decimal("25"),
    )
    values.update(overrides)
    return CommissionProfile(**values)


class TestPercentageMode:
    """Test the percentage commission algorithm."""

    @pytest.fixture
    def calculator(self):
        return CommissionCalculator()

    def test_partially_remaining_company_cap(self, calculator):
        """Company split is limited to what is left on the cap."""
        result = calculator.calculate(
            300000, make_profile(), ytd_royalty_usage=0, ytd_company_split_usage=5900
        )

        assert result.agent_commission == Decimal("9000.00")
        # Natural split would be 2700, only 100 left on the cap
        assert result.company_split == Decimal("100.00")
        assert result.royalty_used == Decimal("540.00")
        assert result.gross_income == Decimal("8360.00")
        assert result.estimated_taxes == Decimal("2090.00")
        assert result.net_income == Decimal("6270.00")

    def test_no_caps_hit(self, calculator):
        result = calculator.calculate(300000, make_profile())

        assert result.company_split == Decimal("2700.00")
        assert result.royalty_used == Decimal("540.00")
        assert result.gross_income == Decimal("5760.00")
        assert result.estimated_taxes == Decimal("1440.00")
        assert result.net_income == Decimal("4320.00")

    def test_royalty_cap_exhausted(self, calculator):
        """Once YTD royalty reaches the cap, no royalty is deducted."""
        result = calculator.calculate(1000000, make_profile(), ytd_royalty_usage=3000)
        assert result.royalty_used == Decimal("0")

        over = calculator.calculate(1000000, make_profile(), ytd_royalty_usage=3500)
        assert over.royalty_used == Decimal("0")

    def test_company_cap_exhausted(self, calculator):
        result = calculator.calculate(300000, make_profile(), ytd_company_split_usage=6000)

        assert result.company_split == Decimal("0")
        assert result.gross_income == Decimal("8460.00")

    def test_fees_are_deducted_before_tax(self, calculator):
        result = calculator.calculate(
            300000, make_profile(), referral_fee="500", transaction_fee=250.5
        )

        # 9000 - 2700 - 540 - 500 - 250.50
        assert result.gross_income == Decimal("5009.50")
        assert result.estimated_taxes == Decimal("1252.38")
        assert result.net_income == Decimal("3757.12")

    def test_override_replaces_profile_percent(self, calculator):
        result = calculator.calculate(200000, make_profile(), commission_percent_override="2.5")

        assert result.effective_commission_percent == Decimal("2.5")
        assert result.agent_commission == Decimal("5000.00")

    def test_blank_override_uses_profile_percent(self, calculator):
        result = calculator.calculate(200000, make_profile(), commission_percent_override="")

        assert result.effective_commission_percent == Decimal("3")
        assert result.agent_commission == Decimal("6000.00")

    def test_every_amount_has_at_most_two_decimals(self, calculator):
        result = calculator.calculate(
            "123456.789", make_profile(commission_percent=Decimal("2.875")), ytd_company_split_usage="1234.567"
        )

        for value in result.derived_fields().values():
            assert value == value.quantize(Decimal("0.01"))
        assert result.net_income == result.gross_income - result.estimated_taxes
        assert result.gross_income == (
            result.agent_commission - result.company_split - result.royalty_used
            - result.referral_fee - result.transaction_fee
        )

    def test_invalid_inputs_coerce_to_zero(self, calculator):
        """The calculator never raises on bad numbers."""
        result = calculator.calculate(
            "not a number", make_profile(), ytd_royalty_usage=None, referral_fee="abc", transaction_fee=float("nan")
        )

        assert result.agent_commission == Decimal("0")
        assert result.net_income == Decimal("0")

    def test_very_large_inputs_do_not_raise(self, calculator):
        """Amounts wider than the default Decimal precision still round to cents."""
        result = calculator.calculate("1e30", make_profile())

        assert result.agent_commission == Decimal("3E+28")
        assert result.company_split == Decimal("6000.00")
        assert result.royalty_used == Decimal("3000.00")
        assert result.net_income > 0

        fixed = compute_breakdown(0, make_profile(
            commission_mode=CommissionMode.FIXED, fixed_commission_amount=Decimal("1e27")
        ))
        assert fixed.agent_commission == Decimal("1E+27")
        assert fixed.estimated_taxes == Decimal("2.5E+26")

    def test_half_up_rounding(self, calculator):
        # 1234.50 commission at 1% split = 12.345 -> 12.35
        profile = make_profile(commission_percent=Decimal("1"), company_split_percent=Decimal("1"))
        result = calculator.calculate(123450, profile)

        assert result.company_split == Decimal("12.35")

    def test_identical_inputs_give_identical_output(self, calculator):
        first = calculator.calculate(300000, make_profile(), 100, 5900, 10, 20)
        second = calculator.calculate(300000, make_profile(), 100, 5900, 10, 20)

        assert first == second

    def test_steps_match_derived_values(self, calculator):
        result = calculator.calculate(300000, make_profile(), ytd_company_split_usage=5900)

        labels = [step.label for step in result.steps]
        amounts = [step.amount for step in result.steps]
        assert labels == ["Sale Price", "Commission", "After Split & Royalty", "Estimated Taxes", "Net Income"]
        assert amounts == [
            Decimal("300000.00"),
            result.agent_commission,
            result.gross_income,
            result.estimated_taxes,
            result.net_income,
        ]


class TestFixedMode:
    """Test the fixed commission algorithm."""

    @pytest.fixture
    def profile(self):
        return make_profile(
            commission_mode=CommissionMode.FIXED,
            fixed_commission_amount=Decimal("5000"),
            estimated_tax_percent=Decimal("20"),
        )

    @pytest.mark.parametrize("amount", [0, 150000, 999999.99])
    def test_commission_independent_of_deal_amount(self, profile, amount):
        result = compute_breakdown(amount, profile)

        assert result.agent_commission == Decimal("5000.00")
        assert result.gross_income == Decimal("5000.00")
        assert result.estimated_taxes == Decimal("1000.00")
        assert result.net_income == Decimal("4000.00")

    def test_no_split_or_royalty(self, profile):
        result = compute_breakdown(300000, profile, ytd_royalty_usage=0, ytd_company_split_usage=0)

        assert result.company_split == Decimal("0")
        assert result.royalty_used == Decimal("0")

    def test_fees_not_deducted(self, profile):
        result = compute_breakdown(300000, profile, referral_fee=1000, transaction_fee=500)

        assert result.gross_income == Decimal("5000.00")

    def test_fixed_amount_rounded_to_cents(self, profile):
        profile.fixed_commission_amount = Decimal("1234.565")
        result = compute_breakdown(0, profile)

        assert result.agent_commission == Decimal("1234.57")


class TestCappedDeduction:

    def test_under_cap(self):
        assert capped_deduction(Decimal("540"), Decimal("3000"), Decimal("0")) == (Decimal("540.00"), Decimal("3000.00"))

    def test_limited_to_remaining(self):
        assert capped_deduction(Decimal("2700"), Decimal("6000"), Decimal("5900"))[0] == Decimal("100.00")

    def test_never_negative(self):
        deduction, remaining = capped_deduction(Decimal("2700"), Decimal("6000"), Decimal("7000"))
        assert deduction == Decimal("0")
        assert remaining == Decimal("-1000.00")

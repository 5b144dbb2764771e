"""
Commission Calculator

Turns a deal's gross amount into a net take-home figure for both
percentage and fixed commission profiles.
"""

from decimal import Decimal

from ..models import Breakdown, BreakdownStep, CommissionMode, CommissionProfile
from ..money import HUNDRED, ZERO, quantize_money, safe_number


def _fmt(value) -> str:
    """Format a number as currency string for descriptions."""
    return f"${value:,.2f}"


def capped_deduction(natural: Decimal, cap: Decimal, ytd_used: Decimal) -> tuple[Decimal, Decimal]:
    """
    Limit a deduction to what is left of its annual cap.

    Returns (deduction, remaining cap before this deal). Once the cap is
    exhausted the deduction is zero, never negative.
    """
    remaining = quantize_money(cap - ytd_used)
    if remaining > 0:
        return quantize_money(min(natural, remaining)), remaining
    return ZERO, remaining


class CommissionCalculator:
    """Calculates the commission breakdown for a single deal."""

    def calculate(
        self,
        total_deal_amount,
        profile: CommissionProfile,
        ytd_royalty_usage=0,
        ytd_company_split_usage=0,
        referral_fee=0,
        transaction_fee=0,
        commission_percent_override=None,
    ) -> Breakdown:
        """
        Calculate the breakdown. Never raises.

        Every numeric input goes through safe_number first and every
        intermediate amount is rounded to cents as soon as it is computed.
        """
        amount = safe_number(total_deal_amount)

        if profile.commission_mode == CommissionMode.FIXED:
            return self._calculate_fixed(amount, profile)

        override = None
        if commission_percent_override is not None and commission_percent_override != "":
            override = safe_number(commission_percent_override)

        return self._calculate_percentage(
            amount,
            profile,
            ytd_royalty_usage=safe_number(ytd_royalty_usage),
            ytd_company_split_usage=safe_number(ytd_company_split_usage),
            referral_fee=safe_number(referral_fee),
            transaction_fee=safe_number(transaction_fee),
            override=override,
        )

    def _calculate_fixed(self, amount: Decimal, profile: CommissionProfile) -> Breakdown:
        """
        Fixed commission: split, royalty and fees do not apply.

        Referral and transaction fees are accepted by the caller but are not
        deducted in this mode.
        """
        tax_percent = safe_number(profile.estimated_tax_percent)

        agent_commission = quantize_money(safe_number(profile.fixed_commission_amount))
        gross_income = agent_commission
        estimated_taxes = quantize_money(gross_income * tax_percent / HUNDRED)
        net_income = quantize_money(gross_income - estimated_taxes)

        steps = [
            BreakdownStep("Sale Price", quantize_money(amount), "Total deal amount"),
            BreakdownStep("Commission", agent_commission, "Fixed commission amount"),
            BreakdownStep(
                "After Split & Royalty",
                gross_income,
                "No company split or royalty on fixed commissions",
            ),
            BreakdownStep(
                "Estimated Taxes",
                estimated_taxes,
                f"{tax_percent}% × {_fmt(gross_income)} = {_fmt(estimated_taxes)}",
            ),
            BreakdownStep(
                "Net Income",
                net_income,
                f"{_fmt(gross_income)} - {_fmt(estimated_taxes)} = {_fmt(net_income)}",
            ),
        ]

        return Breakdown(
            mode=CommissionMode.FIXED,
            total_deal_amount=amount,
            effective_commission_percent=None,
            agent_commission=agent_commission,
            company_split=ZERO,
            royalty_used=ZERO,
            referral_fee=ZERO,
            transaction_fee=ZERO,
            gross_income=gross_income,
            estimated_taxes=estimated_taxes,
            net_income=net_income,
            steps=steps,
        )

    def _calculate_percentage(
        self,
        amount: Decimal,
        profile: CommissionProfile,
        ytd_royalty_usage: Decimal,
        ytd_company_split_usage: Decimal,
        referral_fee: Decimal,
        transaction_fee: Decimal,
        override: Decimal | None,
    ) -> Breakdown:
        """Percentage commission with cap-limited company split and royalty."""
        percent = override if override is not None else safe_number(profile.commission_percent)
        split_percent = safe_number(profile.company_split_percent)
        royalty_percent = safe_number(profile.royalty_percent)
        tax_percent = safe_number(profile.estimated_tax_percent)

        total_commission = quantize_money(amount * percent / HUNDRED)

        company_split, remaining_company_cap = capped_deduction(
            total_commission * split_percent / HUNDRED,
            safe_number(profile.company_split_cap),
            ytd_company_split_usage,
        )
        royalty_used, remaining_royalty_cap = capped_deduction(
            total_commission * royalty_percent / HUNDRED,
            safe_number(profile.royalty_cap),
            ytd_royalty_usage,
        )

        gross_income = quantize_money(
            total_commission - company_split - royalty_used - referral_fee - transaction_fee
        )
        estimated_taxes = quantize_money(gross_income * tax_percent / HUNDRED)
        net_income = quantize_money(gross_income - estimated_taxes)

        fees_desc = ""
        if referral_fee or transaction_fee:
            fees_desc = f" - fees ({_fmt(referral_fee + transaction_fee)})"

        steps = [
            BreakdownStep("Sale Price", quantize_money(amount), "Total deal amount"),
            BreakdownStep(
                "Commission",
                total_commission,
                f"{percent}% × {_fmt(amount)} = {_fmt(total_commission)}",
            ),
            BreakdownStep(
                "After Split & Royalty",
                gross_income,
                f"{_fmt(total_commission)} - company split ({_fmt(company_split)})"
                f" - royalty ({_fmt(royalty_used)}){fees_desc} = {_fmt(gross_income)}",
            ),
            BreakdownStep(
                "Estimated Taxes",
                estimated_taxes,
                f"{tax_percent}% × {_fmt(gross_income)} = {_fmt(estimated_taxes)}",
            ),
            BreakdownStep(
                "Net Income",
                net_income,
                f"{_fmt(gross_income)} - {_fmt(estimated_taxes)} = {_fmt(net_income)}",
            ),
        ]

        return Breakdown(
            mode=CommissionMode.PERCENTAGE,
            total_deal_amount=amount,
            effective_commission_percent=percent,
            agent_commission=total_commission,
            company_split=company_split,
            royalty_used=royalty_used,
            referral_fee=referral_fee,
            transaction_fee=transaction_fee,
            gross_income=gross_income,
            estimated_taxes=estimated_taxes,
            net_income=net_income,
            remaining_company_cap=remaining_company_cap,
            remaining_royalty_cap=remaining_royalty_cap,
            steps=steps,
        )


def compute_breakdown(
    total_deal_amount,
    profile: CommissionProfile,
    ytd_royalty_usage=0,
    ytd_company_split_usage=0,
    referral_fee=0,
    transaction_fee=0,
    commission_percent_override=None,
) -> Breakdown:
    """Module-level shortcut for CommissionCalculator().calculate()."""
    return CommissionCalculator().calculate(
        total_deal_amount,
        profile,
        ytd_royalty_usage=ytd_royalty_usage,
        ytd_company_split_usage=ytd_company_split_usage,
        referral_fee=referral_fee,
        transaction_fee=transaction_fee,
        commission_percent_override=commission_percent_override,
    )

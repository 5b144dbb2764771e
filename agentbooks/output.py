"""
Output Builder

Constructs JSON-ready API responses from models and breakdowns.
"""

from decimal import Decimal
from typing import Optional

from .calculators.caps import CapStatus
from .models import Breakdown, CommissionProfile, Deal, Expense, MileageEntry
from .money import to_money


def _fmt(value) -> str:
    """Format a number as currency string for descriptions."""
    return f"${value:,.2f}"


def _optional_money(value: Optional[Decimal]) -> Optional[float]:
    return to_money(value) if value is not None else None


class OutputBuilder:
    """Builds the API response bodies."""

    money = staticmethod(to_money)

    def build(self, breakdown: Breakdown) -> dict:
        """Construct the breakdown response with values, steps and descriptions."""
        return {
            "mode": breakdown.mode.value,
            "total_deal_amount": to_money(breakdown.total_deal_amount),
            "effective_commission_percent": _optional_money(breakdown.effective_commission_percent),
            "agent_commission": to_money(breakdown.agent_commission),
            "company_split": to_money(breakdown.company_split),
            "royalty_used": to_money(breakdown.royalty_used),
            "gross_income": to_money(breakdown.gross_income),
            "estimated_taxes": to_money(breakdown.estimated_taxes),
            "net_income": to_money(breakdown.net_income),
            "steps": [
                {"label": step.label, "value": to_money(step.amount), "description": step.description}
                for step in breakdown.steps
            ],
            "calculations": self._build_calculations(breakdown),
        }

    def _build_calculations(self, breakdown: Breakdown) -> dict:
        """Each deduction with its value and a dynamic description."""
        if breakdown.mode.value == "fixed":
            cap_note = "Not applicable to fixed commissions"
            return {
                "company_split": {"value": 0.0, "description": cap_note},
                "royalty_used": {"value": 0.0, "description": cap_note},
                "fees": {"value": 0.0, "description": "Referral and transaction fees are not deducted from fixed commissions"},
            }

        fees = breakdown.referral_fee + breakdown.transaction_fee
        return {
            "company_split": {
                "value": to_money(breakdown.company_split),
                "description": self._cap_description("company split", breakdown.company_split, breakdown.remaining_company_cap),
            },
            "royalty_used": {
                "value": to_money(breakdown.royalty_used),
                "description": self._cap_description("royalty", breakdown.royalty_used, breakdown.remaining_royalty_cap),
            },
            "fees": {
                "value": to_money(fees),
                "description": f"referral ({_fmt(breakdown.referral_fee)}) + transaction ({_fmt(breakdown.transaction_fee)}) = {_fmt(fees)}",
            },
        }

    def _cap_description(self, name: str, deducted: Decimal, remaining: Decimal) -> str:
        if remaining <= 0:
            return f"Annual {name} cap reached - nothing deducted"
        if deducted == remaining:
            return f"Limited to the {_fmt(remaining)} left on the annual {name} cap"
        return f"{_fmt(remaining)} left on the annual {name} cap before this deal"

    def build_profile(self, profile: CommissionProfile) -> dict:
        result = profile.to_dict()
        for name in list(result):
            if name not in ("commission_mode", "commission_year_start"):
                result[name] = to_money(getattr(profile, name))
        result["missing_settings"] = profile.missing_settings()
        return result

    def build_deal(self, deal: Deal) -> dict:
        result = deal.to_dict()
        for name, value in result.items():
            attr = getattr(deal, name)
            if isinstance(attr, Decimal):
                result[name] = to_money(attr)
        return result

    def build_caps(self, caps: dict[str, CapStatus]) -> dict:
        return {
            name: {
                "cap": to_money(status.cap),
                "used": to_money(status.used),
                "remaining": to_money(status.remaining),
                "percent_used": to_money(status.percent_used),
                "reached": status.reached,
                "window_start": status.window_start.isoformat(),
                "window_end": status.window_end.isoformat(),
            }
            for name, status in caps.items()
        }

    def build_expense(self, expense: Expense) -> dict:
        result = expense.to_dict()
        result["amount"] = to_money(expense.amount)
        return result

    def build_mileage(self, entry: MileageEntry) -> dict:
        result = entry.to_dict()
        result["miles"] = round(float(entry.miles), 1)
        result["cost_per_mile"] = to_money(entry.cost_per_mile)
        result["total_cost"] = to_money(entry.total_cost)
        return result

    def build_dashboard(
        self,
        profile: CommissionProfile,
        deals: list[Deal],
        expenses: list[Expense],
        caps: dict[str, CapStatus],
        total_net_income: Decimal,
        total_expenses: Decimal,
        monthly: list,
        by_category: dict,
        mileage: dict,
    ) -> dict:
        return {
            "profile_complete": not profile.missing_settings(),
            "missing_settings": profile.missing_settings(),
            "deal_count": len(deals),
            "total_net_income": to_money(total_net_income),
            "total_expenses": to_money(total_expenses),
            "net_after_expenses": to_money(total_net_income - total_expenses),
            "caps": self.build_caps(caps),
            "monthly_net_income": [{"month": month, "net_income": to_money(value)} for month, value in monthly],
            "expenses_by_category": {name: to_money(value) for name, value in by_category.items()},
            "mileage": {
                "total_miles": round(float(mileage["total_miles"]), 1),
                "total_cost": to_money(mileage["total_cost"]),
                "average_cost_per_mile": to_money(mileage["average_cost_per_mile"]),
            },
            "recent_deals": [self.build_deal(deal) for deal in deals[:5]],
            "recent_expenses": [self.build_expense(expense) for expense in expenses[:5]],
        }

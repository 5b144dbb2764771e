"""
Input Validation for the Agent Books Engine

Validates form-level input before anything is persisted.
Raises ValueError with clear messages for any constraint violations.

The commission calculator itself never validates; previews of half-filled
forms go straight through safe_number coercion.
"""

from decimal import Decimal, InvalidOperation

from .models import EXPENSE_CATEGORIES, CommissionMode, _pick, parse_date
from .money import safe_number


def _is_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        return False
    try:
        return Decimal(str(value).strip()).is_finite()
    except InvalidOperation:
        return False


class InputValidator:
    """Validates settings, deals, expenses and mileage according to business rules."""

    # Settings field -> the camelCase name older clients send for it
    PERCENT_FIELDS = {
        "commission_percent": "commissionPercent",
        "company_split_percent": "companySplitPercent",
        "royalty_percent": "royaltyPercent",
        "estimated_tax_percent": "estimatedTaxPercent",
    }
    AMOUNT_FIELDS = {
        "fixed_commission_amount": "fixedCommissionAmount",
        "company_split_cap": "companySplitCap",
        "royalty_cap": "royaltyCap",
    }

    def validate_profile(self, data: dict) -> None:
        """Validate raw settings before they replace the stored profile."""
        mode = _pick(data, "commission_mode", "commissionType", CommissionMode.PERCENTAGE.value)
        if isinstance(mode, CommissionMode):
            mode = mode.value
        if str(mode).lower() not in [m.value for m in CommissionMode]:
            raise ValueError(f"Invalid commission_mode: {mode}. Must be 'percentage' or 'fixed'")

        for name, legacy in self.PERCENT_FIELDS.items():
            self._check_number(data, name, low=0, high=100, legacy=legacy)

        for name, legacy in self.AMOUNT_FIELDS.items():
            self._check_number(data, name, low=0, legacy=legacy)

        year_start = _pick(data, "commission_year_start", "startOfCommissionYear")
        if year_start is not None and parse_date(year_start) is None:
            raise ValueError(f"commission_year_start must be a YYYY-MM-DD date, got: {year_start}")

    def validate_deal(self, data: dict) -> None:
        """Validate the raw inputs of a new or edited deal."""
        close_date = data.get("close_date")
        if not close_date:
            raise ValueError("close_date is required")
        if parse_date(close_date) is None:
            raise ValueError(f"close_date must be a YYYY-MM-DD date, got: {close_date}")

        if data.get("total_deal_amount") in (None, ""):
            raise ValueError("total_deal_amount is required")
        self._check_number(data, "total_deal_amount", low=0)
        self._check_number(data, "referral_fee", low=0, legacy="referralFee")
        self._check_number(data, "transaction_fee", low=0, legacy="transactionFee")
        self._check_number(data, "commission_percent_override", low=0, high=100, legacy="commissionPercentOverride")

    def validate_expense(self, data: dict) -> None:
        if parse_date(data.get("date")) is None:
            raise ValueError(f"date must be a YYYY-MM-DD date, got: {data.get('date')}")

        category = data.get("category")
        if category and category not in EXPENSE_CATEGORIES:
            raise ValueError(f"Invalid category: {category}. Must be one of {EXPENSE_CATEGORIES}")

        if data.get("amount") in (None, ""):
            raise ValueError("amount is required")
        self._check_number(data, "amount", low=0)

    def validate_mileage(self, data: dict) -> None:
        if not data.get("begin_address") or not data.get("end_address"):
            raise ValueError("begin_address and end_address are required")
        if parse_date(data.get("date")) is None:
            raise ValueError(f"date must be a YYYY-MM-DD date, got: {data.get('date')}")
        self._check_number(data, "miles", low=0)
        self._check_number(data, "cost_per_mile", low=0)

    def _check_number(self, data: dict, name: str, low=None, high=None, legacy=None) -> None:
        """Optional numeric field: absent or blank is fine, otherwise must parse and be in range."""
        raw = _pick(data, name, legacy) if legacy else data.get(name)
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return
        if not _is_number(raw):
            raise ValueError(f"{name} must be a number, got: {raw!r}")

        value = safe_number(raw)
        if low is not None and value < low:
            raise ValueError(f"{name} cannot be less than {low}, got: {value}")
        if high is not None and value > high:
            raise ValueError(f"{name} must be between {low} and {high}, got: {value}")

"""
Domain Models for the Agent Books Engine

These dataclasses provide type-safe representations of all business entities.
All monetary values use Decimal for precision.

Documents written by the older web client use camelCase keys; every from_dict
accepts those as a fallback for the snake_case keys.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from .money import ZERO, safe_number

DATE_FORMAT = "%Y-%m-%d"

DEFAULT_COST_PER_MILE = Decimal("0.67")

EXPENSE_CATEGORIES = [
    "Mileage",
    "Meals",
    "Software",
    "Marketing",
    "Supplies",
    "Education",
    "Other",
]


def parse_date(value) -> date | None:
    """Parse an ISO date (or the date part of an ISO timestamp). None if unusable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.strptime(value.strip()[:10], DATE_FORMAT).date()
    except ValueError:
        return None


TRUE_STRINGS = {"true", "1", "yes", "on"}


def parse_flag(value) -> bool:
    """Form checkboxes arrive as bools or as strings like "true"/"false"."""
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return bool(value)


def _pick(data: dict, key: str, legacy: str, default=None):
    """Read a snake_case key, falling back to its legacy camelCase name."""
    if key in data:
        return data[key]
    return data.get(legacy, default)


def _optional_number(value) -> Decimal | None:
    if value is None or value == "":
        return None
    return safe_number(value)


# =============================================================================
# PROFILE
# =============================================================================


class CommissionMode(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"

    @classmethod
    def parse(cls, value) -> "CommissionMode":
        """Unknown or missing modes fall back to percentage."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.PERCENTAGE


@dataclass
class CommissionProfile:
    """Per-user commission configuration (one per user, last write wins)."""

    commission_mode: CommissionMode = CommissionMode.PERCENTAGE
    commission_percent: Decimal = Decimal("3")
    fixed_commission_amount: Decimal = Decimal("0")
    company_split_percent: Decimal = Decimal("30")
    company_split_cap: Decimal = Decimal("5000")
    royalty_percent: Decimal = Decimal("6")
    royalty_cap: Decimal = Decimal("3000")
    estimated_tax_percent: Decimal = Decimal("25")
    commission_year_start: date = field(default_factory=lambda: date(date.today().year, 1, 1))

    @property
    def is_fixed(self) -> bool:
        return self.commission_mode == CommissionMode.FIXED

    def missing_settings(self) -> list[str]:
        """Settings that are still zero/unset and make the breakdown unreliable."""
        if self.is_fixed:
            required = {"fixed_commission_amount": self.fixed_commission_amount}
        else:
            required = {
                "commission_percent": self.commission_percent,
                "company_split_percent": self.company_split_percent,
                "company_split_cap": self.company_split_cap,
                "royalty_percent": self.royalty_percent,
                "royalty_cap": self.royalty_cap,
            }
        required["estimated_tax_percent"] = self.estimated_tax_percent
        return [name for name, value in required.items() if not value]

    def to_dict(self) -> dict:
        return {
            "commission_mode": self.commission_mode.value,
            "commission_percent": str(self.commission_percent),
            "fixed_commission_amount": str(self.fixed_commission_amount),
            "company_split_percent": str(self.company_split_percent),
            "company_split_cap": str(self.company_split_cap),
            "royalty_percent": str(self.royalty_percent),
            "royalty_cap": str(self.royalty_cap),
            "estimated_tax_percent": str(self.estimated_tax_percent),
            "commission_year_start": self.commission_year_start.strftime(DATE_FORMAT),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CommissionProfile":
        defaults = cls()
        year_start = parse_date(_pick(data, "commission_year_start", "startOfCommissionYear"))
        return cls(
            commission_mode=CommissionMode.parse(_pick(data, "commission_mode", "commissionType")),
            commission_percent=safe_number(_pick(data, "commission_percent", "commissionPercent")),
            fixed_commission_amount=safe_number(_pick(data, "fixed_commission_amount", "fixedCommissionAmount")),
            company_split_percent=safe_number(_pick(data, "company_split_percent", "companySplitPercent")),
            company_split_cap=safe_number(_pick(data, "company_split_cap", "companySplitCap")),
            royalty_percent=safe_number(_pick(data, "royalty_percent", "royaltyPercent")),
            royalty_cap=safe_number(_pick(data, "royalty_cap", "royaltyCap")),
            estimated_tax_percent=safe_number(_pick(data, "estimated_tax_percent", "estimatedTaxPercent")),
            commission_year_start=year_start or defaults.commission_year_start,
        )


# =============================================================================
# DEALS
# =============================================================================


@dataclass
class Deal:
    """
    A closed transaction.

    The derived fields are computed once when the deal is created and are the
    source of truth for later year-to-date cap sums.
    """

    deal_id: str | None = None
    user_id: str | None = None
    address: str = ""
    client: str = ""
    close_date: str = ""
    total_deal_amount: Decimal = ZERO
    commission_percent_override: Decimal | None = None
    referral_fee: Decimal = ZERO
    transaction_fee: Decimal = ZERO
    # Frozen at creation
    agent_commission: Decimal = ZERO
    company_split: Decimal = ZERO
    royalty_used: Decimal = ZERO
    gross_income: Decimal = ZERO
    estimated_taxes: Decimal = ZERO
    net_income: Decimal = ZERO
    created_at: str | None = None

    @property
    def closed_on(self) -> date | None:
        return parse_date(self.close_date)

    def to_dict(self) -> dict:
        override = self.commission_percent_override
        return {
            "deal_id": self.deal_id,
            "user_id": self.user_id,
            "address": self.address,
            "client": self.client,
            "close_date": self.close_date,
            "total_deal_amount": str(self.total_deal_amount),
            "commission_percent_override": str(override) if override is not None else None,
            "referral_fee": str(self.referral_fee),
            "transaction_fee": str(self.transaction_fee),
            "agent_commission": str(self.agent_commission),
            "company_split": str(self.company_split),
            "royalty_used": str(self.royalty_used),
            "gross_income": str(self.gross_income),
            "estimated_taxes": str(self.estimated_taxes),
            "net_income": str(self.net_income),
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Deal":
        return cls(
            deal_id=_pick(data, "deal_id", "id"),
            user_id=_pick(data, "user_id", "userId"),
            address=str(data.get("address") or ""),
            client=str(data.get("client") or ""),
            close_date=str(_pick(data, "close_date", "closeDate") or ""),
            total_deal_amount=safe_number(_pick(data, "total_deal_amount", "totalDealAmount")),
            commission_percent_override=_optional_number(
                _pick(data, "commission_percent_override", "commissionPercentOverride")
            ),
            referral_fee=safe_number(_pick(data, "referral_fee", "referralFee")),
            transaction_fee=safe_number(_pick(data, "transaction_fee", "transactionFee")),
            agent_commission=safe_number(_pick(data, "agent_commission", "agentCommission")),
            company_split=safe_number(_pick(data, "company_split", "companySplit")),
            royalty_used=safe_number(_pick(data, "royalty_used", "royaltyUsed")),
            gross_income=safe_number(_pick(data, "gross_income", "grossIncome")),
            estimated_taxes=safe_number(_pick(data, "estimated_taxes", "estimatedTaxes")),
            net_income=safe_number(_pick(data, "net_income", "netIncome")),
            created_at=_pick(data, "created_at", "createdAt"),
        )


@dataclass
class BreakdownStep:
    """One displayed line of the breakdown."""

    label: str
    amount: Decimal
    description: str


@dataclass
class Breakdown:
    """Result of a commission calculation for one deal."""

    mode: CommissionMode
    total_deal_amount: Decimal
    effective_commission_percent: Decimal | None
    agent_commission: Decimal
    company_split: Decimal
    royalty_used: Decimal
    referral_fee: Decimal
    transaction_fee: Decimal
    gross_income: Decimal
    estimated_taxes: Decimal
    net_income: Decimal
    remaining_company_cap: Decimal = ZERO
    remaining_royalty_cap: Decimal = ZERO
    steps: list[BreakdownStep] = field(default_factory=list)

    def derived_fields(self) -> dict:
        """The values frozen onto a deal when it is saved."""
        return {
            "agent_commission": self.agent_commission,
            "company_split": self.company_split,
            "royalty_used": self.royalty_used,
            "gross_income": self.gross_income,
            "estimated_taxes": self.estimated_taxes,
            "net_income": self.net_income,
        }


# =============================================================================
# EXPENSES & MILEAGE
# =============================================================================


@dataclass
class Expense:
    """A business expense, optionally tied to a deal."""

    expense_id: str | None = None
    user_id: str | None = None
    date: str = ""
    category: str = ""
    amount: Decimal = ZERO
    notes: str = ""
    deal: str = ""
    receipt_url: str = ""

    def to_dict(self) -> dict:
        return {
            "expense_id": self.expense_id,
            "user_id": self.user_id,
            "date": self.date,
            "category": self.category,
            "amount": str(self.amount),
            "notes": self.notes,
            "deal": self.deal,
            "receipt_url": self.receipt_url,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Expense":
        return cls(
            expense_id=_pick(data, "expense_id", "id"),
            user_id=_pick(data, "user_id", "userId"),
            date=str(data.get("date") or ""),
            category=str(data.get("category") or ""),
            amount=safe_number(data.get("amount")),
            notes=str(data.get("notes") or ""),
            deal=str(data.get("deal") or ""),
            receipt_url=str(_pick(data, "receipt_url", "receiptUrl") or ""),
        )


@dataclass
class MileageEntry:
    """A business trip between two addresses."""

    entry_id: str | None = None
    user_id: str | None = None
    begin_address: str = ""
    end_address: str = ""
    round_trip: bool = False
    miles: Decimal = ZERO
    cost_per_mile: Decimal = DEFAULT_COST_PER_MILE
    total_cost: Decimal = ZERO
    date: str = ""
    deal: str = ""
    notes: str = ""

    def to_dict(self) -> dict:
        return {
            "entry_id": self.entry_id,
            "user_id": self.user_id,
            "begin_address": self.begin_address,
            "end_address": self.end_address,
            "round_trip": self.round_trip,
            "miles": str(self.miles),
            "cost_per_mile": str(self.cost_per_mile),
            "total_cost": str(self.total_cost),
            "date": self.date,
            "deal": self.deal,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MileageEntry":
        return cls(
            entry_id=_pick(data, "entry_id", "id"),
            user_id=_pick(data, "user_id", "userId"),
            begin_address=str(_pick(data, "begin_address", "beginAddress") or ""),
            end_address=str(_pick(data, "end_address", "endAddress") or ""),
            round_trip=parse_flag(_pick(data, "round_trip", "roundTrip", False)),
            miles=safe_number(data.get("miles")),
            cost_per_mile=safe_number(_pick(data, "cost_per_mile", "costPerMile", DEFAULT_COST_PER_MILE)),
            total_cost=safe_number(_pick(data, "total_cost", "totalCost")),
            date=str(data.get("date") or ""),
            deal=str(data.get("deal") or ""),
            notes=str(data.get("notes") or ""),
        )

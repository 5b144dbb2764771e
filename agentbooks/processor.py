"""
Deal Processor - Main Orchestrator

Coordinates profile lookup, year-to-date cap accumulation, the commission
calculation and persistence of deals, expenses and mileage.
"""

import logging
import os
from datetime import datetime
from typing import Any, Callable, Dict

from .calculators import (
    CapAccumulator,
    CommissionCalculator,
    expenses_by_category,
    mileage_cost,
    mileage_totals,
    monthly_net_income,
)
from .calculators.caps import COMPANY_SPLIT, ROYALTY_USED
from .models import Breakdown, CommissionProfile, Deal, Expense, MileageEntry, parse_date
from .money import ZERO, safe_number
from .output import OutputBuilder
from .store import DEALS, EXPENSES, MILEAGE, DocumentStore, ProfileStore
from .validators import InputValidator

logger = logging.getLogger(__name__)

# Default cost per mile for new mileage entries
MILEAGE_RATE = os.environ.get("MILEAGE_RATE", "0.67")

# Raw deal inputs a user may edit after the deal is saved
EDITABLE_DEAL_FIELDS = ["address", "client", "close_date", "total_deal_amount", "referral_fee", "transaction_fee"]


class DealProcessor:
    """
    Main orchestrator for deal processing.

    Pipeline for a new deal:
    1. Validate input
    2. Load profile and persisted deals
    3. Accumulate YTD royalty and company split usage
    4. Calculate the breakdown
    5. Persist the deal with its derived fields frozen
    """

    def __init__(
        self,
        documents: DocumentStore | None = None,
        profiles: ProfileStore | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.documents = documents if documents is not None else DocumentStore()
        self.profiles = profiles if profiles is not None else ProfileStore(self.documents)
        self.clock = clock

        self.validator = InputValidator()
        self.cap_accumulator = CapAccumulator(clock=clock)
        self.commission_calculator = CommissionCalculator()
        self.output_builder = OutputBuilder()

    # -------------------------------------------------------------------------
    # Profile
    # -------------------------------------------------------------------------

    def get_profile(self, user_id: str) -> CommissionProfile:
        return self.profiles.get(user_id)

    def update_profile(self, user_id: str, data: Dict[str, Any]) -> CommissionProfile:
        """Replace the user's profile with validated settings."""
        self.validator.validate_profile(data)
        profile = CommissionProfile.from_dict(data)
        self.profiles.save(user_id, profile)
        logger.info(f"Profile updated for user {user_id} ({profile.commission_mode.value})")
        return profile

    # -------------------------------------------------------------------------
    # Deals
    # -------------------------------------------------------------------------

    def list_deals(self, user_id: str) -> list[Deal]:
        """User's deals, most recent close date first."""
        deals = [self._load_deal(doc_id, data) for doc_id, data in self.documents.query(DEALS, user_id)]
        return sorted(deals, key=lambda deal: deal.close_date, reverse=True)

    def preview(self, user_id: str, data: Dict[str, Any]) -> Breakdown:
        """Breakdown for an unsaved deal. Nothing is written."""
        profile = self.profiles.get(user_id)
        deals = self.list_deals(user_id)
        return self._calculate(data, profile, deals)

    def create_deal(self, user_id: str, data: Dict[str, Any]) -> tuple[Deal, Breakdown]:
        """
        Calculate and persist a new deal.

        Two concurrent creations can both see the same remaining cap; there is
        no reservation across writers.
        """
        self.validator.validate_deal(data)

        profile = self.profiles.get(user_id)
        deals = self.list_deals(user_id)
        breakdown = self._calculate(data, profile, deals)

        deal = Deal.from_dict({**data, "user_id": user_id})
        for name, value in breakdown.derived_fields().items():
            setattr(deal, name, value)
        deal.created_at = self.clock().isoformat()

        document = deal.to_dict()
        document.pop("deal_id")
        deal.deal_id = self.documents.add(DEALS, document)

        logger.info(
            f"Deal {deal.deal_id} created for user {user_id}: "
            f"net {deal.net_income}, split {deal.company_split}, royalty {deal.royalty_used}"
        )
        return deal, breakdown

    def update_deal(self, user_id: str, deal_id: str, data: Dict[str, Any]) -> Deal:
        """
        Edit a deal's raw inputs.

        The derived commission fields keep the values frozen at creation.
        """
        current = self._owned_deal(user_id, deal_id)

        changes = {name: data[name] for name in EDITABLE_DEAL_FIELDS if name in data}
        merged = {**current.to_dict(), **changes}
        self.validator.validate_deal(merged)

        edited = Deal.from_dict(merged)
        stored = {name: edited.to_dict()[name] for name in changes}
        self.documents.update(DEALS, deal_id, stored)

        logger.info(f"Deal {deal_id} edited ({', '.join(sorted(changes)) or 'no changes'})")
        return self._owned_deal(user_id, deal_id)

    def delete_deal(self, user_id: str, deal_id: str) -> None:
        self._owned_deal(user_id, deal_id)
        self.documents.delete(DEALS, deal_id)
        logger.info(f"Deal {deal_id} deleted for user {user_id}")

    def cap_status(self, user_id: str) -> dict:
        profile = self.profiles.get(user_id)
        return self.cap_accumulator.cap_status(self.list_deals(user_id), profile)

    # -------------------------------------------------------------------------
    # Expenses & mileage
    # -------------------------------------------------------------------------

    def list_expenses(self, user_id: str) -> list[Expense]:
        expenses = []
        for doc_id, data in self.documents.query(EXPENSES, user_id):
            expense = Expense.from_dict(data)
            expense.expense_id = doc_id
            expenses.append(expense)
        return sorted(expenses, key=lambda expense: expense.date, reverse=True)

    def add_expense(self, user_id: str, data: Dict[str, Any]) -> Expense:
        self.validator.validate_expense(data)
        expense = Expense.from_dict({**data, "user_id": user_id})

        document = expense.to_dict()
        document.pop("expense_id")
        expense.expense_id = self.documents.add(EXPENSES, document)

        logger.info(f"Expense {expense.expense_id} added for user {user_id}: {expense.amount}")
        return expense

    def delete_expense(self, user_id: str, expense_id: str) -> None:
        if self.documents.get(EXPENSES, expense_id).get("user_id") != user_id:
            raise KeyError(f"{EXPENSES}/{expense_id} not found")
        self.documents.delete(EXPENSES, expense_id)

    def list_mileage(self, user_id: str) -> list[MileageEntry]:
        entries = []
        for doc_id, data in self.documents.query(MILEAGE, user_id):
            entry = MileageEntry.from_dict(data)
            entry.entry_id = doc_id
            entries.append(entry)
        return sorted(entries, key=lambda entry: entry.date, reverse=True)

    def add_mileage(
        self,
        user_id: str,
        data: Dict[str, Any],
        distance_lookup: Callable[[str, str], Any] | None = None,
    ) -> MileageEntry:
        """
        Record a trip.

        When `miles` is not supplied, the one-way distance comes from
        `distance_lookup(begin_address, end_address)`.
        """
        self.validator.validate_mileage(data)

        miles = data.get("miles")
        if miles in (None, ""):
            if distance_lookup is None:
                raise ValueError("miles is required when no distance lookup is configured")
            miles = distance_lookup(data["begin_address"], data["end_address"])
            if miles is None:
                raise ValueError("Could not calculate distance between addresses.")

        entry = MileageEntry.from_dict({**data, "user_id": user_id})
        distance, rate, total = mileage_cost(miles, data.get("cost_per_mile") or MILEAGE_RATE, entry.round_trip)

        entry.miles = distance
        entry.cost_per_mile = rate
        entry.total_cost = total

        document = entry.to_dict()
        document.pop("entry_id")
        entry.entry_id = self.documents.add(MILEAGE, document)

        logger.info(f"Mileage {entry.entry_id} added for user {user_id}: {distance} mi, {total}")
        return entry

    # -------------------------------------------------------------------------
    # Dashboard
    # -------------------------------------------------------------------------

    def dashboard(self, user_id: str) -> Dict[str, Any]:
        profile = self.profiles.get(user_id)
        deals = self.list_deals(user_id)
        expenses = self.list_expenses(user_id)
        mileage = self.list_mileage(user_id)

        total_net = sum((deal.net_income for deal in deals), ZERO)
        total_expenses = sum((expense.amount for expense in expenses), ZERO)

        return self.output_builder.build_dashboard(
            profile=profile,
            deals=deals,
            expenses=expenses,
            caps=self.cap_accumulator.cap_status(deals, profile),
            total_net_income=total_net,
            total_expenses=total_expenses,
            monthly=monthly_net_income(deals, expenses, self.clock()),
            by_category=expenses_by_category(expenses),
            mileage=mileage_totals(mileage),
        )

    # -------------------------------------------------------------------------
    # Stateless calculation
    # -------------------------------------------------------------------------

    def process_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Calculate a breakdown from a self-contained request.

        Convenience method for API usage. The request carries the profile,
        the deal, and either the deal history or explicit YTD figures.
        """
        profile_data = data.get("profile") or {}
        self.validator.validate_profile(profile_data)
        profile = CommissionProfile.from_dict(profile_data)

        deal_data = data.get("deal")
        if not deal_data:
            raise ValueError("deal is required")
        now = parse_date(data.get("now")) or self.clock()
        history = [Deal.from_dict(d) for d in data.get("deals") or []]

        accumulator = CapAccumulator(clock=lambda: now)
        ytd_royalty = data.get("ytd_royalty_usage")
        if ytd_royalty is None:
            ytd_royalty = accumulator.ytd_royalty_usage(history, profile)
        ytd_split = data.get("ytd_company_split_usage")
        if ytd_split is None:
            ytd_split = accumulator.ytd_company_split_usage(history, profile)

        breakdown = self.commission_calculator.calculate(
            deal_data.get("total_deal_amount"),
            profile,
            ytd_royalty_usage=ytd_royalty,
            ytd_company_split_usage=ytd_split,
            referral_fee=deal_data.get("referral_fee"),
            transaction_fee=deal_data.get("transaction_fee"),
            commission_percent_override=deal_data.get("commission_percent_override"),
        )

        return {
            "breakdown": self.output_builder.build(breakdown),
            "ytd_usage": {
                ROYALTY_USED: self.output_builder.money(safe_number(ytd_royalty)),
                COMPANY_SPLIT: self.output_builder.money(safe_number(ytd_split)),
            },
        }

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _calculate(self, data: Dict[str, Any], profile: CommissionProfile, deals: list[Deal]) -> Breakdown:
        ytd_royalty = self.cap_accumulator.ytd_royalty_usage(deals, profile)
        ytd_split = self.cap_accumulator.ytd_company_split_usage(deals, profile)
        return self.commission_calculator.calculate(
            data.get("total_deal_amount"),
            profile,
            ytd_royalty_usage=ytd_royalty,
            ytd_company_split_usage=ytd_split,
            referral_fee=data.get("referral_fee"),
            transaction_fee=data.get("transaction_fee"),
            commission_percent_override=data.get("commission_percent_override"),
        )

    def _load_deal(self, doc_id: str, data: dict) -> Deal:
        deal = Deal.from_dict(data)
        deal.deal_id = doc_id
        return deal

    def _owned_deal(self, user_id: str, deal_id: str) -> Deal:
        """Load a deal, treating other users' deals as missing."""
        data = self.documents.get(DEALS, deal_id)
        if data.get("user_id") != user_id:
            raise KeyError(f"{DEALS}/{deal_id} not found")
        return self._load_deal(deal_id, data)

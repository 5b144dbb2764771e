"""
Cap Accumulator

Derives year-to-date consumption of the capped deductions (royalty and
company split) from a user's persisted deals.
"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Iterable

from ..models import CommissionProfile, Deal
from ..money import HUNDRED, ZERO, quantize_money

ROYALTY_USED = "royalty_used"
COMPANY_SPLIT = "company_split"

CAPPED_FIELDS = (ROYALTY_USED, COMPANY_SPLIT)


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _anniversary(anchor: date, year: int) -> date:
    # Feb 29 anchors fall back to Feb 28 outside leap years
    day = min(anchor.day, calendar.monthrange(year, anchor.month)[1])
    return date(year, anchor.month, day)


def commission_year_start(anchor: date, now) -> date:
    """
    Start of the active commission year.

    This is the most recent date on or before `now` sharing month/day with
    `anchor`; the anchor's own year is irrelevant.
    """
    today = _as_date(now)
    start = _anniversary(anchor, today.year)
    if start > today:
        start = _anniversary(anchor, today.year - 1)
    return start


def ytd_usage(deals: Iterable[Deal], anchor: date, field_name: str, now) -> Decimal:
    """
    Sum a frozen cap field over the deals closed in [year start, now].

    Deals without a usable close date do not contribute.
    """
    if field_name not in CAPPED_FIELDS:
        raise ValueError(f"Unknown capped field: {field_name}. Must be one of {CAPPED_FIELDS}")

    today = _as_date(now)
    start = commission_year_start(anchor, today)

    total = ZERO
    for deal in deals:
        closed = deal.closed_on
        if closed is None or closed < start or closed > today:
            continue
        total += getattr(deal, field_name)
    return total


@dataclass
class CapStatus:
    """Progress against one annual cap."""

    cap: Decimal
    used: Decimal
    remaining: Decimal
    percent_used: Decimal
    window_start: date
    window_end: date

    @property
    def reached(self) -> bool:
        return self.remaining <= 0


class CapAccumulator:
    """Year-to-date cap usage with an injectable clock."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock

    def ytd_royalty_usage(self, deals: Iterable[Deal], profile: CommissionProfile) -> Decimal:
        return ytd_usage(deals, profile.commission_year_start, ROYALTY_USED, self.clock())

    def ytd_company_split_usage(self, deals: Iterable[Deal], profile: CommissionProfile) -> Decimal:
        return ytd_usage(deals, profile.commission_year_start, COMPANY_SPLIT, self.clock())

    def cap_status(self, deals: list[Deal], profile: CommissionProfile) -> dict[str, CapStatus]:
        """Royalty and company split cap progress for the dashboard."""
        now = _as_date(self.clock())
        start = commission_year_start(profile.commission_year_start, now)

        caps = {
            ROYALTY_USED: profile.royalty_cap,
            COMPANY_SPLIT: profile.company_split_cap,
        }
        status = {}
        for field_name, cap in caps.items():
            used = ytd_usage(deals, profile.commission_year_start, field_name, now)
            percent = quantize_money(used / cap * HUNDRED) if cap > 0 else ZERO
            status[field_name] = CapStatus(
                cap=cap,
                used=used,
                remaining=cap - used,
                percent_used=percent,
                window_start=start,
                window_end=now,
            )
        return status

"""
Unit Tests for Cap Accumulator

Tests verify the commission-year window and the year-to-date sums.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from agentbooks.calculators.caps import (
    COMPANY_SPLIT,
    ROYALTY_USED,
    CapAccumulator,
    commission_year_start,
    ytd_usage,
)
from agentbooks.models import CommissionProfile, Deal


def make_deal(close_date, royalty=0, split=0) -> Deal:
    return Deal(
        close_date=close_date,
        royalty_used=Decimal(str(royalty)),
        company_split=Decimal(str(split)),
    )


class TestCommissionYearStart:
    """Test the rolling commission-year boundary."""

    def test_anniversary_already_passed(self):
        assert commission_year_start(date(2019, 3, 15), datetime(2025, 6, 1, 12, 0)) == date(2025, 3, 15)

    def test_anniversary_not_yet_reached(self):
        assert commission_year_start(date(2019, 9, 1), datetime(2025, 6, 1)) == date(2024, 9, 1)

    def test_now_on_anchor_date(self):
        assert commission_year_start(date(2020, 6, 1), date(2025, 6, 1)) == date(2025, 6, 1)

    def test_leap_day_anchor_in_common_year(self):
        assert commission_year_start(date(2024, 2, 29), date(2025, 3, 10)) == date(2025, 2, 28)

    def test_leap_day_anchor_in_leap_year(self):
        assert commission_year_start(date(2020, 2, 29), date(2028, 3, 1)) == date(2028, 2, 29)


class TestYtdUsage:
    """Test summing frozen cap fields within the active year."""

    NOW = datetime(2025, 6, 15, 9, 30)
    ANCHOR = date(2024, 1, 1)

    def test_empty_deals_is_zero(self):
        assert ytd_usage([], self.ANCHOR, ROYALTY_USED, self.NOW) == Decimal("0")
        assert ytd_usage([], date(2000, 12, 31), COMPANY_SPLIT, datetime(1999, 1, 1)) == Decimal("0")

    def test_sums_selected_field(self):
        deals = [
            make_deal("2025-02-01", royalty=100, split=1000),
            make_deal("2025-05-20", royalty=250.5, split=500),
        ]

        assert ytd_usage(deals, self.ANCHOR, ROYALTY_USED, self.NOW) == Decimal("350.5")
        assert ytd_usage(deals, self.ANCHOR, COMPANY_SPLIT, self.NOW) == Decimal("1500")

    def test_excludes_deals_before_window(self):
        deals = [make_deal("2024-12-31", royalty=999), make_deal("2025-01-01", royalty=10)]

        assert ytd_usage(deals, self.ANCHOR, ROYALTY_USED, self.NOW) == Decimal("10")

    def test_excludes_deals_after_now(self):
        deals = [make_deal("2025-06-15", royalty=10), make_deal("2025-06-16", royalty=999)]

        assert ytd_usage(deals, self.ANCHOR, ROYALTY_USED, self.NOW) == Decimal("10")

    def test_excludes_missing_or_bad_dates(self):
        deals = [make_deal("", royalty=5), make_deal("soon", royalty=7), make_deal("2025-03-01", royalty=1)]

        assert ytd_usage(deals, self.ANCHOR, ROYALTY_USED, self.NOW) == Decimal("1")

    def test_on_anchor_day_only_same_day_deals_count(self):
        now = datetime(2025, 4, 1, 8, 0)
        deals = [make_deal("2025-03-31", split=100), make_deal("2025-04-01", split=40)]

        assert ytd_usage(deals, date(2023, 4, 1), COMPANY_SPLIT, now) == Decimal("40")

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            ytd_usage([], self.ANCHOR, "net_income", self.NOW)


class TestCapStatus:
    """Test dashboard cap progress."""

    def test_cap_progress(self):
        profile = CommissionProfile(
            royalty_cap=Decimal("3000"),
            company_split_cap=Decimal("5000"),
            commission_year_start=date(2024, 1, 1),
        )
        deals = [make_deal("2025-03-01", royalty=2700, split=5000)]
        accumulator = CapAccumulator(clock=lambda: datetime(2025, 6, 1))

        status = accumulator.cap_status(deals, profile)

        royalty = status[ROYALTY_USED]
        assert royalty.used == Decimal("2700")
        assert royalty.remaining == Decimal("300")
        assert royalty.percent_used == Decimal("90.00")
        assert not royalty.reached
        assert royalty.window_start == date(2025, 1, 1)
        assert royalty.window_end == date(2025, 6, 1)

        assert status[COMPANY_SPLIT].reached

    def test_zero_cap_reports_zero_percent(self):
        profile = CommissionProfile(royalty_cap=Decimal("0"), commission_year_start=date(2024, 1, 1))
        accumulator = CapAccumulator(clock=lambda: datetime(2025, 6, 1))

        assert accumulator.cap_status([], profile)[ROYALTY_USED].percent_used == Decimal("0")

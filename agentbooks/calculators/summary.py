"""
Income Summaries

Dashboard aggregates over deals, expenses and mileage.
"""

from datetime import date, datetime
from decimal import Decimal

from ..models import DEFAULT_COST_PER_MILE, Deal, Expense, MileageEntry, parse_date
from ..money import ZERO, quantize_money, safe_number


def _month_key(day: date) -> str:
    return day.strftime("%b %Y")


def _months_back(today: date, count: int) -> list[str]:
    """Labels for the last `count` calendar months, oldest first."""
    keys = []
    for offset in range(count - 1, -1, -1):
        month_index = today.year * 12 + (today.month - 1) - offset
        keys.append(_month_key(date(month_index // 12, month_index % 12 + 1, 1)))
    return keys


def monthly_net_income(
    deals: list[Deal],
    expenses: list[Expense],
    now,
    months: int = 6,
) -> list[tuple[str, Decimal]]:
    """
    Net income per month (deal net income minus expenses).

    Only the last `months` calendar months up to `now` are reported.
    """
    today = now.date() if isinstance(now, datetime) else now
    monthly = {key: ZERO for key in _months_back(today, months)}

    for deal in deals:
        closed = deal.closed_on
        if closed is None:
            continue
        key = _month_key(closed)
        if key in monthly:
            monthly[key] += deal.net_income

    for expense in expenses:
        spent = parse_date(expense.date)
        if spent is None:
            continue
        key = _month_key(spent)
        if key in monthly:
            monthly[key] -= expense.amount

    return list(monthly.items())


def expenses_by_category(expenses: list[Expense]) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = {}
    for expense in expenses:
        category = expense.category or "Other"
        totals[category] = totals.get(category, ZERO) + expense.amount
    return totals


def mileage_cost(miles, cost_per_mile=None, round_trip: bool = False) -> tuple[Decimal, Decimal, Decimal]:
    """
    Cost of a trip.

    Returns (miles driven, cost per mile, total cost). Round trips double the
    one-way distance; a missing or non-positive rate uses the default.
    """
    distance = safe_number(miles)
    if round_trip:
        distance *= 2

    rate = safe_number(cost_per_mile)
    if rate <= 0:
        rate = DEFAULT_COST_PER_MILE

    return distance, rate, quantize_money(distance * rate)


def mileage_totals(entries: list[MileageEntry]) -> dict[str, Decimal]:
    total_miles = sum((entry.miles for entry in entries), ZERO)
    total_cost = sum((entry.total_cost for entry in entries), ZERO)
    average = quantize_money(total_cost / total_miles) if total_miles > 0 else ZERO
    return {
        "total_miles": total_miles,
        "total_cost": total_cost,
        "average_cost_per_mile": average,
    }

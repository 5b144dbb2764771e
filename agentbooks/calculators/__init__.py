"""
Calculators Package

Provides the calculation components for deal processing.
"""

from .caps import CapAccumulator, CapStatus, commission_year_start, ytd_usage
from .commission import CommissionCalculator, compute_breakdown
from .summary import expenses_by_category, mileage_cost, mileage_totals, monthly_net_income

__all__ = [
    "CapAccumulator",
    "CapStatus",
    "CommissionCalculator",
    "commission_year_start",
    "compute_breakdown",
    "expenses_by_category",
    "mileage_cost",
    "mileage_totals",
    "monthly_net_income",
    "ytd_usage",
]

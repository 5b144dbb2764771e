"""
AGENT BOOKS COMMISSION ENGINE
Deal breakdowns, annual caps and income tracking for real estate agents
"""

from .calculators import compute_breakdown, ytd_usage
from .models import Breakdown, CommissionProfile, Deal
from .processor import DealProcessor

__all__ = ['DealProcessor', 'CommissionProfile', 'Deal', 'Breakdown', 'compute_breakdown', 'ytd_usage']

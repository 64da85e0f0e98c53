"""
Analytics module for the portfolio ledger.

Provides allocation drift analysis against target percentages.
"""

from stockfolio.analytics.drift import (
    DEFAULT_TOLERANCE,
    calculate_allocation_drift,
)

__all__ = [
    "DEFAULT_TOLERANCE",
    "calculate_allocation_drift",
]

"""
Portfolio module for the portfolio ledger.

Provides the lot ledger, lot-level holdings helpers, valuation on a date,
and performance bucketing over a date range.
"""

from stockfolio.portfolio.ledger import Portfolio
from stockfolio.portfolio.holdings import (
    aggregate_lots_by_symbol,
    get_portfolio_symbols,
    calculate_net_quantities,
    calculate_money_by_symbol,
    calculate_position_weights,
)
from stockfolio.portfolio.valuation import value_portfolio
from stockfolio.portfolio.performance import performance_series

__all__ = [
    "Portfolio",
    "aggregate_lots_by_symbol",
    "get_portfolio_symbols",
    "calculate_net_quantities",
    "calculate_money_by_symbol",
    "calculate_position_weights",
    "value_portfolio",
    "performance_series",
]

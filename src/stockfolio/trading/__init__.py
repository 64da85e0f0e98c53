"""
Rebalancing module for the portfolio ledger.

Computes synthetic rebalance trades and rebuilds the ledger with them.
"""

from stockfolio.trading.rebalance import (
    plan_rebalance,
    apply_rebalance_trades,
    rebalance,
)

__all__ = [
    "plan_rebalance",
    "apply_rebalance_trades",
    "rebalance",
]

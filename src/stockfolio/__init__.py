"""
Stock Portfolio Ledger (stockfolio)

Tracks stock portfolios as collections of dated purchase and sale lots, and
answers four questions about them: what a portfolio is worth on a date, what
it cost to acquire, how its value trended over a date range, and which trades
bring it to a target allocation.

Prices come from a pre-fetched daily price history per symbol. No live
trading, no real-time streaming.
"""

__version__ = "0.1.0"
__author__ = "Stockfolio Team"

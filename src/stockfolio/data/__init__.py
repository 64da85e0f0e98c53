"""
Data module for the portfolio ledger.

Provides loading and saving of lot and cost-basis files, price history
ingestion, and the price resolver.
"""

from stockfolio.data.loaders import (
    DataLoadError,
    parse_lot_lines,
    read_lot_file,
    save_portfolio,
    load_cost_basis,
    load_portfolio,
    list_portfolio_names,
    delete_portfolio_directory,
    load_supported_symbols,
    load_price_history_csv,
)
from stockfolio.data.resolver import PriceResolver
from stockfolio.data.schemas import (
    PRICE_HISTORY_SCHEMA,
    LOTS_SCHEMA,
    COST_BASIS_SCHEMA,
)

__all__ = [
    "DataLoadError",
    "parse_lot_lines",
    "read_lot_file",
    "save_portfolio",
    "load_cost_basis",
    "load_portfolio",
    "list_portfolio_names",
    "delete_portfolio_directory",
    "load_supported_symbols",
    "load_price_history_csv",
    "PriceResolver",
    "PRICE_HISTORY_SCHEMA",
    "LOTS_SCHEMA",
    "COST_BASIS_SCHEMA",
]

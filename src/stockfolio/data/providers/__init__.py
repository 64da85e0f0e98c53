"""
Price sources for daily market data.

Provides a pluggable interface for fetching daily price histories
with built-in caching for reproducibility.
"""

from stockfolio.data.providers.base import PriceSource, DataProviderError
from stockfolio.data.providers.cache import CachedPriceSource, FileCache
from stockfolio.data.providers.csv_provider import LocalCsvProvider
from stockfolio.data.providers.alphavantage_provider import (
    AlphaVantageProvider,
    get_price_source,
)

__all__ = [
    "PriceSource",
    "DataProviderError",
    "CachedPriceSource",
    "FileCache",
    "LocalCsvProvider",
    "AlphaVantageProvider",
    "get_price_source",
]

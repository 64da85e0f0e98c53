"""
Caching layer for price sources.

Provides file-based caching of price histories so that:
- Later runs avoid repeated network fetches
- Results are reproducible across runs
"""

import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from stockfolio.data.loaders import (
    DataLoadError,
    load_price_history_csv,
    save_price_history_csv,
)
from stockfolio.data.providers.base import PriceSource


class FileCache:
    """
    File-based cache for price histories.

    Stores one CSV file per symbol under <cache_dir>/prices.
    """

    def __init__(self, cache_dir: str | Path = "data/cache", max_age_hours: Optional[float] = 24):
        """``max_age_hours=None`` keeps entries until ``clear``."""
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.max_age_hours = max_age_hours

        self.prices_dir = self.cache_dir / "prices"
        self.prices_dir.mkdir(exist_ok=True)

    def _cache_file(self, symbol: str) -> Path:
        return self.prices_dir / f"{symbol.upper()}.csv"

    def get_history(self, symbol: str) -> Optional[pd.DataFrame]:
        """
        Get a cached price history if available.

        Args:
            symbol: Ticker symbol

        Returns:
            Cached DataFrame or None if not cached, stale, or unreadable
        """
        cache_file = self._cache_file(symbol)
        if not cache_file.exists():
            return None

        if self.max_age_hours is not None:
            mtime = datetime.fromtimestamp(cache_file.stat().st_mtime)
            if (datetime.now() - mtime).total_seconds() > self.max_age_hours * 3600:
                return None

        try:
            return load_price_history_csv(cache_file)
        except DataLoadError:
            # Cache corrupted, will re-fetch
            return None

    def save_history(self, symbol: str, history: pd.DataFrame) -> None:
        """
        Save a price history to cache.

        Args:
            symbol: Ticker symbol
            history: DataFrame with date and close columns
        """
        save_price_history_csv(history, self._cache_file(symbol))

    def clear(self) -> None:
        """Drop every stored history."""
        if self.prices_dir.exists():
            shutil.rmtree(self.prices_dir)
            self.prices_dir.mkdir(exist_ok=True)


class CachedPriceSource(PriceSource):
    """
    Serves histories from a FileCache, asking the wrapped source only on
    a miss. Empty histories are passed through without being stored.
    """

    def __init__(
        self,
        source: PriceSource,
        cache: Optional[FileCache] = None,
    ):
        self._source = source
        self._cache = cache or FileCache()

    @property
    def name(self) -> str:
        return f"Cached({self._source.name})"

    def get_price_history(self, symbol: str) -> pd.DataFrame:
        cached = self._cache.get_history(symbol)
        if cached is not None:
            return cached

        history = self._source.get_price_history(symbol)

        if not history.empty:
            self._cache.save_history(symbol, history)

        return history

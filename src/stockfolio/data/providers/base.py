"""
Abstract base class for price sources.

Defines the interface that all price sources must implement, enabling
pluggable daily price histories (HTTP service, local files, cache).
"""

from abc import ABC, abstractmethod

import pandas as pd


class DataProviderError(Exception):
    """A price source could not produce a history."""


class PriceSource(ABC):
    """
    Abstract base class for daily price history sources.

    A source returns the complete history of one symbol per call; callers are
    expected to memoize it (see PriceResolver).
    """

    @abstractmethod
    def get_price_history(self, symbol: str) -> pd.DataFrame:
        """
        Fetch the full daily closing price history of a symbol.

        Args:
            symbol: Ticker symbol

        Returns:
            DataFrame with columns: date, close
            - date: Trading date (datetime.date)
            - close: Closing price (float)

        Raises:
            DataProviderError: If data cannot be fetched
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Label used in log messages."""

    @staticmethod
    def empty_history() -> pd.DataFrame:
        return pd.DataFrame(columns=["date", "close"])

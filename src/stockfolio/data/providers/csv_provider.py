"""
Local CSV price source.

Reads daily price histories from <directory>/<SYMBOL>.csv files in the
Alpha Vantage TIME_SERIES_DAILY layout (timestamp,open,high,low,close,volume).
"""

from pathlib import Path

import pandas as pd

from stockfolio.data.loaders import DataLoadError, load_price_history_csv
from stockfolio.data.providers.base import DataProviderError, PriceSource


class LocalCsvProvider(PriceSource):
    """Price source backed by a directory of per-symbol CSV files."""

    def __init__(self, directory: str | Path):
        self._directory = Path(directory)

    @property
    def name(self) -> str:
        return f"LocalCSV({self._directory})"

    @property
    def directory(self) -> Path:
        return self._directory

    def get_price_history(self, symbol: str) -> pd.DataFrame:
        """
        Load the price history of a symbol from its CSV file.

        A symbol without a file has an empty history.

        Raises:
            DataProviderError: If the file exists but cannot be parsed
        """
        path = self._directory / f"{symbol.upper().strip()}.csv"
        if not path.exists():
            return self.empty_history()

        try:
            return load_price_history_csv(path)
        except DataLoadError as e:
            raise DataProviderError(f"Invalid price file for {symbol}: {e}")

"""
Alpha Vantage price source implementation.

Uses the Alpha Vantage API (https://www.alphavantage.co/) TIME_SERIES_DAILY
endpoint to fetch the full daily price history of a symbol as CSV.
"""

import io
import json
import time
from typing import Optional

import pandas as pd
import requests

from stockfolio.config import load_api_keys
from stockfolio.data.loaders import DataLoadError, load_price_history_csv
from stockfolio.data.providers.base import DataProviderError, PriceSource
from stockfolio.models import ManagerConfig


class AlphaVantageProvider(PriceSource):
    """
    Price source using the Alpha Vantage daily time series.

    Features:
    - Fetches the full daily history (outputsize=full) in CSV format
    - Retries transport failures with linear back-off
    - Backs off on HTTP 429 rate limiting
    - Requires ALPHAVANTAGE_API_KEY
    """

    BASE_URL = "https://www.alphavantage.co/query"

    # Rate limit retry settings
    RATE_LIMIT_RETRIES = 3
    RATE_LIMIT_DELAY = 15.0  # seconds

    def __init__(
        self,
        api_key: Optional[str] = None,
        max_retries: int = 3,
        retry_delay: float = 2.0,
        timeout: float = 30.0,
    ):
        """
        Initialize Alpha Vantage provider.

        Args:
            api_key: Alpha Vantage API key (defaults to loading from config sources)
            max_retries: Maximum retries for failed requests
            retry_delay: Delay between retries (seconds)
            timeout: Request timeout (seconds)

        Raises:
            DataProviderError: If API key is not provided or found in config
        """
        if api_key:
            self._api_key = api_key
        else:
            api_keys = load_api_keys()
            self._api_key = api_keys.get("alphavantage_api_key")

        if not self._api_key:
            raise DataProviderError(
                "Alpha Vantage API key is not configured. Please set it using one of:\n"
                "  1. Pass api_key parameter to AlphaVantageProvider\n"
                "  2. Environment variable: export ALPHAVANTAGE_API_KEY=your-key\n"
                "  3. .env file: ALPHAVANTAGE_API_KEY=your-key\n"
                "  4. config/api_keys.yaml: alphavantage_api_key: your-key\n"
                "\n"
                "Get your API key at: https://www.alphavantage.co/support/#api-key"
            )

        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "AlphaVantage"

    def get_price_history(self, symbol: str) -> pd.DataFrame:
        """
        Fetch the full daily price history of a symbol.

        Uses endpoint: https://www.alphavantage.co/query?function=TIME_SERIES_DAILY
        &symbol={symbol}&outputsize=full&datatype=csv&apikey={key}

        Args:
            symbol: Ticker symbol

        Returns:
            DataFrame with columns: date, close

        Raises:
            DataProviderError: On request failure or an API error payload
        """
        symbol = symbol.upper().strip()
        params = {
            "function": "TIME_SERIES_DAILY",
            "symbol": symbol,
            "outputsize": "full",
            "datatype": "csv",
            "apikey": self._api_key,
        }

        body = self._make_request(self.BASE_URL, params)

        # Errors come back as a JSON object even when CSV was requested
        if body.lstrip().startswith("{"):
            raise DataProviderError(
                f"Alpha Vantage API error for {symbol}: {self._error_message(body)}"
            )

        if not body.strip():
            return self.empty_history()

        try:
            return load_price_history_csv(io.StringIO(body))
        except DataLoadError as e:
            raise DataProviderError(f"Invalid CSV response from Alpha Vantage for {symbol}: {e}")

    def _make_request(self, url: str, params: dict) -> str:
        """
        Make an HTTP request to the Alpha Vantage API with retry logic.

        Args:
            url: API endpoint URL
            params: Query parameters

        Returns:
            Response body text

        Raises:
            DataProviderError: On request failure
        """
        last_error = None

        for attempt in range(self._max_retries):
            try:
                response = requests.get(url, params=params, timeout=self._timeout)

                # Handle rate limiting
                if response.status_code == 429:
                    if attempt < self.RATE_LIMIT_RETRIES - 1:
                        time.sleep(self.RATE_LIMIT_DELAY * (attempt + 1))
                        continue
                    raise DataProviderError(
                        f"Alpha Vantage API rate limit exceeded after {self.RATE_LIMIT_RETRIES} retries"
                    )

                response.raise_for_status()
                return response.text

            except requests.exceptions.Timeout:
                last_error = "Request timeout"
            except requests.exceptions.RequestException as e:
                last_error = str(e)

            if attempt < self._max_retries - 1:
                time.sleep(self._retry_delay * (attempt + 1))

        raise DataProviderError(
            f"Failed to fetch data from Alpha Vantage after {self._max_retries} attempts: {last_error}"
        )

    @staticmethod
    def _error_message(body: str) -> str:
        try:
            payload = json.loads(body)
        except ValueError:
            return body.strip()
        if isinstance(payload, dict):
            for key in ("Error Message", "Note", "Information"):
                if key in payload:
                    return str(payload[key])
        return body.strip()


def get_price_source(config: Optional[ManagerConfig] = None) -> PriceSource:
    """
    Get the price source described by a manager configuration.

    Args:
        config: Manager configuration (defaults if None)

    Returns:
        PriceSource instance (Alpha Vantage with optional caching, or local CSV)

    Raises:
        DataProviderError: If the Alpha Vantage API key is not available
    """
    from stockfolio.data.providers.cache import CachedPriceSource, FileCache
    from stockfolio.data.providers.csv_provider import LocalCsvProvider

    config = config or ManagerConfig()

    if config.price_source == "csv":
        return LocalCsvProvider(config.price_data_dir)

    provider = AlphaVantageProvider()

    if config.use_cache:
        cache = FileCache(config.cache_dir)
        return CachedPriceSource(provider, cache)

    return provider

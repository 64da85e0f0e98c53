"""
Price resolution and market-date logic.

The resolver answers "what was the close of S on date D" from a pluggable
price source, memoizing each symbol's full history on first use, and decides
which calendar dates are market dates by probing a reference symbol.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from stockfolio.data.providers.base import PriceSource
from stockfolio.errors import PriceNotFound, UnsupportedSymbol
from stockfolio.models import PriceData


class PriceResolver:
    """
    Memoizing price lookup keyed by exact calendar date.

    Attributes:
        source: Underlying price source
        reference_symbol: Symbol whose history defines market dates
    """

    def __init__(
        self,
        source: PriceSource,
        supported_symbols: Iterable[str],
        reference_symbol: Optional[str] = None,
        today: Optional[date] = None,
    ):
        """
        Initialize the resolver.

        Args:
            source: Price source returning full daily histories
            supported_symbols: Symbols accepted by the ledger
            reference_symbol: Market-date probe symbol (default: first supported)
            today: Fixed current date (default: the system date)
        """
        self.source = source
        self._supported: list[str] = []
        for symbol in supported_symbols:
            symbol = symbol.upper().strip()
            if symbol and symbol not in self._supported:
                self._supported.append(symbol)

        if reference_symbol:
            self.reference_symbol: Optional[str] = reference_symbol.upper().strip()
        elif self._supported:
            self.reference_symbol = self._supported[0]
        else:
            self.reference_symbol = None

        self._today = today
        self._histories: dict[str, dict[date, Decimal]] = {}

    @property
    def supported_symbols(self) -> list[str]:
        return list(self._supported)

    def is_supported(self, symbol: str) -> bool:
        return symbol.upper().strip() in self._supported

    def today(self) -> date:
        return self._today or date.today()

    def yesterday(self) -> date:
        return self.today() - timedelta(days=1)

    def price(self, symbol: str, on: date) -> Decimal:
        """
        Closing price of a symbol on an exact date.

        Raises:
            UnsupportedSymbol: If the symbol is not supported
            PriceNotFound: If there is no quote for that date
        """
        symbol = symbol.upper().strip()
        if symbol not in self._supported:
            raise UnsupportedSymbol(symbol)

        close = self._history(symbol).get(on)
        if close is None:
            raise PriceNotFound(symbol, on)
        return close

    def quote(self, symbol: str, on: date) -> PriceData:
        """Price of a symbol on a date as a PriceData record."""
        return PriceData(symbol=symbol.upper().strip(), date=on, close=self.price(symbol, on))

    def is_valid_market_date(self, on: date) -> bool:
        """Whether the reference symbol has a quote on this date."""
        if self.reference_symbol is None:
            return False
        return on in self._history(self.reference_symbol)

    def next_valid_market_date(self, on: date) -> date:
        """
        First market date on or after `on`.

        Stops advancing once past yesterday; the returned date is then not a
        market date and callers must check it.
        """
        current = on
        while not self.is_valid_market_date(current):
            current += timedelta(days=1)
            if current > self.yesterday():
                break
        return current

    def previous_valid_market_date(self, on: date, floor: date) -> Optional[date]:
        """Latest market date in [floor, on], or None if there is none."""
        current = on
        while current >= floor:
            if self.is_valid_market_date(current):
                return current
            current -= timedelta(days=1)
        return None

    def _history(self, symbol: str) -> dict[date, Decimal]:
        """Full history of a symbol, fetched once per resolver."""
        if symbol not in self._histories:
            df = self.source.get_price_history(symbol)
            history: dict[date, Decimal] = {}
            for row in df.itertuples(index=False):
                history[row.date] = Decimal(str(row.close))
            self._histories[symbol] = history
        return self._histories[symbol]

"""
Error taxonomy for the portfolio ledger.

Every failure is scoped to the single requested operation. Validation errors
are raised before any ledger mutation; lookup errors raised part-way through a
multi-step operation abort the whole operation.
"""

from datetime import date
from decimal import Decimal


class StockfolioError(Exception):
    """Base class for all portfolio ledger errors."""
    pass


class PriceNotFound(StockfolioError):
    """Raised when no quote exists for a symbol on an exact calendar date."""

    def __init__(self, symbol: str, on: date):
        self.symbol = symbol
        self.date = on
        super().__init__(
            f"Stock price for {symbol} is not present for {on.isoformat()}. "
            f"Please enter a valid market date."
        )


class UnsupportedSymbol(StockfolioError):
    """Raised when a symbol is not in the supported symbol list."""

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"The symbol '{symbol}' is not supported")


class InsufficientQuantity(StockfolioError):
    """Raised when a sale exceeds the quantity held as of the sale date."""

    def __init__(self, symbol: str, requested: Decimal, held: Decimal, on: date):
        self.symbol = symbol
        self.requested = requested
        self.held = held
        self.date = on
        if held <= Decimal("0"):
            message = (
                f"No shares of {symbol} are held on {on.isoformat()}. "
                f"Shares need to be purchased before they can be sold."
            )
        else:
            message = (
                f"Cannot sell {requested} shares of {symbol} on {on.isoformat()}: "
                f"only {held} held"
            )
        super().__init__(message)


class InvalidRange(StockfolioError):
    """Raised when a date range, amount, or percentage input fails a precondition."""
    pass


class DuplicatePortfolio(StockfolioError):
    """Raised when a portfolio name is already taken."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"The portfolio name '{name}' cannot be added because it already exists"
        )


class PortfolioNotFound(StockfolioError):
    """Raised when no portfolio with the given name exists."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"The portfolio '{name}' does not exist")


class MalformedImport(StockfolioError):
    """Raised when a lot import record cannot be parsed or is invalid."""
    pass

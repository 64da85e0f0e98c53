"""
Holdings and lot-level helpers for the portfolio ledger.

Provides utilities for aggregating lots by symbol and converting net
quantities into money and percentage weights.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Callable, Iterable

from stockfolio.models import Lot


def aggregate_lots_by_symbol(
    lots: Iterable[Lot],
) -> dict[str, list[Lot]]:
    """
    Group lots by symbol.

    Args:
        lots: Lots to group

    Returns:
        Dictionary mapping symbol to list of lots for that symbol,
        in first-seen symbol order
    """
    holdings: dict[str, list[Lot]] = defaultdict(list)
    for lot in lots:
        holdings[lot.symbol].append(lot)
    return dict(holdings)


def get_portfolio_symbols(lots: Iterable[Lot]) -> set[str]:
    return {lot.symbol for lot in lots}


def calculate_net_quantities(lots: Iterable[Lot]) -> dict[str, Decimal]:
    """
    Net quantity per symbol, sale lots subtracting from purchases.

    Args:
        lots: Lots to consolidate

    Returns:
        Dictionary mapping symbol to summed quantity
    """
    quantities: dict[str, Decimal] = {}
    for lot in lots:
        quantities[lot.symbol] = quantities.get(lot.symbol, Decimal("0")) + lot.quantity
    return quantities


def calculate_money_by_symbol(
    quantities: dict[str, Decimal],
    price_of: Callable[[str], Decimal],
) -> dict[str, Decimal]:
    """
    Convert net quantities to money.

    Args:
        quantities: Net quantity per symbol
        price_of: Returns the price of a symbol (may raise PriceNotFound)

    Returns:
        Dictionary mapping symbol to quantity * price
    """
    return {
        symbol: quantity * price_of(symbol)
        for symbol, quantity in quantities.items()
    }


def calculate_position_weights(
    money: dict[str, Decimal],
    total_value: Decimal | None = None,
) -> dict[str, Decimal]:
    """
    Calculate portfolio weights by symbol.

    Args:
        money: Market value per symbol
        total_value: Optional pre-calculated total value

    Returns:
        Dictionary mapping symbol to weight in percent (0-100);
        empty if the total value is zero
    """
    if total_value is None:
        total_value = sum(money.values(), Decimal("0"))

    if total_value == Decimal("0"):
        return {}

    return {
        symbol: value / total_value * Decimal("100")
        for symbol, value in money.items()
    }


def get_lots_for_symbol(
    lots: Iterable[Lot],
    symbol: str,
) -> list[Lot]:
    """Lots of ``symbol`` in ledger order; the symbol is matched case-insensitively."""
    return [lot for lot in lots if lot.symbol == symbol.upper()]

"""
Portfolio valuation on a date.

This module marks a portfolio's composition to market on a valuation date,
producing per-symbol position summaries alongside the total value and the
cost basis as of that date.
"""

from datetime import date
from decimal import Decimal

from stockfolio.models import PortfolioValuation, PositionSummary
from stockfolio.portfolio.holdings import (
    aggregate_lots_by_symbol,
    calculate_position_weights,
)
from stockfolio.portfolio.ledger import Portfolio


def value_portfolio(
    portfolio: Portfolio,
    valuation_date: date,
) -> PortfolioValuation:
    """
    Create a complete portfolio valuation.

    Args:
        portfolio: Portfolio to value
        valuation_date: Date of valuation

    Returns:
        PortfolioValuation with the composition, position summaries
        (sorted by market value descending), total value and cost basis

    Raises:
        PriceNotFound: If a held symbol has no quote on the valuation date
    """
    lots = portfolio.composition_as_of(valuation_date)
    cost_basis = portfolio.cost_basis_at(valuation_date)

    if not lots:
        return PortfolioValuation(
            portfolio_name=portfolio.name,
            valuation_date=valuation_date,
            total_market_value=Decimal("0"),
            cost_basis=cost_basis,
            lots=[],
            positions=[],
        )

    positions = []
    for symbol, symbol_lots in aggregate_lots_by_symbol(lots).items():
        quantity = sum((lot.quantity for lot in symbol_lots), Decimal("0"))
        quote = portfolio.resolver.quote(symbol, valuation_date)
        positions.append(
            PositionSummary(
                symbol=symbol,
                quantity=quantity,
                price=quote.close,
                market_value=quantity * quote.close,
                num_lots=len(symbol_lots),
            )
        )

    total_market_value = sum((p.market_value for p in positions), Decimal("0"))

    weights = calculate_position_weights(
        {p.symbol: p.market_value for p in positions},
        total_market_value,
    )
    for position in positions:
        position.weight_percent = weights.get(position.symbol, Decimal("0"))

    positions.sort(key=lambda p: p.market_value, reverse=True)

    return PortfolioValuation(
        portfolio_name=portfolio.name,
        valuation_date=valuation_date,
        total_market_value=total_market_value,
        cost_basis=cost_basis,
        lots=lots,
        positions=positions,
    )

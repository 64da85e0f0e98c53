"""
Rebalancing engine.

This module computes the synthetic trades that move a portfolio's
money-weighted allocation to target percentages on a date, and materializes
them as a new ledger:
- Trades are tied to their symbol, never paired by position
- Share counts are rounded to 2 decimals; trades rounding to zero are skipped
- The input ledger is never mutated
"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from stockfolio.analytics.drift import DEFAULT_TOLERANCE, calculate_allocation_drift
from stockfolio.models import RebalanceTrade, TradeSide
from stockfolio.portfolio.holdings import calculate_money_by_symbol
from stockfolio.portfolio.ledger import Portfolio


SHARE_QUANTUM = Decimal("0.01")


def plan_rebalance(
    portfolio: Portfolio,
    on: date,
    target_percents: dict[str, Decimal],
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> list[RebalanceTrade]:
    """
    Compute the trades that bring a portfolio to its target allocation.

    Args:
        portfolio: Portfolio to rebalance
        on: Rebalance date; lots dated on or before it are consolidated
        target_percents: Target share of total value per symbol (0-100)
        tolerance: Drift in percentage points treated as at target

    Returns:
        List of RebalanceTrade objects in target order

    Raises:
        PriceNotFound: If any involved symbol has no quote on `on`
        InvalidRange: If the portfolio has no value on `on`
    """
    resolver = portfolio.resolver
    held = portfolio.holdings_as_of(on)
    current_money = calculate_money_by_symbol(held, lambda symbol: resolver.price(symbol, on))
    total_money = sum(current_money.values(), Decimal("0"))

    drifts = calculate_allocation_drift(current_money, target_percents, tolerance)

    trades = []
    for drift in drifts:
        if not drift.exceeds_tolerance:
            continue

        price = resolver.price(drift.symbol, on)
        delta_money = abs(drift.drift) / Decimal("100") * total_money
        shares = (delta_money / price).quantize(SHARE_QUANTUM, rounding=ROUND_HALF_UP)

        if drift.drift > Decimal("0"):
            side = TradeSide.SELL
            shares = min(shares, held.get(drift.symbol, Decimal("0")))
        else:
            side = TradeSide.BUY

        if shares <= Decimal("0"):
            continue

        trades.append(
            RebalanceTrade(
                symbol=drift.symbol,
                side=side,
                shares=shares,
                price=price,
                trade_date=on,
                current_percent=drift.current_percent,
                target_percent=drift.target_percent,
            )
        )

    return trades


def apply_rebalance_trades(
    portfolio: Portfolio,
    trades: list[RebalanceTrade],
) -> Portfolio:
    """
    Materialize trades as a freshly built ledger.

    The original lots plus one synthetic lot per trade are sorted by date
    and replayed through a new ledger with zero commission, which rebuilds the
    cost basis and merges same-day duplicates.

    Args:
        portfolio: Portfolio the trades were planned for
        trades: Planned trades

    Returns:
        New Portfolio with the same name
    """
    combined = portfolio.lots + [trade.to_lot() for trade in trades]
    combined.sort(key=lambda lot: lot.purchase_date)

    rebuilt = Portfolio(portfolio.name, portfolio.resolver)
    for lot in combined:
        rebuilt.add_lot(lot.symbol, lot.quantity, lot.purchase_date)
    return rebuilt


def rebalance(
    portfolio: Portfolio,
    on: date,
    target_percents: dict[str, Decimal],
) -> Portfolio:
    """
    Rebalance a portfolio to target percentages on a date.

    Returns:
        New Portfolio; the input portfolio is left unchanged
    """
    trades = plan_rebalance(portfolio, on, target_percents)
    return apply_rebalance_trades(portfolio, trades)

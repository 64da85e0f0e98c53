"""
Allocation drift of a portfolio against target percentages.

This module compares each symbol's share of total portfolio value with a
requested target percentage, flagging symbols whose drift is large enough
to trade on.
"""

from decimal import Decimal

from stockfolio.errors import InvalidRange
from stockfolio.models import AllocationDrift


# Percentage points; smaller differences count as "at target"
DEFAULT_TOLERANCE = Decimal("0.0001")


def calculate_allocation_drift(
    current_money: dict[str, Decimal],
    target_percents: dict[str, Decimal],
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> list[AllocationDrift]:
    """
    Calculate drift for each target symbol.

    Symbols not currently held count as holding no money, so they can be
    bought. Held symbols without a target are left out.

    Args:
        current_money: Market value per held symbol
        target_percents: Target share of total value per symbol (0-100)
        tolerance: Largest drift, in percentage points, treated as at target

    Returns:
        List of AllocationDrift objects in target order

    Raises:
        InvalidRange: If the portfolio has no value to allocate
    """
    total_money = sum(current_money.values(), Decimal("0"))
    if total_money <= Decimal("0"):
        raise InvalidRange("Cannot rebalance a portfolio with no value on this date")

    drifts = []
    for symbol, target_percent in target_percents.items():
        money = current_money.get(symbol, Decimal("0"))
        current_percent = money / total_money * Decimal("100")
        drift = current_percent - target_percent

        drifts.append(
            AllocationDrift(
                symbol=symbol,
                current_money=money,
                current_percent=current_percent,
                target_percent=target_percent,
                drift=drift,
                exceeds_tolerance=abs(drift) > tolerance,
            )
        )

    return drifts

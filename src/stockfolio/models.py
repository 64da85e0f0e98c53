"""
Core data models for the portfolio ledger.

This module defines the fundamental data structures used throughout the
system, including lots, price points, performance series, rebalance trades,
and the manager configuration. All monetary and share quantities use Decimal
for precision.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class TradeSide(Enum):
    """Trade direction indicator."""
    BUY = "BUY"
    SELL = "SELL"


class Granularity(Enum):
    """Bucket size of a performance series."""
    YEARLY = "YEARLY"
    QUARTERLY = "QUARTERLY"  # three-month spans
    MONTHLY = "MONTHLY"
    DAILY = "DAILY"


class ActionType(Enum):
    """Types of logged actions for the decision log."""
    PORTFOLIO_CREATED = "PORTFOLIO_CREATED"
    LOT_ADDED = "LOT_ADDED"
    LOT_SOLD = "LOT_SOLD"
    PORTFOLIO_REBALANCED = "PORTFOLIO_REBALANCED"
    DOLLAR_COST_AVERAGED = "DOLLAR_COST_AVERAGED"
    COMMISSION_UPDATED = "COMMISSION_UPDATED"
    PORTFOLIOS_RESET = "PORTFOLIOS_RESET"
    CONFIG_LOADED = "CONFIG_LOADED"


@dataclass(frozen=True)
class Lot:
    """
    A single dated entry of shares for one symbol.

    Lots are immutable; merging two lots with the same symbol and date
    produces a new lot with the summed quantity.

    Attributes:
        symbol: Ticker symbol of the security
        quantity: Number of shares (fractional allowed, negative for a sale)
        purchase_date: Date the shares were bought or sold
    """
    symbol: str
    quantity: Decimal
    purchase_date: date

    @property
    def key(self) -> tuple[str, date]:
        """Merge key for this lot (symbol, purchase date)."""
        return (self.symbol, self.purchase_date)

    @property
    def is_sale(self) -> bool:
        return self.quantity < Decimal("0")

    def with_added_quantity(self, quantity: Decimal) -> "Lot":
        """Return a copy of this lot with `quantity` added to it."""
        return Lot(
            symbol=self.symbol,
            quantity=self.quantity + quantity,
            purchase_date=self.purchase_date,
        )


@dataclass
class PriceData:
    """
    Price data for a symbol on a specific date.

    Attributes:
        symbol: Ticker symbol
        date: Price date
        close: Closing price
    """
    symbol: str
    date: date
    close: Decimal


@dataclass
class PositionSummary:
    """
    Aggregated position summary for a single symbol on a date.

    Attributes:
        symbol: Ticker symbol
        quantity: Net shares across all lots dated on or before the valuation date
        price: Closing price on the valuation date
        market_value: quantity * price
        num_lots: Number of lots contributing to the position
        weight_percent: Share of total portfolio value (0-100)
    """
    symbol: str
    quantity: Decimal
    price: Decimal
    market_value: Decimal
    num_lots: int
    weight_percent: Decimal = Decimal("0")


@dataclass
class PortfolioValuation:
    """
    Composition snapshot of a portfolio on a date.

    Attributes:
        portfolio_name: Portfolio name
        valuation_date: Date of valuation
        total_market_value: Sum of all position market values
        cost_basis: Cost basis as of the valuation date
        lots: Lots dated on or before the valuation date
        positions: Aggregated by-symbol summaries
    """
    portfolio_name: str
    valuation_date: date
    total_market_value: Decimal
    cost_basis: Decimal
    lots: list[Lot]
    positions: list[PositionSummary]

    @property
    def unrealized_gain(self) -> Decimal:
        return self.total_market_value - self.cost_basis


@dataclass
class PerformancePoint:
    """
    One bucket of a performance series.

    Attributes:
        label: Human readable label for the bucket's time span
        value: Portfolio value on the bucket's representative date
        market_date: The representative market date that was priced
    """
    label: str
    value: Decimal
    market_date: date


@dataclass
class PerformanceSeries:
    """
    Portfolio value over a date range, bucketed by granularity.

    Produced fresh for each query and never persisted.
    """
    portfolio_name: str
    start_date: date
    end_date: date
    granularity: Granularity
    points: list[PerformancePoint] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def labels(self) -> list[str]:
        return [p.label for p in self.points]

    @property
    def values(self) -> list[Decimal]:
        return [p.value for p in self.points]

    def scale(self, max_marks: int = 50) -> int:
        """
        Money represented by one chart mark.

        The largest value is drawn with at most `max_marks` marks.
        The scale is never lower than 1.
        """
        if not self.points:
            return 1
        largest = max(self.values)
        return max(int(largest / max_marks), 1)

    def marks(self, point: PerformancePoint, max_marks: int = 50) -> int:
        """Number of chart marks for a point at the series scale."""
        if point.value <= Decimal("0"):
            return 0
        return int(point.value / self.scale(max_marks))


@dataclass
class AllocationDrift:
    """
    Allocation drift of a single symbol against its target percentage.

    Attributes:
        symbol: Ticker symbol
        current_money: Market value of the symbol on the drift date
        current_percent: Current share of total value (0-100)
        target_percent: Target share of total value (0-100)
        drift: current_percent - target_percent
        exceeds_tolerance: Whether drift is large enough to trade on
    """
    symbol: str
    current_money: Decimal
    current_percent: Decimal
    target_percent: Decimal
    drift: Decimal
    exceeds_tolerance: bool


@dataclass
class RebalanceTrade:
    """
    Synthetic trade computed by the rebalancing engine.

    Attributes:
        symbol: Ticker symbol
        side: BUY or SELL
        shares: Number of shares, always positive, rounded to 2 decimals
        price: Price used to convert money to shares
        trade_date: Date the synthetic lot is dated
        current_percent: Allocation before the trade (0-100)
        target_percent: Allocation requested (0-100)
    """
    symbol: str
    side: TradeSide
    shares: Decimal
    price: Decimal
    trade_date: date
    current_percent: Decimal
    target_percent: Decimal

    @property
    def signed_quantity(self) -> Decimal:
        """Quantity of the synthetic lot (negative for a sale)."""
        return self.shares if self.side == TradeSide.BUY else -self.shares

    @property
    def estimated_value(self) -> Decimal:
        return self.shares * self.price

    def to_lot(self) -> Lot:
        return Lot(
            symbol=self.symbol,
            quantity=self.signed_quantity,
            purchase_date=self.trade_date,
        )


@dataclass
class ManagerConfig:
    """
    Portfolio manager configuration loaded from YAML.

    Attributes:
        portfolios_dir: Directory holding persisted lot and cost-basis files
        price_source: "alphavantage" (HTTP) or "csv" (local files)
        price_data_dir: Directory of <SYMBOL>.csv price files for the csv source
        cache_dir: Directory for cached price histories
        use_cache: Whether fetched histories are cached on disk
        supported_symbols_file: File listing supported symbols, one per line
        reference_symbol: Symbol probed to decide market dates (optional)
        commission_fee: Flat commission charged per transaction
        fee_decay_percent: Percentage the fee shrinks after each transaction
        epoch_year: First year covered by the price history
        output_dir: Directory for the decision log
    """
    portfolios_dir: str = "Portfolios"
    price_source: str = "alphavantage"
    price_data_dir: str = "StockDataFiles"
    cache_dir: str = "data/cache"
    use_cache: bool = True
    supported_symbols_file: str = "StockDataFiles/supported-stocks-list.txt"
    reference_symbol: Optional[str] = None
    commission_fee: Decimal = Decimal("0")
    fee_decay_percent: Decimal = Decimal("0")
    epoch_year: int = 2000
    output_dir: str = "output"


@dataclass
class DecisionLogEntry:
    """
    Entry for the append-only decision log.

    Attributes:
        timestamp: When the action occurred
        action_type: Type of action
        portfolio_name: Portfolio involved (if applicable)
        details: JSON-serializable details dictionary
    """
    timestamp: datetime
    action_type: ActionType
    portfolio_name: Optional[str]
    details: dict

    @classmethod
    def create(
        cls,
        action_type: ActionType,
        portfolio_name: Optional[str],
        details: dict,
    ) -> "DecisionLogEntry":
        """Factory method with auto-generated timestamp."""
        return cls(
            timestamp=datetime.now(),
            action_type=action_type,
            portfolio_name=portfolio_name,
            details=details,
        )

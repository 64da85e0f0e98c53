"""
Portfolio manager.

Owns the named-portfolio map and the commission-fee state, validates every
request before touching a ledger, and persists and logs every mutation.

Commission handling:
- The current fee is charged on each lot-adding call
- After each such call the fee decays by fee_decay_percent
- Multi-lot operations commit the decayed fee only once they succeed
- With a storage directory the fee and decay are saved beside the
  portfolios after every change and restored with them
"""

import re
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from pathlib import Path
from typing import Optional

from stockfolio.data.loaders import (
    delete_portfolio_directory,
    list_portfolio_names,
    load_commission_state,
    load_portfolio,
    read_lot_file,
    save_commission_state,
    save_portfolio,
)
from stockfolio.data.resolver import PriceResolver
from stockfolio.errors import (
    DuplicatePortfolio,
    InvalidRange,
    PortfolioNotFound,
    UnsupportedSymbol,
)
from stockfolio.logging.decision_log import DecisionLogger
from stockfolio.models import (
    Lot,
    ManagerConfig,
    PerformanceSeries,
    PortfolioValuation,
    RebalanceTrade,
)
from stockfolio.portfolio.ledger import Portfolio
from stockfolio.portfolio.performance import performance_series
from stockfolio.portfolio.valuation import value_portfolio
from stockfolio.trading.rebalance import apply_rebalance_trades, plan_rebalance


SHARE_QUANTUM = Decimal("0.01")
PERCENT_SUM_TOLERANCE = Decimal("0.01")
HUNDRED = Decimal("100")

VALID_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9 _.-]*$")


class PortfolioManager:
    """
    Registry of named portfolios plus commission state.

    Attributes:
        resolver: Price resolver shared by every ledger
        config: Manager configuration
    """

    def __init__(
        self,
        resolver: PriceResolver,
        config: Optional[ManagerConfig] = None,
        decision_logger: Optional[DecisionLogger] = None,
    ):
        """
        Initialize the manager.

        Args:
            resolver: Price resolver
            config: Manager configuration; without one nothing is persisted
            decision_logger: Optional logger for every mutation
        """
        self.resolver = resolver
        self.config = config or ManagerConfig()
        self._storage_dir: Optional[Path] = Path(config.portfolios_dir) if config else None
        self._logger = decision_logger
        self._portfolios: dict[str, Portfolio] = {}
        self._fee = self.config.commission_fee
        self._decay_percent = self.config.fee_decay_percent

    # Registry

    def portfolio_names(self) -> list[str]:
        return list(self._portfolios)

    def is_empty(self) -> bool:
        return not self._portfolios

    def has_portfolio(self, name: str) -> bool:
        return name in self._portfolios

    def get_portfolio(self, name: str) -> Portfolio:
        """
        Raises:
            PortfolioNotFound: If no portfolio has this name
        """
        portfolio = self._portfolios.get(name)
        if portfolio is None:
            raise PortfolioNotFound(name)
        return portfolio

    def supported_symbols(self) -> list[str]:
        return self.resolver.supported_symbols

    def retrieve_existing_portfolios(self) -> list[str]:
        """
        Load every persisted portfolio, and the saved commission state, from
        the storage directory.

        Returns:
            Names of the loaded portfolios
        """
        if self._storage_dir is None:
            return []

        commission = load_commission_state(self._storage_dir)
        if commission is not None:
            self._fee, self._decay_percent = commission

        loaded = []
        for name in list_portfolio_names(self._storage_dir):
            self._portfolios[name] = load_portfolio(name, self._storage_dir, self.resolver)
            loaded.append(name)
        return loaded

    def delete_all_portfolios(self) -> list[str]:
        """
        Forget every portfolio and delete the storage directory.

        Returns:
            Names of the deleted portfolios
        """
        names = self.portfolio_names()
        self._portfolios.clear()
        if self._storage_dir is not None:
            delete_portfolio_directory(self._storage_dir)
        if self._logger:
            self._logger.log_portfolios_reset(names)
        return names

    # Creation

    def create_portfolio(self, name: str, file_path: str | Path) -> Portfolio:
        """
        Create a portfolio from a lot import file of whole-share purchases.

        Every record is validated and the whole ledger is built before the
        portfolio is registered.

        Raises:
            DuplicatePortfolio: If the name is taken
            DataLoadError: If the file does not exist
            MalformedImport: If any record is invalid
            UnsupportedSymbol: If any record names an unsupported symbol
            PriceNotFound: If any purchase date has no quote
        """
        self._check_new_name(name)
        lots = read_lot_file(file_path, whole_shares=True, today=self.resolver.today())
        for lot in lots:
            if not self.resolver.is_supported(lot.symbol):
                raise UnsupportedSymbol(lot.symbol)

        portfolio = Portfolio(name, self.resolver)
        fee = self._fee
        for lot in lots:
            portfolio.add_lot(lot.symbol, lot.quantity, lot.purchase_date, fee)
            fee = self._decayed(fee)

        self._register(portfolio)
        self._commit_fee(fee)
        if self._logger:
            self._logger.log_portfolio_created(name, portfolio.lots, str(file_path))
        return portfolio

    def create_empty_portfolio(self, name: str) -> Portfolio:
        """
        Raises:
            DuplicatePortfolio: If the name is taken
        """
        self._check_new_name(name)
        portfolio = Portfolio(name, self.resolver)
        self._register(portfolio)
        if self._logger:
            self._logger.log_portfolio_created(name, [])
        return portfolio

    # Mutations

    def add_lot(self, name: str, symbol: str, quantity: Decimal, on: date) -> Lot:
        """
        Buy shares of a symbol on a date, charging the current commission.

        Raises:
            PortfolioNotFound: If the portfolio does not exist
            InvalidRange: If the quantity is not positive or the date is in the future
            UnsupportedSymbol: If the symbol is not supported
            PriceNotFound: If there is no quote on that date
        """
        portfolio = self.get_portfolio(name)
        quantity = self._positive_quantity(quantity)
        self._check_not_future(on, "purchase date")

        commission = self._fee
        lot = portfolio.add_lot(symbol, quantity, on, commission)
        self.charge_commission()
        self._persist(portfolio)
        if self._logger:
            self._logger.log_lot_added(name, Lot(lot.symbol, quantity, on), commission)
        return lot

    def sell(self, name: str, symbol: str, quantity: Decimal, on: date) -> Lot:
        """
        Sell shares of a symbol on a date, charging the current commission.

        Raises:
            PortfolioNotFound: If the portfolio does not exist
            InvalidRange: If the quantity is not positive or the date is in the future
            UnsupportedSymbol: If the symbol is not supported
            InsufficientQuantity: If fewer shares are held on that date
            PriceNotFound: If there is no quote on that date
        """
        portfolio = self.get_portfolio(name)
        quantity = self._positive_quantity(quantity)
        self._check_not_future(on, "sale date")

        commission = self._fee
        lot = portfolio.sell(symbol, quantity, on, commission)
        self.charge_commission()
        self._persist(portfolio)
        if self._logger:
            self._logger.log_lot_sold(name, lot.symbol, quantity, on, commission)
        return lot

    def rebalance(
        self,
        name: str,
        on: date,
        target_percents: dict[str, Decimal],
    ) -> list[RebalanceTrade]:
        """
        Rebalance a portfolio to target percentages on a date.

        The rebuilt ledger replaces the old one under the same name.

        Returns:
            The synthetic trades that were applied

        Raises:
            PortfolioNotFound: If the portfolio does not exist
            InvalidRange: If the date is in the future, the targets are invalid,
                or a symbol held on that date has no target
            UnsupportedSymbol: If a target symbol is not supported
            PriceNotFound: If any involved symbol has no quote on that date
        """
        portfolio = self.get_portfolio(name)
        self._check_not_future(on, "rebalance date")
        targets = self._validate_percentages(target_percents)
        uncovered = [
            symbol
            for symbol, quantity in portfolio.holdings_as_of(on).items()
            if quantity != Decimal("0") and symbol not in targets
        ]
        if uncovered:
            raise InvalidRange(
                f"A target percentage is required for every held symbol, missing: {', '.join(uncovered)}"
            )

        trades = plan_rebalance(portfolio, on, targets)
        rebuilt = apply_rebalance_trades(portfolio, trades)

        self._portfolios[name] = rebuilt
        self._persist(rebuilt)
        if self._logger:
            self._logger.log_portfolio_rebalanced(name, on, targets, trades)
        return trades

    def dollar_cost_average(
        self,
        name: str,
        total_amount: Decimal,
        start: date,
        end: date,
        interval_days: int,
        proportions: dict[str, Decimal],
    ) -> Portfolio:
        """
        Create a portfolio by investing a fixed amount at a fixed interval.

        Starting at the first market date on or after `start`, every
        `interval_days` the amount is split across symbols by proportion and
        converted to shares (rounded to 2 decimals) at that date's price.
        Investing stops once the next date is after `end` or no further market
        date exists.

        Raises:
            DuplicatePortfolio: If the name is taken
            InvalidRange: If start >= end, the amount or interval is not
                positive, or the proportions are invalid
            PriceNotFound: If a symbol has no quote on an investment date
        """
        self._check_new_name(name)
        if start >= end:
            raise InvalidRange("The start date cannot be on or after the end date")
        if start > self.resolver.today():
            raise InvalidRange("The start date cannot be a future date")
        amount = self._positive_quantity(total_amount, "investment amount")
        if interval_days < 1:
            raise InvalidRange(f"Interval must be at least 1 day, got {interval_days}")
        targets = self._validate_percentages(proportions)

        portfolio = Portfolio(name, self.resolver)
        fee = self._fee
        current = self.resolver.next_valid_market_date(start)
        while current <= end:
            if not self.resolver.is_valid_market_date(current):
                break
            for symbol, percent in targets.items():
                price = self.resolver.price(symbol, current)
                shares = (percent / HUNDRED * amount / price).quantize(
                    SHARE_QUANTUM, rounding=ROUND_HALF_UP
                )
                if shares <= Decimal("0"):
                    continue
                portfolio.add_lot(symbol, shares, current, fee)
                fee = self._decayed(fee)
            current = self.resolver.next_valid_market_date(current + timedelta(days=interval_days))

        self._register(portfolio)
        self._commit_fee(fee)
        if self._logger:
            self._logger.log_dollar_cost_averaged(
                name, amount, start, end, interval_days, targets, len(portfolio)
            )
        return portfolio

    # Queries

    def value_at(self, name: str, on: date) -> Decimal:
        portfolio = self.get_portfolio(name)
        self._check_not_future(on, "valuation date")
        return portfolio.value_at(on)

    def cost_basis_at(self, name: str, on: date) -> Decimal:
        portfolio = self.get_portfolio(name)
        self._check_not_future(on, "cost basis date")
        return portfolio.cost_basis_at(on)

    def composition_as_of(self, name: str, on: date) -> list[Lot]:
        portfolio = self.get_portfolio(name)
        self._check_not_future(on, "examine date")
        return portfolio.composition_as_of(on)

    def valuation(self, name: str, on: date) -> PortfolioValuation:
        portfolio = self.get_portfolio(name)
        self._check_not_future(on, "valuation date")
        return value_portfolio(portfolio, on)

    def performance(self, name: str, start: date, end: date) -> PerformanceSeries:
        """
        Performance series of a portfolio over a date range.

        Raises:
            PortfolioNotFound: If the portfolio does not exist
            InvalidRange: If end precedes start, either date is in the future
                or before the epoch year, or start is today
            PriceNotFound: If any bucket cannot be priced
        """
        portfolio = self.get_portfolio(name)
        today = self.resolver.today()
        if end < start:
            raise InvalidRange("The end date cannot come before the start date")
        if start > today or end > today:
            raise InvalidRange("The start/end date cannot be a date in the future")
        if start.year < self.config.epoch_year or end.year < self.config.epoch_year:
            raise InvalidRange(
                f"The start/end date cannot be before the year {self.config.epoch_year}"
            )
        if start == today:
            raise InvalidRange("The start date cannot be today's date")
        return performance_series(portfolio, start, end)

    # Commission

    @property
    def commission_fee(self) -> Decimal:
        return self._fee

    @property
    def fee_decay_percent(self) -> Decimal:
        return self._decay_percent

    def set_commission(self, fee: Decimal, decay_percent: Decimal = Decimal("0")) -> None:
        """
        Raises:
            InvalidRange: If the fee is negative or the decay is outside [0, 100]
        """
        fee = Decimal(str(fee))
        decay_percent = Decimal(str(decay_percent))
        if fee < Decimal("0"):
            raise InvalidRange("The commission fee cannot be a negative value")
        if decay_percent < Decimal("0") or decay_percent > HUNDRED:
            raise InvalidRange("The commission fee reduction percentage must be between 0 and 100")
        self._decay_percent = decay_percent
        self._commit_fee(fee)
        if self._logger:
            self._logger.log_commission_updated(fee, decay_percent)

    def charge_commission(self) -> None:
        self._commit_fee(self._decayed(self._fee))

    def _commit_fee(self, fee: Decimal) -> None:
        self._fee = fee
        if self._storage_dir is not None:
            save_commission_state(fee, self._decay_percent, self._storage_dir)

    def _decayed(self, fee: Decimal) -> Decimal:
        return fee * (Decimal("1") - self._decay_percent / HUNDRED)

    # Helpers

    def _register(self, portfolio: Portfolio) -> None:
        self._portfolios[portfolio.name] = portfolio
        self._persist(portfolio)

    def _persist(self, portfolio: Portfolio) -> None:
        if self._storage_dir is not None:
            save_portfolio(portfolio, self._storage_dir)

    def _check_new_name(self, name: str) -> None:
        if not name or not VALID_NAME_PATTERN.match(name):
            raise InvalidRange(f"Invalid portfolio name: '{name}'")
        if name in self._portfolios:
            raise DuplicatePortfolio(name)

    def _check_not_future(self, on: date, label: str) -> None:
        if on > self.resolver.today():
            raise InvalidRange(f"The {label} cannot be a future date")

    @staticmethod
    def _positive_quantity(value: Decimal, label: str = "quantity") -> Decimal:
        value = Decimal(str(value))
        if not value.is_finite() or value <= Decimal("0"):
            raise InvalidRange(f"The {label} must be a positive number, got {value}")
        return value

    def _validate_percentages(self, percents: dict[str, Decimal]) -> dict[str, Decimal]:
        """
        Normalize symbols and check each percentage and their sum.

        Raises:
            InvalidRange: If empty, a percentage is outside [0, 100], or the
                percentages do not sum to 100
            UnsupportedSymbol: If a symbol is not supported
        """
        if not percents:
            raise InvalidRange("At least one symbol percentage is required")

        targets: dict[str, Decimal] = {}
        for symbol, percent in percents.items():
            symbol = symbol.upper().strip()
            percent = Decimal(str(percent))
            if not self.resolver.is_supported(symbol):
                raise UnsupportedSymbol(symbol)
            if not percent.is_finite() or percent < Decimal("0") or percent > HUNDRED:
                raise InvalidRange(f"Percentage for {symbol} must be within [0, 100], got {percent}")
            targets[symbol] = targets.get(symbol, Decimal("0")) + percent

        total = sum(targets.values(), Decimal("0"))
        if abs(total - HUNDRED) > PERCENT_SUM_TOLERANCE:
            raise InvalidRange(f"Percentages must sum to 100, got {total}")
        return targets

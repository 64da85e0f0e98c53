"""
Lot ledger for a single named portfolio.

Lots are stored in a mapping keyed by (symbol, purchase date) so that a second
lot for the same key merges into the first. Date-ordered views are rebuilt on
demand and are stable with respect to insertion order.
"""

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable

from stockfolio.errors import InsufficientQuantity, UnsupportedSymbol
from stockfolio.models import Lot
from stockfolio.portfolio.holdings import (
    calculate_net_quantities,
    get_portfolio_symbols,
)

if TYPE_CHECKING:
    from stockfolio.data.resolver import PriceResolver


ZERO = Decimal("0")


class Portfolio:
    """
    Lots and cost-basis ledger of one portfolio.

    The cost-basis ledger maps an acquisition date to the money spent on that
    date. It is only charged when a new (symbol, date) lot is created; merging
    into an existing lot leaves it unchanged.
    """

    def __init__(self, name: str, resolver: "PriceResolver"):
        self.name = name
        self._resolver = resolver
        self._lots: dict[tuple[str, date], Lot] = {}
        self._cost_basis: dict[date, Decimal] = {}

    def __len__(self) -> int:
        return len(self._lots)

    def __repr__(self) -> str:
        return f"Portfolio(name={self.name!r}, lots={len(self._lots)})"

    @property
    def resolver(self) -> "PriceResolver":
        return self._resolver

    @property
    def lots(self) -> list[Lot]:
        """Lots in insertion order."""
        return list(self._lots.values())

    @property
    def cost_basis_entries(self) -> dict[date, Decimal]:
        return dict(self._cost_basis)

    @property
    def symbols(self) -> list[str]:
        return sorted(get_portfolio_symbols(self._lots.values()))

    def lots_by_date(self) -> list[Lot]:
        """Lots ordered by purchase date, ties kept in insertion order."""
        return sorted(self._lots.values(), key=lambda lot: lot.purchase_date)

    def add_lot(
        self,
        symbol: str,
        quantity: Decimal,
        on: date,
        commission: Decimal = ZERO,
    ) -> Lot:
        """
        Add shares of a symbol dated `on`.

        A lot with the same symbol and date is merged by summing quantities.
        Otherwise the price on `on` is looked up and the cost-basis entry for
        that date grows by price * quantity + commission (commission only for
        a sale lot).

        Returns:
            The resulting (possibly merged) lot

        Raises:
            UnsupportedSymbol: If the symbol is not supported
            PriceNotFound: If there is no quote for the symbol on `on`
        """
        symbol = symbol.upper().strip()
        if not self._resolver.is_supported(symbol):
            raise UnsupportedSymbol(symbol)

        key = (symbol, on)
        existing = self._lots.get(key)
        if existing is not None:
            merged = existing.with_added_quantity(quantity)
            self._lots[key] = merged
            return merged

        price = self._resolver.price(symbol, on)
        if quantity > ZERO:
            cost = price * quantity + commission
        else:
            cost = commission

        lot = Lot(symbol=symbol, quantity=quantity, purchase_date=on)
        self._lots[key] = lot
        self._cost_basis[on] = self._cost_basis.get(on, ZERO) + cost
        return lot

    def sell(
        self,
        symbol: str,
        quantity: Decimal,
        on: date,
        commission: Decimal = ZERO,
    ) -> Lot:
        """
        Record a sale as a negative lot dated `on`.

        Only holdings as of `on` are checked. A back-dated sale is accepted
        even if it leaves a later date with negative holdings.

        Raises:
            UnsupportedSymbol: If the symbol is not supported
            InsufficientQuantity: If fewer than `quantity` shares are held on `on`
            PriceNotFound: If there is no quote for the symbol on `on`
        """
        symbol = symbol.upper().strip()
        if not self._resolver.is_supported(symbol):
            raise UnsupportedSymbol(symbol)

        held = self.holdings_as_of(on).get(symbol, ZERO)
        if held <= ZERO or quantity > held:
            raise InsufficientQuantity(symbol, quantity, held, on)

        return self.add_lot(symbol, -quantity, on, commission)

    def composition_as_of(self, on: date) -> list[Lot]:
        """Lots dated on or before `on`, ordered by purchase date."""
        return [lot for lot in self.lots_by_date() if lot.purchase_date <= on]

    def holdings_as_of(self, on: date) -> dict[str, Decimal]:
        """Net quantity per symbol over lots dated on or before `on`."""
        return calculate_net_quantities(self.composition_as_of(on))

    def value_at(self, on: date) -> Decimal:
        """
        Market value on `on` of every lot dated on or before it.

        Raises:
            PriceNotFound: If any held symbol has no quote on `on`
        """
        total = ZERO
        for lot in self.composition_as_of(on):
            total += self._resolver.price(lot.symbol, on) * lot.quantity
        return total

    def cost_basis_at(self, on: date) -> Decimal:
        """Money spent on acquisitions dated on or before `on`."""
        return sum(
            (money for entry_date, money in self._cost_basis.items() if entry_date <= on),
            ZERO,
        )

    def copy(self) -> "Portfolio":
        return Portfolio.restore(self.name, self._resolver, self.lots, self._cost_basis)

    @classmethod
    def restore(
        cls,
        name: str,
        resolver: "PriceResolver",
        lots: Iterable[Lot],
        cost_basis: dict[date, Decimal],
    ) -> "Portfolio":
        """
        Rebuild a ledger from persisted state without any price lookups.

        Lots sharing a (symbol, date) key are merged.
        """
        portfolio = cls(name, resolver)
        for lot in lots:
            existing = portfolio._lots.get(lot.key)
            if existing is not None:
                portfolio._lots[lot.key] = existing.with_added_quantity(lot.quantity)
            else:
                portfolio._lots[lot.key] = lot
        portfolio._cost_basis = dict(cost_basis)
        return portfolio

"""
Command-line interface for the stockfolio portfolio ledger.

Provides commands for:
- create: Create a portfolio from a lot file (or empty)
- add / sell: Record purchases and sales
- value / cost-basis / examine: Inspect a portfolio on a date
- performance: Chart portfolio value over a date range
- rebalance: Move a portfolio to target percentages
- dca: Create a portfolio by dollar-cost averaging
- commission: Show or set the per-transaction fee
- symbols / list / reset: Housekeeping
"""

import sys
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

import click

from stockfolio import __version__
from stockfolio.config import ConfigurationError, load_manager_config
from stockfolio.data import PriceResolver, load_supported_symbols
from stockfolio.data.loaders import DataLoadError
from stockfolio.data.providers import DataProviderError, get_price_source
from stockfolio.errors import StockfolioError
from stockfolio.logging import get_logger
from stockfolio.manager import PortfolioManager
from stockfolio.models import ManagerConfig, TradeSide


def config_option(f):
    return click.option(
        "--config", "-c",
        type=click.Path(exists=True),
        default=None,
        help="Path to manager configuration YAML file",
    )(f)


def _fail(message: str) -> None:
    click.echo(message, err=True)
    sys.exit(1)


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        _fail(f"Invalid date format: {value}. Use YYYY-MM-DD.")


def _parse_decimal(value: str, label: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        _fail(f"Invalid {label}: {value}")


def _parse_targets(targets: tuple[str, ...]) -> dict[str, Decimal]:
    """Parse repeated SYMBOL=PERCENT options."""
    parsed: dict[str, Decimal] = {}
    for target in targets:
        symbol, sep, percent = target.partition("=")
        if not sep or not symbol.strip():
            _fail(f"Invalid target '{target}'. Use SYMBOL=PERCENT.")
        parsed[symbol.strip().upper()] = _parse_decimal(percent.strip(), f"percentage for {symbol}")
    return parsed


def _build_manager(config_path: Optional[str]) -> PortfolioManager:
    """
    Load configuration, wire the price source and resolver, and restore
    persisted portfolios.
    """
    try:
        config = load_manager_config(config_path) if config_path else ManagerConfig()
    except ConfigurationError as e:
        _fail(f"Error loading config: {e}")

    out_dir = Path(config.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    logger = get_logger(out_dir / "decision_log.jsonl")
    if config_path:
        logger.log_config_loaded(config, config_path)

    try:
        symbols = load_supported_symbols(config.supported_symbols_file)
        source = get_price_source(config)
    except (DataLoadError, DataProviderError) as e:
        _fail(f"Error setting up price data: {e}")

    resolver = PriceResolver(source, symbols, reference_symbol=config.reference_symbol)
    manager = PortfolioManager(resolver, config=config, decision_logger=logger)

    try:
        manager.retrieve_existing_portfolios()
    except DataLoadError as e:
        _fail(f"Error loading portfolios: {e}")

    return manager


def _run(action, *args, **kwargs):
    """Run a manager call, reporting failures the way every command does."""
    try:
        return action(*args, **kwargs)
    except (StockfolioError, DataLoadError, DataProviderError) as e:
        _fail(f"Error: {e}")


@click.group()
@click.version_option(version=__version__, prog_name="stockfolio")
def main():
    """
    Stock portfolio ledger.

    Tracks dated lots per portfolio, values them on any market date,
    charts performance, rebalances and dollar-cost averages.
    """
    pass


@main.command()
@config_option
@click.argument("name")
@click.option(
    "--file", "-f", "file_path",
    type=click.Path(),
    default=None,
    help="Lot file (symbol,quantity,date per line, whole shares only)",
)
def create(config: Optional[str], name: str, file_path: Optional[str]):
    """
    Create a portfolio.

    Imports lots from a CSV file, or creates an empty portfolio when no
    file is given.
    """
    manager = _build_manager(config)

    if file_path:
        click.echo(f"Importing {file_path}...")
        portfolio = _run(manager.create_portfolio, name, file_path)
    else:
        portfolio = _run(manager.create_empty_portfolio, name)

    click.echo(f"Portfolio '{name}' created with {len(portfolio)} lots")


@main.command()
@config_option
@click.argument("name")
@click.argument("symbol")
@click.argument("quantity")
@click.option("--date", "-d", "on", required=True, help="Purchase date (YYYY-MM-DD)")
def add(config: Optional[str], name: str, symbol: str, quantity: str, on: str):
    """Buy QUANTITY shares of SYMBOL in portfolio NAME."""
    manager = _build_manager(config)
    purchase_date = _parse_date(on)
    shares = _parse_decimal(quantity, "quantity")

    commission = manager.commission_fee
    lot = _run(manager.add_lot, name, symbol, shares, purchase_date)

    click.echo(f"Added {shares} {lot.symbol} on {purchase_date} to '{name}'")
    if commission > 0:
        click.echo(f"  Commission: ${commission:,.2f}")


@main.command()
@config_option
@click.argument("name")
@click.argument("symbol")
@click.argument("quantity")
@click.option("--date", "-d", "on", required=True, help="Sale date (YYYY-MM-DD)")
def sell(config: Optional[str], name: str, symbol: str, quantity: str, on: str):
    """Sell QUANTITY shares of SYMBOL from portfolio NAME."""
    manager = _build_manager(config)
    sale_date = _parse_date(on)
    shares = _parse_decimal(quantity, "quantity")

    commission = manager.commission_fee
    lot = _run(manager.sell, name, symbol, shares, sale_date)

    click.echo(f"Sold {shares} {lot.symbol} on {sale_date} from '{name}'")
    if commission > 0:
        click.echo(f"  Commission: ${commission:,.2f}")


@main.command()
@config_option
@click.argument("name")
@click.option("--date", "-d", "on", required=True, help="Valuation date (YYYY-MM-DD)")
def value(config: Optional[str], name: str, on: str):
    """Value portfolio NAME on a market date."""
    manager = _build_manager(config)
    valuation_date = _parse_date(on)

    total = _run(manager.value_at, name, valuation_date)
    click.echo(f"Value of '{name}' on {valuation_date}: ${total:,.2f}")


@main.command("cost-basis")
@config_option
@click.argument("name")
@click.option("--date", "-d", "on", required=True, help="Cost basis date (YYYY-MM-DD)")
def cost_basis(config: Optional[str], name: str, on: str):
    """Money invested in portfolio NAME up to a date."""
    manager = _build_manager(config)
    basis_date = _parse_date(on)

    total = _run(manager.cost_basis_at, name, basis_date)
    click.echo(f"Cost basis of '{name}' on {basis_date}: ${total:,.2f}")


@main.command()
@config_option
@click.argument("name")
@click.option("--date", "-d", "on", required=True, help="Composition date (YYYY-MM-DD)")
@click.option("--prices/--no-prices", default=True, help="Include market values")
def examine(config: Optional[str], name: str, on: str, prices: bool):
    """Show the composition of portfolio NAME on a date."""
    manager = _build_manager(config)
    examine_date = _parse_date(on)

    lots = _run(manager.composition_as_of, name, examine_date)
    click.echo(f"Portfolio '{name}' as of {examine_date}:")
    click.echo()
    click.echo(f"  {'Symbol':<8} {'Quantity':>12}  Date")
    for lot in lots:
        click.echo(f"  {lot.symbol:<8} {lot.quantity:>12}  {lot.purchase_date}")

    if not prices or not lots:
        return

    valuation = _run(manager.valuation, name, examine_date)
    click.echo()
    click.echo(f"  {'Symbol':<8} {'Quantity':>12} {'Price':>10} {'Value':>14} {'Weight':>8}")
    for position in valuation.positions:
        click.echo(
            f"  {position.symbol:<8} {position.quantity:>12} {position.price:>10,.2f} "
            f"{position.market_value:>14,.2f} {position.weight_percent:>7.2f}%"
        )
    click.echo()
    click.echo(f"  Market Value:    ${valuation.total_market_value:,.2f}")
    click.echo(f"  Cost Basis:      ${valuation.cost_basis:,.2f}")
    click.echo(f"  Unrealized Gain: ${valuation.unrealized_gain:,.2f}")


@main.command()
@config_option
@click.argument("name")
@click.option("--start", "-s", required=True, help="Start date (YYYY-MM-DD)")
@click.option("--end", "-e", required=True, help="End date (YYYY-MM-DD)")
def performance(config: Optional[str], name: str, start: str, end: str):
    """Chart the value of portfolio NAME over a date range."""
    manager = _build_manager(config)
    start_date = _parse_date(start)
    end_date = _parse_date(end)

    series = _run(manager.performance, name, start_date, end_date)

    click.echo(f"Performance of portfolio {name} from {start_date} to {end_date}")
    click.echo()
    width = max(len(label) for label in series.labels)
    for point in series.points:
        click.echo(f"{point.label:<{width}}: {'*' * series.marks(point)}")
    click.echo()
    click.echo(f"Scale: * = ${series.scale():,}")


@main.command()
@config_option
@click.argument("name")
@click.option("--date", "-d", "on", required=True, help="Rebalance date (YYYY-MM-DD)")
@click.option(
    "--target", "-t", "targets",
    multiple=True,
    required=True,
    help="Target allocation as SYMBOL=PERCENT (repeatable)",
)
def rebalance(config: Optional[str], name: str, on: str, targets: tuple[str, ...]):
    """Rebalance portfolio NAME to target percentages on a date."""
    manager = _build_manager(config)
    rebalance_date = _parse_date(on)
    target_percents = _parse_targets(targets)

    trades = _run(manager.rebalance, name, rebalance_date, target_percents)

    if not trades:
        click.echo(f"Portfolio '{name}' is already at its target allocation")
        return

    click.echo(f"Rebalanced '{name}' on {rebalance_date}:")
    for trade in trades:
        verb = "Bought" if trade.side == TradeSide.BUY else "Sold"
        click.echo(
            f"  {verb} {trade.shares} {trade.symbol} @ ${trade.price:,.2f} "
            f"({trade.current_percent:.2f}% -> {trade.target_percent:.2f}%)"
        )


@main.command()
@config_option
@click.argument("name")
@click.option("--amount", "-a", required=True, help="Amount invested at each interval")
@click.option("--start", "-s", required=True, help="Start date (YYYY-MM-DD)")
@click.option("--end", "-e", required=True, help="End date (YYYY-MM-DD)")
@click.option("--interval", "-i", type=int, required=True, help="Days between investments")
@click.option(
    "--target", "-t", "targets",
    multiple=True,
    required=True,
    help="Proportion as SYMBOL=PERCENT (repeatable)",
)
def dca(
    config: Optional[str],
    name: str,
    amount: str,
    start: str,
    end: str,
    interval: int,
    targets: tuple[str, ...],
):
    """Create portfolio NAME by dollar-cost averaging."""
    manager = _build_manager(config)
    total_amount = _parse_decimal(amount, "amount")
    start_date = _parse_date(start)
    end_date = _parse_date(end)
    proportions = _parse_targets(targets)

    portfolio = _run(
        manager.dollar_cost_average,
        name, total_amount, start_date, end_date, interval, proportions,
    )

    click.echo(f"Portfolio '{name}' created by dollar-cost averaging:")
    click.echo(f"  Lots: {len(portfolio)}")
    click.echo(f"  Cost basis on {end_date}: ${portfolio.cost_basis_at(end_date):,.2f}")


@main.command()
@config_option
@click.argument("fee", required=False)
@click.option("--decay", default="0", show_default=True, help="Percent the fee drops after each transaction")
def commission(config: Optional[str], fee: Optional[str], decay: str):
    """Show the commission fee, or set it to FEE."""
    manager = _build_manager(config)

    if fee is not None:
        _run(
            manager.set_commission,
            _parse_decimal(fee, "commission fee"),
            _parse_decimal(decay, "fee decay percentage"),
        )

    click.echo(f"Commission fee: ${manager.commission_fee:,.2f}")
    click.echo(f"Decay per transaction: {manager.fee_decay_percent}%")


@main.command()
@config_option
def symbols(config: Optional[str]):
    """List supported symbols."""
    manager = _build_manager(config)
    for symbol in manager.supported_symbols():
        click.echo(symbol)


@main.command("list")
@config_option
def list_portfolios(config: Optional[str]):
    """List portfolios."""
    manager = _build_manager(config)
    names = manager.portfolio_names()
    if not names:
        click.echo("No portfolios")
        return
    for name in names:
        click.echo(name)


@main.command()
@config_option
@click.confirmation_option(prompt="Delete all portfolios?")
def reset(config: Optional[str]):
    """Delete every portfolio."""
    manager = _build_manager(config)
    deleted = manager.delete_all_portfolios()
    click.echo(f"Deleted {len(deleted)} portfolios")


if __name__ == "__main__":
    main()

"""
Data loading and saving functions for lot, cost-basis and price files.

Handles parsing of lot import files, persistence of portfolios as plain
delimited text (one lot per line: symbol, quantity, date; one cost-basis entry
per line: date, money; one commission line: fee, decay percent), and ingestion
of daily price history CSV files.
"""

import csv
import re
import shutil
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import IO, TYPE_CHECKING, Iterable, Optional

import pandas as pd

from stockfolio.data.schemas import (
    COST_BASIS_SCHEMA,
    LOTS_SCHEMA,
    PRICE_HISTORY_SCHEMA,
    FileLayout,
)
from stockfolio.errors import MalformedImport
from stockfolio.models import Lot
from stockfolio.portfolio.ledger import Portfolio

if TYPE_CHECKING:
    from stockfolio.data.resolver import PriceResolver


DATE_FORMAT = "%Y-%m-%d"
PORTFOLIO_FILE_EXTENSION = ".csv"
COST_BASIS_SUFFIX = "-costBasis.txt"
COMMISSION_FILE = "commission.txt"
ACCEPTED_IMPORT_EXTENSIONS = (".csv",)

# Positive integer, optionally written with a zero fraction ("10", "10.0")
WHOLE_SHARES_PATTERN = re.compile(r"^[1-9][0-9]*(\.0+)?$")


class DataLoadError(Exception):
    """Raised when data cannot be loaded or is invalid."""
    pass


def parse_lot_lines(
    lines: Iterable[str],
    whole_shares: bool = False,
    today: Optional[date] = None,
    source: str = "<lots>",
) -> list[Lot]:
    """
    Parse delimited lot records (symbol, quantity, date).

    Args:
        lines: Text lines, one lot per line
        whole_shares: Require positive integral quantities (new portfolios)
        today: Current date; purchase dates after it are rejected
        source: Name of the input used in error messages

    Returns:
        List of Lot objects in input order

    Raises:
        MalformedImport: If any record is invalid
    """
    today = today or date.today()
    lots = []

    for line_number, values in enumerate(csv.reader(lines), start=1):
        if not values or all(not v.strip() for v in values):
            continue

        if len(values) != LOTS_SCHEMA.field_count:
            raise MalformedImport(
                f"{source}:{line_number}: expected {LOTS_SCHEMA.field_count} values "
                f"({', '.join(LOTS_SCHEMA.field_names)}), got {len(values)}"
            )

        symbol = values[0].strip().upper()
        raw_quantity = values[1].strip()
        raw_date = values[2].strip()

        if not symbol:
            raise MalformedImport(f"{source}:{line_number}: missing symbol")

        try:
            quantity = Decimal(raw_quantity)
        except InvalidOperation:
            raise MalformedImport(
                f"{source}:{line_number}: invalid quantity '{raw_quantity}' for {symbol}"
            )
        if not quantity.is_finite():
            raise MalformedImport(
                f"{source}:{line_number}: invalid quantity '{raw_quantity}' for {symbol}"
            )

        if whole_shares and not WHOLE_SHARES_PATTERN.match(raw_quantity):
            raise MalformedImport(
                f"{source}:{line_number}: quantity for {symbol} must be a positive "
                f"whole number of shares, got '{raw_quantity}'"
            )

        try:
            purchase_date = datetime.strptime(raw_date, DATE_FORMAT).date()
        except ValueError:
            raise MalformedImport(
                f"{source}:{line_number}: the purchase date for {symbol} is not in "
                f"the correct format (YYYY-MM-DD): '{raw_date}'"
            )

        if purchase_date > today:
            raise MalformedImport(
                f"{source}:{line_number}: invalid purchase date for {symbol}. "
                f"A purchase date cannot be a future date."
            )

        lots.append(Lot(symbol=symbol, quantity=quantity, purchase_date=purchase_date))

    return lots


def read_lot_file(
    file_path: str | Path,
    whole_shares: bool = False,
    today: Optional[date] = None,
) -> list[Lot]:
    """
    Read a lot import file.

    Args:
        file_path: Path to a .csv file with symbol, quantity, date lines
        whole_shares: Require positive integral quantities
        today: Current date used to reject future purchase dates

    Returns:
        List of Lot objects

    Raises:
        DataLoadError: If the file does not exist or cannot be read
        MalformedImport: If the file is empty, has an unsupported extension,
            or contains an invalid record
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise DataLoadError(f"The portfolio file {file_path.absolute()} does not exist")

    if file_path.suffix.lower() not in ACCEPTED_IMPORT_EXTENSIONS:
        raise MalformedImport(
            f"The file extension '{file_path.suffix}' is not supported. "
            f"Use one of {list(ACCEPTED_IMPORT_EXTENSIONS)}"
        )

    if file_path.stat().st_size == 0:
        raise MalformedImport(f"The file {file_path} is empty")

    try:
        with open(file_path, "r", newline="") as f:
            lots = parse_lot_lines(f, whole_shares=whole_shares, today=today, source=file_path.name)
    except OSError as e:
        raise DataLoadError(f"Failed to read lot file {file_path}: {e}")

    if not lots:
        raise MalformedImport(f"The file {file_path} contains no lots")

    return lots


def portfolio_file_paths(name: str, directory: str | Path) -> tuple[Path, Path]:
    """Return the (lot file, cost-basis file) paths of a portfolio."""
    directory = Path(directory)
    return (
        directory / f"{name}{PORTFOLIO_FILE_EXTENSION}",
        directory / f"{name}{COST_BASIS_SUFFIX}",
    )


def save_portfolio(
    portfolio: Portfolio,
    directory: str | Path,
) -> Path:
    """
    Save a portfolio's lots and cost-basis ledger as delimited text.

    Args:
        portfolio: The portfolio to persist
        directory: Directory for the portfolio files

    Returns:
        Path to the saved lot file
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    lots_path, cost_basis_path = portfolio_file_paths(portfolio.name, directory)

    with open(lots_path, "w", newline="") as f:
        writer = csv.writer(f, lineterminator="\n")
        for lot in portfolio.lots:
            writer.writerow([
                lot.symbol,
                str(lot.quantity),
                lot.purchase_date.strftime(DATE_FORMAT),
            ])

    with open(cost_basis_path, "w", newline="") as f:
        writer = csv.writer(f, lineterminator="\n")
        for entry_date, money in sorted(portfolio.cost_basis_entries.items()):
            writer.writerow([entry_date.strftime(DATE_FORMAT), str(money)])

    return lots_path


def load_cost_basis(file_path: str | Path) -> dict[date, Decimal]:
    """
    Load a cost-basis ledger file.

    Args:
        file_path: Path to a <name>-costBasis.txt file

    Returns:
        Mapping of acquisition date to money spent on that date

    Raises:
        DataLoadError: If the file is missing or a line is invalid
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise DataLoadError(f"Cost basis file not found: {file_path}")

    cost_basis: dict[date, Decimal] = {}
    with open(file_path, "r", newline="") as f:
        for line_number, values in enumerate(csv.reader(f), start=1):
            if not values:
                continue
            if len(values) != COST_BASIS_SCHEMA.field_count:
                raise DataLoadError(
                    f"{file_path.name}:{line_number}: expected "
                    f"{COST_BASIS_SCHEMA.field_count} values, got {len(values)}"
                )
            try:
                entry_date = datetime.strptime(values[0].strip(), DATE_FORMAT).date()
                money = Decimal(values[1].strip())
            except (ValueError, InvalidOperation) as e:
                raise DataLoadError(f"{file_path.name}:{line_number}: {e}")
            cost_basis[entry_date] = cost_basis.get(entry_date, Decimal("0")) + money

    return cost_basis


def load_portfolio(
    name: str,
    directory: str | Path,
    resolver: "PriceResolver",
) -> Portfolio:
    """
    Restore a persisted portfolio.

    Args:
        name: Portfolio name (file stem)
        directory: Directory holding the portfolio files
        resolver: Price resolver the restored ledger will use

    Returns:
        Portfolio with the persisted lots and cost-basis ledger

    Raises:
        DataLoadError: If either file is missing or invalid
    """
    lots_path, cost_basis_path = portfolio_file_paths(name, directory)
    if not lots_path.exists():
        raise DataLoadError(f"Portfolio file not found: {lots_path}")

    with open(lots_path, "r", newline="") as f:
        try:
            lots = parse_lot_lines(f, today=resolver.today(), source=lots_path.name)
        except MalformedImport as e:
            raise DataLoadError(f"Stored portfolio {name} is corrupted: {e}")

    cost_basis = load_cost_basis(cost_basis_path)
    return Portfolio.restore(name, resolver, lots, cost_basis)


def commission_file_path(directory: str | Path) -> Path:
    return Path(directory) / COMMISSION_FILE


def save_commission_state(fee: Decimal, decay_percent: Decimal, directory: str | Path) -> Path:
    """
    Persist the current commission fee and its per-transaction decay.

    Written as a single ``fee,decay_percent`` line beside the portfolio files.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = commission_file_path(directory)
    with open(path, "w", newline="") as f:
        csv.writer(f, lineterminator="\n").writerow([str(fee), str(decay_percent)])
    return path


def load_commission_state(directory: str | Path) -> Optional[tuple[Decimal, Decimal]]:
    """
    Read the persisted (fee, decay_percent) pair, or None if none was saved.

    Raises:
        DataLoadError: If the file does not hold two numbers
    """
    path = commission_file_path(directory)
    if not path.exists():
        return None

    with open(path, "r", newline="") as f:
        rows = [row for row in csv.reader(f) if row]
    if len(rows) != 1 or len(rows[0]) != 2:
        raise DataLoadError(f"{path.name}: expected one line of fee,decay_percent")
    try:
        fee, decay_percent = (Decimal(value.strip()) for value in rows[0])
    except InvalidOperation:
        raise DataLoadError(f"{path.name}: invalid commission values {rows[0]}")
    return fee, decay_percent


def list_portfolio_names(directory: str | Path) -> list[str]:
    """
    List the names of portfolios persisted in a directory.

    Returns an empty list if the directory does not exist.
    """
    directory = Path(directory)
    if not directory.exists():
        return []
    return sorted(
        p.stem for p in directory.iterdir()
        if p.is_file() and p.suffix == PORTFOLIO_FILE_EXTENSION
    )


def delete_portfolio_directory(directory: str | Path) -> bool:
    """
    Delete the portfolio storage directory and everything in it.

    Returns:
        True if a directory was removed
    """
    directory = Path(directory)
    if not directory.exists():
        return False
    shutil.rmtree(directory)
    return True


def load_supported_symbols(file_path: str | Path) -> list[str]:
    """
    Load the supported symbol list, one symbol per line.

    Raises:
        DataLoadError: If the file does not exist
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise DataLoadError(f"The supported symbols file {file_path} does not exist")

    symbols = []
    with open(file_path, "r") as f:
        for line in f:
            symbol = line.strip().upper()
            if symbol and symbol not in symbols:
                symbols.append(symbol)
    return symbols


def load_price_history_csv(source: str | Path | IO[str]) -> pd.DataFrame:
    """
    Load a daily price history in the Alpha Vantage CSV layout.

    Args:
        source: Path to a CSV file or an open text buffer

    Returns:
        DataFrame with columns: date (datetime.date), close (float),
        sorted by date ascending

    Raises:
        DataLoadError: If the data cannot be parsed or has missing columns
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise DataLoadError(f"File not found: {path}")
        df = _load_csv(path, PRICE_HISTORY_SCHEMA)
    else:
        try:
            df = pd.read_csv(source)
        except Exception as e:
            raise DataLoadError(f"Failed to parse price data: {e}")
        _validate(df, PRICE_HISTORY_SCHEMA, "<price data>")

    try:
        dates = pd.to_datetime(df["timestamp"]).dt.date
    except (ValueError, TypeError) as e:
        raise DataLoadError(f"Invalid timestamp in price data: {e}")

    history = pd.DataFrame({
        "date": dates,
        "close": pd.to_numeric(df["close"], errors="coerce"),
    })
    history = history.dropna(subset=["close"])
    history = history[history["close"] > 0]
    return history.sort_values("date").reset_index(drop=True)


def save_price_history_csv(history: pd.DataFrame, output_path: str | Path) -> Path:
    """
    Save a price history (date, close) in the Alpha Vantage CSV layout.

    Args:
        history: DataFrame with date and close columns
        output_path: Path for output CSV file

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    df = pd.DataFrame({
        "timestamp": [d.isoformat() for d in history["date"]],
        "close": history["close"].astype(float),
    })
    df = df.sort_values("timestamp", ascending=False)
    df.to_csv(output_path, index=False)

    return output_path


def _load_csv(file_path: Path, schema: FileLayout) -> pd.DataFrame:
    """
    Load a CSV file and validate against schema.

    Raises:
        DataLoadError: If file cannot be loaded or has missing columns
    """
    if not file_path.exists():
        raise DataLoadError(f"File not found: {file_path}")

    try:
        df = pd.read_csv(file_path)
    except Exception as e:
        raise DataLoadError(f"Failed to load CSV file {file_path}: {e}")

    _validate(df, schema, str(file_path))
    return df


def _validate(df: pd.DataFrame, schema: FileLayout, source: str) -> None:
    missing = schema.missing_columns(df.columns.tolist())
    if missing:
        raise DataLoadError(
            f"{source} is missing required columns: {missing}"
        )

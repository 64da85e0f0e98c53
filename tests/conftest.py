"""
Pytest fixtures for the stockfolio tests.

Provides an in-memory price source with deterministic daily histories and
common portfolio, resolver and manager setups used across test modules.
"""

import tempfile
from datetime import date, timedelta
from pathlib import Path
from typing import Optional

import pandas as pd
import pytest

from stockfolio.data.providers.base import PriceSource
from stockfolio.data.resolver import PriceResolver
from stockfolio.logging.decision_log import DecisionLogger
from stockfolio.manager import PortfolioManager
from stockfolio.models import ManagerConfig
from stockfolio.portfolio.ledger import Portfolio


# Fixed "today" for every resolver in the tests (a Monday)
TODAY = date(2024, 6, 17)

SUPPORTED_SYMBOLS = ["SPY", "AAPL", "MSFT", "GOOG"]

BASE_PRICES = {"SPY": 400, "AAPL": 100, "MSFT": 200, "GOOG": 80}

HISTORY_START = date(2014, 1, 1)

HOLIDAYS = {
    date(2022, 1, 17),
    date(2022, 7, 4),
    date(2022, 12, 26),
    date(2023, 1, 2),
    date(2023, 6, 30),
    date(2024, 5, 27),
}

# Quoted although it is a Saturday
EXTRA_QUOTE_DATES = {date(2022, 1, 1)}


def fake_close(symbol: str, on: date) -> float:
    """
    Deterministic close: base price + month number + 10 per year since 2020.

    AAPL closes at 121 throughout January 2022, MSFT at 221.
    """
    return float(BASE_PRICES[symbol] + on.month + (on.year - 2020) * 10)


class FakePriceSource(PriceSource):
    """In-memory price source with weekday quotes and a few holidays."""

    def __init__(
        self,
        end: date = TODAY - timedelta(days=1),
        missing: Optional[dict[str, set[date]]] = None,
    ):
        self.end = end
        self.missing = missing or {}
        self.calls: dict[str, int] = {}

    @property
    def name(self) -> str:
        return "Fake"

    def get_price_history(self, symbol: str) -> pd.DataFrame:
        self.calls[symbol] = self.calls.get(symbol, 0) + 1
        if symbol not in BASE_PRICES:
            return self.empty_history()

        skipped = self.missing.get(symbol, set())
        rows = []
        day = HISTORY_START
        while day <= self.end:
            quoted = (day.weekday() < 5 and day not in HOLIDAYS) or day in EXTRA_QUOTE_DATES
            if quoted and day not in skipped:
                rows.append((day, fake_close(symbol, day)))
            day += timedelta(days=1)
        return pd.DataFrame(rows, columns=["date", "close"])


@pytest.fixture
def fake_source() -> FakePriceSource:
    return FakePriceSource()


@pytest.fixture
def resolver(fake_source: FakePriceSource) -> PriceResolver:
    """Resolver over the fake source; SPY decides market dates."""
    return PriceResolver(fake_source, SUPPORTED_SYMBOLS, today=TODAY)


@pytest.fixture
def portfolio(resolver: PriceResolver) -> Portfolio:
    """Empty portfolio named 'test'."""
    return Portfolio("test", resolver)


@pytest.fixture
def manager(resolver: PriceResolver) -> PortfolioManager:
    """Manager without persistence or logging."""
    return PortfolioManager(resolver)


@pytest.fixture
def temp_output_dir() -> Path:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def stored_config(temp_output_dir: Path) -> ManagerConfig:
    return ManagerConfig(
        portfolios_dir=str(temp_output_dir / "Portfolios"),
        output_dir=str(temp_output_dir / "output"),
    )


@pytest.fixture
def decision_logger(temp_output_dir: Path) -> DecisionLogger:
    return DecisionLogger(temp_output_dir / "output" / "decision_log.jsonl")


@pytest.fixture
def stored_manager(
    resolver: PriceResolver,
    stored_config: ManagerConfig,
    decision_logger: DecisionLogger,
) -> PortfolioManager:
    """Manager persisting to a temporary directory and logging decisions."""
    return PortfolioManager(resolver, config=stored_config, decision_logger=decision_logger)


@pytest.fixture
def lot_file(temp_output_dir: Path):
    """
    Factory fixture writing a lot import file.

    Usage:
        def test_something(lot_file):
            path = lot_file("AAPL,10,2022-01-03\\n")
    """
    def _write(content: str, filename: str = "lots.csv") -> Path:
        path = temp_output_dir / filename
        path.write_text(content)
        return path

    return _write

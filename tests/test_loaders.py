"""
Tests for lot, cost-basis and price file loading.
"""

import io
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from stockfolio.data.loaders import (
    DataLoadError,
    delete_portfolio_directory,
    list_portfolio_names,
    load_commission_state,
    load_cost_basis,
    load_portfolio,
    load_price_history_csv,
    load_supported_symbols,
    parse_lot_lines,
    portfolio_file_paths,
    read_lot_file,
    save_commission_state,
    save_portfolio,
)
from stockfolio.data.resolver import PriceResolver
from stockfolio.errors import MalformedImport
from stockfolio.models import Lot
from stockfolio.portfolio.ledger import Portfolio

from conftest import TODAY


class TestParseLotLines:
    """Tests for parse_lot_lines."""

    def test_parses_records(self):
        lots = parse_lot_lines(
            ["aapl, 10, 2022-01-03", "", "MSFT,2.5,2022-01-04"],
            today=TODAY,
        )

        assert lots == [
            Lot("AAPL", Decimal("10"), date(2022, 1, 3)),
            Lot("MSFT", Decimal("2.5"), date(2022, 1, 4)),
        ]

    @pytest.mark.parametrize(
        "line,message",
        [
            ("AAPL,10", "expected 3 values"),
            (",10,2022-01-03", "missing symbol"),
            ("AAPL,ten,2022-01-03", "invalid quantity"),
            ("AAPL,10,01/03/2022", "YYYY-MM-DD"),
            ("AAPL,10,2024-06-18", "future date"),
        ],
    )
    def test_invalid_record(self, line: str, message: str):
        with pytest.raises(MalformedImport, match=message):
            parse_lot_lines([line], today=TODAY, source="lots.csv")

    def test_error_names_source_and_line(self):
        with pytest.raises(MalformedImport, match=r"lots\.csv:2:"):
            parse_lot_lines(["AAPL,1,2022-01-03", "AAPL,x,2022-01-03"], today=TODAY, source="lots.csv")

    @pytest.mark.parametrize("quantity", ["10", "10.0"])
    def test_whole_shares_accepted(self, quantity: str):
        lots = parse_lot_lines([f"AAPL,{quantity},2022-01-03"], whole_shares=True, today=TODAY)

        assert lots[0].quantity == Decimal("10")

    @pytest.mark.parametrize("quantity", ["2.5", "0", "-3"])
    def test_whole_shares_rejected(self, quantity: str):
        with pytest.raises(MalformedImport, match="whole number"):
            parse_lot_lines([f"AAPL,{quantity},2022-01-03"], whole_shares=True, today=TODAY)


class TestReadLotFile:
    """Tests for read_lot_file."""

    def test_missing_file(self, temp_output_dir: Path):
        with pytest.raises(DataLoadError):
            read_lot_file(temp_output_dir / "missing.csv")

    def test_wrong_extension(self, lot_file):
        path = lot_file("AAPL,1,2022-01-03\n", filename="lots.txt")

        with pytest.raises(MalformedImport, match="extension"):
            read_lot_file(path)

    def test_empty_file(self, lot_file):
        with pytest.raises(MalformedImport, match="empty"):
            read_lot_file(lot_file(""))

    def test_blank_lines_only(self, lot_file):
        with pytest.raises(MalformedImport, match="no lots"):
            read_lot_file(lot_file("\n\n"))


class TestPortfolioFiles:
    """Tests for saving and loading persisted portfolios."""

    def test_save_layout(self, portfolio: Portfolio, temp_output_dir: Path):
        portfolio.add_lot("AAPL", Decimal("10"), date(2022, 1, 3), commission=Decimal("1"))
        portfolio.sell("AAPL", Decimal("4"), date(2022, 1, 4))

        save_portfolio(portfolio, temp_output_dir)

        lots_path, cost_basis_path = portfolio_file_paths("test", temp_output_dir)
        assert lots_path.name == "test.csv"
        assert cost_basis_path.name == "test-costBasis.txt"
        assert lots_path.read_text() == "AAPL,10,2022-01-03\nAAPL,-4,2022-01-04\n"
        assert cost_basis_path.read_text() == "2022-01-03,1211.0\n2022-01-04,0\n"

    def test_load_round_trip(self, portfolio: Portfolio, resolver: PriceResolver, temp_output_dir: Path):
        portfolio.add_lot("AAPL", Decimal("10"), date(2022, 1, 3))
        portfolio.add_lot("MSFT", Decimal("0.5"), date(2022, 1, 4))
        save_portfolio(portfolio, temp_output_dir)

        loaded = load_portfolio("test", temp_output_dir, resolver)

        assert loaded.name == "test"
        assert loaded.lots == portfolio.lots
        assert loaded.cost_basis_entries == portfolio.cost_basis_entries

    def test_corrupted_lot_file(self, resolver: PriceResolver, temp_output_dir: Path):
        (temp_output_dir / "broken.csv").write_text("AAPL,lots,2022-01-03\n")
        (temp_output_dir / "broken-costBasis.txt").write_text("")

        with pytest.raises(DataLoadError, match="corrupted"):
            load_portfolio("broken", temp_output_dir, resolver)

    def test_missing_cost_basis_file(self, resolver: PriceResolver, temp_output_dir: Path):
        (temp_output_dir / "half.csv").write_text("AAPL,1,2022-01-03\n")

        with pytest.raises(DataLoadError):
            load_portfolio("half", temp_output_dir, resolver)

    def test_cost_basis_entries_for_same_date_add_up(self, temp_output_dir: Path):
        path = temp_output_dir / "x-costBasis.txt"
        path.write_text("2022-01-03,100\n2022-01-03,50.5\n")

        assert load_cost_basis(path) == {date(2022, 1, 3): Decimal("150.5")}

    def test_commission_state_round_trip(self, temp_output_dir: Path):
        assert load_commission_state(temp_output_dir) is None

        path = save_commission_state(Decimal("2.50"), Decimal("10"), temp_output_dir)

        assert path.read_text() == "2.50,10\n"
        assert load_commission_state(temp_output_dir) == (Decimal("2.50"), Decimal("10"))

    def test_corrupted_commission_state(self, temp_output_dir: Path):
        (temp_output_dir / "commission.txt").write_text("cheap,10\n")

        with pytest.raises(DataLoadError):
            load_commission_state(temp_output_dir)

    def test_list_and_delete(self, portfolio: Portfolio, resolver: PriceResolver, temp_output_dir: Path):
        storage = temp_output_dir / "Portfolios"
        save_portfolio(portfolio, storage)
        save_portfolio(Portfolio("alpha", resolver), storage)

        assert list_portfolio_names(storage) == ["alpha", "test"]
        assert delete_portfolio_directory(storage)
        assert not storage.exists()
        assert list_portfolio_names(storage) == []
        assert not delete_portfolio_directory(storage)


class TestSupportedSymbols:
    """Tests for load_supported_symbols."""

    def test_loads_unique_uppercase(self, temp_output_dir: Path):
        path = temp_output_dir / "supported.txt"
        path.write_text("spy\nAAPL\n\n aapl \nMSFT\n")

        assert load_supported_symbols(path) == ["SPY", "AAPL", "MSFT"]

    def test_missing_file(self, temp_output_dir: Path):
        with pytest.raises(DataLoadError):
            load_supported_symbols(temp_output_dir / "missing.txt")


class TestPriceHistoryCsv:
    """Tests for load_price_history_csv."""

    def test_drops_unusable_rows(self):
        buffer = io.StringIO(
            "timestamp,close\n"
            "2022-01-05,\n"
            "2022-01-04,0\n"
            "2022-01-03,100.5\n"
        )

        history = load_price_history_csv(buffer)

        assert list(history["date"]) == [date(2022, 1, 3)]
        assert list(history["close"]) == [100.5]

    def test_missing_close_column(self):
        with pytest.raises(DataLoadError, match="close"):
            load_price_history_csv(io.StringIO("timestamp,open\n2022-01-03,1\n"))

"""
Tests for the click command-line interface.

Runs commands against a local CSV price directory and a temporary
portfolio store.
"""

from pathlib import Path

import pytest
from click.testing import CliRunner

from stockfolio.cli import main


PRICE_ROWS = {
    "SPY": [100, 101, 102, 103, 104],
    "AAPL": [50, 51, 52, 53, 54],
}
PRICE_DATES = ["2022-01-03", "2022-01-04", "2022-01-05", "2022-01-06", "2022-01-07"]


@pytest.fixture
def config_path(temp_output_dir: Path) -> str:
    """Write price files, a symbol list and a config pointing at them."""
    prices_dir = temp_output_dir / "prices"
    prices_dir.mkdir()
    for symbol, closes in PRICE_ROWS.items():
        rows = [f"{d},{c}" for d, c in zip(PRICE_DATES, closes)]
        (prices_dir / f"{symbol}.csv").write_text("timestamp,close\n" + "\n".join(reversed(rows)) + "\n")

    symbols_file = temp_output_dir / "supported.txt"
    symbols_file.write_text("SPY\nAAPL\n")

    path = temp_output_dir / "config.yaml"
    path.write_text(
        f"portfolios_dir: {temp_output_dir / 'Portfolios'}\n"
        f"price_source: csv\n"
        f"price_data_dir: {prices_dir}\n"
        f"supported_symbols_file: {symbols_file}\n"
        f"output_dir: {temp_output_dir / 'output'}\n"
    )
    return str(path)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def _create(runner: CliRunner, config_path: str, lot_file) -> None:
    path = lot_file("AAPL,10,2022-01-03\n")
    result = runner.invoke(main, ["create", "growth", "--file", str(path), "-c", config_path])
    assert result.exit_code == 0, result.output


class TestCli:
    """End-to-end command tests."""

    def test_version(self, runner: CliRunner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert "stockfolio" in result.output

    def test_create_and_value(self, runner: CliRunner, config_path: str, lot_file):
        _create(runner, config_path, lot_file)

        result = runner.invoke(main, ["value", "growth", "-d", "2022-01-04", "-c", config_path])

        assert result.exit_code == 0
        assert "$510.00" in result.output

    def test_portfolios_persist_between_runs(self, runner: CliRunner, config_path: str, lot_file):
        _create(runner, config_path, lot_file)

        result = runner.invoke(main, ["list", "-c", config_path])

        assert result.output.split() == ["growth"]

    def test_add_and_examine(self, runner: CliRunner, config_path: str, lot_file):
        _create(runner, config_path, lot_file)

        added = runner.invoke(main, ["add", "growth", "SPY", "2", "-d", "2022-01-05", "-c", config_path])
        examined = runner.invoke(main, ["examine", "growth", "-d", "2022-01-05", "-c", config_path])

        assert added.exit_code == 0
        assert examined.exit_code == 0
        assert "SPY" in examined.output
        # AAPL 10 @ 52 + SPY 2 @ 102
        assert "$724.00" in examined.output

    def test_performance_chart(self, runner: CliRunner, config_path: str, lot_file):
        _create(runner, config_path, lot_file)

        result = runner.invoke(
            main, ["performance", "growth", "-s", "2022-01-03", "-e", "2022-01-04", "-c", config_path]
        )

        assert result.exit_code == 0, result.output
        assert "Mon, 03 Jan 2022" in result.output
        assert "Fri, 07 Jan 2022" in result.output
        assert "Scale: * = $" in result.output

    def test_rebalance_at_target(self, runner: CliRunner, config_path: str, lot_file):
        _create(runner, config_path, lot_file)

        result = runner.invoke(
            main, ["rebalance", "growth", "-d", "2022-01-04", "-t", "AAPL=100", "-c", config_path]
        )

        assert result.exit_code == 0
        assert "already at its target allocation" in result.output

    def test_errors_exit_with_status_one(self, runner: CliRunner, config_path: str):
        missing = runner.invoke(main, ["value", "ghost", "-d", "2022-01-04", "-c", config_path])
        bad_date = runner.invoke(main, ["value", "ghost", "-d", "01/04/2022", "-c", config_path])

        assert missing.exit_code == 1
        assert "does not exist" in missing.output
        assert bad_date.exit_code == 1
        assert "YYYY-MM-DD" in bad_date.output

    def test_fee_decays_across_invocations(self, runner: CliRunner, config_path: str, lot_file):
        path = Path(config_path)
        path.write_text(path.read_text() + "commission_fee: 10\nfee_decay_percent: 50\n")
        _create(runner, config_path, lot_file)

        first = runner.invoke(main, ["add", "growth", "SPY", "1", "-d", "2022-01-04", "-c", config_path])
        second = runner.invoke(main, ["add", "growth", "SPY", "1", "-d", "2022-01-05", "-c", config_path])
        basis = runner.invoke(main, ["cost-basis", "growth", "-d", "2022-01-05", "-c", config_path])

        assert "Commission: $5.00" in first.output
        assert "Commission: $2.50" in second.output
        # AAPL 10 @ 50 + 10, SPY 1 @ 101 + 5, SPY 1 @ 102 + 2.50
        assert "$720.50" in basis.output

    def test_commission_command(self, runner: CliRunner, config_path: str, lot_file):
        _create(runner, config_path, lot_file)

        set_fee = runner.invoke(main, ["commission", "4", "--decay", "25", "-c", config_path])
        added = runner.invoke(main, ["add", "growth", "SPY", "1", "-d", "2022-01-04", "-c", config_path])
        shown = runner.invoke(main, ["commission", "-c", config_path])

        assert set_fee.exit_code == 0, set_fee.output
        assert "Commission: $4.00" in added.output
        assert "Commission fee: $3.00" in shown.output
        assert "Decay per transaction: 25%" in shown.output

    def test_invalid_commission(self, runner: CliRunner, config_path: str):
        result = runner.invoke(main, ["commission", "-c", config_path, "--", "-1"])

        assert result.exit_code == 1
        assert "negative" in result.output

    def test_reset(self, runner: CliRunner, config_path: str, lot_file):
        _create(runner, config_path, lot_file)

        result = runner.invoke(main, ["reset", "--yes", "-c", config_path])
        listed = runner.invoke(main, ["list", "-c", config_path])

        assert "Deleted 1 portfolios" in result.output
        assert "No portfolios" in listed.output

"""
Tests for the append-only decision log.
"""

import json
from datetime import date
from decimal import Decimal
from pathlib import Path

from stockfolio.logging.decision_log import DecisionLogger, get_logger, log_action
from stockfolio.models import (
    ActionType,
    Lot,
    ManagerConfig,
    RebalanceTrade,
    TradeSide,
)


class TestDecisionLogger:
    """Tests for DecisionLogger."""

    def test_creates_parent_directory(self, temp_output_dir: Path):
        path = temp_output_dir / "nested" / "log.jsonl"

        DecisionLogger(path)

        assert path.parent.exists()

    def test_records_are_json_lines(self, decision_logger: DecisionLogger):
        decision_logger.log_lot_added(
            "growth", Lot("AAPL", Decimal("2.5"), date(2022, 1, 3)), Decimal("4.95")
        )
        decision_logger.log_commission_updated(Decimal("1"), Decimal("10"))

        lines = decision_logger.log_path.read_text().splitlines()
        assert len(lines) == 2

        record = json.loads(lines[0])
        assert record["action_type"] == "LOT_ADDED"
        assert record["portfolio_name"] == "growth"
        assert record["details"] == {
            "symbol": "AAPL",
            "quantity": "2.5",
            "date": "2022-01-03",
            "commission": "4.95",
        }
        assert json.loads(lines[1])["portfolio_name"] is None

    def test_read_and_filter(self, decision_logger: DecisionLogger):
        decision_logger.log_portfolio_created(
            "growth",
            [Lot("AAPL", Decimal("1"), date(2022, 1, 3)), Lot("MSFT", Decimal("1"), date(2022, 1, 3))],
            source_file="growth.csv",
        )
        decision_logger.log_lot_sold("growth", "AAPL", Decimal("1"), date(2022, 2, 1), Decimal("0"))
        decision_logger.log_portfolio_created("income", [])
        decision_logger.log_portfolios_reset(["growth", "income"])

        entries = decision_logger.read_log()
        assert len(entries) == 4
        assert entries[0].details["num_positions"] == 2

        growth = decision_logger.filter_by_portfolio("growth")
        assert [e.action_type for e in growth] == [ActionType.PORTFOLIO_CREATED, ActionType.LOT_SOLD]

        created = decision_logger.filter_by_action_type(ActionType.PORTFOLIO_CREATED)
        assert [e.portfolio_name for e in created] == ["growth", "income"]

    def test_rebalance_details(self, decision_logger: DecisionLogger):
        trade = RebalanceTrade(
            symbol="MSFT",
            side=TradeSide.BUY,
            shares=Decimal("27.58"),
            price=Decimal("223"),
            trade_date=date(2022, 3, 1),
            current_percent=Decimal("0"),
            target_percent=Decimal("50"),
        )

        decision_logger.log_portfolio_rebalanced(
            "growth", date(2022, 3, 1), {"MSFT": Decimal("50"), "AAPL": Decimal("50")}, [trade]
        )

        details = decision_logger.read_log()[0].details
        assert details["num_trades"] == 1
        assert details["trades"][0] == {
            "symbol": "MSFT",
            "side": "BUY",
            "shares": "27.58",
            "price": "223",
        }

    def test_config_loaded(self, decision_logger: DecisionLogger):
        decision_logger.log_config_loaded(ManagerConfig(), "config.yaml")

        entry = decision_logger.filter_by_action_type(ActionType.CONFIG_LOADED)[0]
        assert entry.details["config_path"] == "config.yaml"
        assert entry.details["price_source"] == "alphavantage"

    def test_missing_log_reads_empty(self, temp_output_dir: Path):
        assert DecisionLogger(temp_output_dir / "none.jsonl").read_log() == []


class TestGlobalLogger:
    """Tests for the module-level helpers."""

    def test_log_action(self, temp_output_dir: Path):
        path = temp_output_dir / "global.jsonl"

        log_action(ActionType.PORTFOLIOS_RESET, None, {"deleted": []}, log_path=path)

        assert get_logger().log_path == path
        assert get_logger().read_log()[0].action_type == ActionType.PORTFOLIOS_RESET

"""
Append-only audit trail for ledger changes.

One JSON object per line records what changed, when, and for which
portfolio, so a session can be reconstructed after the fact.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterator, Optional

from stockfolio.models import (
    ActionType,
    DecisionLogEntry,
    Lot,
    ManagerConfig,
    RebalanceTrade,
)

DEFAULT_LOG_PATH = Path("output") / "decision_log.jsonl"


class DecisionLogger:
    """
    JSONL writer for manager actions.

    Records are only ever appended; nothing in this class rewrites
    or truncates the file.
    """

    def __init__(self, log_path: str | Path):
        self.log_path = Path(log_path)
        # The file itself appears on the first write.
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def log(self, entry: DecisionLogEntry) -> None:
        """Append ``entry`` as a single JSON line."""
        line = json.dumps(
            {
                "timestamp": entry.timestamp.isoformat(),
                "action_type": entry.action_type.value,
                "portfolio_name": entry.portfolio_name,
                "details": entry.details,
            },
            cls=LedgerJSONEncoder,
        )
        with self.log_path.open("a") as handle:
            handle.write(line + "\n")

    def _log(self, action_type: ActionType, portfolio_name: Optional[str], details: dict) -> None:
        self.log(DecisionLogEntry.create(
            action_type=action_type,
            portfolio_name=portfolio_name,
            details=details,
        ))

    def log_portfolio_created(
        self,
        portfolio_name: str,
        lots: list[Lot],
        source_file: Optional[str] = None,
    ) -> None:
        """
        Log portfolio creation.

        Args:
            portfolio_name: New portfolio name
            lots: Lots the portfolio was created with
            source_file: Import file, if any
        """
        details = {
            "source_file": source_file,
            "num_positions": len({lot.symbol for lot in lots}),
            "num_lots": len(lots),
        }
        self._log(ActionType.PORTFOLIO_CREATED, portfolio_name, details)

    def log_lot_added(
        self,
        portfolio_name: str,
        lot: Lot,
        commission: Decimal,
    ) -> None:
        details = {
            "symbol": lot.symbol,
            "quantity": lot.quantity,
            "date": lot.purchase_date,
            "commission": commission,
        }
        self._log(ActionType.LOT_ADDED, portfolio_name, details)

    def log_lot_sold(
        self,
        portfolio_name: str,
        symbol: str,
        quantity: Decimal,
        on: date,
        commission: Decimal,
    ) -> None:
        details = {
            "symbol": symbol,
            "quantity": quantity,
            "date": on,
            "commission": commission,
        }
        self._log(ActionType.LOT_SOLD, portfolio_name, details)

    def log_portfolio_rebalanced(
        self,
        portfolio_name: str,
        on: date,
        target_percents: dict[str, Decimal],
        trades: list[RebalanceTrade],
    ) -> None:
        """
        Log a rebalance.

        Args:
            portfolio_name: Portfolio identifier
            on: Rebalance date
            target_percents: Requested allocation
            trades: Synthetic trades applied
        """
        details = {
            "date": on,
            "targets": target_percents,
            "num_trades": len(trades),
            "trades": [
                {
                    "symbol": t.symbol,
                    "side": t.side.value,
                    "shares": t.shares,
                    "price": t.price,
                }
                for t in trades
            ],
        }
        self._log(ActionType.PORTFOLIO_REBALANCED, portfolio_name, details)

    def log_dollar_cost_averaged(
        self,
        portfolio_name: str,
        total_amount: Decimal,
        start: date,
        end: date,
        interval_days: int,
        proportions: dict[str, Decimal],
        num_lots: int,
    ) -> None:
        details = {
            "total_amount": total_amount,
            "start_date": start,
            "end_date": end,
            "interval_days": interval_days,
            "proportions": proportions,
            "num_lots": num_lots,
        }
        self._log(ActionType.DOLLAR_COST_AVERAGED, portfolio_name, details)

    def log_commission_updated(
        self,
        fee: Decimal,
        decay_percent: Decimal,
    ) -> None:
        details = {
            "fee": fee,
            "decay_percent": decay_percent,
        }
        self._log(ActionType.COMMISSION_UPDATED, None, details)

    def log_portfolios_reset(self, portfolio_names: list[str]) -> None:
        details = {
            "deleted": portfolio_names,
        }
        self._log(ActionType.PORTFOLIOS_RESET, None, details)

    def log_config_loaded(
        self,
        config: ManagerConfig,
        config_path: str,
    ) -> None:
        """
        Record the settings a manager started with.

        Args:
            config: Parsed manager settings
            config_path: YAML file they came from
        """
        details = {
            "config_path": config_path,
            "portfolios_dir": config.portfolios_dir,
            "price_source": config.price_source,
            "commission_fee": config.commission_fee,
            "fee_decay_percent": config.fee_decay_percent,
            "epoch_year": config.epoch_year,
        }
        self._log(ActionType.CONFIG_LOADED, None, details)

    def _records(self) -> Iterator[dict]:
        with self.log_path.open() as handle:
            for raw in handle:
                raw = raw.strip()
                if raw:
                    yield json.loads(raw)

    def read_log(self) -> list[DecisionLogEntry]:
        """Parse every record back into entries; a missing file reads as empty."""
        if not self.log_path.exists():
            return []

        return [
            DecisionLogEntry(
                timestamp=datetime.fromisoformat(record["timestamp"]),
                action_type=ActionType(record["action_type"]),
                portfolio_name=record.get("portfolio_name"),
                details=record.get("details", {}),
            )
            for record in self._records()
        ]

    def filter_by_portfolio(self, portfolio_name: str) -> list[DecisionLogEntry]:
        return [e for e in self.read_log() if e.portfolio_name == portfolio_name]

    def filter_by_action_type(self, action_type: ActionType) -> list[DecisionLogEntry]:
        return [e for e in self.read_log() if e.action_type is action_type]


class LedgerJSONEncoder(json.JSONEncoder):
    """Writes money as exact strings and dates in ISO form."""

    def default(self, o: Any) -> Any:
        if isinstance(o, Decimal):
            return str(o)
        if isinstance(o, (date, datetime)):
            return o.isoformat()
        return super().default(o)


_shared_logger: Optional[DecisionLogger] = None


def get_logger(log_path: Optional[str | Path] = None) -> DecisionLogger:
    """
    Return the process-wide logger.

    Passing ``log_path`` points the shared logger at that file; without
    it the current logger is reused, or one is opened at
    ``output/decision_log.jsonl``.
    """
    global _shared_logger

    if log_path is not None:
        _shared_logger = DecisionLogger(log_path)
    elif _shared_logger is None:
        _shared_logger = DecisionLogger(DEFAULT_LOG_PATH)

    return _shared_logger


def log_action(
    action_type: ActionType,
    portfolio_name: Optional[str],
    details: dict,
    log_path: Optional[str | Path] = None,
) -> None:
    """Record a free-form action through the shared logger."""
    get_logger(log_path)._log(action_type, portfolio_name, details)

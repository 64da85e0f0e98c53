"""
Layouts of the files the ledger reads and writes.

Price history files carry a header row. Lot and cost-basis files are
headerless comma-separated records, so only their field order matters.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Field:
    name: str
    required: bool = True


@dataclass(frozen=True)
class FileLayout:
    """Ordered fields of one file kind."""
    name: str
    description: str
    fields: list[Field] = field(default_factory=list)

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def field_count(self) -> int:
        return len(self.fields)

    def missing_columns(self, header: list[str]) -> list[str]:
        """Required field names absent from ``header``, in layout order."""
        present = set(header)
        return [f.name for f in self.fields if f.required and f.name not in present]


# Alpha Vantage TIME_SERIES_DAILY csv, newest row first
PRICE_HISTORY_SCHEMA = FileLayout(
    name="price_history",
    description="Daily prices for one symbol",
    fields=[
        Field("timestamp"),
        Field("open", required=False),
        Field("high", required=False),
        Field("low", required=False),
        Field("close"),
        Field("volume", required=False),
    ],
)

LOTS_SCHEMA = FileLayout(
    name="lots",
    description="symbol,quantity,YYYY-MM-DD per line",
    fields=[Field("symbol"), Field("quantity"), Field("date")],
)

COST_BASIS_SCHEMA = FileLayout(
    name="cost_basis",
    description="YYYY-MM-DD,money per line",
    fields=[Field("date"), Field("money")],
)

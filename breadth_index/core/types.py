"""Type definitions and enums for the breadth index system."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

import pandas as pd

from breadth_index.core.utils_dates import ms_to_date


class IndicatorKind(str, Enum):
    """Indicator set families."""

    EMA_BREADTH = "ema_breadth"
    EXTREMA_NET = "extrema_net"


class Outcome(int, Enum):
    """Per-bar signal classification counted by the aggregator."""

    NEGATIVE = -1
    NEUTRAL = 0
    POSITIVE = 1


class TaskStatus(str, Enum):
    """Result status of one instrument task."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class Bar:
    """Single daily bar. Only the open time and close are consumed."""

    timestamp: int
    close: float

    @property
    def date(self) -> str:
        return ms_to_date(self.timestamp)


@dataclass(frozen=True)
class InstrumentInfo:
    """Instrument descriptor from the exchange metadata endpoint."""

    symbol: str
    status: str
    spot_allowed: bool
    quote_asset: str


@dataclass(frozen=True)
class SignalRow:
    """Per-instrument, per-date detail row."""

    instrument: str
    date: str
    close: float
    values: Dict[str, float] = field(default_factory=dict)
    flags: Dict[str, bool] = field(default_factory=dict)
    signal: int = 0

    def to_record(self) -> dict[str, Any]:
        """Flatten to a CSV record (symbol, date, close, values..., flags..., signal)."""
        record: dict[str, Any] = {"symbol": self.instrument, "date": self.date, "close": self.close}
        record.update(self.values)
        record.update({k: int(v) for k, v in self.flags.items()})
        record["signal"] = self.signal
        return record


@dataclass(frozen=True)
class Contribution:
    """One instrument's outcome for one date and aggregate category."""

    date: str
    category: str
    outcome: Outcome


@dataclass
class SymbolOutcome:
    """Result of processing one instrument."""

    instrument: str
    status: TaskStatus
    rows: List[SignalRow] = field(default_factory=list)
    bars: int = 0
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status == TaskStatus.SUCCESS


@dataclass
class RunResult:
    """Everything one indicator-set run produced."""

    indicator_set: str
    aggregate: pd.DataFrame
    detail: pd.DataFrame
    outcomes: List[SymbolOutcome]
    universe_size: int

    def count(self, status: TaskStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def summary(self) -> dict[str, int]:
        return {
            "universe": self.universe_size,
            "succeeded": self.count(TaskStatus.SUCCESS),
            "skipped": self.count(TaskStatus.SKIPPED),
            "failed": self.count(TaskStatus.FAILED),
            "aggregate_rows": len(self.aggregate),
            "detail_rows": len(self.detail),
        }

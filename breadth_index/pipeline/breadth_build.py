"""Cross-sectional breadth aggregation.

Per-instrument contributions are merged into per-date counts under a lock;
the final table is built once, after every instrument has reported.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Iterable

import pandas as pd

from breadth_index.core.constants import (
    CATEGORY_SIGNAL,
    COL_DATE,
    COL_HH_COUNT,
    COL_LL_COUNT,
    COL_NEGATIVE,
    COL_NEGATIVE_PCT,
    COL_NET_COUNT,
    COL_POSITIVE,
    COL_POSITIVE_PCT,
    PCT_DECIMALS,
)
from breadth_index.core.logger import get_logger
from breadth_index.core.types import Contribution, IndicatorKind, Outcome
from breadth_index.core.utils_math import pct
from breadth_index.pipeline.symbol_process import EmaBreadthSet, IndicatorSet

logger = get_logger(__name__)


@dataclass
class CategoryCounts:
    """Counts for one (date, category) cell."""

    positive: int = 0
    negative: int = 0
    neutral: int = 0

    @property
    def evaluated(self) -> int:
        return self.positive + self.negative + self.neutral

    def add(self, outcome: Outcome) -> None:
        if outcome == Outcome.POSITIVE:
            self.positive += 1
        elif outcome == Outcome.NEGATIVE:
            self.negative += 1
        else:
            self.neutral += 1


class BreadthAggregator:
    """Thread-safe accumulator of daily counts by signal category."""

    def __init__(self):
        self._cells: dict[tuple[str, str], CategoryCounts] = {}
        self._lock = threading.Lock()

    def add(self, contributions: Iterable[Contribution]) -> None:
        """Add one instrument's contributions in a single critical section."""
        with self._lock:
            for c in contributions:
                key = (c.date, c.category)
                cell = self._cells.get(key)
                if cell is None:
                    cell = self._cells[key] = CategoryCounts()
                cell.add(c.outcome)

    def get(self, date: str, category: str = CATEGORY_SIGNAL) -> CategoryCounts:
        with self._lock:
            cell = self._cells.get((date, category))
            return CategoryCounts(cell.positive, cell.negative, cell.neutral) if cell else CategoryCounts()

    def counts(self, category: str = CATEGORY_SIGNAL) -> pd.DataFrame:
        """Counts for one category, one row per date with a non-zero denominator.

        Returns:
            DataFrame indexed by date (sorted) with columns
            positive, negative, neutral, evaluated
        """
        with self._lock:
            records = [
                {
                    COL_DATE: date,
                    "positive": cell.positive,
                    "negative": cell.negative,
                    "neutral": cell.neutral,
                    "evaluated": cell.evaluated,
                }
                for (date, cat), cell in self._cells.items()
                if cat == category and cell.evaluated > 0
            ]

        columns = [COL_DATE, "positive", "negative", "neutral", "evaluated"]
        df = pd.DataFrame.from_records(records, columns=columns)
        return df.sort_values(COL_DATE).set_index(COL_DATE)

    def __len__(self) -> int:
        with self._lock:
            return len({date for date, _ in self._cells})


def _pct_column(counts: pd.DataFrame, column: str) -> pd.Series:
    return pd.Series(
        [pct(int(n), int(total), PCT_DECIMALS) for n, total in zip(counts[column], counts["evaluated"])],
        index=counts.index,
        dtype=object,
    )


def build_ema_breadth(aggregator: BreadthAggregator, indicator_set: EmaBreadthSet) -> pd.DataFrame:
    """Daily positive/negative counts and percentages for a dual-EMA set.

    Per-EMA ``pct_above<p>`` columns use their own denominators.
    """
    counts = aggregator.counts(CATEGORY_SIGNAL)
    breadth = pd.DataFrame(index=counts.index)
    breadth[COL_POSITIVE] = counts["positive"].astype(int)
    breadth[COL_NEGATIVE] = counts["negative"].astype(int)
    breadth[COL_POSITIVE_PCT] = _pct_column(counts, "positive")
    breadth[COL_NEGATIVE_PCT] = _pct_column(counts, "negative")

    for p in indicator_set.periods:
        per_ema = aggregator.counts(f"above{p}").reindex(counts.index)
        breadth[f"pct_above{p}"] = _pct_column(per_ema.astype(int), "positive")

    return breadth.reset_index()


def build_extrema_net(aggregator: BreadthAggregator) -> pd.DataFrame:
    """Daily higher-high / lower-low counts and their difference."""
    counts = aggregator.counts(CATEGORY_SIGNAL)
    net = pd.DataFrame(index=counts.index)
    net[COL_HH_COUNT] = counts["positive"].astype(int)
    net[COL_LL_COUNT] = counts["negative"].astype(int)
    net[COL_NET_COUNT] = (counts["positive"] - counts["negative"]).astype(int)
    return net.reset_index()


def build_breadth(aggregator: BreadthAggregator, indicator_set: IndicatorSet) -> pd.DataFrame:
    """Render the aggregate table for an indicator set.

    Dates where no instrument was evaluated are omitted.
    """
    if indicator_set.kind == IndicatorKind.EMA_BREADTH:
        breadth = build_ema_breadth(aggregator, indicator_set)
    elif indicator_set.kind == IndicatorKind.EXTREMA_NET:
        breadth = build_extrema_net(aggregator)
    else:
        raise ValueError(f"Unsupported indicator kind: {indicator_set.kind}")

    logger.info(
        f"Built {len(breadth)} breadth rows",
        extra={"indicator_set": indicator_set.name, "rows": len(breadth)},
    )
    return breadth

"""End-to-end breadth run: universe, fan-out, aggregation."""

from __future__ import annotations

from typing import Sequence

import pandas as pd

from breadth_index.core.config_schema import RunConfig
from breadth_index.core.logger import get_logger, log_step
from breadth_index.core.types import RunResult, SymbolOutcome
from breadth_index.core.utils_dates import date_to_ms, days_before
from breadth_index.pipeline.breadth_build import BreadthAggregator, build_breadth
from breadth_index.pipeline.scheduler import run_universe
from breadth_index.pipeline.symbol_process import IndicatorSet, SymbolProcessor
from breadth_index.sources.base import DataProvider

logger = get_logger(__name__)


def build_detail(outcomes: Sequence[SymbolOutcome], indicator_set: IndicatorSet) -> pd.DataFrame:
    """Collect detail rows of successful instruments, sorted by symbol then date."""
    records = [row.to_record() for outcome in outcomes if outcome.ok for row in outcome.rows]
    detail = pd.DataFrame.from_records(records, columns=indicator_set.detail_columns)
    if detail.empty:
        return detail
    return detail.sort_values(["symbol", "date"], kind="stable").reset_index(drop=True)


def history_start(run_cfg: RunConfig, indicator_set: IndicatorSet) -> str:
    """First date of history to fetch.

    The configured start, moved back when needed so that ``analysis_start``
    is preceded by a full warm-up span of ``min_bars`` days.
    """
    if not run_cfg.analysis_start:
        return run_cfg.start_date
    return min(run_cfg.start_date, days_before(run_cfg.analysis_start, indicator_set.min_bars))


def run_indicator_set(
    provider: DataProvider,
    instruments: Sequence[str],
    indicator_set: IndicatorSet,
    run_cfg: RunConfig,
) -> RunResult:
    """Compute one indicator set over the universe.

    Aggregate and detail tables are built only after every instrument has
    finished, so a run never exposes partial results.

    Args:
        provider: History source
        instruments: Resolved universe
        indicator_set: Indicators and signal to compute
        run_cfg: Start dates, concurrency

    Returns:
        Completed run result
    """
    log_step(logger, f"indicator_set:{indicator_set.name}", "start", indicator_set=indicator_set.name)

    aggregator = BreadthAggregator()
    processor = SymbolProcessor(
        provider,
        indicator_set,
        sink=aggregator,
        start_ms=date_to_ms(history_start(run_cfg, indicator_set)),
        analysis_start=run_cfg.analysis_start,
    )
    outcomes = run_universe(
        instruments,
        processor.process,
        concurrency=run_cfg.concurrency,
        progress_every=run_cfg.progress_every,
    )

    result = RunResult(
        indicator_set=indicator_set.name,
        aggregate=build_breadth(aggregator, indicator_set),
        detail=build_detail(outcomes, indicator_set),
        outcomes=outcomes,
        universe_size=len(instruments),
    )

    log_step(
        logger,
        f"indicator_set:{indicator_set.name}",
        "complete",
        indicator_set=indicator_set.name,
        **result.summary,
    )
    return result


def run_all(
    provider: DataProvider,
    instruments: Sequence[str],
    indicator_sets: Sequence[IndicatorSet],
    run_cfg: RunConfig,
) -> list[RunResult]:
    """Run every indicator set over the same resolved universe."""
    return [run_indicator_set(provider, instruments, s, run_cfg) for s in indicator_sets]

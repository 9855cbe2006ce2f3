"""Per-instrument processing: fetch history, compute indicators, derive signals.

One processor serves every breadth variant; the variant is an indicator-set
descriptor (dual-EMA breadth or rolling-extrema net count).
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Optional, Protocol, Union

import pandas as pd

from breadth_index.core.config_schema import EmaBreadthConfig, ExtremaNetConfig
from breadth_index.core.constants import CATEGORY_SIGNAL
from breadth_index.core.exceptions import DecodeError, InsufficientHistory, TransportError
from breadth_index.core.logger import get_logger
from breadth_index.core.types import (
    Bar,
    Contribution,
    IndicatorKind,
    Outcome,
    SignalRow,
    SymbolOutcome,
    TaskStatus,
)
from breadth_index.core.utils_math import ema, rolling_extremes
from breadth_index.sources.base import DataProvider

logger = get_logger(__name__)


class IndicatorSet(ABC):
    """Descriptor of the indicators and the signal one run computes."""

    kind: IndicatorKind

    def __init__(self, name: str):
        self.name = name

    @property
    @abstractmethod
    def min_bars(self) -> int:
        """Fewest bars an instrument needs to be processed at all."""

    @property
    @abstractmethod
    def categories(self) -> list[str]:
        """Aggregate categories this set contributes to."""

    @property
    @abstractmethod
    def detail_columns(self) -> list[str]:
        """Column order of the per-instrument detail table."""

    @abstractmethod
    def evaluate(self, instrument: str, bars: list[Bar]) -> tuple[list[SignalRow], list[Contribution]]:
        """Compute detail rows and aggregate contributions for one instrument."""


class EmaBreadthSet(IndicatorSet):
    """Close above both the fast and the slow EMA.

    The combined signal (category ``signal``) counts a bar only once both
    EMAs are warmed up. Each EMA also has its own ``above<p>`` category,
    counted as soon as that EMA alone is available.
    """

    kind = IndicatorKind.EMA_BREADTH

    def __init__(self, name: str, fast: int, slow: int):
        super().__init__(name)
        if fast >= slow:
            raise ValueError(f"fast period must be below slow period, got {fast} >= {slow}")
        self.fast = fast
        self.slow = slow

    @property
    def periods(self) -> tuple[int, int]:
        return (self.fast, self.slow)

    @property
    def min_bars(self) -> int:
        return self.slow

    @property
    def categories(self) -> list[str]:
        return [CATEGORY_SIGNAL] + [f"above{p}" for p in self.periods]

    @property
    def detail_columns(self) -> list[str]:
        return (
            ["symbol", "date", "close"]
            + [f"ema{p}" for p in self.periods]
            + [f"above{p}" for p in self.periods]
            + ["signal"]
        )

    def evaluate(self, instrument: str, bars: list[Bar]) -> tuple[list[SignalRow], list[Contribution]]:
        closes = pd.Series([bar.close for bar in bars], dtype=float)
        emas = {p: ema(closes, p).to_numpy() for p in self.periods}

        rows = []
        contributions = []
        for i, bar in enumerate(bars):
            date = bar.date
            flags = {}
            for p in self.periods:
                value = emas[p][i]
                if math.isnan(value):
                    continue
                above = bool(bar.close > value)
                flags[f"above{p}"] = above
                contributions.append(
                    Contribution(date, f"above{p}", Outcome.POSITIVE if above else Outcome.NEGATIVE)
                )

            if len(flags) < len(self.periods):
                continue

            signal = int(all(flags.values()))
            contributions.append(
                Contribution(date, CATEGORY_SIGNAL, Outcome.POSITIVE if signal else Outcome.NEGATIVE)
            )
            rows.append(
                SignalRow(
                    instrument=instrument,
                    date=date,
                    close=bar.close,
                    values={f"ema{p}": float(emas[p][i]) for p in self.periods},
                    flags=flags,
                    signal=signal,
                )
            )
        return rows, contributions


class ExtremaNetSet(IndicatorSet):
    """Close breaking the trailing-window high (+1) or low (-1).

    Bars inside the first window are flagged 0: early bars never register a
    breakout but still count as evaluated.
    """

    kind = IndicatorKind.EXTREMA_NET

    def __init__(self, name: str, window: int):
        super().__init__(name)
        if window < 1:
            raise ValueError(f"window must be >= 1, got {window}")
        self.window = window

    @property
    def min_bars(self) -> int:
        return self.window

    @property
    def categories(self) -> list[str]:
        return [CATEGORY_SIGNAL]

    @property
    def detail_columns(self) -> list[str]:
        return ["symbol", "date", "close", "window_high", "window_low", "higher_high", "lower_low", "signal"]

    def evaluate(self, instrument: str, bars: list[Bar]) -> tuple[list[SignalRow], list[Contribution]]:
        closes = pd.Series([bar.close for bar in bars], dtype=float)
        extremes = rolling_extremes(closes, self.window)
        highs = extremes["window_high"].to_numpy()
        lows = extremes["window_low"].to_numpy()
        higher_high = extremes["higher_high"].to_numpy()
        lower_low = extremes["lower_low"].to_numpy()

        rows = []
        contributions = []
        for i, bar in enumerate(bars):
            hh = bool(higher_high[i])
            ll = bool(lower_low[i])
            signal = 1 if hh else (-1 if ll else 0)
            contributions.append(Contribution(bar.date, CATEGORY_SIGNAL, Outcome(signal)))
            rows.append(
                SignalRow(
                    instrument=instrument,
                    date=bar.date,
                    close=bar.close,
                    values={"window_high": float(highs[i]), "window_low": float(lows[i])},
                    flags={"higher_high": hh, "lower_low": ll},
                    signal=signal,
                )
            )
        return rows, contributions


def build_indicator_set(cfg: Union[EmaBreadthConfig, ExtremaNetConfig]) -> IndicatorSet:
    """Create the indicator-set descriptor for a configuration entry."""
    if isinstance(cfg, EmaBreadthConfig):
        return EmaBreadthSet(cfg.name, cfg.fast, cfg.slow)
    if isinstance(cfg, ExtremaNetConfig):
        return ExtremaNetSet(cfg.name, cfg.window)
    raise TypeError(f"Unsupported indicator set config: {type(cfg).__name__}")


class ContributionSink(Protocol):
    def add(self, contributions: list[Contribution]) -> None: ...


class SymbolProcessor:
    """Fetch, compute and emit rows for one instrument at a time.

    Safe to call from several worker threads: it holds no per-call state and
    hands contributions to a thread-safe sink.
    """

    def __init__(
        self,
        provider: DataProvider,
        indicator_set: IndicatorSet,
        sink: Optional[ContributionSink] = None,
        start_ms: Optional[int] = None,
        analysis_start: Optional[str] = None,
    ):
        """Initialize processor.

        Args:
            provider: History source
            indicator_set: Indicators and signal to compute
            sink: Receives aggregate contributions (usually a BreadthAggregator)
            start_ms: History cutoff passed to the provider
            analysis_start: Rows dated before this YYYY-MM-DD are dropped
        """
        self.provider = provider
        self.indicator_set = indicator_set
        self.sink = sink
        self.start_ms = start_ms
        self.analysis_start = analysis_start

    def compute(self, instrument: str, bars: list[Bar]) -> tuple[list[SignalRow], list[Contribution]]:
        """Compute rows and contributions from already-fetched bars.

        Raises:
            InsufficientHistory: If there are fewer bars than the set requires
        """
        required = self.indicator_set.min_bars
        if len(bars) < required:
            raise InsufficientHistory(instrument, len(bars), required)

        rows, contributions = self.indicator_set.evaluate(instrument, bars)
        if self.analysis_start:
            rows = [r for r in rows if r.date >= self.analysis_start]
            contributions = [c for c in contributions if c.date >= self.analysis_start]
        return rows, contributions

    def process(self, instrument: str) -> SymbolOutcome:
        """Process one instrument; never raises for fetch or history problems."""
        context = {"instrument": instrument, "indicator_set": self.indicator_set.name}
        try:
            bars = self.provider.fetch_history(instrument, self.start_ms)
        except (TransportError, DecodeError) as e:
            logger.warning(f"Skipping {instrument}: {e}", extra=context)
            return SymbolOutcome(instrument, TaskStatus.FAILED, message=str(e))

        try:
            rows, contributions = self.compute(instrument, bars)
        except InsufficientHistory as e:
            logger.debug(str(e), extra=context)
            return SymbolOutcome(instrument, TaskStatus.SKIPPED, bars=len(bars), message=str(e))

        if self.sink is not None:
            self.sink.add(contributions)
        return SymbolOutcome(instrument, TaskStatus.SUCCESS, rows=rows, bars=len(bars))

"""Indicator math: exponential moving averages and rolling-window extremes."""

from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd


def _as_series(closes: pd.Series | Sequence[float]) -> pd.Series:
    if isinstance(closes, pd.Series):
        return closes.astype(float)
    return pd.Series(np.asarray(closes, dtype=float))


def ema(closes: pd.Series | Sequence[float], period: int) -> pd.Series:
    """Exponential moving average seeded with the simple mean of the first `period` closes.

    ``ema[p-1] = mean(close[0:p])`` and for ``i >= p``
    ``ema[i] = close[i] * k + ema[i-1] * (1 - k)`` with ``k = 2 / (p + 1)``.
    Positions ``0..p-2`` are NaN so the output aligns with the input.

    Args:
        closes: Close prices in chronological order
        period: EMA period (>= 1)

    Returns:
        EMA series with the same index as ``closes``
    """
    if period < 1:
        raise ValueError(f"EMA period must be >= 1, got {period}")

    s = _as_series(closes)
    values = s.to_numpy()
    out = np.full(len(values), np.nan)

    if len(values) >= period:
        k = 2.0 / (period + 1)
        out[period - 1] = values[:period].mean()
        for i in range(period, len(values)):
            out[i] = values[i] * k + out[i - 1] * (1 - k)

    return pd.Series(out, index=s.index, name=f"ema{period}")


def rolling_extremes(closes: pd.Series | Sequence[float], window: int) -> pd.DataFrame:
    """Trailing-window high/low and breakout flags.

    The high/low at position ``i`` cover ``close[i-window .. i-1]`` and never
    include ``close[i]``. For ``i < window`` they are NaN and both flags are False.

    Args:
        closes: Close prices in chronological order
        window: Number of preceding bars in the window (>= 1)

    Returns:
        DataFrame with columns window_high, window_low, higher_high, lower_low
    """
    if window < 1:
        raise ValueError(f"Window must be >= 1, got {window}")

    s = _as_series(closes)
    trailing = s.shift(1).rolling(window=window, min_periods=window)
    window_high = trailing.max()
    window_low = trailing.min()

    return pd.DataFrame(
        {
            "window_high": window_high,
            "window_low": window_low,
            "higher_high": (s > window_high) & window_high.notna(),
            "lower_low": (s < window_low) & window_low.notna(),
        },
        index=s.index,
    )


def pct(count: int, total: int, decimals: int = 2) -> str:
    """Percentage of ``count`` in ``total`` formatted with fixed decimals.

    Raises:
        ZeroDivisionError: If total is zero
    """
    if total == 0:
        raise ZeroDivisionError("Percentage of an empty denominator")
    return f"{count / total * 100:.{decimals}f}"

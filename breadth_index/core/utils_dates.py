"""Date utilities for the breadth index system."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Sequence, TypeVar

import pandas as pd

from breadth_index.core.constants import DATE_FORMAT

T = TypeVar("T")


def ms_to_date(timestamp_ms: int) -> str:
    """Convert an epoch-millisecond timestamp to its UTC calendar date (YYYY-MM-DD)."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).strftime(DATE_FORMAT)


def date_to_ms(value: str | date | datetime | pd.Timestamp) -> int:
    """Convert a date to epoch milliseconds at 00:00 UTC."""
    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    else:
        ts = ts.tz_convert("UTC")
    return int(ts.normalize().timestamp() * 1000)


def days_before(value: str | date | datetime | pd.Timestamp, days: int) -> str:
    """Return the date `days` calendar days before `value`, formatted YYYY-MM-DD."""
    return (pd.Timestamp(value) - timedelta(days=days)).strftime(DATE_FORMAT)


def parse_date(value: str | date | datetime | pd.Timestamp) -> str:
    """Normalize a date-like value to YYYY-MM-DD.

    Raises:
        ValueError: If the value cannot be parsed
    """
    return pd.Timestamp(value).strftime(DATE_FORMAT)


def collapse_by_date(bars: Sequence[T]) -> list[T]:
    """Sort bars by timestamp and keep one bar per UTC calendar date.

    Bars sharing a date (duplicates, intraday stragglers) collapse to the
    one with the latest timestamp.

    Args:
        bars: Objects with an integer ``timestamp`` attribute (epoch ms)

    Returns:
        Bars in ascending date order, one per date
    """
    by_date: dict[str, T] = {}
    for bar in sorted(bars, key=lambda b: b.timestamp):
        by_date[ms_to_date(bar.timestamp)] = bar
    return [by_date[d] for d in sorted(by_date)]

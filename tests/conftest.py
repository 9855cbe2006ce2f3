"""Shared fixtures and fakes for the breadth index tests."""

from __future__ import annotations

import pytest

from breadth_index.core.config_schema import RunConfig, SourceConfig
from breadth_index.core.exceptions import BreadthIndexError
from breadth_index.core.types import Bar, InstrumentInfo
from breadth_index.core.utils_dates import date_to_ms
from breadth_index.sources.base import DataProvider

DAY_MS = 86_400_000


def make_bars(closes, start="2024-01-01"):
    """Daily bars at 00:00 UTC starting on `start`."""
    t0 = date_to_ms(start)
    return [Bar(timestamp=t0 + i * DAY_MS, close=float(c)) for i, c in enumerate(closes)]


def kline(timestamp, close):
    """A Binance-style kline array."""
    return [timestamp, "1.0", "2.0", "0.5", str(close), "100.0", timestamp + DAY_MS - 1]


class FakeProvider(DataProvider):
    """In-memory provider: bars or an exception per instrument."""

    def __init__(self, histories=None, instruments=None, universe_error=None):
        super().__init__("fake", retry_attempts=1)
        self.histories = histories or {}
        self.instruments = instruments or []
        self.universe_error = universe_error
        self.calls = []

    def fetch_history(self, instrument, start_ms=None):
        self.calls.append(instrument)
        history = self.histories[instrument]
        if isinstance(history, BreadthIndexError):
            raise history
        if start_ms is None:
            return list(history)
        return [bar for bar in history if bar.timestamp >= start_ms]

    def fetch_instruments(self):
        if self.universe_error is not None:
            raise self.universe_error
        return list(self.instruments)


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, payload=None, status_code=200, invalid_json=False):
        self.payload = payload
        self.status_code = status_code
        self.invalid_json = invalid_json

    def json(self):
        if self.invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.payload


class FakeSession:
    """Replays queued responses (or raises queued exceptions) for each GET."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": dict(params or {}), "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        pass


def info(symbol, status="TRADING", spot=True, quote="USDT"):
    return InstrumentInfo(symbol=symbol, status=status, spot_allowed=spot, quote_asset=quote)


@pytest.fixture
def source_config():
    """Exchange config without retry delays."""
    return SourceConfig(base_url="http://proxy.test:8090", retry_attempts=2, retry_delay_seconds=0)


@pytest.fixture
def run_config():
    """Run config with history from 2020 and a small worker pool."""
    return RunConfig(start_date="2020-01-01", concurrency=3)

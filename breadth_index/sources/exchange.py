"""Exchange REST provider (Binance-compatible klines and exchangeInfo endpoints).

The upstream is usually a local caching proxy. Payloads are decoded by
explicit functions that validate shape and raise DecodeError on mismatch.
"""

from __future__ import annotations

import math
import time
from typing import Any

import requests
from requests.adapters import HTTPAdapter

from breadth_index.core.config_schema import SourceConfig, TransportConfig
from breadth_index.core.constants import (
    EXCHANGE_INFO_ENDPOINT,
    KLINE_CLOSE,
    KLINE_OPEN_TIME,
    KLINES_ENDPOINT,
)
from breadth_index.core.exceptions import DecodeError, TransportError
from breadth_index.core.logger import get_logger
from breadth_index.core.types import Bar, InstrumentInfo
from breadth_index.core.utils_dates import collapse_by_date
from breadth_index.sources.base import DataProvider

logger = get_logger(__name__)


def decode_klines(payload: Any, instrument: str | None = None) -> list[Bar]:
    """Decode a klines payload into bars.

    Each kline is an array ``[openTime, open, high, low, close, volume, ...]``;
    only the open time and the close are kept.

    Raises:
        DecodeError: If the payload is not an array of well-formed klines
    """
    if not isinstance(payload, list):
        raise DecodeError(
            f"expected a JSON array of klines, got {type(payload).__name__}",
            instrument=instrument,
        )

    bars = []
    for i, kline in enumerate(payload):
        if not isinstance(kline, list) or len(kline) <= KLINE_CLOSE:
            raise DecodeError(f"kline {i} is not an array of at least 5 fields", instrument=instrument)

        open_time = kline[KLINE_OPEN_TIME]
        if isinstance(open_time, bool) or not isinstance(open_time, (int, float)):
            raise DecodeError(f"kline {i} has a non-numeric open time: {open_time!r}", instrument=instrument)

        try:
            close = float(kline[KLINE_CLOSE])
        except (TypeError, ValueError):
            raise DecodeError(f"kline {i} has a non-numeric close: {kline[KLINE_CLOSE]!r}", instrument=instrument)
        if not math.isfinite(close):
            raise DecodeError(f"kline {i} has a non-finite close: {close}", instrument=instrument)

        bars.append(Bar(timestamp=int(open_time), close=close))
    return bars


def decode_exchange_info(payload: Any) -> list[InstrumentInfo]:
    """Decode an exchangeInfo payload into instrument descriptors.

    Raises:
        DecodeError: If ``symbols`` is missing or a descriptor lacks a required field
    """
    if not isinstance(payload, dict):
        raise DecodeError(f"expected a JSON object, got {type(payload).__name__}")
    symbols = payload.get("symbols")
    if not isinstance(symbols, list):
        raise DecodeError("exchangeInfo payload has no 'symbols' array")

    instruments = []
    for i, item in enumerate(symbols):
        if not isinstance(item, dict):
            raise DecodeError(f"symbol descriptor {i} is not an object")
        symbol = item.get("symbol")
        status = item.get("status")
        spot_allowed = item.get("isSpotTradingAllowed")
        quote_asset = item.get("quoteAsset")
        if not isinstance(symbol, str) or not symbol:
            raise DecodeError(f"symbol descriptor {i} has no symbol")
        if not isinstance(status, str):
            raise DecodeError(f"{symbol}: 'status' missing or not a string")
        if not isinstance(spot_allowed, bool):
            raise DecodeError(f"{symbol}: 'isSpotTradingAllowed' missing or not a boolean")
        if not isinstance(quote_asset, str):
            raise DecodeError(f"{symbol}: 'quoteAsset' missing or not a string")
        instruments.append(
            InstrumentInfo(symbol=symbol, status=status, spot_allowed=spot_allowed, quote_asset=quote_asset)
        )
    return instruments


def build_session(transport: TransportConfig, pool_size: int = 10) -> requests.Session:
    """Create an HTTP session from explicit transport settings.

    With ``bypass_proxy`` the session ignores HTTP(S)_PROXY and friends from
    the process environment.
    """
    session = requests.Session()
    session.trust_env = not transport.bypass_proxy
    session.headers.update({
        "User-Agent": transport.user_agent,
        "Accept": "application/json",
    })
    adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class ExchangeProvider(DataProvider):
    """Daily klines and instrument metadata from a Binance-compatible REST API."""

    def __init__(self, config: SourceConfig, session: requests.Session | None = None, pool_size: int = 10):
        """Initialize exchange provider.

        Args:
            config: Source configuration (URL, interval, limits, timeout, retries)
            session: HTTP session to use; built from ``config.transport`` if omitted
            pool_size: Connection pool size, at least the run's concurrency
        """
        super().__init__(config.name, config.retry_attempts)
        self.config = config
        self._session = session or build_session(config.transport, pool_size)

    def _get_json(self, endpoint: str, params: dict | None = None, instrument: str | None = None) -> Any:
        """GET an endpoint and parse the JSON body.

        Raises:
            TransportError: On connection failure, timeout, or non-2xx status
            DecodeError: If the body is not JSON
        """
        url = f"{self.config.base_url}{endpoint}"
        try:
            response = self._session.get(url, params=params, timeout=self.config.timeout_seconds)
        except requests.exceptions.Timeout as e:
            raise TransportError(
                f"timed out after {self.config.timeout_seconds}s: {endpoint}",
                source=self.name,
                instrument=instrument,
            ) from e
        except requests.exceptions.RequestException as e:
            raise TransportError(str(e), source=self.name, instrument=instrument) from e

        if not 200 <= response.status_code < 300:
            raise TransportError(
                f"HTTP {response.status_code} for {endpoint}",
                source=self.name,
                instrument=instrument,
                status=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"response is not valid JSON: {e}", source=self.name, instrument=instrument) from e

    def fetch_page(self, instrument: str, end_ms: int | None = None) -> list[Bar]:
        """Fetch one page of at most ``limit_per_call`` bars ending at ``end_ms`` (latest if None)."""
        params: dict[str, Any] = {
            "symbol": instrument,
            "interval": self.config.interval,
            "limit": self.config.limit_per_call,
        }
        if end_ms is not None:
            params["endTime"] = end_ms
        payload = self._get_json(KLINES_ENDPOINT, params=params, instrument=instrument)
        return decode_klines(payload, instrument=instrument)

    def _fetch_pages(self, instrument: str, start_ms: int | None) -> list[Bar]:
        bars: list[Bar] = []
        end_ms = None
        for _ in range(self.config.max_pages):
            page = self.fetch_page(instrument, end_ms)
            bars.extend(page)
            if len(page) < self.config.limit_per_call:
                break
            earliest = min(bar.timestamp for bar in page)
            if start_ms is not None and earliest <= start_ms:
                break
            end_ms = earliest - 1
        else:
            if start_ms is not None:
                logger.warning(
                    f"History for {instrument} truncated after {self.config.max_pages} page(s)",
                    extra={"instrument": instrument, "source": self.name},
                )

        bars = collapse_by_date(bars)
        if start_ms is not None:
            bars = [bar for bar in bars if bar.timestamp >= start_ms]
        return bars

    def fetch_history(self, instrument: str, start_ms: int | None = None) -> list[Bar]:
        """Fetch daily bars for an instrument, retrying transport failures.

        Args:
            instrument: Exchange symbol
            start_ms: Drop bars opening before this epoch-ms cutoff

        Returns:
            Bars in ascending date order, one per UTC date

        Raises:
            TransportError: If every attempt failed
            DecodeError: On a malformed payload (never retried)
        """
        last_error: TransportError | None = None
        for attempt in range(self.retry_attempts):
            try:
                bars = self._fetch_pages(instrument, start_ms)
                logger.debug(
                    f"Fetched {len(bars)} bars for {instrument}",
                    extra={"instrument": instrument, "source": self.name, "rows": len(bars)},
                )
                return bars
            except TransportError as e:
                last_error = e
                logger.warning(
                    f"Attempt {attempt + 1}/{self.retry_attempts} failed for {instrument}: {e}",
                    extra={"instrument": instrument, "source": self.name, "attempt": attempt + 1},
                )
                if attempt < self.retry_attempts - 1:
                    time.sleep(self.config.retry_delay_seconds * (attempt + 1))

        raise last_error

    def fetch_instruments(self) -> list[InstrumentInfo]:
        """Fetch the exchange instrument list (single attempt)."""
        payload = self._get_json(EXCHANGE_INFO_ENDPOINT)
        instruments = decode_exchange_info(payload)
        logger.info(
            f"Exchange lists {len(instruments)} instruments",
            extra={"source": self.name},
        )
        return instruments

    def close(self) -> None:
        self._session.close()

"""Data source providers."""

from breadth_index.sources.base import DataProvider
from breadth_index.sources.exchange import ExchangeProvider, decode_exchange_info, decode_klines

__all__ = ["DataProvider", "ExchangeProvider", "decode_exchange_info", "decode_klines"]

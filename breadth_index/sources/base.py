"""Abstract base class for data providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from breadth_index.core.types import Bar, InstrumentInfo


class DataProvider(ABC):
    """Abstract base class for data providers.

    A provider is both the history source (one instrument's daily bars) and
    the raw material for universe resolution (the exchange instrument list).
    """


    def __init__(self, name: str, retry_attempts: int = 2):
        """Initialize data provider.

        Args:
            name: Provider name
            retry_attempts: Attempts per history fetch (1 disables retries)
        """
        self.name = name
        self.retry_attempts = retry_attempts

    @abstractmethod
    def fetch_history(self, instrument: str, start_ms: int | None = None) -> list[Bar]:
        """Fetch daily bars for an instrument.

        Args:
            instrument: Exchange symbol
            start_ms: Drop bars opening before this epoch-ms cutoff

        Returns:
            Bars in ascending date order, one per UTC date

        Raises:
            TransportError: On network/HTTP failure or timeout
            DecodeError: On a malformed payload
        """
        pass

    @abstractmethod
    def fetch_instruments(self) -> list[InstrumentInfo]:
        """Fetch every instrument the exchange lists.

        Raises:
            TransportError: On network/HTTP failure or timeout
            DecodeError: On a malformed payload
        """
        pass

    def get_status(self) -> dict[str, Any]:
        """Get provider status information.

        Returns:
            Status dict with name and retry settings
        """
        return {
            "name": self.name,
            "retry_attempts": self.retry_attempts,
        }

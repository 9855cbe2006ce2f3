"""Custom exceptions for the breadth index system."""

from __future__ import annotations


class BreadthIndexError(Exception):
    """Base exception for breadth index errors."""


    pass


class ConfigError(BreadthIndexError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(f"Configuration error{f' in {field}' if field else ''}: {message}")


class TransportError(BreadthIndexError):
    """Raised when a request to the upstream service fails (network, HTTP status, timeout)."""

    def __init__(
        self,
        message: str,
        source: str | None = None,
        instrument: str | None = None,
        status: int | None = None,
    ):
        self.source = source
        self.instrument = instrument
        self.status = status
        context = []
        if source:
            context.append(f"source={source}")
        if instrument:
            context.append(f"instrument={instrument}")
        if status is not None:
            context.append(f"status={status}")
        context_str = f" ({', '.join(context)})" if context else ""
        super().__init__(f"Transport error{context_str}: {message}")


class DecodeError(BreadthIndexError):
    """Raised when an upstream payload does not have the expected shape."""

    def __init__(self, message: str, source: str | None = None, instrument: str | None = None):
        self.source = source
        self.instrument = instrument
        context = []
        if source:
            context.append(f"source={source}")
        if instrument:
            context.append(f"instrument={instrument}")
        context_str = f" ({', '.join(context)})" if context else ""
        super().__init__(f"Decode error{context_str}: {message}")


class InsufficientHistory(BreadthIndexError):
    """Raised when an instrument has fewer bars than the indicator set needs.

    This is a normal skip condition, not a failure.
    """

    def __init__(self, instrument: str, bars: int, required: int):
        self.instrument = instrument
        self.bars = bars
        self.required = required
        super().__init__(f"Insufficient history for {instrument}: {bars} bars, need {required}")

"""Core utilities, configuration, and types."""

from breadth_index.core.types import Bar, SignalRow, SymbolOutcome, RunResult, TaskStatus, Outcome
from breadth_index.core.exceptions import (
    BreadthIndexError,
    ConfigError,
    TransportError,
    DecodeError,
    InsufficientHistory,
)
from breadth_index.core.config_schema import (
    SourcesConfig,
    UniverseConfig,
    IndicatorsConfig,
    RunConfig,
    load_config,
)

__all__ = [
    "Bar",
    "SignalRow",
    "SymbolOutcome",
    "RunResult",
    "TaskStatus",
    "Outcome",
    "BreadthIndexError",
    "ConfigError",
    "TransportError",
    "DecodeError",
    "InsufficientHistory",
    "SourcesConfig",
    "UniverseConfig",
    "IndicatorsConfig",
    "RunConfig",
    "load_config",
]

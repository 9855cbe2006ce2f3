"""Data processing pipeline modules."""

from breadth_index.pipeline.universe_fetch import resolve_universe
from breadth_index.pipeline.symbol_process import (
    EmaBreadthSet,
    ExtremaNetSet,
    SymbolProcessor,
    build_indicator_set,
)
from breadth_index.pipeline.scheduler import run_universe
from breadth_index.pipeline.breadth_build import BreadthAggregator, build_breadth
from breadth_index.pipeline.run import run_all, run_indicator_set

__all__ = [
    "resolve_universe",
    "EmaBreadthSet",
    "ExtremaNetSet",
    "SymbolProcessor",
    "build_indicator_set",
    "run_universe",
    "BreadthAggregator",
    "build_breadth",
    "run_all",
    "run_indicator_set",
]

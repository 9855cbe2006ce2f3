"""CSV export of breadth results."""

from __future__ import annotations

from pathlib import Path

from breadth_index.core.logger import get_logger
from breadth_index.core.types import RunResult
from breadth_index.core.utils_io import write_csv

logger = get_logger(__name__)


def breadth_path(output_dir: Path, name: str) -> Path:
    """Aggregate table path for an indicator set."""
    return output_dir / f"{name}_breadth.csv"


def values_path(output_dir: Path, name: str) -> Path:
    """Detail table path for an indicator set."""
    return output_dir / f"{name}_values.csv"


def export_result(result: RunResult, output_dir: Path) -> dict[str, Path]:
    """Write the aggregate and detail tables of one run.

    Args:
        result: Completed run
        output_dir: Output directory

    Returns:
        Dict with 'breadth' and 'values' paths
    """
    paths = {
        "breadth": write_csv(result.aggregate, breadth_path(output_dir, result.indicator_set)),
        "values": write_csv(result.detail, values_path(output_dir, result.indicator_set)),
    }
    logger.info(
        f"Saved {paths['breadth'].name} ({len(result.aggregate)} rows), "
        f"{paths['values'].name} ({len(result.detail)} rows)",
        extra={"indicator_set": result.indicator_set},
    )
    return paths

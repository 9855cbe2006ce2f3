"""I/O utilities for reading and writing data files."""

from __future__ import annotations

import hashlib
import json
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
import yaml

from breadth_index.core.constants import CONFIG_DIR

CONFIG_FILES = ["sources.yml", "universe.yml", "indicators.yml", "run.yml"]


def ensure_dir(path: Path) -> Path:
    """Ensure directory exists, create if necessary."""

    path.mkdir(parents=True, exist_ok=True)
    return path


def read_yaml(path: Path) -> dict:
    """Read a YAML configuration file."""
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def write_json(data: dict, path: Path, indent: int = 2) -> None:
    """Write data to JSON file."""
    ensure_dir(path.parent)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, default=str)


def write_csv(df: pd.DataFrame, path: Path) -> Path:
    """Write DataFrame to CSV without the index."""
    ensure_dir(path.parent)
    df.to_csv(path, index=False)
    return path


def hash_file(path: Path) -> str:
    """Compute SHA256 hash of a file."""
    hasher = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            hasher.update(chunk)
    return f"sha256:{hasher.hexdigest()[:16]}"


def hash_config_files(config_dir: Path = CONFIG_DIR) -> dict[str, str]:
    """Hash all configuration files for reproducibility tracking."""
    hashes = {}
    for filename in CONFIG_FILES:
        path = config_dir / filename
        if path.exists():
            hashes[filename] = hash_file(path)
    return hashes


def save_run_manifest(
    output_dir: Path,
    universe_size: int,
    results: dict[str, dict[str, Any]],
    settings: dict[str, Any] | None = None,
    config_dir: Path = CONFIG_DIR,
) -> Path:
    """Save run manifest for reproducibility.

    Args:
        output_dir: Directory receiving run_manifest.json
        universe_size: Number of instruments in the resolved universe
        results: Per indicator set summary counts
        settings: Effective run settings after overrides
        config_dir: Directory whose config files are hashed

    Returns:
        Path to saved manifest
    """
    manifest = {
        "run_timestamp": datetime.now().isoformat(),
        "config_hashes": hash_config_files(config_dir),
        "settings": settings or {},
        "universe_size": universe_size,
        "results": results,
    }

    path = output_dir / "run_manifest.json"
    write_json(manifest, path)
    return path

"""Pydantic models for configuration validation."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated, Literal, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from breadth_index.core.constants import (
    CONFIG_DIR,
    DEFAULT_BASE_URL,
    DEFAULT_CONCURRENCY,
    DEFAULT_INTERVAL,
    DEFAULT_LIMIT_PER_CALL,
    DEFAULT_QUOTE_ASSET,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_DELAY_SECONDS,
    DEFAULT_START_DATE,
    DEFAULT_TIMEOUT_SECONDS,
    TRADING_STATUS,
)
from breadth_index.core.exceptions import ConfigError
from breadth_index.core.utils_dates import parse_date
from breadth_index.core.utils_io import read_yaml


# ============================================================================
# sources.yml
# ============================================================================


class TransportConfig(BaseModel):
    """HTTP transport settings passed to the client session."""

    bypass_proxy: bool = True
    user_agent: str = "BreadthIndex/1.0"


class SourceConfig(BaseModel):
    """Configuration for the upstream price-history service."""


    name: str = "exchange"
    base_url: str = DEFAULT_BASE_URL
    interval: str = DEFAULT_INTERVAL
    limit_per_call: int = Field(default=DEFAULT_LIMIT_PER_CALL, ge=1, le=1000)
    max_pages: int = Field(default=1, ge=1)
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    retry_attempts: int = Field(default=DEFAULT_RETRY_ATTEMPTS, ge=1, le=5)
    retry_delay_seconds: float = Field(default=DEFAULT_RETRY_DELAY_SECONDS, ge=0)
    transport: TransportConfig = Field(default_factory=TransportConfig)

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got {v!r}")
        return v.rstrip("/")


class SourcesConfig(BaseModel):
    """Configuration for all data sources."""

    exchange: SourceConfig = Field(default_factory=SourceConfig)


# ============================================================================
# universe.yml
# ============================================================================


class UniverseConfig(BaseModel):
    """Filters selecting the eligible instrument universe."""

    quote_asset: str = DEFAULT_QUOTE_ASSET
    status: str = TRADING_STATUS
    require_spot: bool = True
    exclude: list[str] = Field(default_factory=list)
    include_only: list[str] = Field(default_factory=list)

    @field_validator("quote_asset")
    @classmethod
    def upper_quote(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("quote_asset must not be empty")
        return v.strip().upper()


# ============================================================================
# indicators.yml
# ============================================================================


class EmaBreadthConfig(BaseModel):
    """Dual-EMA breadth: close above both the fast and the slow EMA."""

    kind: Literal["ema_breadth"] = "ema_breadth"
    name: str
    fast: int = Field(ge=1)
    slow: int = Field(ge=1)
    description: str = ""

    @model_validator(mode="after")
    def validate_periods(self):
        if self.fast >= self.slow:
            raise ValueError(f"fast period must be below slow period, got {self.fast} >= {self.slow}")
        return self


class ExtremaNetConfig(BaseModel):
    """Rolling-window higher-high / lower-low net count."""

    kind: Literal["extrema_net"] = "extrema_net"
    name: str
    window: int = Field(ge=1)
    description: str = ""


IndicatorSetConfig = Annotated[Union[EmaBreadthConfig, ExtremaNetConfig], Field(discriminator="kind")]


class IndicatorsConfig(BaseModel):
    """Configured indicator sets; each produces its own pair of output files."""

    indicator_sets: list[IndicatorSetConfig]

    @model_validator(mode="after")
    def validate_unique_names(self):
        names = [s.name for s in self.indicator_sets]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate indicator set names: {duplicates}")
        return self

    @property
    def sets_by_name(self) -> dict[str, Union[EmaBreadthConfig, ExtremaNetConfig]]:
        return {s.name: s for s in self.indicator_sets}


# ============================================================================
# run.yml
# ============================================================================


class RunConfig(BaseModel):
    """Per-run settings."""

    start_date: str = DEFAULT_START_DATE
    analysis_start: Optional[str] = None
    concurrency: int = Field(default=DEFAULT_CONCURRENCY, ge=1, le=32)
    output_dir: Optional[Path] = None
    progress_every: int = Field(default=50, ge=1)

    @field_validator("start_date", "analysis_start", mode="before")
    @classmethod
    def normalize_dates(cls, v: object) -> Optional[str]:
        if v is None:
            return v
        try:
            return parse_date(v)
        except (ValueError, TypeError) as e:
            raise ValueError(f"invalid date {v!r}: {e}")


# ============================================================================
# Config Loading
# ============================================================================

CONFIG_MAP = {
    "sources": (SourcesConfig, "sources.yml"),
    "universe": (UniverseConfig, "universe.yml"),
    "indicators": (IndicatorsConfig, "indicators.yml"),
    "run": (RunConfig, "run.yml"),
}


def load_config(config_type: str, config_dir: Path = CONFIG_DIR) -> BaseModel:
    """Load and validate a configuration file.

    Args:
        config_type: Type of config ('sources', 'universe', 'indicators', 'run')
        config_dir: Configuration directory

    Returns:
        Validated Pydantic model

    Raises:
        ConfigError: If config file is missing or invalid
    """
    if config_type not in CONFIG_MAP:
        raise ConfigError(f"Unknown config type: {config_type}")

    model_class, filename = CONFIG_MAP[config_type]
    config_path = config_dir / filename

    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        raw_config = read_yaml(config_path) or {}
        return model_class.model_validate(raw_config)
    except Exception as e:
        raise ConfigError(f"Failed to parse {filename}: {e}")


def load_all_configs(config_dir: Path = CONFIG_DIR) -> dict[str, BaseModel]:
    """Load all configuration files.

    Args:
        config_dir: Configuration directory

    Returns:
        Dict mapping config type to validated model

    Raises:
        ConfigError: If any config file is missing or invalid
    """
    return {config_type: load_config(config_type, config_dir) for config_type in CONFIG_MAP}


def override_config(model: BaseModel, field: str, value: object, source: str) -> BaseModel:
    """Return a re-validated copy of `model` with one field replaced.

    Raises:
        ConfigError: If the new value fails validation
    """
    try:
        return type(model).model_validate({**model.model_dump(), field: value})
    except ValidationError as e:
        raise ConfigError(f"Invalid value {value!r}: {e.errors()[0]['msg']}", field=source)


def apply_env_overrides(
    sources: SourcesConfig,
    universe: UniverseConfig,
    run: RunConfig,
    env_file: str | None = None,
) -> tuple[SourcesConfig, UniverseConfig, RunConfig]:
    """Apply BREADTH_* environment variables (and .env) on top of file config.

    Supported variables: BREADTH_BASE_URL, BREADTH_QUOTE_ASSET,
    BREADTH_START_DATE, BREADTH_CONCURRENCY, BREADTH_OUTPUT_DIR.

    Returns:
        New (sources, universe, run) models

    Raises:
        ConfigError: If a variable holds an invalid value
    """
    load_dotenv(env_file)

    base_url = os.getenv("BREADTH_BASE_URL")
    if base_url:
        exchange = override_config(sources.exchange, "base_url", base_url, "BREADTH_BASE_URL")
        sources = sources.model_copy(update={"exchange": exchange})

    quote = os.getenv("BREADTH_QUOTE_ASSET")
    if quote:
        universe = override_config(universe, "quote_asset", quote, "BREADTH_QUOTE_ASSET")

    start_date = os.getenv("BREADTH_START_DATE")
    if start_date:
        run = override_config(run, "start_date", start_date, "BREADTH_START_DATE")

    concurrency = os.getenv("BREADTH_CONCURRENCY")
    if concurrency:
        run = override_config(run, "concurrency", concurrency, "BREADTH_CONCURRENCY")

    output_dir = os.getenv("BREADTH_OUTPUT_DIR")
    if output_dir:
        run = override_config(run, "output_dir", output_dir, "BREADTH_OUTPUT_DIR")

    return sources, universe, run

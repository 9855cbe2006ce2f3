"""Tests for configuration schema validation."""

import os
import pytest
from pathlib import Path
from pydantic import ValidationError

from breadth_index.core.config_schema import (
    load_config,
    load_all_configs,
    apply_env_overrides,
    override_config,
    SourcesConfig,
    UniverseConfig,
    IndicatorsConfig,
    RunConfig,
    EmaBreadthConfig,
    ExtremaNetConfig,
)
from breadth_index.core.exceptions import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "BREADTH_BASE_URL",
        "BREADTH_QUOTE_ASSET",
        "BREADTH_START_DATE",
        "BREADTH_CONCURRENCY",
        "BREADTH_OUTPUT_DIR",
    ):
        monkeypatch.delenv(name, raising=False)


class TestSourcesConfig:
    """Tests for sources.yml validation."""

    def test_load_sources_config(self):
        """Test loading sources config."""
        config = load_config("sources")
        assert isinstance(config, SourcesConfig)
        assert config.exchange.base_url == "http://127.0.0.1:8090"
        assert config.exchange.interval == "1d"
        assert config.exchange.limit_per_call == 1000

    def test_transport_bypasses_proxy(self):
        """Test that the local proxy is reached directly."""
        config = load_config("sources")
        assert config.exchange.transport.bypass_proxy is True

    def test_timeout_is_bounded(self):
        """Test that every call has a finite timeout."""
        config = load_config("sources")
        assert 0 < config.exchange.timeout_seconds <= 30

    def test_base_url_trailing_slash_stripped(self):
        """Test base URL normalization."""
        config = SourcesConfig.model_validate({"exchange": {"base_url": "http://localhost:8090/"}})
        assert config.exchange.base_url == "http://localhost:8090"

    def test_limit_above_page_size_rejected(self):
        """Test that the per-call bar limit is capped at the upstream page size."""
        with pytest.raises(ValidationError):
            SourcesConfig.model_validate({"exchange": {"limit_per_call": 5000}})


class TestUniverseConfig:
    """Tests for universe.yml validation."""

    def test_load_universe_config(self):
        """Test loading universe config."""
        config = load_config("universe")
        assert isinstance(config, UniverseConfig)
        assert config.quote_asset == "USDT"
        assert config.status == "TRADING"
        assert config.require_spot is True

    def test_quote_asset_uppercased(self):
        """Test quote asset normalization."""
        assert UniverseConfig(quote_asset=" btc ").quote_asset == "BTC"


class TestIndicatorsConfig:
    """Tests for indicators.yml validation."""

    def test_load_indicators_config(self):
        """Test loading indicators config."""
        config = load_config("indicators")
        assert isinstance(config, IndicatorsConfig)
        assert set(config.sets_by_name) == {"ema_50_200", "ema_75_200", "ema_100_200", "hh_ll_90"}

    def test_kinds_are_discriminated(self):
        """Test that each entry parses to its own model."""
        config = load_config("indicators")
        assert isinstance(config.sets_by_name["ema_100_200"], EmaBreadthConfig)
        assert isinstance(config.sets_by_name["hh_ll_90"], ExtremaNetConfig)
        assert config.sets_by_name["hh_ll_90"].window == 90

    def test_fast_must_be_below_slow(self):
        """Test that inverted EMA periods are rejected."""
        with pytest.raises(ValidationError):
            EmaBreadthConfig(name="bad", fast=200, slow=50)

    def test_duplicate_names_rejected(self):
        """Test that indicator set names are unique."""
        with pytest.raises(ValidationError):
            IndicatorsConfig.model_validate(
                {
                    "indicator_sets": [
                        {"name": "x", "kind": "ema_breadth", "fast": 50, "slow": 200},
                        {"name": "x", "kind": "extrema_net", "window": 90},
                    ]
                }
            )


class TestRunConfig:
    """Tests for run.yml validation."""

    def test_load_run_config(self):
        """Test loading run config."""
        config = load_config("run")
        assert isinstance(config, RunConfig)
        assert config.start_date == "2023-06-01"
        assert config.concurrency == 4

    def test_dates_normalized(self):
        """Test that date-like values are normalized to YYYY-MM-DD."""
        config = RunConfig(start_date="2024/01/05", analysis_start="2024-02-01T00:00:00")
        assert config.start_date == "2024-01-05"
        assert config.analysis_start == "2024-02-01"

    def test_invalid_date_rejected(self):
        """Test that unparsable dates fail validation."""
        with pytest.raises(ValidationError):
            RunConfig(start_date="not-a-date")

    def test_concurrency_must_be_positive(self):
        """Test concurrency bounds."""
        with pytest.raises(ValidationError):
            RunConfig(concurrency=0)


class TestLoadAllConfigs:
    """Tests for loading all configurations."""

    def test_load_all_configs(self):
        """Test loading all config files."""
        configs = load_all_configs()
        assert set(configs) == {"sources", "universe", "indicators", "run"}


class TestInvalidConfigs:
    """Tests for invalid configuration handling."""

    def test_unknown_config_type_raises(self):
        """Test that unknown config type raises error."""
        with pytest.raises(ConfigError):
            load_config("unknown")

    def test_missing_file_raises(self):
        """Test that missing file raises error."""
        with pytest.raises(ConfigError):
            load_config("sources", config_dir=Path("/nonexistent"))

    def test_malformed_file_raises(self, tmp_path):
        """Test that an invalid file raises ConfigError."""
        (tmp_path / "run.yml").write_text("concurrency: -3\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config("run", config_dir=tmp_path)


class TestOverrides:
    """Tests for environment and CLI overrides."""

    def test_env_overrides_applied(self, monkeypatch, tmp_path):
        """Test that BREADTH_* variables replace file values."""
        monkeypatch.setenv("BREADTH_CONCURRENCY", "8")
        monkeypatch.setenv("BREADTH_QUOTE_ASSET", "fdusd")
        monkeypatch.setenv("BREADTH_BASE_URL", "http://10.0.0.5:8090")
        sources, universe, run = apply_env_overrides(
            SourcesConfig(), UniverseConfig(), RunConfig(), env_file=str(tmp_path / "missing.env")
        )
        assert run.concurrency == 8
        assert universe.quote_asset == "FDUSD"
        assert sources.exchange.base_url == "http://10.0.0.5:8090"

    def test_env_file_loaded(self, tmp_path):
        """Test that a .env file feeds the overrides."""
        env_file = tmp_path / ".env"
        env_file.write_text("BREADTH_START_DATE=2022-03-01\n", encoding="utf-8")
        try:
            _, _, run = apply_env_overrides(
                SourcesConfig(), UniverseConfig(), RunConfig(), env_file=str(env_file)
            )
        finally:
            os.environ.pop("BREADTH_START_DATE", None)
        assert run.start_date == "2022-03-01"

    def test_invalid_env_value_raises_config_error(self, monkeypatch, tmp_path):
        """Test that a bad override names the offending variable."""
        monkeypatch.setenv("BREADTH_CONCURRENCY", "many")
        with pytest.raises(ConfigError) as exc_info:
            apply_env_overrides(
                SourcesConfig(), UniverseConfig(), RunConfig(), env_file=str(tmp_path / "missing.env")
            )
        assert exc_info.value.field == "BREADTH_CONCURRENCY"

    def test_override_config_revalidates(self):
        """Test that a CLI override goes through validation."""
        run = override_config(RunConfig(), "analysis_start", "2024-01-01", "--analysis-start")
        assert run.analysis_start == "2024-01-01"
        with pytest.raises(ConfigError):
            override_config(RunConfig(), "concurrency", 0, "--concurrency")

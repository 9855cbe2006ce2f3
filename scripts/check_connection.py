#!/usr/bin/env python
"""Check that the upstream service answers exchangeInfo.

Usage:
    python scripts/check_connection.py [--base-url http://127.0.0.1:8090]
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from breadth_index.core.config_schema import apply_env_overrides, load_config, override_config
from breadth_index.core.constants import CONFIG_DIR
from breadth_index.core.exceptions import BreadthIndexError
from breadth_index.core.logger import setup_logger
from breadth_index.pipeline.universe_fetch import filter_universe
from breadth_index.sources.exchange import ExchangeProvider


def main(argv=None):
    parser = argparse.ArgumentParser(description="Probe the upstream price-history service")
    parser.add_argument("--base-url", help="Upstream service URL")
    parser.add_argument("--config-dir", type=Path, default=CONFIG_DIR, help="Configuration directory")
    args = parser.parse_args(argv)

    logger = setup_logger("breadth_index", log_file=False)

    try:
        sources_cfg, universe_cfg, _ = apply_env_overrides(
            load_config("sources", args.config_dir),
            load_config("universe", args.config_dir),
            load_config("run", args.config_dir),
        )
        exchange_cfg = sources_cfg.exchange
        if args.base_url:
            exchange_cfg = override_config(exchange_cfg, "base_url", args.base_url, "--base-url")

        provider = ExchangeProvider(exchange_cfg)
        logger.info(f"Probing {exchange_cfg.base_url} ({provider.get_status()})")
        try:
            instruments = provider.fetch_instruments()
        finally:
            provider.close()
        eligible = filter_universe(instruments, universe_cfg)
    except BreadthIndexError as e:
        logger.error(f"Upstream check failed: {e}")
        return 1

    logger.info(
        f"Upstream is up at {exchange_cfg.base_url}: {len(instruments)} instruments, "
        f"{len(eligible)} eligible {universe_cfg.quote_asset} spot pairs"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python
"""Run the daily breadth update.

Usage:
    python scripts/run_update.py [--set NAME ...] [--quote USDT] [--start-date 2023-06-01]
                                 [--analysis-start 2024-01-01] [--concurrency 4]
                                 [--output-dir data] [--base-url http://127.0.0.1:8090]

Options:
    --set              Indicator set to compute (repeatable, default: all configured)
    --quote            Quote asset filter for the universe
    --start-date       First date of fetched history (warm-up included)
    --analysis-start   Drop output rows dated before this
    --concurrency      Maximum number of instruments fetched at once
    --output-dir       Directory receiving the CSV files and run manifest
    --base-url         Upstream service URL
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from breadth_index.core.config_schema import apply_env_overrides, load_config, override_config
from breadth_index.core.constants import CONFIG_DIR, OUTPUT_DIR
from breadth_index.core.exceptions import BreadthIndexError, ConfigError, DecodeError, TransportError
from breadth_index.core.logger import setup_logger, log_step
from breadth_index.core.utils_io import ensure_dir, save_run_manifest
from breadth_index.pipeline.run import run_all
from breadth_index.pipeline.symbol_process import build_indicator_set
from breadth_index.pipeline.universe_fetch import resolve_universe
from breadth_index.reporting.csv_export import export_result
from breadth_index.sources.exchange import ExchangeProvider


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Compute daily market breadth indices")
    parser.add_argument("--set", dest="sets", action="append", metavar="NAME", help="Indicator set to compute")
    parser.add_argument("--quote", help="Quote asset filter (e.g. USDT)")
    parser.add_argument("--start-date", help="First date of fetched history")
    parser.add_argument("--analysis-start", help="Drop output rows dated before this")
    parser.add_argument("--concurrency", type=int, help="Maximum concurrent fetches")
    parser.add_argument("--output-dir", type=Path, help="Output directory")
    parser.add_argument("--base-url", help="Upstream service URL")
    parser.add_argument("--config-dir", type=Path, default=CONFIG_DIR, help="Configuration directory")
    parser.add_argument("--verbose", action="store_true", help="Log per-instrument details")
    parser.add_argument("--no-log-file", action="store_true", help="Log to console only")
    return parser.parse_args(argv)


def load_settings(args):
    """Load config files, then apply environment and CLI overrides (in that order)."""
    sources_cfg = load_config("sources", args.config_dir)
    universe_cfg = load_config("universe", args.config_dir)
    indicators_cfg = load_config("indicators", args.config_dir)
    run_cfg = load_config("run", args.config_dir)

    sources_cfg, universe_cfg, run_cfg = apply_env_overrides(sources_cfg, universe_cfg, run_cfg)

    if args.base_url:
        exchange = override_config(sources_cfg.exchange, "base_url", args.base_url, "--base-url")
        sources_cfg = sources_cfg.model_copy(update={"exchange": exchange})
    if args.quote:
        universe_cfg = override_config(universe_cfg, "quote_asset", args.quote, "--quote")
    cli_run = {
        "start_date": args.start_date,
        "analysis_start": args.analysis_start,
        "concurrency": args.concurrency,
        "output_dir": args.output_dir,
    }
    for field, value in cli_run.items():
        if value is not None:
            run_cfg = override_config(run_cfg, field, value, f"--{field.replace('_', '-')}")

    set_configs = indicators_cfg.indicator_sets
    if args.sets:
        unknown = sorted(set(args.sets) - set(indicators_cfg.sets_by_name))
        if unknown:
            raise ConfigError(f"Unknown indicator set(s): {', '.join(unknown)}", field="--set")
        set_configs = [indicators_cfg.sets_by_name[name] for name in args.sets]

    return sources_cfg, universe_cfg, run_cfg, [build_indicator_set(cfg) for cfg in set_configs]


def main(argv=None):
    """Run the full update pipeline."""
    args = parse_args(argv)

    logger = setup_logger(
        "breadth_index",
        level=logging.DEBUG if args.verbose else logging.INFO,
        log_file=not args.no_log_file,
    )
    log_step(logger, "pipeline", "start")

    try:
        log_step(logger, "load_config", "start")
        sources_cfg, universe_cfg, run_cfg, indicator_sets = load_settings(args)
        output_dir = ensure_dir(run_cfg.output_dir or OUTPUT_DIR)
        log_step(logger, "load_config", "complete", indicator_sets=[s.name for s in indicator_sets])

        provider = ExchangeProvider(sources_cfg.exchange, pool_size=run_cfg.concurrency)
        logger.info(f"Using base URL {sources_cfg.exchange.base_url}")

        try:
            # Universe failure is fatal: nothing to process without it
            log_step(logger, "resolve_universe", "start")
            try:
                instruments = resolve_universe(provider, universe_cfg)
            except (TransportError, DecodeError) as e:
                log_step(logger, "resolve_universe", "error", error=str(e))
                logger.error(f"Could not resolve the instrument universe: {e}")
                return 1
            log_step(logger, "resolve_universe", "complete", universe=len(instruments))

            results = run_all(provider, instruments, indicator_sets, run_cfg)
        finally:
            provider.close()

        log_step(logger, "export_results", "start")
        for result in results:
            export_result(result, output_dir)
        manifest_path = save_run_manifest(
            output_dir,
            universe_size=len(instruments),
            results={r.indicator_set: r.summary for r in results},
            settings={
                "base_url": sources_cfg.exchange.base_url,
                "quote_asset": universe_cfg.quote_asset,
                **run_cfg.model_dump(mode="json"),
            },
            config_dir=args.config_dir,
        )
        log_step(logger, "export_results", "complete", manifest=str(manifest_path))

        log_step(logger, "pipeline", "complete")

        print("\n" + "=" * 60)
        print("BREADTH UPDATE COMPLETE")
        print("=" * 60)
        print(f"\nUniverse: {len(instruments)} {universe_cfg.quote_asset} pairs")
        for result in results:
            s = result.summary
            last = result.aggregate.iloc[-1].to_dict() if not result.aggregate.empty else {}
            print(f"\n{result.indicator_set}:")
            print(f"  Processed: {s['succeeded']} ok / {s['skipped']} skipped / {s['failed']} failed")
            print(f"  Rows:      {s['aggregate_rows']} breadth / {s['detail_rows']} values")
            if last:
                print(f"  Latest:    {last}")
        print(f"\nOutputs: {output_dir}")
        print("=" * 60)
        return 0

    except BreadthIndexError as e:
        log_step(logger, "pipeline", "error", error=str(e))
        logger.error(str(e))
        return 1
    except Exception as e:
        log_step(logger, "pipeline", "error", error=str(e))
        logger.exception("Pipeline failed")
        return 1


if __name__ == "__main__":
    sys.exit(main())

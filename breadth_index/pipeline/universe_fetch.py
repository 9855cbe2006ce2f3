"""Universe resolution: the eligible instrument list for a run."""

from __future__ import annotations

from breadth_index.core.config_schema import UniverseConfig
from breadth_index.core.logger import get_logger
from breadth_index.core.types import InstrumentInfo
from breadth_index.sources.base import DataProvider

logger = get_logger(__name__)


def filter_universe(instruments: list[InstrumentInfo], universe_cfg: UniverseConfig) -> list[str]:
    """Select tradable, spot-eligible instruments quoted in the configured asset.

    Args:
        instruments: Exchange instrument descriptors
        universe_cfg: Universe filters

    Returns:
        Sorted, de-duplicated instrument symbols
    """
    include_only = set(universe_cfg.include_only)
    exclude = set(universe_cfg.exclude)

    selected = set()
    for info in instruments:
        if info.status != universe_cfg.status:
            continue
        if universe_cfg.require_spot and not info.spot_allowed:
            continue
        if info.quote_asset != universe_cfg.quote_asset:
            continue
        if include_only and info.symbol not in include_only:
            continue
        if info.symbol in exclude:
            continue
        selected.add(info.symbol)

    return sorted(selected)


def resolve_universe(provider: DataProvider, universe_cfg: UniverseConfig) -> list[str]:
    """Fetch the instrument list and filter it to the eligible universe.

    No retries: a failure here is fatal to the run.

    Raises:
        TransportError: If the instrument list cannot be fetched
        DecodeError: If the instrument list is malformed
    """
    instruments = provider.fetch_instruments()
    symbols = filter_universe(instruments, universe_cfg)
    logger.info(
        f"Found {len(symbols)} {universe_cfg.quote_asset} spot pairs",
        extra={"source": provider.name},
    )
    return symbols

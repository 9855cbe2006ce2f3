"""Bounded-concurrency fan-out of per-instrument tasks."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Sequence

from breadth_index.core.logger import get_logger
from breadth_index.core.types import SymbolOutcome, TaskStatus

logger = get_logger(__name__)


def run_universe(
    instruments: Sequence[str],
    task: Callable[[str], SymbolOutcome],
    concurrency: int,
    progress_every: int = 50,
) -> list[SymbolOutcome]:
    """Run ``task`` for every instrument with at most ``concurrency`` in flight.

    Every instrument is attempted once; repeated ids are dropped so no
    instrument contributes twice. An exception escaping ``task`` is logged
    and recorded as a failed outcome; it never cancels the other tasks.
    Returns only after every task has finished.

    Args:
        instruments: Instrument ids to process
        task: Per-instrument callable, normally SymbolProcessor.process
        concurrency: Maximum number of concurrently running tasks
        progress_every: Log progress after this many completions

    Returns:
        One outcome per distinct instrument, in input order
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")

    instruments = list(dict.fromkeys(instruments))
    outcomes: dict[str, SymbolOutcome] = {}
    total = len(instruments)

    with ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="breadth") as executor:
        futures = {executor.submit(task, instrument): instrument for instrument in instruments}
        for done, future in enumerate(as_completed(futures), start=1):
            instrument = futures[future]
            try:
                outcome = future.result()
            except Exception as exc:
                logger.error(
                    f"Worker failed for {instrument}: {exc}",
                    extra={"instrument": instrument},
                    exc_info=True,
                )
                outcome = SymbolOutcome(instrument, TaskStatus.FAILED, message=str(exc))
            outcomes[instrument] = outcome

            if done % progress_every == 0 or done == total:
                logger.info(f"Progress: {done}/{total}")

    ordered = [outcomes[instrument] for instrument in instruments]
    failed = sum(1 for o in ordered if o.status == TaskStatus.FAILED)
    skipped = sum(1 for o in ordered if o.status == TaskStatus.SKIPPED)
    logger.info(
        f"Processed {total} instruments: {total - failed - skipped} succeeded, "
        f"{skipped} skipped, {failed} failed",
        extra={"succeeded": total - failed - skipped, "skipped": skipped, "failed": failed},
    )
    return ordered

"""Batch scanning with bounded concurrency.

Targets are split into consecutive chunks of ``concurrency_limit``. All
targets of a chunk are scanned concurrently and the next chunk starts only
once every scan of the current one has finished, so no more than
``concurrency_limit`` browser sessions are ever open at once. Outcomes keep
the input order of the targets.
"""
import asyncio
import logging
from typing import Callable, List, Optional, Sequence, TypeVar

from core.errors import ConfigurationError
from core.scanner import PageScanner
from models.fingerprint import FingerprintCatalog
from models.scan import BatchSummary, ScanOutcome, Target

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CONCURRENCY_LIMIT = 10


def chunked(items: Sequence[T], size: int) -> List[List[T]]:
    """Split ``items`` into consecutive lists of at most ``size`` elements."""
    if size < 1:
        raise ConfigurationError(f"Chunk size must be at least 1, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class ScanOrchestrator:
    def __init__(self, scanner: PageScanner, concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT,
                 should_continue: Optional[Callable[[], bool]] = None):
        """
        Args:
            scanner: Scans one target and turns its failures into outcomes
            concurrency_limit: Default chunk size for ``run_batch``
            should_continue: Checked before each chunk; returning False stops the batch
        """
        if concurrency_limit < 1:
            raise ConfigurationError(f"Concurrency limit must be at least 1, got {concurrency_limit}")
        self.scanner = scanner
        self.concurrency_limit = concurrency_limit
        self.should_continue = should_continue

    async def run_batch(self, targets: Sequence[Target], catalog: FingerprintCatalog,
                        concurrency_limit: Optional[int] = None) -> BatchSummary:
        limit = concurrency_limit if concurrency_limit is not None else self.concurrency_limit
        chunks = chunked(list(targets), limit)
        logger.info(f"Scanning {len(targets)} targets for {len(catalog)} competitors "
                    f"in {len(chunks)} chunks of up to {limit}")

        outcomes: List[ScanOutcome] = []
        for index, chunk in enumerate(chunks, start=1):
            if self.should_continue is not None and not self.should_continue():
                skipped = len(targets) - len(outcomes)
                logger.warning(f"Batch stopped before chunk {index}/{len(chunks)}, {skipped} targets not scanned")
                break

            logger.info(f"Starting chunk {index}/{len(chunks)} ({len(chunk)} targets)")
            # gather returns results in argument order, not completion order
            chunk_outcomes = await asyncio.gather(*(self.scanner.scan(t, catalog) for t in chunk))
            outcomes.extend(chunk_outcomes)

            failed = sum(1 for o in chunk_outcomes if not o.success)
            logger.info(f"Finished chunk {index}/{len(chunks)}: {len(chunk) - failed} succeeded, {failed} failed")

        summary = BatchSummary.from_outcomes(outcomes)
        logger.info(f"Batch complete: {summary.success_count}/{summary.total_targets} succeeded, "
                    f"{summary.failure_count} failed")
        return summary

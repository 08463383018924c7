"""
Batch Runner
============

Runs one engine call per buffer on a bounded thread pool.

Pool size = min(cpu count, jobs, memory ceiling / (largest buffer * 4)),
at least 1. The factor of 4 covers the float32 working copies an engine
holds per in-flight buffer. A failing job records its exception in its
BatchResult and never affects the others. Results come back in input order.

Usage:
    results = run_batch(buffers, lambda b: apply_tonal(b, options))
    for r in results:
        if r.ok:
            save(r.value)
"""

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

from pixelcore import config
from pixelcore.buffer import PixelBuffer

logger = logging.getLogger(__name__)

WORKING_COPIES = 4


@dataclass
class BatchResult:
    index: int
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def pool_size(buffers: Sequence[PixelBuffer], max_workers: Optional[int] = None,
              memory_ceiling_mb: Optional[int] = None) -> int:
    """Worker count bounded by cores, job count and the memory ceiling."""
    if not buffers:
        return 1
    workers = max_workers or config.MAX_WORKERS or os.cpu_count() or 1
    ceiling = (memory_ceiling_mb or config.MEMORY_CEILING_MB) * 1024 * 1024
    largest = max(b.nbytes for b in buffers)
    by_memory = ceiling // (largest * WORKING_COPIES)
    return max(1, min(workers, len(buffers), by_memory))


def run_batch(buffers: Sequence[PixelBuffer], operation: Callable[[PixelBuffer], Any],
              max_workers: Optional[int] = None,
              memory_ceiling_mb: Optional[int] = None) -> List[BatchResult]:
    """
    Apply `operation` to every buffer.

    Args:
        buffers: Input buffers
        operation: Callable taking one buffer (e.g. a functools.partial of an engine)
        max_workers: Upper bound on threads (default: config.MAX_WORKERS)
        memory_ceiling_mb: Memory ceiling for in-flight buffers

    Returns:
        One BatchResult per input, in input order
    """
    buffers = list(buffers)
    if not buffers:
        return []

    workers = pool_size(buffers, max_workers, memory_ceiling_mb)
    results: List[Optional[BatchResult]] = [None] * len(buffers)
    start = time.perf_counter()

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(operation, buffer): i for i, buffer in enumerate(buffers)}
        for future in as_completed(futures):
            index = futures[future]
            try:
                results[index] = BatchResult(index=index, value=future.result())
            except Exception as e:
                logger.warning("Batch job %d failed: %s", index, e)
                results[index] = BatchResult(index=index, error=e)

    failed = sum(1 for r in results if not r.ok)
    logger.info("Batch of %d done with %d workers in %.2fs (%d failed)",
                len(buffers), workers, time.perf_counter() - start, failed)
    return results

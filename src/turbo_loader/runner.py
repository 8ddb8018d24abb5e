"""Fan independent pack() calls out to worker processes, memoizing repeated jobs."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Hashable, Optional, Sequence

from turbo_loader.models import Box, Container, PackResult
from turbo_loader.packing.turbo import pack
from turbo_loader.packing.wall import SearchBudget

logger = logging.getLogger(__name__)

Job = tuple[Box, Container]


def cache_key(box: Box, container: Container) -> Hashable:
    """Box size (mm) and weight plus the container identity and size (mm)."""
    return (box.dims_mm(), box.weight, container.id, container.dims_mm())


def _pack_job(args: tuple[Box, Container, Optional[SearchBudget]]) -> PackResult:
    box, container, budget = args
    return pack(box, container, budget)


class ParallelPacker:
    """
    Runs many (box, container) jobs and remembers results across calls.

    workers=1 packs in the calling process; more workers use a
    ProcessPoolExecutor. Results are returned in job order.
    """

    def __init__(self, workers: int = 1, budget: Optional[SearchBudget] = None):
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.workers = workers
        self.budget = budget
        self._cache: dict[Hashable, PackResult] = {}

    def __len__(self) -> int:
        return len(self._cache)

    def pack_many(self, jobs: Sequence[Job]) -> list[PackResult]:
        keys = [cache_key(box, container) for box, container in jobs]

        pending: dict[Hashable, Job] = {}
        for key, job in zip(keys, jobs):
            if key not in self._cache and key not in pending:
                pending[key] = job

        if pending:
            t0 = time.perf_counter()
            if self.workers == 1 or len(pending) == 1:
                for key, (box, container) in pending.items():
                    self._cache[key] = pack(box, container, self.budget)
            else:
                with ProcessPoolExecutor(max_workers=min(self.workers, len(pending))) as executor:
                    futures = {
                        executor.submit(_pack_job, (box, container, self.budget)): key
                        for key, (box, container) in pending.items()
                    }
                    for future in as_completed(futures):
                        self._cache[futures[future]] = future.result()
            logger.info(
                "Packed %d new job(s) of %d in %.1f s with %d worker(s)",
                len(pending), len(jobs), time.perf_counter() - t0, self.workers,
            )

        return [self._cache[key] for key in keys]

    def pack_one(self, box: Box, container: Container) -> PackResult:
        return self.pack_many([(box, container)])[0]

"""
Bounded-concurrency job pool with a per-phase barrier
"""
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Iterable, Optional

from ..models import FileRecord
from ..utils.logging import vtrace, warn

Work = Callable[[FileRecord], int]


class JobPool:
    """
    Runs one work unit per file record on at most *limit* worker threads.

    submit() blocks while *limit* units are outstanding and resumes as soon
    as any one of them finishes. wait_all() is the barrier: it returns only
    after every submitted unit has finished, then reports whether all of
    them exited 0. Nothing is retried and nothing is cancelled.

    Only the submitting thread touches the in-flight set.
    """

    def __init__(self, limit: int):
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        self.limit = limit
        self._executor = ThreadPoolExecutor(max_workers=limit,
                                            thread_name_prefix="dropsy-job")
        self._in_flight: dict[Future, FileRecord] = {}
        self._failed: list[tuple[FileRecord, int]] = []
        self.failures: list[tuple[FileRecord, int]] = []

    @property
    def running(self) -> int:
        return len(self._in_flight)

    # ── submission ──────────────────────────────────────────────────────────

    def submit(self, item: FileRecord, work: Work):
        """Dispatch work(item); blocks first if the pool is at capacity."""
        while len(self._in_flight) >= self.limit:
            self._reap(wait(self._in_flight, return_when=FIRST_COMPLETED).done)
        fut = self._executor.submit(_run_unit, work, item)
        self._in_flight[fut] = item

    def wait_all(self) -> bool:
        """Barrier: block until every outstanding unit has finished."""
        if self._in_flight:
            self._reap(wait(self._in_flight).done)
        self.failures = self._failed
        self._failed = []
        return not self.failures

    def run_category(self, items: Iterable[FileRecord], work: Work,
                     before: Optional[Callable[[FileRecord], object]] = None) -> bool:
        """Submit every item (calling *before* first, if given), then barrier-wait."""
        for item in items:
            if before is not None:
                before(item)
            self.submit(item, work)
        return self.wait_all()

    def _reap(self, done):
        for fut in done:
            item = self._in_flight.pop(fut)
            status = fut.result()
            if status != 0:
                self._failed.append((item, status))

    # ── lifecycle ───────────────────────────────────────────────────────────

    def close(self):
        self._executor.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def _run_unit(work: Work, item: FileRecord) -> int:
    """Run one unit; an exception counts as exit status 1."""
    try:
        return int(work(item))
    except Exception as exc:
        warn(f"job for {item.path} raised: {exc}")
        vtrace()
        return 1


def run_category(items: Iterable[FileRecord], work: Work, limit: int) -> bool:
    """Run one change category to completion with at most *limit* jobs in flight."""
    with JobPool(limit) as pool:
        return pool.run_category(items, work)

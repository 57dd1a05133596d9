"""
Tests for the bounded job pool: capacity ceiling, completion-order
unblocking and the all-or-nothing barrier.
"""
import threading
import time
import unittest

from dropsy.core.job_pool import JobPool, run_category
from dropsy.models import FileRecord


def items(*names):
    return [FileRecord(f"/d/{n}", 1, 1) for n in names]


class TestCapacity(unittest.TestCase):

    def test_never_exceeds_limit(self):
        lock = threading.Lock()
        running = 0
        peak = 0

        def work(rec):
            nonlocal running, peak
            with lock:
                running += 1
                peak = max(peak, running)
            time.sleep(0.02)
            with lock:
                running -= 1
            return 0

        self.assertTrue(run_category(items(*"abcdefghij"), work, limit=3))
        self.assertLessEqual(peak, 3)
        self.assertGreaterEqual(peak, 2)

    def test_submit_unblocks_on_first_completion(self):
        """At capacity, a new unit starts when any running unit finishes, not the first submitted."""
        release_slow = threading.Event()
        started = []

        def work(rec):
            started.append(rec.path)
            if rec.path == "/d/slow":
                release_slow.wait(5)
            return 0

        with JobPool(2) as pool:
            pool.submit(items("slow")[0], work)
            pool.submit(items("fast")[0], work)
            # blocks only until "fast" completes, while "slow" is still running
            t0 = time.monotonic()
            pool.submit(items("next")[0], work)
            self.assertLess(time.monotonic() - t0, 2.0)
            self.assertLessEqual(pool.running, 2)
            release_slow.set()
            self.assertTrue(pool.wait_all())
        self.assertEqual(sorted(started), ["/d/fast", "/d/next", "/d/slow"])

    def test_invalid_limit(self):
        with self.assertRaises(ValueError):
            JobPool(0)


class TestBarrier(unittest.TestCase):

    def test_failure_reported_after_all_complete(self):
        """A failing unit does not short-circuit the barrier."""
        finished = set()
        lock = threading.Lock()

        def work(rec):
            if rec.path == "/d/b":
                status = 1
            else:
                time.sleep(0.05)
                status = 0
            with lock:
                finished.add(rec.path)
            return status

        with JobPool(3) as pool:
            ok = pool.run_category(items("a", "b", "c"), work)
            self.assertFalse(ok)
            self.assertEqual(finished, {"/d/a", "/d/b", "/d/c"})
            self.assertEqual([(r.path, s) for r, s in pool.failures], [("/d/b", 1)])

    def test_exception_counts_as_failure(self):
        def work(rec):
            raise OSError("boom")

        self.assertFalse(run_category(items("a"), work, limit=1))

    def test_all_success(self):
        with JobPool(2) as pool:
            self.assertTrue(pool.run_category(items("a", "b", "c"), lambda r: 0))
            self.assertEqual(pool.failures, [])

    def test_failures_reset_between_barriers(self):
        with JobPool(2) as pool:
            self.assertFalse(pool.run_category(items("a"), lambda r: 2))
            self.assertTrue(pool.run_category(items("b"), lambda r: 0))
            self.assertEqual(pool.failures, [])

    def test_before_hook_called_per_item_before_dispatch(self):
        order = []
        lock = threading.Lock()

        def before(rec):
            with lock:
                order.append(("before", rec.path))

        def work(rec):
            with lock:
                self.assertIn(("before", rec.path), order)
                order.append(("work", rec.path))
            return 0

        with JobPool(1) as pool:
            self.assertTrue(pool.run_category(items("a", "b"), work, before=before))
        self.assertEqual(len(order), 4)

    def test_empty_category(self):
        self.assertTrue(run_category([], lambda r: 1, limit=4))


if __name__ == "__main__":
    unittest.main()

"""
Tests for snapshot diffing: partition properties, first-run bootstrap and
the basic add/modify/delete scenarios.
"""
import random
import unittest

from dropsy.core.diff import diff
from dropsy.models import ChangeKind, FileRecord


def snap(*records):
    return {r.path: r for r in records}


def rec(path, mtime=100, size=10):
    return FileRecord(path, size, mtime)


def paths(records):
    return {r.path for r in records}


class TestDiffScenarios(unittest.TestCase):

    def test_empty_to_empty(self):
        changes = diff({}, {}, first_run=True)
        self.assertEqual(changes.total, 0)

    def test_first_run_adds_everything(self):
        now = snap(rec("/d/x.txt"))
        changes = diff({}, now, first_run=True)
        self.assertEqual(paths(changes.added), {"/d/x.txt"})
        self.assertEqual(changes.modified, [])
        self.assertEqual(changes.deleted, [])

    def test_first_run_ignores_overlap(self):
        """On first run every current record is added, even if prev knows it."""
        prev = snap(rec("/d/x.txt", mtime=1), rec("/d/y.txt"))
        now = snap(rec("/d/x.txt", mtime=2), rec("/d/y.txt"))
        changes = diff(prev, now, first_run=True)
        self.assertEqual(paths(changes.added), {"/d/x.txt", "/d/y.txt"})
        self.assertEqual(changes.modified, [])

    def test_modified_by_mtime(self):
        prev = snap(rec("/d/x.txt", mtime=100))
        now = snap(rec("/d/x.txt", mtime=200))
        changes = diff(prev, now)
        self.assertEqual(paths(changes.modified), {"/d/x.txt"})
        self.assertEqual(changes.added, [])
        self.assertEqual(changes.deleted, [])

    def test_size_change_with_same_mtime_is_not_detected(self):
        prev = snap(rec("/d/x.txt", mtime=100, size=10))
        now = snap(rec("/d/x.txt", mtime=100, size=3))
        self.assertEqual(diff(prev, now).total, 0)

    def test_deleted(self):
        prev = snap(rec("/d/x.txt"), rec("/d/y.txt"))
        now = snap(rec("/d/y.txt"))
        changes = diff(prev, now)
        self.assertEqual(paths(changes.deleted), {"/d/x.txt"})
        self.assertEqual(changes.added, [])
        self.assertEqual(changes.modified, [])

    def test_records_are_tagged_without_mutating_inputs(self):
        prev = snap(rec("/d/gone"), rec("/d/mod", mtime=1))
        now = snap(rec("/d/new"), rec("/d/mod", mtime=2))
        changes = diff(prev, now)
        self.assertEqual([r.change for r in changes.added], [ChangeKind.ADDED])
        self.assertEqual([r.change for r in changes.modified], [ChangeKind.MODIFIED])
        self.assertEqual([r.change for r in changes.deleted], [ChangeKind.DELETED])
        for s in (prev, now):
            for r in s.values():
                self.assertEqual(r.change, ChangeKind.NONE)

    def test_phase_order(self):
        changes = diff(snap(rec("/a")), snap(rec("/b")))
        self.assertEqual([k for k, _ in changes.phases()],
                         [ChangeKind.ADDED, ChangeKind.MODIFIED, ChangeKind.DELETED])


class TestDiffPartition(unittest.TestCase):
    """Randomised check that the three sets partition the path union correctly."""

    def _random_snapshot(self, rng, universe):
        chosen = rng.sample(universe, rng.randint(0, len(universe)))
        return snap(*(rec(p, mtime=rng.randint(1, 3)) for p in chosen))

    def test_partition(self):
        rng = random.Random(1234)
        universe = [f"/d/f{i}" for i in range(12)]
        for _ in range(200):
            a = self._random_snapshot(rng, universe)
            b = self._random_snapshot(rng, universe)
            changes = diff(a, b)
            added, modified, deleted = (paths(changes.added), paths(changes.modified),
                                        paths(changes.deleted))
            self.assertEqual(added, set(b) - set(a))
            self.assertEqual(deleted, set(a) - set(b))
            self.assertEqual(modified,
                             {p for p in set(a) & set(b) if a[p].mtime != b[p].mtime})
            self.assertFalse(added & modified)
            self.assertFalse(added & deleted)
            self.assertFalse(modified & deleted)

    def test_first_run_bootstrap(self):
        rng = random.Random(99)
        universe = [f"/d/f{i}" for i in range(8)]
        for _ in range(50):
            b = self._random_snapshot(rng, universe)
            changes = diff({}, b, first_run=True)
            self.assertEqual(paths(changes.added), set(b))
            self.assertEqual(changes.modified, [])
            self.assertEqual(changes.deleted, [])


if __name__ == "__main__":
    unittest.main()

"""
Snapshot diffing - decides what changed since the last committed scan
"""
from ..models import ChangeKind, ChangeSet, Snapshot


def diff(prev: Snapshot, now: Snapshot, first_run: bool = False) -> ChangeSet:
    """
    Compare two snapshots by path.

      added    : paths in *now* but not in *prev*  (all of *now* on first run)
      modified : paths in both whose mtime differs (never on first run)
      deleted  : paths in *prev* but not in *now*

    Size is deliberately not compared: a same-second truncation is missed.
    Neither input is mutated; returned records are tagged copies.
    """
    changes = ChangeSet()

    for path in sorted(now):
        rec = now[path]
        old = prev.get(path)
        if first_run or old is None:
            changes.added.append(rec.tagged(ChangeKind.ADDED))
        elif rec.mtime != old.mtime:
            changes.modified.append(rec.tagged(ChangeKind.MODIFIED))

    for path in sorted(prev):
        if path not in now:
            changes.deleted.append(prev[path].tagged(ChangeKind.DELETED))

    return changes

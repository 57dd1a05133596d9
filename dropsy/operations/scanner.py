"""
Local tree scanning into snapshots
"""
import os
import stat

from ..models import FileRecord, Snapshot
from ..utils.logging import vlog


def scan_tree(root: str) -> Snapshot:
    """
    Scan *root* depth-first into a self-contained snapshot.

    Hidden entries (leading '.') and symbolic links are skipped. A directory
    that cannot be opened contributes nothing; an entry that vanishes between
    listing and stat is skipped. Nesting depth is not limited by the Python
    stack.
    """
    result: Snapshot = {}
    pending = [root]

    while pending:
        current = pending.pop()
        try:
            with os.scandir(current) as it:
                entries = list(it)
        except OSError as exc:
            vlog(f"  [scan] skipping unreadable directory {current}: {exc}")
            continue

        subdirs: list[str] = []
        for entry in entries:
            if entry.name.startswith("."):
                continue
            try:
                st = entry.stat(follow_symlinks=False)
            except OSError:
                continue
            if stat.S_ISLNK(st.st_mode):
                continue
            if stat.S_ISDIR(st.st_mode):
                subdirs.append(entry.path)
            elif stat.S_ISREG(st.st_mode):
                result[entry.path] = FileRecord(entry.path, st.st_size, int(st.st_mtime))

        # reversed so the first subdirectory is visited next
        pending.extend(reversed(subdirs))

    return result


def scan(directories: list[str]) -> Snapshot:
    """Scan every configured root independently and combine the results."""
    now: Snapshot = {}
    for root in directories:
        part = scan_tree(root)
        vlog(f"[scan] {root}: {len(part)} file(s)")
        now.update(part)
    return now

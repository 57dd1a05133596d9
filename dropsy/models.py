"""
Data model: file records, snapshots, change sets and monitor configuration
"""
import enum
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterator, Optional


class ChangeKind(enum.IntEnum):
    NONE = 0
    ADDED = 1
    DELETED = 2
    MODIFIED = 3


@dataclass(frozen=True)
class FileRecord:
    """One regular file as seen by a scan or read back from a state file."""

    path: str
    size: int
    mtime: int
    change: ChangeKind = ChangeKind.NONE

    def tagged(self, kind: ChangeKind) -> "FileRecord":
        """Return a copy carrying *kind*; snapshots at rest stay untagged."""
        return replace(self, change=kind)

    def as_tuple(self) -> tuple[str, int, int]:
        return self.path, self.mtime, self.size


# path -> FileRecord; the mapping itself guarantees uniqueness by path
Snapshot = dict[str, FileRecord]


@dataclass
class ChangeSet:
    added: list[FileRecord] = field(default_factory=list)
    modified: list[FileRecord] = field(default_factory=list)
    deleted: list[FileRecord] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.added) + len(self.modified) + len(self.deleted)

    def phases(self) -> Iterator[tuple[ChangeKind, list[FileRecord]]]:
        """Yield the change categories in dispatch order. Never reorder."""
        yield ChangeKind.ADDED, self.added
        yield ChangeKind.MODIFIED, self.modified
        yield ChangeKind.DELETED, self.deleted


@dataclass
class MonitorConfig:
    directories: list[str]
    username: str
    hostname: str
    password: Optional[str] = None
    parallelism: int = 1
    state_file: Optional[Path] = None
    poll_interval: int = 0
    port: int = 22
    ssh_key: Optional[str] = None
    remote_root: Optional[str] = None
    dry_run: bool = False
    force: bool = False

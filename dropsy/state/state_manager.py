"""
State file management (last committed snapshot, persistent across runs)

On-disk format, one record per line:

    <absolute path>\t<mtime epoch seconds>\t<size bytes>

Lines starting with '#' are comments. Records are separated by '\\n' only.
A path that itself contains a tab or a newline cannot be represented; it is
left out of the file and is seen as added again on the next run.
"""
import os
from pathlib import Path
from typing import Optional

from ..config import PROGRAM_NAME
from ..errors import StoreError
from ..models import FileRecord, Snapshot
from ..utils.logging import vlog


def _to_int(raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        return 0


def load_state(path: Path) -> Optional[Snapshot]:
    """
    Read a snapshot back from *path*.
    Returns None when the file does not exist (first run).
    Lines missing either tab separator are skipped.
    """
    try:
        with open(path, "r", encoding="utf-8", errors="surrogateescape", newline="\n") as f:
            lines = [line[:-1] if line.endswith("\n") else line for line in f]
    except FileNotFoundError:
        return None

    result: Snapshot = {}
    for line in lines:
        if line.startswith("#"):
            continue
        file_path, sep, rest = line.partition("\t")
        if not sep:
            continue
        mtime_raw, sep, size_raw = rest.partition("\t")
        if not sep or not file_path:
            continue
        result[file_path] = FileRecord(file_path, _to_int(size_raw), _to_int(mtime_raw))
    return result


def save_state(path: Path, snapshot: Snapshot, header: Optional[str] = None):
    """
    Overwrite *path* with *snapshot*. Written in place; any failure is a
    StoreError and is not retried.
    """
    lines = []
    if header:
        lines.append(f"# {header}\n")
    for p in sorted(snapshot):
        rec = snapshot[p]
        if "\t" in rec.path or "\n" in rec.path:
            vlog(f"[state] cannot record {rec.path!r}, skipped")
            continue
        lines.append(f"{rec.path}\t{rec.mtime}\t{rec.size}\n")
    try:
        with open(path, "w", encoding="utf-8", errors="surrogateescape", newline="\n") as f:
            f.writelines(lines)
    except OSError as exc:
        raise StoreError(f"cannot write state file {path}: {exc}") from exc


# ══════════════════════════════════════════════════════════════════════════════
#  STATE FILE LOCATION  ── <home>/.dropsy/<fingerprint>
# ══════════════════════════════════════════════════════════════════════════════

def home_dir() -> Path:
    """Home directory from the environment, falling back to Path.home()."""
    if os.name == "nt":
        candidates = ("HOMEPATH", "USERPROFILE")
    else:
        candidates = ("HOME",)
    for var in candidates:
        value = os.environ.get(var)
        if value:
            return Path(value)
    return Path.home()


def get_state_dir(home: Optional[Path] = None) -> Path:
    return Path(home or home_dir()) / f".{PROGRAM_NAME}"


def fingerprint(username: str, hostname: str, path: str) -> str:
    """Hex encoding of 'username:hostname:path'; reversible, not a hash."""
    if ":" in username:
        raise ValueError(f"user name may not contain ':': {username!r}")
    return f"{username}:{hostname}:{path}".encode("utf-8", "surrogateescape").hex()


def identity_from_fingerprint(fp: str) -> tuple[str, str, str]:
    """Inverse of fingerprint(). Raises ValueError for foreign file names."""
    text = bytes.fromhex(fp).decode("utf-8", "surrogateescape")
    username, sep1, rest = text.partition(":")
    hostname, sep2, path = rest.partition(":")
    if not (sep1 and sep2):
        raise ValueError(f"not a {PROGRAM_NAME} fingerprint: {fp}")
    return username, hostname, path


def state_file_for(username: str, hostname: str, path: str,
                   home: Optional[Path] = None) -> Path:
    """Return the state file for a target, creating the state directory if needed."""
    state_dir = get_state_dir(home)
    try:
        state_dir.mkdir(mode=0o755, parents=True, exist_ok=True)
    except OSError as exc:
        raise StoreError(f"cannot create state directory {state_dir}: {exc}") from exc
    return state_dir / fingerprint(username, hostname, path)


def list_state_files(home: Optional[Path] = None) -> list[tuple[Path, tuple[str, str, str]]]:
    """Every state file under the state directory with its decoded identity."""
    state_dir = get_state_dir(home)
    if not state_dir.is_dir():
        return []
    found = []
    for p in sorted(state_dir.iterdir()):
        if not p.is_file():
            continue
        try:
            found.append((p, identity_from_fingerprint(p.name)))
        except ValueError:
            continue
    return found

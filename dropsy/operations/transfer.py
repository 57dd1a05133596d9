"""
Transfer operations: the per-file work units dispatched by the job pool

Every operation returns an exit status: 0 on success, non-zero on failure.
"""
import os
import posixpath
from typing import Optional

import paramiko

from ..core.ssh_manager import SSHManager
from ..errors import ConfigError
from ..utils.logging import log, vlog, warn


class SFTPTransport:
    """
    Uploads and deletes single files over SFTP.

    Each watched directory maps to <remote_root>/<basename of directory>;
    with no remote_root that is relative to the SFTP login directory. Two
    watched directories with the same basename would share one remote
    directory and are rejected with ConfigError.
    """

    def __init__(self, mgr: SSHManager, directories: list[str],
                 remote_root: Optional[str] = None):
        self.mgr = mgr
        base = (remote_root or "").rstrip("/")
        self._roots: list[tuple[str, str]] = []
        claimed: dict[str, str] = {}
        for d in directories:
            name = os.path.basename(d.rstrip(os.sep)) or "root"
            remote = posixpath.join(base, name) if base else name
            if claimed.get(remote) == d:
                continue
            if remote in claimed:
                raise ConfigError(
                    f"{claimed[remote]} and {d} would both sync to remote {remote!r}; "
                    f"rename one of them"
                )
            claimed[remote] = d
            self._roots.append((d.rstrip(os.sep) + os.sep, remote))
        # deepest local root first so nested roots resolve correctly
        self._roots.sort(key=lambda r: len(r[0]), reverse=True)

    def authenticate(self) -> bool:
        return self.mgr.authenticate()

    def remote_path_for(self, path: str) -> str:
        for local_root, remote_root in self._roots:
            if path.startswith(local_root):
                rel = os.path.relpath(path, local_root)
                return posixpath.join(remote_root, *rel.split(os.sep))
        raise ValueError(f"{path} is not under any watched directory")

    def remote_add(self, path: str) -> int:
        """Upload *path*, creating parent directories and restoring its mtime."""
        try:
            remote = self.remote_path_for(path)
            self.mgr.sftp_makedirs(posixpath.dirname(remote))
            self.mgr.sftp_put(path, remote)
            self.mgr.sftp_utime(remote, int(os.stat(path).st_mtime))
        except (OSError, ValueError, paramiko.SSHException) as exc:
            warn(f"upload failed: {path}: {exc}")
            return 1
        vlog(f"  [PUSH ✓] {path} → {remote}")
        return 0

    def remote_delete(self, path: str) -> int:
        """Delete the remote copy of *path*; already gone counts as done."""
        try:
            remote = self.remote_path_for(path)
            self.mgr.sftp_remove(remote)
        except FileNotFoundError:
            vlog(f"  [DEL-REMOTE] {path} already absent")
            return 0
        except (OSError, ValueError, paramiko.SSHException) as exc:
            warn(f"remote delete failed: {path}: {exc}")
            return 1
        vlog(f"  [DEL-REMOTE ✓] {path} → {remote}")
        return 0

    def clear_credentials(self):
        self.mgr.clear_password()

    def close(self):
        self.mgr.disconnect()


class DryRunTransport:
    """Logs what would be transferred; every operation succeeds."""

    def authenticate(self) -> bool:
        return True

    def remote_add(self, path: str) -> int:
        log(f"  [PUSH-DRY] {path}")
        return 0

    def remote_delete(self, path: str) -> int:
        log(f"  [DEL-REMOTE-DRY] {path}")
        return 0

    def clear_credentials(self):
        pass

    def close(self):
        pass

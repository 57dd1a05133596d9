"""
SSH connection manager: one authenticated transport, one SFTP channel per thread
"""
import posixpath
import threading
from typing import Optional

import paramiko

from .. import config as _cfg
from ..errors import DropsyError
from ..utils.logging import log, vlog


class SSHManager:
    """
    Wraps paramiko SSHClient.
    The transport is shared; every worker thread lazily opens its own
    SFTPClient over it so concurrent jobs never share a channel.
    Sends SSH keep-alives to reduce mid-transfer drops.
    """

    def __init__(self, hostname: str, username: str, password: Optional[str] = None,
                 port: int = _cfg.SSH_PORT, key_filename: Optional[str] = None):
        self.hostname = hostname
        self.username = username
        self.port = port
        self.key_filename = key_filename
        self._password = password
        self._ssh: Optional[paramiko.SSHClient] = None
        self._local = threading.local()
        self._channels: list[paramiko.SFTPClient] = []
        self._lock = threading.Lock()

    # ── connection ─────────────────────────────────────────────────────────

    def authenticate(self) -> bool:
        """
        Connect and log in. False if the server rejects the credentials;
        any other SSH-level failure is a DropsyError.
        """
        log(f"[SSH] connecting to {self.username}@{self.hostname}:{self.port} …")
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        kw: dict = dict(hostname=self.hostname, port=self.port, username=self.username,
                        timeout=_cfg.CONNECT_TIMEOUT, banner_timeout=30, auth_timeout=30)
        if self.key_filename:
            kw["key_filename"] = self.key_filename
        if self._password:
            kw["password"] = self._password

        try:
            client.connect(**kw)
        except paramiko.AuthenticationException as exc:
            client.close()
            vlog(f"[SSH] authentication failed: {exc}")
            return False
        except paramiko.SSHException as exc:
            client.close()
            raise DropsyError(f"SSH connection to {self.hostname}:{self.port} failed: {exc}") from exc

        client.get_transport().set_keepalive(_cfg.KEEPALIVE_INTERVAL)
        self._ssh = client
        log("[SSH] connected ✓")
        return True

    def clear_password(self):
        self._password = None

    def disconnect(self):
        with self._lock:
            channels, self._channels = self._channels, []
        for sftp in channels:
            try:
                sftp.close()
            except (OSError, EOFError, paramiko.SSHException) as exc:
                vlog(f"[SSH] error closing sftp channel: {exc}")
        if self._ssh:
            self._ssh.close()
            self._ssh = None
            log("[SSH] disconnected.")

    def _sftp(self) -> paramiko.SFTPClient:
        if self._ssh is None:
            raise RuntimeError("SSHManager used before authenticate()")
        sftp = getattr(self._local, "sftp", None)
        if sftp is None:
            sftp = self._ssh.open_sftp()
            self._local.sftp = sftp
            with self._lock:
                self._channels.append(sftp)
        return sftp

    # ── sftp ops ────────────────────────────────────────────────────────────

    def sftp_put(self, local: str, remote: str):
        self._sftp().put(local, remote)

    def sftp_remove(self, remote: str):
        self._sftp().remove(remote)

    def sftp_utime(self, remote: str, mtime: int):
        self._sftp().utime(remote, (mtime, mtime))

    def sftp_exists(self, remote: str) -> bool:
        try:
            self._sftp().stat(remote)
            return True
        except FileNotFoundError:
            return False

    def sftp_makedirs(self, remote_dir: str):
        """mkdir -p; tolerates another job creating the same directory first."""
        if remote_dir in ("", "/", "."):
            return
        sftp = self._sftp()
        if self.sftp_exists(remote_dir):
            return
        self.sftp_makedirs(posixpath.dirname(remote_dir.rstrip("/")))
        try:
            sftp.mkdir(remote_dir)
        except IOError:
            if not self.sftp_exists(remote_dir):
                raise

"""
Watch controller - scan, diff, dispatch and persist, once or in a poll loop
"""
import enum
import os
import signal
import threading
import time
from pathlib import Path
from typing import Callable, Optional

from .. import config as _cfg
from ..errors import ConfigError, NotInitializedError, TransferError
from ..models import ChangeKind, ChangeSet, FileRecord, MonitorConfig, Snapshot
from ..operations.scanner import scan
from ..state.state_manager import load_state, save_state, state_file_for
from ..utils.logging import log, vlog
from .diff import diff
from .job_pool import JobPool

Callback = Callable[[FileRecord], object]

# longest a signal-driven stop can go unnoticed during the poll sleep
_WAKE_SLICE = 0.5


class MonitorState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    WATCHING = "watching"
    STOPPED = "stopped"


class Monitor:
    """
    Owns the configuration and the previous/current snapshot pair.

    One watch() call is one complete cycle; cycles never overlap. A stop
    request (signal or request_stop()) is honoured at the next cycle
    boundary, never in the middle of a dispatch phase.
    """

    def __init__(self, transport=None):
        self.transport = transport
        self.config: Optional[MonitorConfig] = None
        self.state = MonitorState.UNINITIALIZED
        self.first_run = False
        self._prev: Optional[Snapshot] = None
        self._loaded = False
        self._stop = threading.Event()
        self._callbacks: dict[ChangeKind, Callback] = {}
        self._old_handlers: dict[int, object] = {}
        self._signum: Optional[int] = None

    # ── setup ───────────────────────────────────────────────────────────────

    def init(self, config: MonitorConfig, install_signals: bool = True):
        if not config.directories:
            raise ConfigError("no directories to watch")
        if len(config.directories) > _cfg.DIRS_MAX:
            raise ConfigError(f"too many directories: {len(config.directories)} > {_cfg.DIRS_MAX}")
        if config.parallelism < 1:
            raise ConfigError(f"parallelism must be >= 1, got {config.parallelism}")

        directories = []
        for d in config.directories:
            if not os.path.exists(d):
                raise ConfigError(f"{d}: does directory exist? check permissions.")
            if not os.path.isdir(d):
                raise ConfigError(f"{d}: not a directory.")
            directories.append(os.path.realpath(d))
        config.directories = directories

        if config.state_file is None:
            config.state_file = state_file_for(
                config.username, config.hostname, os.pathsep.join(directories)
            )
        self.config = config

        if install_signals:
            self.install_signal_handlers()

        self.state = MonitorState.INITIALIZED
        vlog(f"[init] watching {len(directories)} dir(s), state file {config.state_file}")

    def callback_set(self, kind: ChangeKind, func: Optional[Callback]):
        """Register an observer called with each record before its job is dispatched."""
        if kind not in (ChangeKind.ADDED, ChangeKind.MODIFIED, ChangeKind.DELETED):
            raise ValueError(f"no callback slot for {kind!r}")
        if func is None:
            self._callbacks.pop(kind, None)
        else:
            self._callbacks[kind] = func

    # ── stop handling ───────────────────────────────────────────────────────

    def install_signal_handlers(self):
        """Turn SIGINT/SIGTERM into a stop request. Main thread only."""
        if threading.current_thread() is not threading.main_thread():
            return
        for sig in (signal.SIGINT, signal.SIGTERM):
            if sig not in self._old_handlers:
                self._old_handlers[sig] = signal.signal(sig, self._on_signal)

    def _on_signal(self, signum, frame):
        # runs between bytecodes of the main thread; must not log or take locks
        self._signum = signum

    def request_stop(self):
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._signum is not None or self._stop.is_set()

    def _sleep(self, seconds: float):
        """Sleep up to *seconds*, returning early once a stop is requested."""
        deadline = time.monotonic() + seconds
        while not self.stopped:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            self._stop.wait(min(remaining, _WAKE_SLICE))

    # ── cycle ───────────────────────────────────────────────────────────────

    def _ensure_loaded(self):
        if self._loaded:
            return
        self._loaded = True
        if self.config.force:
            log("[state] --force: ignoring stored state")
            self._prev = None
        else:
            self._prev = load_state(self.config.state_file)
        if self._prev is None:
            self.first_run = True
            log("[state] no previous state, initial transfer of every file")
        else:
            vlog(f"[state] {len(self._prev)} file(s) in previous state")

    def watch(self) -> ChangeSet:
        """Run one scan-diff-dispatch-persist cycle."""
        if self.state not in (MonitorState.INITIALIZED, MonitorState.WATCHING):
            raise NotInitializedError("monitor is not initialized")
        if self.transport is None:
            raise ConfigError("no transport configured for the monitor")
        self.state = MonitorState.WATCHING
        self._ensure_loaded()

        now = scan(self.config.directories)
        changes = diff(self._prev or {}, now, self.first_run)
        self._dispatch(changes)

        if changes.total:
            log(f"total of {changes.total} actions")
            if not self.config.dry_run:
                save_state(self.config.state_file, now, header=self._state_header())
        self._prev = now
        self.first_run = False
        return changes

    def _dispatch(self, changes: ChangeSet):
        """Run the phases strictly in order, each behind its own barrier."""
        work = {
            ChangeKind.ADDED: self.transport.remote_add,
            ChangeKind.MODIFIED: self.transport.remote_add,
            ChangeKind.DELETED: self.transport.remote_delete,
        }
        with JobPool(self.config.parallelism) as pool:
            for kind, records in changes.phases():
                if not records:
                    continue
                before = self._announcer(kind)
                ok = pool.run_category(records, lambda rec, fn=work[kind]: fn(rec.path),
                                       before=before)
                if not ok:
                    failed = ", ".join(r.path for r, _ in pool.failures)
                    raise TransferError(
                        f"transfer error in {kind.name.lower()} phase ({failed}). "
                        f"Test network and retry!",
                        pool.failures,
                    )

    def _announcer(self, kind: ChangeKind) -> Callback:
        callback = self._callbacks.get(kind)
        label = {
            ChangeKind.ADDED: "init" if self.first_run else "add",
            ChangeKind.MODIFIED: "mod",
            ChangeKind.DELETED: "del",
        }[kind]

        def before(rec: FileRecord):
            if callback is not None:
                callback(rec)
            log(f"{label} file : {rec.path}")

        return before

    def _state_header(self) -> str:
        return (f"{_cfg.PROGRAM_NAME} state for {self.config.username}@"
                f"{self.config.hostname}:{os.pathsep.join(self.config.directories)}")

    # ── loop ────────────────────────────────────────────────────────────────

    def monitor(self, poll_interval: Optional[int] = None) -> int:
        """
        Repeat watch() every *poll_interval* seconds until stopped.
        An interval of 0 runs exactly one cycle. Returns the number of cycles.
        """
        interval = poll_interval
        if interval is None:
            interval = self.config.poll_interval if self.config else 0
        cycles = 0
        while True:
            self.watch()
            cycles += 1
            if not interval or self.stopped:
                break
            self._sleep(interval)
            if self.stopped:
                break
        if self._signum is not None:
            log(f"[signal] {signal.Signals(self._signum).name} received, stopped after cycle {cycles}")
        return cycles

    # ── shutdown ────────────────────────────────────────────────────────────

    def shutdown(self):
        """Zero credentials, release the transport and restore signal handlers."""
        if self.state is MonitorState.STOPPED:
            return
        if self.config is not None:
            self.config.password = None
        if self.transport is not None:
            self.transport.clear_credentials()
            self.transport.close()
        for sig, handler in self._old_handlers.items():
            signal.signal(sig, handler)
        self._old_handlers.clear()
        self.state = MonitorState.STOPPED

    @property
    def state_file(self) -> Optional[Path]:
        return self.config.state_file if self.config else None

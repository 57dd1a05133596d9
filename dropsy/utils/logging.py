"""
Console logging for dropsy.

Every line goes to stdout with an ``[HH:MM:SS]`` prefix. Job threads log
concurrently, so writes are serialised to keep lines whole.
"""
import sys
import threading
import traceback
from datetime import datetime

_verbose = False
_lock = threading.Lock()


def set_verbose(verbose: bool):
    global _verbose
    _verbose = verbose


def _emit(msg: str):
    ts = datetime.now().strftime("%H:%M:%S")
    with _lock:
        sys.stdout.write(f"[{ts}] {msg}\n")
        sys.stdout.flush()


def log(msg: str):
    """Timestamped progress line."""
    _emit(msg)


def vlog(msg: str):
    """Like log(), but only with -v."""
    if _verbose:
        _emit(msg)


def warn(msg: str):
    _emit(f"⚠  {msg}")


def vtrace():
    """Dump the exception being handled, only with -v."""
    if _verbose:
        with _lock:
            traceback.print_exc(file=sys.stdout)
            sys.stdout.flush()

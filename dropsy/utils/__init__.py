"""Utilities (logging)"""
from .logging import log, set_verbose, vlog, vtrace, warn

__all__ = ["log", "vlog", "warn", "vtrace", "set_verbose"]

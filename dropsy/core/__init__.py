"""Core functionality"""
from .ssh_manager import SSHManager
from .diff import diff
from .job_pool import JobPool, run_category
from .monitor import Monitor, MonitorState

__all__ = ["SSHManager", "diff", "JobPool", "run_category", "Monitor", "MonitorState"]

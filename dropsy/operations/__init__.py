"""Operations (scan, transfer)"""
from .scanner import scan, scan_tree
from .transfer import SFTPTransport, DryRunTransport

__all__ = ["scan", "scan_tree", "SFTPTransport", "DryRunTransport"]

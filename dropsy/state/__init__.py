"""State management (snapshot store)"""
from .state_manager import (
    load_state, save_state, state_file_for, fingerprint,
    identity_from_fingerprint, list_state_files,
)

__all__ = [
    "load_state", "save_state", "state_file_for", "fingerprint",
    "identity_from_fingerprint", "list_state_files",
]

"""
Error types for dropsy

Every fatal condition carries the process exit code the CLI terminates with.
"""

EXIT_FATAL = 1 << 7
EXIT_UNINITIALIZED = 1 << 0
EXIT_STATE_WRITE = 1 << 4
EXIT_TRANSFER = 1


class DropsyError(Exception):
    """Base class for all fatal dropsy errors."""

    exit_code = EXIT_FATAL


class ConfigError(DropsyError):
    """Invalid target, missing/non-directory path or too many directories."""


class AuthenticationError(DropsyError):
    """The remote host rejected our credentials."""


class NotInitializedError(DropsyError):
    """A watch cycle was requested before the monitor was initialized."""

    exit_code = EXIT_UNINITIALIZED


class TransferError(DropsyError):
    """One or more transfer jobs in a phase exited non-zero."""

    exit_code = EXIT_TRANSFER

    def __init__(self, msg: str, failures=None):
        super().__init__(msg)
        self.failures = list(failures or [])


class StoreError(DropsyError):
    """The state file could not be written."""

    exit_code = EXIT_STATE_WRITE

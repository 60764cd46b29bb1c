"""
Exceptions raised by Sortify.

Per-file failures never leave the sort engine; only configuration and
startup problems surface to callers.
"""


class SortifyError(Exception):
    """Base class for all Sortify errors."""


class ConfigError(SortifyError):
    """The config file could not be read or has the wrong shape."""


class WatchTargetError(SortifyError):
    """The watched folder is missing or cannot be observed."""

    def __init__(self, folder, reason: str):
        self.folder = folder
        self.reason = reason
        super().__init__(f"Cannot watch {folder}: {reason}")

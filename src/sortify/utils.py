"""
Shared utilities for Sortify.

This module provides:
- Logging setup
- File name helpers (extension, collision-free destination)
- Lock detection for move errors
"""

import errno
import logging
import sys
from pathlib import Path
from typing import Optional

from . import config

# =============================================================================
# LOGGING
# =============================================================================


def setup_logging(
    name: str = "sortify",
    verbose: bool = False,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Set up logging with file and console handlers.

    Args:
        name: Logger name
        verbose: If True, set DEBUG level; otherwise INFO
        log_file: Log file path (defaults to config.LOG_FILE)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")

    # File handler
    try:
        file_handler = logging.FileHandler(log_file or config.LOG_FILE)
    except OSError as e:
        print(f"Cannot open log file: {e}", file=sys.stderr)
    else:
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


# =============================================================================
# FILE OPERATIONS
# =============================================================================


def get_extension(file_path: Path) -> str:
    """
    Extension with its leading dot, or "" if the name has none.

    Everything from the last dot counts, so ".pdf" and ".bashrc" are
    their own extensions. A trailing dot ("notes.") means no extension.
    """
    name = Path(file_path).name
    dot = name.rfind(".")
    if dot < 0 or dot == len(name) - 1:
        return ""
    return name[dot:]


def get_unique_path(destination: Path) -> Path:
    """
    Get a free file path by adding a " (N)" counter if the file exists.

    report.pdf -> report (1).pdf -> report (2).pdf ...

    Args:
        destination: Desired destination path

    Returns:
        Unique path (original or with counter before the extension)
    """
    if not destination.exists():
        return destination

    suffix = get_extension(destination)
    stem = destination.name[:len(destination.name) - len(suffix)]
    parent = destination.parent

    counter = 1
    while True:
        new_path = parent / f"{stem} ({counter}){suffix}"
        if not new_path.exists():
            return new_path
        counter += 1


# Windows sharing/lock violations
_WINERROR_LOCKED = {32, 33}
_ERRNO_LOCKED = {errno.EBUSY, getattr(errno, "ETXTBSY", errno.EBUSY)}


def is_file_locked_error(error: OSError) -> bool:
    """True if the error means another process still has the file open."""
    if getattr(error, "winerror", None) in _WINERROR_LOCKED:
        return True
    return error.errno in _ERRNO_LOCKED

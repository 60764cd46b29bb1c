"""
Unified configuration for Sortify.

This module centralizes paths and settings, and reads/writes the JSON
config file that holds the user's sorting rules.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Tuple

from sortify.exceptions import ConfigError
from sortify.rules import RuleSet, SortingRule

logger = logging.getLogger(__name__)

# =============================================================================
# BASE PATHS
# =============================================================================

HOME = Path.home()

# Folder to watch
DOWNLOADS_FOLDER = HOME / "Downloads"

# User settings
CONFIG_DIR = HOME / ".config/sortify"
CONFIG_FILE = CONFIG_DIR / "config.json"

# =============================================================================
# DEFAULT RULES
# =============================================================================

DEFAULT_RULES: List[Tuple[str, str]] = [
    (".pdf", "Documents"),
    (".docx", "Documents"),
    (".doc", "Documents"),
    (".txt", "Documents"),
    (".jpg", "Images"),
    (".png", "Images"),
    (".jpeg", "Images"),
    (".gif", "Images"),
    (".zip", "Archives"),
    (".rar", "Archives"),
    (".exe", "Executables"),
    (".msi", "Executables"),
]

# =============================================================================
# WATCHER CONFIGURATION
# =============================================================================

# Wait before moving so the downloading process can release the file
LOCK_GRACE_SECONDS = 0.5

# How long shutdown waits for the handler thread
SHUTDOWN_TIMEOUT = 2.0

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

LOG_FILE = HOME / "sortify.log"


# =============================================================================
# CONFIG FILE
# =============================================================================


def normalize_rules(entries: Iterable[Tuple[Optional[str], Optional[str]]]) -> List[SortingRule]:
    """
    Turn raw (extension, folder) pairs into rules.

    Pairs with a blank extension or folder are skipped, as are folders
    that would leave the watched folder. A missing leading dot is added
    to the extension.

    Args:
        entries: (extension, folder name) pairs, e.g. rows of a settings form

    Returns:
        List of valid rules, in input order
    """
    rules = []
    for ext, folder in entries:
        ext = (ext or "").strip()
        folder = (folder or "").strip()
        if not ext or not folder:
            continue
        if not ext.startswith("."):
            ext = "." + ext
        if ext == ".":
            continue
        try:
            rules.append(SortingRule(ext, folder))
        except ValueError as e:
            logger.warning(f"Skipping rule {ext} -> {folder}: {e}")
    return rules


def rule_set_from_dict(data: Mapping) -> RuleSet:
    """Build a RuleSet from parsed config JSON."""
    if not isinstance(data, Mapping):
        raise ConfigError("Config root must be a JSON object")

    enabled = data.get("enabled", True)
    if not isinstance(enabled, bool):
        raise ConfigError(f"'enabled' must be true or false, got {enabled!r}")

    raw_rules = data.get("rules", [])
    if not isinstance(raw_rules, list):
        raise ConfigError("'rules' must be a list")

    entries = []
    for item in raw_rules:
        if not isinstance(item, Mapping):
            raise ConfigError(f"Rule must be an object, got {item!r}")
        entries.append((item.get("extension"), item.get("folder")))

    return RuleSet(enabled=enabled, rules=tuple(normalize_rules(entries)))


def rule_set_to_dict(rule_set: RuleSet) -> dict:
    """Serialize a RuleSet to the config JSON layout."""
    return {
        "enabled": rule_set.enabled,
        "rules": [
            {"extension": rule.extension, "folder": rule.folder_name}
            for rule in rule_set.rules
        ],
    }


def read_config(path: Path) -> RuleSet:
    """
    Read a config file strictly.

    Args:
        path: Config file path

    Returns:
        RuleSet described by the file

    Raises:
        ConfigError: If the file can't be read or isn't a valid config
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file {path}: {e}") from e

    return rule_set_from_dict(data)


def load_config(path: Optional[Path] = None) -> RuleSet:
    """
    Load the rule set, falling back to defaults.

    A missing file gives the default rules. A broken file is logged and
    also gives the defaults, so the watcher can always start.
    """
    path = Path(path) if path else CONFIG_FILE

    if not path.exists():
        logger.debug(f"No config file at {path}, using default rules")
        return RuleSet.default()

    try:
        return read_config(path)
    except ConfigError as e:
        logger.warning(f"{e} - using default rules")
        return RuleSet.default()


def save_config(rule_set: RuleSet, path: Optional[Path] = None) -> Path:
    """
    Write the rule set to the config file.

    The file is written next to the target and renamed into place, so a
    running watcher never reads a half-written config.

    Returns:
        Path that was written
    """
    path = Path(path) if path else CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=".config-", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(rule_set_to_dict(rule_set), f, indent=2)
            f.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.debug(f"Saved config to {path}")
    return path

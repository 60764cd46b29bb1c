"""
Sort engine - decides where a new file goes and moves it there.

WHAT IT DOES (once per file event):
    1. Skips paths that no longer exist (already moved, temp files)
    2. Skips everything while sorting is disabled
    3. Looks up the rule for the file's extension
    4. Creates the destination folder if needed
    5. Picks a free name: "name.ext", "name (1).ext", ...
    6. Waits a short grace period so the writer can release the file
    7. Moves the file, leaving locked files where they are

Nothing that goes wrong with one file is raised to the caller, so the
event loop keeps running.
"""

import enum
import logging
import shutil
import time
from pathlib import Path
from typing import Iterable, NamedTuple, Optional, Union

from sortify import config
from sortify import utils
from sortify.rules import LiveRules, RuleSet

logger = logging.getLogger(__name__)


class EventKind(enum.Enum):
    CREATED = "created"
    RENAMED = "renamed"


class FileEvent(NamedTuple):
    """A file appeared in the watched folder (for renames, the new path)."""

    kind: EventKind
    path: Path


class SortEngine:
    """
    Moves files from the watched folder into per-extension subfolders.

    The engine keeps no per-file state; the only shared data is the
    LiveRules holder, which settings updates replace atomically.
    """

    def __init__(
        self,
        root: Union[str, Path],
        rules: Union[RuleSet, LiveRules, None] = None,
        lock_grace_period: float = config.LOCK_GRACE_SECONDS,
    ):
        self.root = Path(root).expanduser().absolute()
        if isinstance(rules, LiveRules):
            self.rules = rules
        else:
            self.rules = LiveRules(rules if rules is not None else RuleSet.default())
        self.lock_grace_period = lock_grace_period

    def handle(self, event: FileEvent) -> Optional[Path]:
        return self.on_file_event(event.path)

    def run(self, events: Iterable[FileEvent]) -> int:
        """
        Handle events until the source is exhausted.

        Returns:
            Number of files moved
        """
        moved = 0
        for event in events:
            logger.debug(f"Event {event.kind.value}: {Path(event.path).name}")
            try:
                if self.handle(event) is not None:
                    moved += 1
            except Exception as e:
                # on_file_event contains its own failures; this guards the loop
                logger.error(f"Unexpected error handling {event.path}: {e}")
        return moved

    def on_file_event(self, path: Union[str, Path]) -> Optional[Path]:
        """
        Sort one file.

        Args:
            path: File that was created or renamed in the watched folder

        Returns:
            Destination path if the file was moved, otherwise None
        """
        file_path = Path(path)

        # Create and rename both fire, so the file may already be gone
        if not file_path.is_file():
            logger.debug(f"File no longer exists: {file_path.name}")
            return None

        rule_set = self.rules.current
        if not rule_set.enabled:
            logger.debug(f"Sorting disabled, skipping: {file_path.name}")
            return None

        rule = rule_set.lookup(utils.get_extension(file_path))
        if rule is None:
            logger.debug(f"No rule for: {file_path.name}")
            return None

        target_folder = self.root / rule.folder_name
        try:
            target_folder.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create folder {target_folder}: {e}")
            return None

        try:
            target_path = utils.get_unique_path(target_folder / file_path.name)
        except OSError as e:
            logger.error(f"Cannot pick a name for {file_path.name} in {target_folder}: {e}")
            return None

        if self.lock_grace_period > 0:
            time.sleep(self.lock_grace_period)

        try:
            shutil.move(str(file_path), str(target_path))
        except OSError as e:
            if utils.is_file_locked_error(e):
                logger.debug(f"File is locked, leaving in place: {file_path.name}")
            elif not file_path.exists():
                logger.debug(f"File vanished before move: {file_path.name}")
            else:
                logger.error(f"Error moving {file_path.name} to {target_path}: {e}")
            return None
        except Exception as e:
            logger.error(f"Error moving {file_path.name} to {target_path}: {e}")
            return None

        logger.info(f"Moved: {file_path.name} -> {rule.folder_name}/{target_path.name}")
        return target_path

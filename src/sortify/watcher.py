"""
Downloads Folder Watcher.

This module watches one folder (non-recursively) and feeds new files to
the sort engine.

WHAT IT DOES:
    1. Monitors the folder for created and renamed files (watchdog)
    2. Queues events so a slow move never blocks the observer
    3. Sorts queued files on a dedicated handler thread
    4. Reloads rules when the config file is saved
    5. Stops cleanly on Ctrl+C
"""

import logging
import queue
import threading
import time
from pathlib import Path
from typing import Iterator, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from sortify import config
from sortify import utils
from sortify.engine import EventKind, FileEvent, SortEngine
from sortify.exceptions import ConfigError, WatchTargetError
from sortify.rules import LiveRules

logger = logging.getLogger(__name__)

# Marks the end of the event stream
_STOP = object()


def run(
    folder: Optional[Path] = None,
    config_path: Optional[Path] = None,
    verbose: bool = False,
) -> None:
    """
    Run the watcher until interrupted.

    Args:
        folder: Folder to watch (defaults to ~/Downloads)
        config_path: Config file (defaults to ~/.config/sortify/config.json)
        verbose: Enable verbose logging

    Raises:
        WatchTargetError: If the folder can't be watched
    """
    utils.setup_logging("sortify", verbose)

    folder = Path(folder) if folder else config.DOWNLOADS_FOLDER
    config_path = Path(config_path) if config_path else config.CONFIG_FILE

    rules = LiveRules(config.load_config(config_path))
    service = SortService(folder, rules, config_path=config_path)

    logger.info("=" * 60)
    logger.info("Sortify Watcher")
    logger.info("=" * 60)
    logger.info(f"Watching folder: {folder}")
    logger.info(f"Config file: {config_path}")
    logger.info(f"Rules loaded: {len(rules.current.rules)}")
    logger.info(f"Sorting: {'ENABLED' if rules.enabled else 'DISABLED'}")
    logger.info("Press Ctrl+C to stop")
    logger.info("=" * 60)

    service.start()

    try:
        while service.is_running():
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Stopping watcher...")
    finally:
        service.stop()

    logger.info("Watcher stopped")


class DownloadsHandler(FileSystemEventHandler):
    """
    File system event handler for the watched folder.

    Only queues events; all sorting happens on the consumer side.
    """

    def __init__(self, folder: Path, events: "queue.Queue"):
        super().__init__()
        self.folder = Path(folder).resolve()
        self.events = events

    def on_created(self, event: FileSystemEvent) -> None:
        """Handle new file creation."""
        if event.is_directory:
            return
        self._enqueue(EventKind.CREATED, Path(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle file renames - common when a download completes."""
        if event.is_directory:
            return
        self._enqueue(EventKind.RENAMED, Path(event.dest_path))

    def _enqueue(self, kind: EventKind, file_path: Path) -> None:
        # Files we moved into subfolders can show up as moves out of the folder
        if file_path.parent.resolve() != self.folder:
            return
        self.events.put(FileEvent(kind, file_path))


class WatchdogEventSource:
    """
    Created/renamed files in one folder, as an endless iterator.

    Iteration blocks until the next event arrives and ends after close().
    """

    def __init__(self, folder: Path, observer: Optional[Observer] = None):
        self.folder = Path(folder).expanduser().absolute()
        self.events: "queue.Queue" = queue.Queue()
        self.observer = observer or Observer()
        self._started = False

    def start(self) -> None:
        """
        Start watching.

        Raises:
            WatchTargetError: If the folder is missing or can't be observed
        """
        if not self.folder.is_dir():
            raise WatchTargetError(self.folder, "folder does not exist")

        handler = DownloadsHandler(self.folder, self.events)
        try:
            self.observer.schedule(handler, str(self.folder), recursive=False)
            self.observer.start()
        except OSError as e:
            raise WatchTargetError(self.folder, str(e)) from e

        self._started = True
        logger.debug(f"Scheduled watcher for: {self.folder}")

    def __iter__(self) -> Iterator[FileEvent]:
        while True:
            item = self.events.get()
            if item is _STOP:
                return
            yield item

    def close(self, timeout: Optional[float] = None) -> None:
        """Stop the observer and end iteration."""
        if self._started:
            self.observer.stop()
            self.observer.join(timeout)
            self._started = False
        self.events.put(_STOP)


class ConfigReloadHandler(FileSystemEventHandler):
    """Re-reads the config file when it is saved and swaps in the new rules."""

    def __init__(self, config_path: Path, rules: LiveRules):
        super().__init__()
        self.config_path = Path(config_path).expanduser().absolute()
        self.rules = rules

    def on_created(self, event: FileSystemEvent) -> None:
        self._maybe_reload(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._maybe_reload(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # save_config writes a temp file and renames it over the config
        self._maybe_reload(event.dest_path)

    def _maybe_reload(self, changed_path) -> None:
        if Path(changed_path).resolve() != self.config_path.resolve():
            return
        self.reload()

    def reload(self) -> bool:
        """Load the config file into the live rules. Returns True on success."""
        try:
            rule_set = config.read_config(self.config_path)
        except ConfigError as e:
            logger.warning(f"Keeping current rules: {e}")
            return False

        self.rules.replace_with(rule_set)
        logger.info(
            f"Config reloaded ({len(rule_set.rules)} rules, "
            f"sorting {'enabled' if rule_set.enabled else 'disabled'})"
        )
        return True


class SortService:
    """
    Watches a folder and sorts its new files on a background thread.

    The observer only queues events; the handler thread runs the engine,
    so the grace wait before each move never delays event delivery.
    """

    def __init__(
        self,
        folder: Path,
        rules: LiveRules,
        config_path: Optional[Path] = None,
        lock_grace_period: float = config.LOCK_GRACE_SECONDS,
    ):
        self.folder = Path(folder).expanduser().absolute()
        self.rules = rules
        self.config_path = config_path
        self.engine = SortEngine(self.folder, rules, lock_grace_period=lock_grace_period)
        self.source = WatchdogEventSource(self.folder)
        self.config_observer: Optional[Observer] = None
        self.thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """
        Start watching and sorting.

        Raises:
            WatchTargetError: If the folder can't be watched
        """
        self.source.start()

        self.thread = threading.Thread(
            target=self._handle_events,
            name="sortify-handler",
            daemon=True,
        )
        self.thread.start()
        logger.info("File watcher started")

        if self.config_path is not None:
            self._watch_config()

    def _handle_events(self) -> None:
        moved = self.engine.run(self.source)
        logger.debug(f"Handler thread finished ({moved} files moved)")

    def _watch_config(self) -> None:
        config_dir = Path(self.config_path).expanduser().absolute().parent
        if not config_dir.is_dir():
            logger.debug(f"Config folder missing, live reload off: {config_dir}")
            return

        observer = Observer()
        try:
            observer.schedule(
                ConfigReloadHandler(self.config_path, self.rules),
                str(config_dir),
                recursive=False,
            )
            observer.start()
        except OSError as e:
            logger.warning(f"Cannot watch config folder {config_dir}: {e}")
            return

        self.config_observer = observer
        logger.debug(f"Watching config file: {self.config_path}")

    def is_running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def stop(self, timeout: float = config.SHUTDOWN_TIMEOUT) -> None:
        """Stop watching. A move stuck in its grace wait is abandoned."""
        if self.config_observer is not None:
            self.config_observer.stop()
            self.config_observer.join(timeout)
            self.config_observer = None

        self.source.close(timeout)

        if self.thread is not None:
            self.thread.join(timeout)
            if self.thread.is_alive():
                logger.warning("Handler thread still busy at shutdown, abandoning it")
            self.thread = None

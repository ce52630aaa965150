"""Filesystem watching that keeps a remote theme in sync with a directory.

Filesystem events are delivered by a watchdog observer thread into a
queue. The watch loop runs on the calling thread: it coalesces the events
that arrive close together into one ChangeBatch, classifies the batch and
uploads it before reading the next one, so uploads never overlap.
"""

import logging
import os
import queue
import threading
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Callable, Optional, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..exceptions import ThemeRemoteError
from ..output import OutputFormatter
from .decision import FastFieldUpdate, SyncDecision, classify_changes
from .uploader import ThemeUploader

logger = logging.getLogger(__name__)

# Migrations are only synced by explicit full uploads
IGNORED_TOP_LEVEL_DIRS = frozenset({"migrations"})

DEFAULT_LATENCY = 0.25


@dataclass
class ChangeBatch:
    """Files modified, added and removed since the last quiet point."""

    modified: list[str] = field(default_factory=list)
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.modified) + len(self.added) + len(self.removed)

    def is_empty(self) -> bool:
        return self.count == 0

    def record_modified(self, path: str) -> None:
        if path in self.removed:
            # The file exists again
            self.removed.remove(path)
        elif path in self.added or path in self.modified:
            return
        self.modified.append(path)

    def record_added(self, path: str) -> None:
        if path in self.removed:
            # Deleted and recreated, e.g. by an editor's atomic save
            self.removed.remove(path)
            self.record_modified(path)
        elif path not in self.added:
            self.added.append(path)

    def record_removed(self, path: str) -> None:
        if path in self.added:
            self.added.remove(path)
            return
        if path in self.modified:
            self.modified.remove(path)
        if path not in self.removed:
            self.removed.append(path)

    def merge(self, other: "ChangeBatch") -> "ChangeBatch":
        """Fold a later batch into this one."""
        for path in other.removed:
            self.record_removed(path)
        for path in other.added:
            self.record_added(path)
        for path in other.modified:
            self.record_modified(path)
        return self


def is_ignored_path(path: Union[str, Path], root: Union[str, Path]) -> bool:
    """Check whether changes to a path should not trigger a sync.

    Ignored are paths outside the root, the migrations/ subtree and any
    path with a dot-prefixed component (VCS folders, editor swap files).
    """
    try:
        relative = Path(path).relative_to(root)
    except ValueError:
        return True

    parts = PurePosixPath(relative.as_posix()).parts
    if not parts:
        return True
    if parts[0] in IGNORED_TOP_LEVEL_DIRS:
        return True
    return any(part.startswith(".") for part in parts)


class ThemeEventHandler(FileSystemEventHandler):
    """Turns watchdog file events into single-change batches on a queue.

    Directory events are ignored; only files are part of a theme.
    """

    def __init__(self, root: Path, changes: "queue.Queue[ChangeBatch]"):
        super().__init__()
        self.root = root
        self.changes = changes

    def _path(self, raw: Union[str, bytes]) -> Optional[str]:
        path = os.fsdecode(raw)
        if is_ignored_path(path, self.root):
            return None
        return path

    def _put(self, batch: ChangeBatch) -> None:
        if not batch.is_empty():
            self.changes.put(batch)

    def on_created(self, event: FileSystemEvent) -> None:
        path = self._path(event.src_path)
        if event.is_directory or path is None:
            return
        self._put(ChangeBatch(added=[path]))

    def on_modified(self, event: FileSystemEvent) -> None:
        path = self._path(event.src_path)
        if event.is_directory or path is None:
            return
        self._put(ChangeBatch(modified=[path]))

    def on_deleted(self, event: FileSystemEvent) -> None:
        path = self._path(event.src_path)
        if event.is_directory or path is None:
            return
        self._put(ChangeBatch(removed=[path]))

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        batch = ChangeBatch()
        src_path = self._path(event.src_path)
        if src_path is not None:
            batch.record_removed(src_path)
        dest_path = self._path(event.dest_path)
        if dest_path is not None:
            batch.record_added(dest_path)
        self._put(batch)


class ThemeWatcher:
    """Watches a theme directory and uploads every change.

    Examples:
        >>> watcher = ThemeWatcher(Path("my-theme"), uploader)
        >>> watcher.subscribe_start(lambda: print("watching"))
        >>> watcher.watch()  # blocks until watcher.stop() is called
    """

    def __init__(
        self,
        directory: Union[str, Path],
        uploader: ThemeUploader,
        output: Optional[OutputFormatter] = None,
        latency: float = DEFAULT_LATENCY,
        poll_interval: float = 0.5,
    ):
        """Initialize the watcher.

        Args:
            directory: Theme directory to watch
            uploader: Uploader used for every change batch
            output: Output formatter for status lines
            latency: Quiet period (seconds) that ends a batch
            poll_interval: How often (seconds) the loop checks for stop()
        """
        self.directory = Path(directory).resolve()
        self.uploader = uploader
        self.output = output or OutputFormatter()
        self.latency = latency
        self.poll_interval = poll_interval

        self.changes: "queue.Queue[ChangeBatch]" = queue.Queue()
        self._stop_event = threading.Event()
        self._start_subscribers: list[Callable[[], None]] = []
        self._batch_subscribers: list[Callable[[ChangeBatch], None]] = []

    def subscribe_start(self, callback: Callable[[], None]) -> None:
        """Call callback once the observer is running."""
        self._start_subscribers.append(callback)

    def subscribe_batch(self, callback: Callable[[ChangeBatch], None]) -> None:
        """Call callback with every batch before it is synced."""
        self._batch_subscribers.append(callback)

    def stop(self) -> None:
        """Ask the watch loop to return."""
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def watch(self) -> None:
        """Watch the directory until stop() is called."""
        observer = Observer()
        observer.schedule(
            ThemeEventHandler(self.directory, self.changes),
            str(self.directory),
            recursive=True,
        )
        observer.start()
        logger.debug(f"Observer started for {self.directory}")

        try:
            for callback in self._start_subscribers:
                callback()

            while not self._stop_event.is_set():
                batch = self.next_batch(timeout=self.poll_interval)
                if batch is not None:
                    self.process_batch(batch)
        finally:
            observer.stop()
            observer.join()
            logger.debug(f"Observer stopped for {self.directory}")

    def next_batch(self, timeout: Optional[float] = None) -> Optional[ChangeBatch]:
        """Wait for changes and return them once they settle.

        Returns:
            The coalesced batch, or None if nothing arrived within timeout
        """
        try:
            batch = self.changes.get(timeout=timeout)
        except queue.Empty:
            return None

        while True:
            try:
                batch.merge(self.changes.get(timeout=self.latency))
            except queue.Empty:
                break

        if batch.is_empty():
            return None
        return batch

    def process_batch(self, batch: ChangeBatch) -> SyncDecision:
        """Sync one batch of changes.

        Errors talking to the server are reported and swallowed so the
        watch continues; any other error propagates.

        Returns:
            The decision taken for the batch
        """
        for callback in self._batch_subscribers:
            callback(batch)

        decision = classify_changes(
            self.directory, batch.modified, batch.added, batch.removed
        )
        logger.debug(f"Classified {batch.count} change(s) as {decision}")

        try:
            if isinstance(decision, FastFieldUpdate):
                self.output.progress(f"Fast updating {decision.target}.scss")
                value = Path(batch.modified[0]).read_text(encoding="utf-8")
                self.uploader.upload_theme_field(
                    target=decision.target,
                    name=decision.field_name,
                    type_id=decision.type_id,
                    value=value,
                )
            else:
                self._report_full_upload(batch)
                self.uploader.upload_full_theme()
            self.output.success("Done! Watching for changes...")
        except ThemeRemoteError as e:
            logger.debug("Sync failed", exc_info=True)
            self.output.error(str(e))
            self.output.progress("Watching for changes...")

        return decision

    def _report_full_upload(self, batch: ChangeBatch) -> None:
        if batch.count != 1:
            self.output.progress(
                f"Detected changes in {batch.count} files, uploading theme"
            )
            return

        changed = (batch.modified or batch.added or batch.removed)[0]
        try:
            name = Path(changed).relative_to(self.directory).as_posix()
        except ValueError:
            name = changed
        self.output.progress(f"Detected changes in {name}, uploading theme")

"""File watcher that turns settled edits into versions.

Each tracked path moves through three states::

    IDLE -> PENDING (event seen, waiting for quiet) -> PROCESSING -> IDLE

Raw watchdog events restart a per-path quiet timer. When the timer fires
the edit is considered settled and the path is processed: read the file,
compare it with the last recorded content, and record a version if the
change is meaningful. A path already being processed drops new settled
events. Failures are logged and never stop the watch.
"""

from __future__ import annotations

import logging
import os
import threading
from enum import Enum
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..config.types import TrackingPolicy
from ..utils.fs import read_text
from .errors import AutosnapError, SizeLimitExceededError
from .history import read_history
from .significance import is_meaningful
from .snapshot_store import SnapshotStore


logger = logging.getLogger(__name__)


class PathState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    PROCESSING = "processing"


class _DebouncedHandler(FileSystemEventHandler):
    """Forwards file create/modify/move-in events to the watcher."""

    def __init__(self, watcher: Watcher) -> None:
        super().__init__()
        self._watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.notify(os.fsdecode(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.notify(os.fsdecode(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.notify(os.fsdecode(event.dest_path))


class Watcher:
    """Watches a project tree and records meaningful edits."""

    def __init__(
        self,
        root_dir: Path | str,
        policy: TrackingPolicy,
        store: SnapshotStore | None = None,
    ) -> None:
        """Initialize watcher.

        Args:
            root_dir: Project root to watch recursively
            policy: Tracking policy (file set, debounce, thresholds)
            store: Snapshot store; one is created for root_dir if omitted
        """
        self.root_dir = Path(root_dir).resolve()
        self.policy = policy
        self.store = store or SnapshotStore(self.root_dir, policy)
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._processing: set[str] = set()
        self._timers: dict[str, threading.Timer] = {}
        self._observer: Observer | None = None
        self._accepting = True

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    def state(self, rel_path: str) -> PathState:
        with self._lock:
            if rel_path in self._processing:
                return PathState.PROCESSING
            if rel_path in self._timers:
                return PathState.PENDING
            return PathState.IDLE

    def start(self) -> None:
        """Begin watching the project directory recursively."""
        if self._observer is not None:
            return
        self._accepting = True
        self._observer = Observer()
        self._observer.schedule(_DebouncedHandler(self), str(self.root_dir), recursive=True)
        self._observer.start()
        logger.info("Watching %s for changes", self.root_dir)

    def stop(self) -> None:
        """Stop accepting events and wait for in-flight work to finish."""
        with self._lock:
            self._accepting = False
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()

        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

        with self._idle:
            while self._processing:
                self._idle.wait()
        logger.info("Stopped watching %s", self.root_dir)

    def _to_relative(self, path: str) -> str | None:
        try:
            return self.store.relative_path(path)
        except ValueError:
            return None

    def notify(self, path: str) -> bool:
        """Handle a raw add/change event for ``path``.

        Untracked and oversized files are dropped here. Otherwise the
        path's quiet timer is (re)started.

        Returns:
            True if the path is now pending
        """
        rel_path = self._to_relative(path)
        if rel_path is None or not self.policy.should_track(rel_path):
            return False

        try:
            self.store.check_size(rel_path)
        except SizeLimitExceededError as e:
            logger.debug("Skipping %s: %s", rel_path, e)
            return False
        except AutosnapError:
            # Gone again before we could look at it
            return False

        with self._lock:
            if not self._accepting:
                return False
            previous = self._timers.pop(rel_path, None)
            if previous is not None:
                previous.cancel()
            timer = threading.Timer(self.policy.debounce_seconds, self._settled, args=(rel_path,))
            timer.daemon = True
            self._timers[rel_path] = timer
            timer.start()
        return True

    def _settled(self, rel_path: str) -> None:
        with self._lock:
            if self._timers.get(rel_path) is threading.current_thread():
                del self._timers[rel_path]
            # Check and claim in one step; stop() takes the same lock
            if not self._claim(rel_path):
                return
        self._run(rel_path)

    def handle_change(self, rel_path: str) -> bool:
        """Process one settled change.

        Returns:
            True if a new version was recorded
        """
        with self._lock:
            if not self._claim(rel_path):
                return False
        return self._run(rel_path)

    def _claim(self, rel_path: str) -> bool:
        # Caller holds self._lock
        if not self._accepting:
            return False
        if rel_path in self._processing:
            logger.debug("Already processing %s, event dropped", rel_path)
            return False
        self._processing.add(rel_path)
        return True

    def _run(self, rel_path: str) -> bool:
        try:
            return self._process(rel_path)
        except Exception:
            logger.exception("Error processing %s", rel_path)
            return False
        finally:
            with self._idle:
                self._processing.discard(rel_path)
                self._idle.notify_all()

    def _process(self, rel_path: str) -> bool:
        abs_path = self.root_dir / rel_path
        if not abs_path.is_file():
            return False

        try:
            self.store.check_size(rel_path)
        except SizeLimitExceededError as e:
            logger.debug("Skipping %s: %s", rel_path, e)
            return False

        content = read_text(abs_path)
        history = read_history(self.store, rel_path)
        last_content = history.current_content if history else None

        # A revert to the current version, including the write-back after
        # a restore, compares equal here and records nothing.
        if not is_meaningful(last_content, content, self.policy):
            logger.debug("No meaningful change in %s", rel_path)
            return False

        return self.store.create_version(rel_path) is not None

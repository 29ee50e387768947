"""autosnap controller - main orchestrator.

Coordinates config, snapshot store and history reader for the CLI.
Every batch operation works file by file: one broken file is reported
and the rest carry on.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from ..config import ConfigLoader, TrackingPolicy
from ..utils.fs import write_text
from .errors import AutosnapError, SizeLimitExceededError, VersionNotFoundError
from .history import FileHistory, RawSizeReport, read_history, storage_report
from .snapshot_store import SnapshotStore
from .watcher import Watcher


logger = logging.getLogger(__name__)


@dataclass
class InitResult:
    """Outcome of initializing a project."""
    created: bool
    scanned: int = 0
    skipped: int = 0
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def failed(self) -> int:
        return len(self.errors)


@dataclass
class HistoryListing:
    """Histories that could be read plus per-file read failures."""
    files: list[FileHistory] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)


@dataclass
class RestoreSummary:
    """Outcome of restoring many files to one version id."""
    target_id: str
    restored: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    not_found: int = 0

    @property
    def failed(self) -> int:
        return len(self.errors)

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass
class SnapStatus:
    """Status of autosnap in a project."""
    initialized: bool
    project_root: str
    store_dir: str
    tracked_files: int
    policy: TrackingPolicy


class SnapController:
    """Main controller for autosnap operations."""

    def __init__(self, project_root: Path | str | None = None):
        """Initialize controller.

        Args:
            project_root: Project root directory (defaults to cwd)
        """
        self.project_root = Path(project_root).resolve() if project_root else Path.cwd().resolve()
        self._config_loader = ConfigLoader(project_root=self.project_root)
        self._store: SnapshotStore | None = None

    @property
    def policy(self) -> TrackingPolicy:
        """Get current tracking policy."""
        return self._config_loader.policy

    @property
    def config_loader(self) -> ConfigLoader:
        return self._config_loader

    @property
    def store(self) -> SnapshotStore:
        """Get snapshot store (lazy init)."""
        if self._store is None:
            self._store = SnapshotStore(self.project_root, self.policy)
        return self._store

    def is_initialized(self) -> bool:
        path = self._config_loader.project_config_path
        return bool(path and path.exists())

    def create_watcher(self) -> Watcher:
        return Watcher(self.project_root, self.policy, store=self.store)

    def iter_project_files(self) -> Iterator[str]:
        """Yield project-relative paths of every tracked file on disk."""
        for root, dirs, files in os.walk(self.project_root):
            root_path = Path(root)
            rel_root = root_path.relative_to(self.project_root)

            # Hidden directories (including .auto-snap) are never tracked
            dirs[:] = sorted(d for d in dirs if not d.startswith("."))

            for name in sorted(files):
                rel_path = (rel_root / name).as_posix()
                if self.policy.should_track(rel_path):
                    yield rel_path

    def init(self) -> InitResult:
        """Initialize autosnap for the project.

        Writes the default config and, on first initialization, records
        a root version for every tracked file.
        """
        created = self._config_loader.save_default_config()
        self._store = None
        self.store.store_dir.mkdir(parents=True, exist_ok=True)

        result = InitResult(created=created)
        if created:
            self._initial_scan(result)
        return result

    def _initial_scan(self, result: InitResult) -> None:
        for rel_path in self.iter_project_files():
            try:
                self.store.create_version(rel_path)
                result.scanned += 1
            except SizeLimitExceededError as e:
                logger.debug("Skipping %s: %s", rel_path, e)
                result.skipped += 1
            except (AutosnapError, OSError) as e:
                logger.warning("Initial snapshot failed for %s: %s", rel_path, e)
                result.errors[rel_path] = str(e)

    def _matching(self, pattern: str | None) -> list[str]:
        return [p for p in self.store.tracked_files() if not pattern or pattern in p]

    def history(self, pattern: str | None = None) -> HistoryListing:
        """Read history for tracked files.

        Args:
            pattern: Only include files whose relative path contains this

        Returns:
            HistoryListing sorted by last update (newest first)
        """
        listing = HistoryListing()
        for rel_path in self._matching(pattern):
            try:
                history = read_history(self.store, rel_path)
            except AutosnapError as e:
                logger.warning("Failed to read history for %s: %s", rel_path, e)
                listing.failures[rel_path] = str(e)
                continue
            if history is not None:
                listing.files.append(history)

        listing.files.sort(key=lambda h: h.last_updated, reverse=True)
        return listing

    def storage(self, rel_path: str) -> RawSizeReport:
        """Raw versus stored size for one tracked file."""
        return storage_report(self.store, rel_path)

    def restore(self, target_id: str, pattern: str | None = None) -> RestoreSummary:
        """Restore every matching file that has version ``target_id``.

        Files without that version are skipped silently. Other failures
        are collected per file.
        """
        summary = RestoreSummary(target_id=target_id)
        for rel_path in self._matching(pattern):
            try:
                content = self.store.read_version(rel_path, target_id)
                # Pointer moves only once the working file holds the content
                write_text(self.project_root / rel_path, content)
                self.store.pivot(rel_path, target_id)
            except VersionNotFoundError:
                summary.not_found += 1
                continue
            except (AutosnapError, OSError) as e:
                logger.warning("Failed to restore %s: %s", rel_path, e)
                summary.errors[rel_path] = str(e)
                continue
            logger.info("Restored %s to %s", rel_path, target_id)
            summary.restored.append(rel_path)
        return summary

    def clear(self) -> bool:
        """Discard the whole snapshot store."""
        return self.store.clear()

    def status(self) -> SnapStatus:
        return SnapStatus(
            initialized=self.is_initialized(),
            project_root=str(self.project_root),
            store_dir=str(self.store.store_dir),
            tracked_files=len(self.store.tracked_files()),
            policy=self.policy,
        )

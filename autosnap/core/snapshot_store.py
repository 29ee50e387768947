"""Snapshot storage for autosnap.

Each tracked file gets one compressed chain artifact under
``.auto-snap/store/<dir>.d/<file>.snap``. Artifacts are always replaced
atomically, so a failed write leaves the previous history readable.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from ..config.types import TrackingPolicy
from ..utils.env import get_store_dir
from ..utils.fs import atomic_write, read_text
from .chain import DeltaNode, RootNode, SnapshotChain, VersionNode, reconstruct
from .codec import decode_chain, encode_chain
from .errors import CorruptChainError, IoFailureError, SizeLimitExceededError
from .patch import make_patch
from .significance import diff_stats


logger = logging.getLogger(__name__)


class SnapshotStore:
    """Manages per-file version chains on disk."""

    ARTIFACT_SUFFIX = ".snap"
    # Keeps directory names apart from artifact names in the store
    DIR_SUFFIX = ".d"

    def __init__(self, root_dir: Path | str, policy: TrackingPolicy | None = None):
        """Initialize snapshot store.

        Args:
            root_dir: Project root whose files are tracked
            policy: Tracking policy (for the size ceiling)
        """
        self.root_dir = Path(root_dir).resolve()
        self.policy = policy or TrackingPolicy()
        self.store_dir = get_store_dir(self.root_dir)

    # Paths

    def relative_path(self, path: Path | str) -> str:
        """Project-relative POSIX path for a tracked file.

        Raises:
            ValueError: If the path lies outside the project root
        """
        p = Path(path)
        if not p.is_absolute():
            p = self.root_dir / p
        try:
            rel = Path(os.path.normpath(p)).relative_to(self.root_dir)
        except ValueError:
            rel = p.resolve().relative_to(self.root_dir)
        return rel.as_posix()

    def absolute_path(self, path: Path | str) -> Path:
        return self.root_dir / self.relative_path(path)

    def artifact_path(self, path: Path | str) -> Path:
        *dirs, name = self.relative_path(path).split("/")
        parts = [d + self.DIR_SUFFIX for d in dirs] + [name + self.ARTIFACT_SUFFIX]
        return self.store_dir.joinpath(*parts)

    def has_history(self, path: Path | str) -> bool:
        return self.artifact_path(path).is_file()

    def tracked_files(self) -> list[str]:
        """Relative paths of every file that has a stored chain."""
        if not self.store_dir.exists():
            return []
        tracked = []
        for artifact in self.store_dir.rglob(f"*{self.ARTIFACT_SUFFIX}"):
            if artifact.is_file():
                *dirs, name = artifact.relative_to(self.store_dir).parts
                if not all(d.endswith(self.DIR_SUFFIX) for d in dirs):
                    continue
                dirs = [d[: -len(self.DIR_SUFFIX)] for d in dirs]
                tracked.append("/".join([*dirs, name[: -len(self.ARTIFACT_SUFFIX)]]))
        return sorted(tracked)

    # Persistence

    def load_chain(self, path: Path | str) -> SnapshotChain:
        """Load the chain for a file, or an empty chain if it has none.

        Raises:
            StoreCorruptError: If the artifact cannot be decoded
            IoFailureError: If the artifact cannot be read
        """
        artifact = self.artifact_path(path)
        try:
            data = artifact.read_bytes()
        except FileNotFoundError:
            return SnapshotChain()
        except OSError as e:
            raise IoFailureError(f"Cannot read {artifact}: {e}") from e
        return decode_chain(data, artifact=str(artifact))

    def save_chain(self, path: Path | str, chain: SnapshotChain) -> None:
        """Persist a chain, replacing the previous artifact atomically."""
        artifact = self.artifact_path(path)
        try:
            atomic_write(artifact, encode_chain(chain), mode="wb")
        except OSError as e:
            raise IoFailureError(f"Cannot write {artifact}: {e}") from e

    def artifact_size(self, path: Path | str) -> int:
        try:
            return self.artifact_path(path).stat().st_size
        except OSError:
            return 0

    # Operations

    def check_size(self, path: Path | str) -> int:
        """Return the file size, raising if it is above the ceiling.

        Raises:
            SizeLimitExceededError: If the file is too large to track
            IoFailureError: If the file cannot be stat'ed
        """
        abs_path = self.absolute_path(path)
        try:
            size = abs_path.stat().st_size
        except OSError as e:
            raise IoFailureError(f"Cannot stat {abs_path}: {e}") from e
        limit = self.policy.max_file_size_bytes
        if size > limit:
            raise SizeLimitExceededError(self.relative_path(path), size, limit)
        return size

    def create_version(self, path: Path | str) -> VersionNode | None:
        """Record the file's current content as a new version.

        The first call creates the root with the full body. Later calls
        append a patch against the current version. If the content equals
        the current version nothing is written.

        Args:
            path: File to snapshot (absolute or project-relative)

        Returns:
            The new node, or None if the content was already current
        """
        rel_path = self.relative_path(path)
        self.check_size(rel_path)

        abs_path = self.root_dir / rel_path
        try:
            content = read_text(abs_path)
        except OSError as e:
            raise IoFailureError(f"Cannot read {abs_path}: {e}") from e

        chain = self.load_chain(rel_path)
        node_id, timestamp = chain.new_id()

        node: VersionNode
        if chain.is_empty:
            node = RootNode(id=node_id, timestamp=timestamp, body=content)
        else:
            parent_id = chain.current_id
            if parent_id is None:
                raise CorruptChainError(f"Chain for {rel_path} has no current version")
            parent_content = reconstruct(chain, parent_id)
            patch = make_patch(parent_content, content)
            if patch is None:
                logger.debug("No change for %s since %s", rel_path, parent_id)
                return None
            node = DeltaNode(
                id=node_id,
                timestamp=timestamp,
                parent_id=parent_id,
                patch=patch,
                stats=diff_stats(parent_content, content).as_pair(),
            )

        chain.add(node)
        self.save_chain(rel_path, chain)

        if isinstance(node, RootNode):
            logger.info("Created root for %s", rel_path)
        else:
            logger.info("Saved version %s for %s (parent: %s)", node.id, rel_path, node.parent_id)
        return node

    def restore(self, path: Path | str, target_id: str) -> str:
        """Pivot a file's chain to ``target_id`` and return that content.

        No node is created; only the current pointer moves. Writing the
        content back to the working tree is up to the caller.

        Raises:
            VersionNotFoundError: If the chain has no such version
            CorruptChainError: If the version cannot be rebuilt
            StoreCorruptError: If the artifact cannot be decoded
        """
        chain = self.load_chain(path)
        content = reconstruct(chain, target_id)
        if chain.current_id != target_id:
            chain.pivot(target_id)
            self.save_chain(path, chain)
        return content

    def read_version(self, path: Path | str, target_id: str) -> str:
        """Rebuild the content of ``target_id`` without moving the pointer."""
        return reconstruct(self.load_chain(path), target_id)

    def pivot(self, path: Path | str, target_id: str) -> None:
        """Move a file's current pointer to ``target_id``."""
        chain = self.load_chain(path)
        if chain.current_id != target_id:
            chain.pivot(target_id)
            self.save_chain(path, chain)

    def clear(self) -> bool:
        """Delete every stored chain.

        Returns:
            True if there was a store to delete
        """
        if not self.store_dir.exists():
            return False
        shutil.rmtree(self.store_dir)
        logger.info("Cleared snapshot store %s", self.store_dir)
        return True

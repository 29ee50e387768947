"""Read-only views over stored chains for listings and reports."""

from __future__ import annotations

from dataclasses import dataclass

from ..utils.fs import text_to_bytes
from .chain import SnapshotChain, VersionNode, reconstruct
from .snapshot_store import SnapshotStore


@dataclass(frozen=True, slots=True)
class FileHistory:
    """History of one tracked file as seen by reporting code."""

    path: str
    current_id: str
    current_content: str
    nodes: dict[str, VersionNode]

    @property
    def current_node(self) -> VersionNode:
        return self.nodes[self.current_id]

    @property
    def version_count(self) -> int:
        return len(self.nodes)

    @property
    def last_updated(self) -> int:
        """Timestamp (epoch ms) of the current version."""
        return self.current_node.timestamp

    def sorted_nodes(self) -> list[VersionNode]:
        """All versions, newest first."""
        return sorted(self.nodes.values(), key=lambda n: (n.timestamp, n.id), reverse=True)


@dataclass(frozen=True, slots=True)
class RawSizeReport:
    """Uncompressed size of every version versus the stored artifact."""

    per_node: dict[str, int]
    total: int
    stored: int = 0

    @property
    def savings(self) -> float:
        """Fraction of raw bytes saved by storing patches compressed."""
        if self.total == 0:
            return 0.0
        return 1.0 - (self.stored / self.total)


def read_history(store: SnapshotStore, tracked_path: str) -> FileHistory | None:
    """Load a file's history.

    Returns:
        FileHistory, or None if the file has no stored chain

    Raises:
        StoreCorruptError: If the artifact cannot be decoded
        CorruptChainError: If the current version cannot be rebuilt
    """
    chain = store.load_chain(tracked_path)
    if chain.is_empty or chain.current_id is None:
        return None

    return FileHistory(
        path=store.relative_path(tracked_path),
        current_id=chain.current_id,
        current_content=reconstruct(chain, chain.current_id),
        nodes=dict(chain.nodes),
    )


def raw_sizes(chain: SnapshotChain) -> RawSizeReport:
    """Byte length of every version's full content.

    Rebuilds each version from the root; correctness over speed.
    """
    per_node = {
        node_id: len(text_to_bytes(reconstruct(chain, node_id)))
        for node_id in chain.nodes
    }
    return RawSizeReport(per_node=per_node, total=sum(per_node.values()))


def storage_report(store: SnapshotStore, tracked_path: str) -> RawSizeReport:
    """Raw sizes for a file's chain together with its artifact size."""
    report = raw_sizes(store.load_chain(tracked_path))
    return RawSizeReport(
        per_node=report.per_node,
        total=report.total,
        stored=store.artifact_size(tracked_path),
    )

"""Version chains.

A chain is the full history of one tracked file: a tree of nodes where
the single root holds the full body and every other node holds a forward
patch from its parent. Nodes live in a flat map keyed by id; parents are
resolved by lookup.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Union

from .errors import CorruptChainError, VersionNotFoundError
from .patch import PatchError, apply_patch


_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 ids are built from non-negative values")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class RootNode:
    """The first recorded state of a file, stored in full."""

    id: str
    timestamp: int
    body: str
    stats: tuple[int, int] | None = None

    @property
    def parent_id(self) -> None:
        return None


@dataclass(frozen=True, slots=True)
class DeltaNode:
    """A later state, stored as a forward patch from its parent."""

    id: str
    timestamp: int
    parent_id: str
    patch: str
    stats: tuple[int, int] | None = None


VersionNode = Union[RootNode, DeltaNode]


@dataclass
class SnapshotChain:
    """All versions of one tracked file plus the current pointer."""

    nodes: dict[str, VersionNode] = field(default_factory=dict)
    current_id: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def get(self, node_id: str) -> VersionNode:
        try:
            return self.nodes[node_id]
        except KeyError:
            raise VersionNotFoundError(node_id) from None

    def children(self, node_id: str) -> list[VersionNode]:
        """Direct children of a node, oldest first."""
        kids = [n for n in self.nodes.values() if n.parent_id == node_id]
        kids.sort(key=lambda n: (n.timestamp, n.id))
        return kids

    def new_id(self, timestamp: int | None = None) -> tuple[str, int]:
        """Generate a fresh id from a millisecond timestamp.

        The timestamp never goes below the newest node's timestamp + 1, so
        ids stay unique and ordered even when versions are created within
        one millisecond or the clock steps back.

        Returns:
            (id, timestamp) pair actually used
        """
        ts = now_ms() if timestamp is None else timestamp
        if self.nodes:
            ts = max(ts, max(n.timestamp for n in self.nodes.values()) + 1)
        node_id = to_base36(ts)
        while node_id in self.nodes:
            ts += 1
            node_id = to_base36(ts)
        return node_id, ts

    def add(self, node: VersionNode) -> None:
        """Append a node and make it current."""
        if node.id in self.nodes:
            raise ValueError(f"Duplicate version id: {node.id}")
        if isinstance(node, RootNode):
            if self.nodes:
                raise ValueError("Chain already has a root")
        elif node.parent_id not in self.nodes:
            raise CorruptChainError(f"Parent {node.parent_id} of {node.id} is missing")
        self.nodes[node.id] = node
        self.current_id = node.id

    def pivot(self, node_id: str) -> None:
        """Move the current pointer to an existing node."""
        if node_id not in self.nodes:
            raise VersionNotFoundError(node_id)
        self.current_id = node_id

    def lineage(self, target_id: str) -> tuple[RootNode, list[DeltaNode]]:
        """Walk from ``target_id`` up to the nearest full-body ancestor.

        Returns:
            The full-body node and the patch nodes below it, in replay order

        Raises:
            VersionNotFoundError: If target_id is not in the chain
            CorruptChainError: If a parent link is missing or loops
        """
        node = self.get(target_id)
        deltas: list[DeltaNode] = []
        seen = {node.id}
        while isinstance(node, DeltaNode):
            deltas.append(node)
            parent = self.nodes.get(node.parent_id)
            if parent is None:
                raise CorruptChainError(f"Version {node.id} points at missing parent {node.parent_id}")
            if parent.id in seen:
                raise CorruptChainError(f"Parent links loop at {parent.id}")
            seen.add(parent.id)
            node = parent
        deltas.reverse()
        return node, deltas


def reconstruct(chain: SnapshotChain, target_id: str) -> str:
    """Rebuild the content recorded at ``target_id``.

    Replays patches from the root down to the target.

    Raises:
        VersionNotFoundError: If target_id is not in the chain
        CorruptChainError: If the ancestry is broken or a patch fails
    """
    root, deltas = chain.lineage(target_id)
    content = root.body

    for node in deltas:
        try:
            content = apply_patch(content, node.patch)
        except PatchError as e:
            raise CorruptChainError(f"Patch for version {node.id} failed: {e}") from e

    return content

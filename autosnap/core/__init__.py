"""Core modules for autosnap."""

from .chain import DeltaNode, RootNode, SnapshotChain, VersionNode, reconstruct
from .controller import SnapController
from .errors import (
    AutosnapError,
    CorruptChainError,
    IoFailureError,
    SizeLimitExceededError,
    StoreCorruptError,
    VersionNotFoundError,
)
from .snapshot_store import SnapshotStore
from .watcher import Watcher

__all__ = [
    "DeltaNode",
    "RootNode",
    "SnapshotChain",
    "VersionNode",
    "reconstruct",
    "SnapController",
    "AutosnapError",
    "CorruptChainError",
    "IoFailureError",
    "SizeLimitExceededError",
    "StoreCorruptError",
    "VersionNotFoundError",
    "SnapshotStore",
    "Watcher",
]

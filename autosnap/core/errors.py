"""Error types for autosnap.

Every failure is scoped to one tracked file. Batch operations (initial
scan, restore sweep, watch stream) catch these per file and keep going.
"""

from __future__ import annotations


class AutosnapError(Exception):
    """Base class for autosnap errors."""


class VersionNotFoundError(AutosnapError):
    """A version id is not present in the chain."""

    def __init__(self, version_id: str):
        super().__init__(f"Version {version_id} not found")
        self.version_id = version_id


class CorruptChainError(AutosnapError):
    """The chain cannot be replayed (broken parent link or bad patch)."""


class StoreCorruptError(AutosnapError):
    """A persisted artifact could not be decompressed or parsed."""

    def __init__(self, artifact: str, reason: str):
        super().__init__(f"Corrupt snapshot store {artifact}: {reason}")
        self.artifact = artifact
        self.reason = reason


class SizeLimitExceededError(AutosnapError):
    """A file is larger than the configured ceiling and was skipped."""

    def __init__(self, path: str, size: int, limit: int):
        super().__init__(f"{path} is {size} bytes (limit {limit})")
        self.path = path
        self.size = size
        self.limit = limit


class IoFailureError(AutosnapError):
    """Reading or writing a file failed."""

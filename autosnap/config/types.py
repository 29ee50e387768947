"""Configuration types for autosnap.

Defines the tracking policy: which files are watched and which changes
are worth recording.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from pathlib import PurePosixPath
from typing import Any

import pathspec


DEFAULT_INCLUDE: tuple[str, ...] = ("**/*",)

DEFAULT_EXCLUDE: tuple[str, ...] = (
    "node_modules/**",
    ".git/**",
    "dist/**",
    "build/**",
    ".auto-snap/**",
    "package-lock.json",
    ".gitignore",
)


def _as_int(val: object, default: int) -> int:
    if isinstance(val, bool):
        return default
    if isinstance(val, (int, float)):
        return int(val)
    return default


def _as_float(val: object, default: float) -> float:
    if isinstance(val, bool):
        return default
    if isinstance(val, (int, float)):
        return float(val)
    return default


def _as_patterns(val: object, default: tuple[str, ...]) -> tuple[str, ...]:
    if isinstance(val, str):
        return (val,)
    if isinstance(val, (list, tuple)):
        return tuple(str(p) for p in val if isinstance(p, str) and p.strip())
    return default


@dataclass(frozen=True)
class RetentionPolicy:
    """Declared retention limits. Loaded and shown, never enforced."""
    days: int = 7
    max_snapshots: int = 200

    @classmethod
    def from_dict(cls, data: dict) -> RetentionPolicy:
        """Create RetentionPolicy from dictionary."""
        return cls(
            days=_as_int(data.get("days"), cls.days),
            max_snapshots=_as_int(data.get("maxSnapshots"), cls.max_snapshots),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"days": self.days, "maxSnapshots": self.max_snapshots}


@dataclass(frozen=True)
class TrackingPolicy:
    """Process-wide tracking policy, built once per run."""
    debounce_ms: int = 10000
    min_char_change: int = 5
    min_line_change: int = 1
    similarity_threshold: float = 0.98
    ignore_whitespace: bool = True
    include: tuple[str, ...] = DEFAULT_INCLUDE
    exclude: tuple[str, ...] = DEFAULT_EXCLUDE
    max_file_size_mb: float = 2
    retention: RetentionPolicy = field(default_factory=RetentionPolicy)

    @classmethod
    def from_dict(cls, data: dict) -> TrackingPolicy:
        """Create TrackingPolicy from the camelCase config file shape.

        Unknown keys are ignored and values of the wrong type fall back
        to the defaults.
        """
        retention_data = data.get("retention", {})
        threshold = _as_float(data.get("similarityThreshold"), cls.similarity_threshold)
        ignore_ws = data.get("ignoreWhitespace", cls.ignore_whitespace)

        return cls(
            debounce_ms=max(0, _as_int(data.get("debounce"), cls.debounce_ms)),
            min_char_change=_as_int(data.get("minCharChange"), cls.min_char_change),
            min_line_change=_as_int(data.get("minLineChange"), cls.min_line_change),
            similarity_threshold=min(1.0, max(0.0, threshold)),
            ignore_whitespace=ignore_ws if isinstance(ignore_ws, bool) else cls.ignore_whitespace,
            include=_as_patterns(data.get("include"), DEFAULT_INCLUDE),
            exclude=_as_patterns(data.get("exclude"), DEFAULT_EXCLUDE),
            max_file_size_mb=_as_float(data.get("maxFileSizeMB"), cls.max_file_size_mb),
            retention=RetentionPolicy.from_dict(retention_data if isinstance(retention_data, dict) else {}),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the config file shape."""
        return {
            "debounce": self.debounce_ms,
            "minCharChange": self.min_char_change,
            "minLineChange": self.min_line_change,
            "similarityThreshold": self.similarity_threshold,
            "ignoreWhitespace": self.ignore_whitespace,
            "include": list(self.include),
            "exclude": list(self.exclude),
            "maxFileSizeMB": self.max_file_size_mb,
            "retention": self.retention.to_dict(),
        }

    @property
    def max_file_size_bytes(self) -> int:
        return int(self.max_file_size_mb * 1024 * 1024)

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    @cached_property
    def _include_spec(self) -> pathspec.PathSpec:
        return pathspec.GitIgnoreSpec.from_lines(self.include)

    @cached_property
    def _exclude_spec(self) -> pathspec.PathSpec:
        return pathspec.GitIgnoreSpec.from_lines(self.exclude)

    def should_track(self, rel_path: str) -> bool:
        """Check if a project-relative file path is tracked.

        Dot-files and anything under a dot-directory are never tracked.

        Args:
            rel_path: Path relative to the project root (either separator)

        Returns:
            True if the path matches an include pattern and no exclude
        """
        posix = rel_path.replace("\\", "/")
        parts = PurePosixPath(posix).parts
        if not parts or any(part.startswith(".") for part in parts):
            return False
        if self._exclude_spec.match_file(posix):
            return False
        return self._include_spec.match_file(posix)

"""Change significance for autosnap.

Decides whether an edit is worth recording. Three gates run in order and
the first one that suppresses the change wins:

1. Trivial change: too few changed lines *and* too few changed characters.
2. Whitespace only: identical once all whitespace is stripped (optional).
3. Similarity: the line-level similarity is at or above the threshold.

Everything here is pure; logging is informational only.
"""

from __future__ import annotations

import difflib
import logging
import re
from dataclasses import dataclass
from typing import Sequence

from ..config.types import TrackingPolicy


logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True, slots=True)
class DiffStats:
    """Line-level change counts."""

    added: int
    removed: int

    def as_pair(self) -> tuple[int, int]:
        return (self.added, self.removed)


def _lines(text: str) -> list[str]:
    return text.splitlines(keepends=True)


def _opcodes(a: Sequence[str] | str, b: Sequence[str] | str) -> list[tuple[str, int, int, int, int]]:
    return difflib.SequenceMatcher(None, a, b, autojunk=False).get_opcodes()


def _line_counts(old: str, new: str) -> tuple[int, int, int]:
    """Return (unchanged, added, removed) line counts."""
    unchanged = added = removed = 0
    for tag, i1, i2, j1, j2 in _opcodes(_lines(old), _lines(new)):
        if tag == "equal":
            unchanged += i2 - i1
        else:
            removed += i2 - i1
            added += j2 - j1
    return unchanged, added, removed


def changed_chars(old: str, new: str, limit: int | None = None) -> int:
    """Count characters inserted or deleted, diffing only changed lines.

    Lines are matched first and the character diff runs inside each
    changed hunk, so unchanged text is never compared char by char.

    Args:
        limit: Stop counting once this many changed characters are seen
    """
    if old == new:
        return 0
    a, b = _lines(old), _lines(new)
    total = 0
    for tag, i1, i2, j1, j2 in _opcodes(a, b):
        if tag == "equal":
            continue
        removed, inserted = "".join(a[i1:i2]), "".join(b[j1:j2])
        if not removed or not inserted:
            total += len(removed) + len(inserted)
        else:
            for op, k1, k2, l1, l2 in _opcodes(removed, inserted):
                if op != "equal":
                    total += (k2 - k1) + (l2 - l1)
        if limit is not None and total >= limit:
            break
    return total


def similarity(old: str | None, new: str | None) -> float:
    """Fraction of lines left unchanged, in [0, 1].

    Returns 1.0 when both texts are empty and 0.0 when either is absent.
    """
    if old is None or new is None:
        return 0.0
    total = max(len(_lines(old)), len(_lines(new)))
    if total == 0:
        return 1.0
    unchanged, _, _ = _line_counts(old, new)
    return unchanged / total


def diff_stats(old: str | None, new: str | None) -> DiffStats:
    """Count added and removed lines between two versions."""
    if old is None:
        return DiffStats(added=len(_lines(new)) if new else 0, removed=0)
    if new is None:
        return DiffStats(added=0, removed=len(_lines(old)))
    _, added, removed = _line_counts(old, new)
    return DiffStats(added=added, removed=removed)


def is_trivial_change(old: str, new: str, policy: TrackingPolicy) -> bool:
    """True when neither the line nor the character threshold is reached."""
    if old == new:
        return True
    _, added, removed = _line_counts(old, new)
    if added + removed >= policy.min_line_change:
        return False
    # Inserted plus deleted characters can never be below the length change
    if abs(len(old) - len(new)) >= policy.min_char_change:
        return False
    return changed_chars(old, new, limit=policy.min_char_change) < policy.min_char_change


def is_whitespace_only(old: str, new: str) -> bool:
    return _WHITESPACE.sub("", old) == _WHITESPACE.sub("", new)


def is_meaningful(old: str | None, new: str | None, policy: TrackingPolicy) -> bool:
    """Decide whether a change from ``old`` to ``new`` should be recorded.

    Args:
        old: Last recorded content, or None for a new file
        new: Current content, or None for a deleted file
        policy: Thresholds to apply

    Returns:
        True if the change should become a new version
    """
    if old is None or new is None:
        return True

    if old == new:
        logger.debug("Content unchanged, skipped")
        return False

    if is_trivial_change(old, new, policy):
        logger.debug("Trivial change skipped")
        return False

    if policy.ignore_whitespace and is_whitespace_only(old, new):
        logger.debug("Whitespace-only change skipped")
        return False

    score = similarity(old, new)
    if score >= policy.similarity_threshold:
        logger.debug("Content too similar (%.2f%%), skipped", score * 100)
        return False

    return True

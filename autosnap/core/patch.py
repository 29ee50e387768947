"""Forward line patches.

A patch turns a parent's content into a child's content. It is stored as
compact JSON text::

    {"n": <base line count>, "h": <base digest>, "o": [[start, end, [lines...]], ...]}

Each hunk replaces base lines ``start:end`` with ``lines``. Removed lines
are not stored; the base digest and line count make sure a patch is only
ever applied to the exact text it was made from.
"""

from __future__ import annotations

import difflib
import hashlib
import json
from typing import Any


class PatchError(ValueError):
    """Raised when a patch is malformed or does not fit its base text."""


def _digest(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8", "surrogatepass")).hexdigest()[:13]


def make_patch(old: str, new: str) -> str | None:
    """Build a forward patch from ``old`` to ``new``.

    Returns:
        Patch text, or None when the two texts are identical
    """
    a = old.splitlines(keepends=True)
    b = new.splitlines(keepends=True)

    hunks: list[list[Any]] = []
    for tag, i1, i2, j1, j2 in difflib.SequenceMatcher(None, a, b, autojunk=False).get_opcodes():
        if tag != "equal":
            hunks.append([i1, i2, b[j1:j2]])

    if not hunks:
        return None

    return json.dumps(
        {"n": len(a), "h": _digest(old), "o": hunks},
        ensure_ascii=False,
        separators=(",", ":"),
    )


def _parse(patch: str) -> tuple[int, str, list[tuple[int, int, list[str]]]]:
    try:
        data = json.loads(patch)
    except (TypeError, json.JSONDecodeError) as e:
        raise PatchError(f"unreadable patch: {e}") from e

    if not isinstance(data, dict):
        raise PatchError("patch is not an object")

    count, digest, raw_hunks = data.get("n"), data.get("h"), data.get("o")
    if not isinstance(count, int) or not isinstance(digest, str) or not isinstance(raw_hunks, list):
        raise PatchError("patch header is incomplete")

    hunks: list[tuple[int, int, list[str]]] = []
    prev_end = 0
    for hunk in raw_hunks:
        if not (isinstance(hunk, list) and len(hunk) == 3):
            raise PatchError("malformed hunk")
        start, end, lines = hunk
        if not (isinstance(start, int) and isinstance(end, int) and isinstance(lines, list)):
            raise PatchError("malformed hunk")
        if not (prev_end <= start <= end <= count):
            raise PatchError(f"hunk {start}:{end} out of order or out of range")
        if not all(isinstance(line, str) for line in lines):
            raise PatchError("hunk lines must be strings")
        hunks.append((start, end, lines))
        prev_end = end

    return count, digest, hunks


def apply_patch(base: str, patch: str) -> str:
    """Apply a forward patch to its base text.

    Raises:
        PatchError: If the patch is malformed or was made from other content
    """
    count, digest, hunks = _parse(patch)
    lines = base.splitlines(keepends=True)

    if len(lines) != count or _digest(base) != digest:
        raise PatchError("patch does not match its base content")

    out: list[str] = []
    pos = 0
    for start, end, replacement in hunks:
        out.extend(lines[pos:start])
        out.extend(replacement)
        pos = end
    out.extend(lines[pos:])
    return "".join(out)

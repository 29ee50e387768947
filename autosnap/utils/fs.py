"""File system utilities for autosnap.

Atomic writes, byte-exact text I/O for tracked files, and JSON reads.
"""

from __future__ import annotations

import json
import os
import stat
import tempfile
from pathlib import Path
from typing import Any


def atomic_write(
    file_path: Path | str,
    content: str | bytes,
    mode: str = "w",
    permissions: int | None = None,
) -> None:
    """Write content atomically using tempfile + rename pattern.

    The previous file stays intact until the new content is fully on
    disk, so a crash mid-write never leaves a half-written artifact.

    Args:
        file_path: Target file path
        content: Content to write
        mode: Write mode ('w' for text, 'wb' for binary)
        permissions: Mode bits for the new file (mkstemp creates 0600)
    """
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    # Temp file in the same directory so os.replace stays on one filesystem
    fd, tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp"
    )

    try:
        with os.fdopen(fd, mode) as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        if permissions is not None:
            os.chmod(tmp_path, permissions)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


TEXT_ENCODING = "utf-8"
# Undecodable bytes survive a read/write round trip as lone surrogates
TEXT_ERRORS = "surrogateescape"
NEW_FILE_PERMISSIONS = 0o644


def read_text(file_path: Path | str) -> str:
    """Read a tracked file as text without losing undecodable bytes."""
    return Path(file_path).read_bytes().decode(TEXT_ENCODING, TEXT_ERRORS)


def text_to_bytes(content: str) -> bytes:
    """Inverse of read_text's decoding."""
    return content.encode(TEXT_ENCODING, TEXT_ERRORS)


def write_text(file_path: Path | str, content: str) -> None:
    """Write text produced by read_text back byte for byte.

    The file is replaced atomically and keeps its permission bits.
    """
    path = Path(file_path)
    try:
        permissions = stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        permissions = NEW_FILE_PERMISSIONS
    atomic_write(path, text_to_bytes(content), mode="wb", permissions=permissions)


def read_json(file_path: Path | str) -> Any:
    """Parse a JSON file.

    Returns:
        The parsed value, or None if the file is missing or not valid JSON
    """
    try:
        return json.loads(Path(file_path).read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None

"""Filesystem helpers for envvault."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


def atomic_write_text(target_path: Path, content: str, mode: int | None = 0o600) -> None:
    """Atomically replace ``target_path`` with ``content``.

    The text is written to a temp file in the same directory, its
    permissions are set, and it is moved over the target so readers never
    observe a partially written file.

    Args:
        target_path: File to write
        content: Full file content
        mode: Permission bits for the new file, or None to keep the
            tempfile default
    """
    target_path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_path = tempfile.mkstemp(
        dir=target_path.parent,
        prefix=f".{target_path.name}-",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)

        if mode is not None:
            os.chmod(temp_path, mode)

        Path(temp_path).replace(target_path)
    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


def read_text_if_exists(path: Path) -> str | None:
    """Return the file's text, or None if it does not exist."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


__all__ = [
    "atomic_write_text",
    "read_text_if_exists",
]

"""Whole-file writes that are never observed half-done."""

from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path


def atomic_write(path: Path, text: str) -> None:
    """Write text to path using write-to-temp-then-rename."""
    path = Path(path)
    fd, temp_path = tempfile.mkstemp(
        suffix=".tmp",
        prefix=f".{path.name}.",
        dir=path.parent,
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        if path.exists():
            os.chmod(temp_path, stat.S_IMODE(path.stat().st_mode))
        os.replace(temp_path, path)
    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


def read_text(path: Path) -> str:
    return Path(path).read_text(encoding="utf-8")


def append_text(path: Path, text: str) -> None:
    with Path(path).open("a", encoding="utf-8", newline="") as f:
        f.write(text)
        f.flush()

"""Crash-safe file replacement."""

from __future__ import annotations

import contextlib
import os
import stat
import tempfile
from pathlib import Path


def _default_mode(path: Path) -> int:
    # mkstemp creates 0600; keep the target's mode, else what open() would give.
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def atomic_write_text(path: Path, text: str, mode: int | None = None) -> None:
    """Replace *path* with *text* so readers see either the old or the new file.

    The content is written to a hidden temp file in the same directory,
    fsynced, then renamed over the target. The temp file is removed if
    anything fails before the rename.

    Args:
        path: File to replace.
        text: New content, written as UTF-8.
        mode: Permission bits for the result. Defaults to the existing
            file's mode, or the umask-derived mode for a new file.
    """
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            os.fchmod(f.fileno(), _default_mode(path) if mode is None else mode)
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise

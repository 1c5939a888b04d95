from __future__ import annotations

import errno
import os
import shutil
from pathlib import Path

HIDDEN_PREFIX = "."
ELLIPSIS = "…"
MAX_BASENAME_BYTES = 255


def is_hidden(name: str) -> bool:
    return name.startswith(HIDDEN_PREFIX)


def move_directory(src: Path, dst: Path) -> None:
    """Relocate ``src`` to ``dst``; ``dst`` must not exist yet."""
    dst.parent.mkdir(parents=True, exist_ok=True)
    try:
        os.rename(src, dst)
    except OSError as exc:
        if exc.errno != errno.EXDEV:
            raise
        # Cross-device rename failed; shutil.move copies then removes the origin.
        shutil.move(str(src), str(dst))


def copy_directory(src: Path, dst: Path) -> None:
    """Copy ``src`` to ``dst``; a symlinked ``src`` is recreated as a link."""
    dst.parent.mkdir(parents=True, exist_ok=True)
    if src.is_symlink():
        os.symlink(os.readlink(src), dst)
        return
    shutil.copytree(src, dst, symlinks=True, copy_function=shutil.copy2)


def remove_tree(path: Path) -> None:
    if path.is_symlink() or not path.is_dir():
        path.unlink()
        return
    shutil.rmtree(path)


def remove_empty_or_tree(path: Path) -> bool:
    """Remove ``path``; returns True when leftover contents had to be deleted too."""
    try:
        path.rmdir()
        return False
    except OSError as exc:
        if exc.errno not in (errno.ENOTEMPTY, errno.EEXIST):
            raise
    shutil.rmtree(path)
    return True

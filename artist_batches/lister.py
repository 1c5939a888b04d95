from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

from .fs_utils import is_hidden


def sort_artists(names: Iterable[str]) -> list[str]:
    """Case-insensitive ascending order with exact duplicates collapsed.

    Names are compared by ``str.casefold()``, which folds to lowercase, so
    punctuation such as ``_``, ``[`` and ``^`` sorts before letters rather
    than after ``Z`` as it would when folding to uppercase.

    Names that differ only by case are both kept; the exact name breaks the
    tie so the order never depends on the input order.
    """
    unique = set(names)
    return sorted(unique, key=lambda name: (name.casefold(), name))


def list_artists(path: Path) -> list[str]:
    """Return the non-hidden subdirectory names directly under ``path``."""
    try:
        with os.scandir(path) as it:
            names = [
                entry.name
                for entry in it
                if not is_hidden(entry.name) and entry.is_dir()
            ]
    except (FileNotFoundError, NotADirectoryError):
        return []
    return sort_artists(names)

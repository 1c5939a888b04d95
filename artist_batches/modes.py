from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from .fs_utils import is_hidden
from .manifest import BatchManifest
from .models import RunMode

logger = logging.getLogger(__name__)


class BatchFolderMatcher:
    """Decides which top-level destination directories are batch folders.

    Without a manifest any non-hidden directory whose name contains the
    separator counts. With a manifest only the names it records count, so an
    artist literally named ``"X - Y"`` at the destination root is left alone.
    """

    def __init__(self, separator: str, manifest: Optional[BatchManifest] = None) -> None:
        self.separator = separator
        self.known = set(manifest.batches) if manifest else None

    def matches(self, name: str) -> bool:
        if is_hidden(name):
            return False
        if self.known is not None:
            return name in self.known
        return self.separator in name

    def batch_folders(self, destination: Path) -> list[Path]:
        try:
            with os.scandir(destination) as it:
                found = [
                    Path(entry.path)
                    for entry in it
                    if self.matches(entry.name) and entry.is_dir()
                ]
        except (FileNotFoundError, NotADirectoryError):
            return []
        return sorted(found, key=lambda path: (path.name.casefold(), path.name))


def detect_mode(
    destination: Path, staging: Path, matcher: BatchFolderMatcher
) -> RunMode:
    if staging.is_dir():
        return RunMode.RECOVERY
    try:
        with os.scandir(destination) as it:
            if next(it, None) is None:
                return RunMode.FRESH
    except FileNotFoundError:
        return RunMode.FRESH
    if matcher.batch_folders(destination):
        return RunMode.SYNC
    logger.debug("No batch folders in %s; existing content is left in place", destination)
    return RunMode.FRESH

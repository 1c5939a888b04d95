from __future__ import annotations

import logging
import os
from pathlib import Path

from .fs_utils import move_directory, remove_empty_or_tree, remove_tree
from .models import OperationFailure, SessionContext
from .modes import BatchFolderMatcher

logger = logging.getLogger(__name__)


def _artist_dirs(batch_dir: Path) -> list[Path]:
    with os.scandir(batch_dir) as it:
        found = [Path(entry.path) for entry in it if entry.is_dir()]
    return sorted(found, key=lambda path: (path.name.casefold(), path.name))


def flatten(context: SessionContext, matcher: BatchFolderMatcher) -> int:
    """Drain every batch folder of the destination into the staging area.

    Batch folders are processed in sorted order, so when two folders hold an
    artist of the same name the one from the later folder wins. Returns the
    number of artist directories moved.
    """
    staging = context.staging
    moved = 0
    folders = matcher.batch_folders(context.destination)
    if not folders:
        logger.info("No batch folders to flatten in %s", context.destination)
        return 0
    logger.info("Flattening %d batch folder(s) into %s", len(folders), staging)
    for batch_dir in folders:
        logger.info("Flattening %s", batch_dir.name)
        try:
            artists = _artist_dirs(batch_dir)
        except FileNotFoundError:
            logger.warning("Batch folder vanished before flattening: %s", batch_dir)
            continue
        except OSError as exc:
            raise OperationFailure(f"Cannot read batch folder {batch_dir}: {exc}") from exc
        for artist_dir in artists:
            target = staging / artist_dir.name
            try:
                if os.path.lexists(target):
                    logger.warning(
                        "Duplicate artist %s in %s replaces the staged copy",
                        artist_dir.name,
                        batch_dir.name,
                    )
                    context.report.collisions.append(artist_dir.name)
                    remove_tree(target)
                move_directory(artist_dir, target)
            except OSError as exc:
                raise OperationFailure(
                    f"Failed to move {artist_dir} -> {target}: {exc}"
                ) from exc
            moved += 1
        try:
            if remove_empty_or_tree(batch_dir):
                logger.warning("Removed leftover files in batch folder %s", batch_dir.name)
        except OSError as exc:
            raise OperationFailure(f"Failed to remove {batch_dir}: {exc}") from exc
    logger.info("Flattening complete: %d artist(s) staged", moved)
    return moved

from __future__ import annotations

import logging
import os
from pathlib import Path

from .fs_utils import copy_directory, move_directory
from .models import BatchPlan, OperationFailure, SessionContext

logger = logging.getLogger(__name__)


def apply_plan(context: SessionContext, plan: BatchPlan) -> list[Path]:
    """Place every planned artist into its batch folder.

    Fresh runs copy out of the source; sync and recovery runs move out of the
    staging area. Artists missing from the working directory, or already
    present in their batch folder, are skipped with a warning. Returns the
    batch folders that exist once the plan is applied.
    """
    working_dir = context.working_dir
    if working_dir is None:
        raise ValueError("Working directory not set on session context")
    report = context.report
    moves = context.mode.moves_entries
    total = len(plan.batches)
    folders: list[Path] = []
    for batch in plan.batches:
        batch_dir = context.destination / batch.name
        logger.info("Batch %d/%d: %s", batch.index + 1, total, batch.name)
        created = batch_dir.is_dir()
        for artist in batch.artists:
            origin = working_dir / artist
            if not origin.is_dir():
                logger.warning("Skipping (not found): %s", artist)
                report.skipped.append(artist)
                continue
            target = batch_dir / artist
            if os.path.lexists(target):
                logger.warning(
                    "Skipping (already in %s): %s", batch.name, artist
                )
                report.skipped.append(artist)
                continue
            try:
                if not created:
                    batch_dir.mkdir(parents=True, exist_ok=True)
                    created = True
                if moves:
                    move_directory(origin, target)
                else:
                    copy_directory(origin, target)
            except OSError as exc:
                action = "move" if moves else "copy"
                raise OperationFailure(
                    f"Failed to {action} {origin} -> {target}: {exc}"
                ) from exc
            logger.debug("%s %s -> %s", "Moved" if moves else "Copied", artist, batch.name)
            report.placed.append(artist)
        if created:
            folders.append(batch_dir)
    report.batches_created = len(folders)
    return folders

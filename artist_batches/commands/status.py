from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..lister import list_artists, sort_artists
from ..models import BatchPlan, EmptyInputError, RunMode
from ..modes import BatchFolderMatcher, detect_mode
from ..session import BatchSession
from .output import error, info, ok as ok_line, warning


@dataclass(slots=True)
class StatusReport:
    ok: bool
    checks: list[str]
    mode: Optional[RunMode] = None
    plan: Optional[BatchPlan] = None
    batch_lines: list[str] = field(default_factory=list)


def _artists_after_sync(
    session: BatchSession, mode: RunMode, matcher: BatchFolderMatcher
) -> list[str]:
    names = list_artists(session.source)
    if mode is RunMode.FRESH:
        return names
    names.extend(list_artists(session.staging))
    for folder in matcher.batch_folders(session.destination):
        names.extend(list_artists(folder))
    return sort_artists(names)


def run(session: BatchSession) -> StatusReport:
    """Describe what a run would do without touching the filesystem."""
    checks: list[str] = []

    if not session.source.is_dir():
        checks.append(error("Source", f"missing: {session.source}"))
        return StatusReport(ok=False, checks=checks)
    checks.append(ok_line("Source", str(session.source)))

    if session.destination.is_dir():
        checks.append(ok_line("Destination", str(session.destination)))
    else:
        checks.append(info("Destination", "will be created"))

    manifest = session.load_manifest()
    if session.manifest_path is None:
        checks.append(info("Manifest", "disabled"))
    elif manifest is None:
        checks.append(info("Manifest", "none; batch folders recognised by name"))
    else:
        checks.append(ok_line("Manifest", f"{len(manifest.batches)} batch folder(s) recorded"))

    matcher = BatchFolderMatcher(session.settings.batches.separator, manifest)
    mode = detect_mode(session.destination, session.staging, matcher)
    checks.append(info("Mode", mode.value))

    if session.staging.is_dir():
        staged = list_artists(session.staging)
        checks.append(
            warning("Staging area", f"interrupted session, {len(staged)} artist(s) staged")
        )

    folders = matcher.batch_folders(session.destination)
    checks.append(info("Batch folders", f"{len(folders)} present"))

    names = _artists_after_sync(session, mode, matcher)
    try:
        plan = session.plan(names, strict=False)
    except EmptyInputError:
        checks.append(error("Artists", "no artist directories found"))
        return StatusReport(ok=False, checks=checks, mode=mode)

    checks.append(ok_line("Artists", f"{len(names)} found"))
    status_ok = True
    if plan.excluded:
        if session.settings.batches.strict_capacity:
            status_ok = False
            checks.append(error("Capacity", f"{len(plan.excluded)} artist(s) over capacity"))
        else:
            checks.append(
                warning("Capacity", f"{len(plan.excluded)} artist(s) would be excluded")
            )
    else:
        capacity = session.settings.batches.capacity
        checks.append(ok_line("Capacity", f"{plan.planned_count} of {capacity} slot(s) used"))
    checks.append(ok_line("Plan", f"{len(plan.batches)} batch folder(s)"))
    batch_lines = [
        f"{batch.index + 1:>3}. {batch.name} ({len(batch)})" for batch in plan.batches
    ]
    return StatusReport(
        ok=status_ok, checks=checks, mode=mode, plan=plan, batch_lines=batch_lines
    )

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .applier import apply_plan
from .config import Settings
from .flattener import flatten
from .lister import list_artists
from .manifest import BatchManifest
from .mirror import Mirror, create_mirror
from .models import (
    BatchPlan,
    ConfigurationError,
    EmptyInputError,
    OperationFailure,
    RunMode,
    RunReport,
    SessionContext,
)
from .modes import BatchFolderMatcher, detect_mode
from .planner import plan_batches

logger = logging.getLogger(__name__)

MAX_LOGGED_LEFTOVERS = 50


@dataclass
class BatchSession:
    """One invocation of the batching state machine against a destination."""

    source: Path
    destination: Path
    settings: Settings
    mirror: Mirror

    @classmethod
    def create(
        cls,
        source: Path,
        destination: Path,
        settings: Optional[Settings] = None,
        *,
        mirror: Optional[Mirror] = None,
    ) -> "BatchSession":
        settings = settings or Settings()
        return cls(
            source=Path(source).expanduser().resolve(),
            destination=Path(destination).expanduser().resolve(),
            settings=settings,
            mirror=mirror or create_mirror(settings.mirror),
        )

    @property
    def staging(self) -> Path:
        return self.destination / self.settings.staging.dir_name

    @property
    def manifest_path(self) -> Optional[Path]:
        if not self.settings.manifest.enabled:
            return None
        return self.destination / self.settings.manifest.file_name

    def load_manifest(self) -> Optional[BatchManifest]:
        path = self.manifest_path
        if path is None:
            return None
        return BatchManifest.load(path)

    def matcher(self) -> BatchFolderMatcher:
        return BatchFolderMatcher(self.settings.batches.separator, self.load_manifest())

    def detect_mode(self) -> RunMode:
        return detect_mode(self.destination, self.staging, self.matcher())

    def validate(self) -> None:
        if not self.source.is_dir():
            raise ConfigurationError(f"Source directory '{self.source}' does not exist")
        if self.source == self.destination:
            raise ConfigurationError("Source and destination must be different directories")
        if self.source in self.destination.parents:
            raise ConfigurationError(
                f"Destination '{self.destination}' must not be inside the source directory"
            )

    def plan(self, names: list[str], *, strict: Optional[bool] = None) -> BatchPlan:
        batches = self.settings.batches
        return plan_batches(
            names,
            batches.batch_size,
            batches.max_batches,
            separator=batches.separator,
            strict=batches.strict_capacity if strict is None else strict,
        )

    def run(self) -> RunReport:
        self.validate()
        try:
            self.destination.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OperationFailure(
                f"Cannot create destination {self.destination}: {exc}"
            ) from exc

        manifest = self.load_manifest()
        matcher = BatchFolderMatcher(self.settings.batches.separator, manifest)
        mode = detect_mode(self.destination, self.staging, matcher)
        context = SessionContext(
            source=self.source,
            destination=self.destination,
            staging=self.staging,
            settings=self.settings,
            mode=mode,
            report=RunReport(mode=mode),
        )
        logger.info("Detected mode: %s", mode.value)

        if mode is RunMode.RECOVERY:
            logger.info("Found interrupted session at %s", self.staging)
            if matcher.batch_folders(self.destination):
                flatten(context, matcher)
            self._mirror_into_staging(context)
            context.working_dir = self.staging
        elif mode is RunMode.SYNC:
            try:
                self.staging.mkdir()
            except OSError as exc:
                raise OperationFailure(
                    f"Cannot create staging area {self.staging}: {exc}"
                ) from exc
            flatten(context, matcher)
            self._mirror_into_staging(context)
            context.working_dir = self.staging
        else:
            context.working_dir = self.source

        names = list_artists(context.working_dir)
        context.report.artists_found = len(names)
        try:
            plan = self.plan(names)
        except EmptyInputError:
            self._discard_empty_staging()
            raise
        logger.info(
            "Found %d artist directories; creating %d batch folder(s)",
            len(names),
            len(plan.batches),
        )
        context.report.excluded = list(plan.excluded)

        self._write_manifest(plan, previous=manifest)
        apply_plan(context, plan)
        self._write_manifest(plan)
        self._cleanup(context)
        return context.report

    def _mirror_into_staging(self, context: SessionContext) -> None:
        stats = self.mirror.mirror(self.source, self.staging)
        if stats is not None:
            context.report.files_mirrored = stats.copied

    def _write_manifest(
        self, plan: BatchPlan, previous: Optional[BatchManifest] = None
    ) -> None:
        path = self.manifest_path
        if path is None:
            return
        manifest = BatchManifest.from_plan(plan)
        if previous is not None:
            # Until apply finishes, folders from both layouts may exist on disk.
            manifest.batches |= previous.batches
        try:
            manifest.save(path)
        except OSError as exc:
            raise OperationFailure(f"Failed to write batch manifest {path}: {exc}") from exc

    def _discard_empty_staging(self) -> None:
        if not self.staging.is_dir():
            return
        try:
            self.staging.rmdir()
        except OSError:
            logger.warning("Staging area %s is not empty; leaving it in place", self.staging)

    def _cleanup(self, context: SessionContext) -> None:
        if not self.staging.is_dir():
            return
        try:
            remaining = sorted(os.listdir(self.staging), key=lambda n: (n.casefold(), n))
            if not remaining:
                self.staging.rmdir()
                context.report.staging_removed = True
                logger.info("Cleaned up staging area")
                return
        except OSError as exc:
            raise OperationFailure(
                f"Failed to clean up staging area {self.staging}: {exc}"
            ) from exc
        context.report.leftovers = remaining
        logger.warning(
            "%d item(s) remain in the staging area (duplicates or special names): %s",
            len(remaining),
            ", ".join(remaining[:MAX_LOGGED_LEFTOVERS]),
        )
        logger.warning("You may want to manually review: %s", self.staging)

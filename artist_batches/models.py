from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from .config import Settings


class RunMode(Enum):
    """How the destination is reconciled with the source for one run."""

    FRESH = "fresh"
    SYNC = "sync"
    RECOVERY = "recovery"

    @property
    def moves_entries(self) -> bool:
        # Fresh copies out of the source; the other modes drain the staging area.
        return self is not RunMode.FRESH


@dataclass(frozen=True, slots=True)
class Batch:
    index: int
    name: str
    artists: tuple[str, ...]

    @property
    def first(self) -> str:
        return self.artists[0]

    @property
    def last(self) -> str:
        return self.artists[-1]

    def __len__(self) -> int:
        return len(self.artists)


@dataclass(slots=True)
class BatchPlan:
    batches: list[Batch]
    excluded: list[str] = field(default_factory=list)

    @property
    def planned_count(self) -> int:
        return sum(len(batch) for batch in self.batches)


@dataclass
class RunReport:
    mode: RunMode
    artists_found: int = 0
    batches_created: int = 0
    placed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    excluded: list[str] = field(default_factory=list)
    collisions: list[str] = field(default_factory=list)
    leftovers: list[str] = field(default_factory=list)
    files_mirrored: Optional[int] = None
    staging_removed: bool = False

    def summary_lines(self) -> list[str]:
        lines = [
            f"Mode: {self.mode.value}",
            f"Artists found: {self.artists_found}",
            f"Batch folders: {self.batches_created}",
            f"Artists placed: {len(self.placed)}",
        ]
        if self.files_mirrored is not None:
            lines.append(f"Files mirrored to staging: {self.files_mirrored}")
        if self.skipped:
            lines.append(f"Skipped (not found or already placed): {len(self.skipped)}")
        if self.excluded:
            lines.append(f"Excluded (over capacity): {len(self.excluded)}")
        if self.collisions:
            lines.append(f"Flatten collisions replaced: {len(self.collisions)}")
        if self.leftovers:
            lines.append(f"Left in staging area: {len(self.leftovers)}")
        return lines


@dataclass
class SessionContext:
    """Per-run state threaded through every component of a batching run."""

    source: Path
    destination: Path
    staging: Path
    settings: Settings
    mode: RunMode
    report: RunReport
    working_dir: Optional[Path] = None


class BatchError(Exception):
    """Base class for errors that abort a batching run."""


class ConfigurationError(BatchError):
    """Raised when the source directory or settings are unusable."""


class EmptyInputError(BatchError):
    """Raised when the working directory holds no artist directories."""


class CapacityError(BatchError):
    """Raised when more artists exist than batches can hold and truncation is disabled."""


class OperationFailure(BatchError):
    """Raised when a filesystem mutation or mirror transfer fails."""

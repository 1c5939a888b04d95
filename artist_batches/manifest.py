from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .models import BatchPlan

logger = logging.getLogger(__name__)

MANIFEST_VERSION = 1


@dataclass
class BatchManifest:
    """Names of the batch folders this tool has written to a destination."""

    batches: set[str] = field(default_factory=set)

    @classmethod
    def from_plan(cls, plan: BatchPlan) -> "BatchManifest":
        return cls(batches={batch.name for batch in plan.batches})

    @classmethod
    def load(cls, path: Path) -> Optional["BatchManifest"]:
        if not path.exists():
            return None
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable batch manifest %s: %s", path, exc)
            return None
        if not isinstance(raw, dict) or raw.get("version") != MANIFEST_VERSION:
            logger.warning("Ignoring batch manifest %s with unknown format", path)
            return None
        batches = raw.get("batches")
        if not isinstance(batches, list):
            logger.warning("Ignoring batch manifest %s with unknown format", path)
            return None
        return cls(batches={str(name) for name in batches})

    def save(self, path: Path) -> None:
        payload = {
            "version": MANIFEST_VERSION,
            "batches": sorted(self.batches),
        }
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_text(
            json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False),
            encoding="utf-8",
        )
        os.replace(tmp_path, path)

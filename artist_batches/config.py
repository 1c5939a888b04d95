from __future__ import annotations

from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

DEFAULT_SEPARATOR = " - "
DEFAULT_STAGING_NAME = ".artists_flat_temp"
DEFAULT_MANIFEST_NAME = ".artist_batches.json"
CONFIG_NAMES = ("artist-batches.yaml", "artist-batches.yml")


class BatchSettings(BaseModel):
    batch_size: int = Field(default=100, ge=1)
    max_batches: int = Field(default=100, ge=1)
    separator: str = DEFAULT_SEPARATOR
    strict_capacity: bool = False

    @field_validator("separator")
    @classmethod
    def _separator_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("separator must contain a non-whitespace character")
        return value

    @property
    def capacity(self) -> int:
        return self.batch_size * self.max_batches


class StagingSettings(BaseModel):
    dir_name: str = DEFAULT_STAGING_NAME

    @field_validator("dir_name")
    @classmethod
    def _hidden_name(cls, value: str) -> str:
        if not value.startswith(".") or "/" in value or value in {".", ".."}:
            raise ValueError("staging dir_name must be a hidden directory name")
        return value


class MirrorSettings(BaseModel):
    backend: Literal["auto", "rsync", "python"] = "auto"
    rsync_path: str = "rsync"
    progress: bool = True
    extra_args: List[str] = Field(default_factory=list)


class ManifestSettings(BaseModel):
    enabled: bool = True
    file_name: str = DEFAULT_MANIFEST_NAME

    @field_validator("file_name")
    @classmethod
    def _hidden_file(cls, value: str) -> str:
        if not value.startswith(".") or "/" in value:
            raise ValueError("manifest file_name must be a hidden file name")
        return value


class Settings(BaseModel):
    batches: BatchSettings = BatchSettings()
    staging: StagingSettings = StagingSettings()
    mirror: MirrorSettings = MirrorSettings()
    manifest: ManifestSettings = ManifestSettings()

    @classmethod
    def load(cls, path: Path) -> "Settings":
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
        return cls.model_validate(raw or {})


def find_config(explicit_path: Optional[Path]) -> Optional[Path]:
    if explicit_path:
        if not explicit_path.exists():
            raise FileNotFoundError(f"Config file not found: {explicit_path}")
        return explicit_path
    cwd = Path.cwd()
    for name in CONFIG_NAMES:
        candidate = cwd / name
        if candidate.exists():
            return candidate
    return None

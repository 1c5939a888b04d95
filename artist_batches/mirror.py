from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from .config import MirrorSettings
from .fs_utils import remove_tree
from .models import OperationFailure

logger = logging.getLogger(__name__)


@dataclass
class MirrorStats:
    copied: int = 0
    unchanged: int = 0


class Mirror(Protocol):
    def mirror(self, source: Path, target: Path) -> Optional[MirrorStats]: ...


class RsyncMirror:
    """Additive, incremental mirror delegated to an ``rsync`` executable.

    rsync reports its own progress, so no :class:`MirrorStats` are returned.
    """

    def __init__(self, settings: MirrorSettings) -> None:
        self.settings = settings

    def command(self, source: Path, target: Path) -> list[str]:
        cmd = [self.settings.rsync_path, "-a"]
        if self.settings.progress:
            cmd.append("--info=progress2")
        cmd.extend(self.settings.extra_args)
        # Trailing slashes copy the contents of source into target.
        cmd.extend([f"{source}{os.sep}", f"{target}{os.sep}"])
        return cmd

    def mirror(self, source: Path, target: Path) -> Optional[MirrorStats]:
        cmd = self.command(source, target)
        logger.info("Syncing %s -> %s with %s", source, target, cmd[0])
        try:
            subprocess.run(cmd, check=True)
        except FileNotFoundError as exc:
            raise OperationFailure(f"rsync executable not found: {cmd[0]}") from exc
        except subprocess.CalledProcessError as exc:
            raise OperationFailure(
                f"rsync exited with status {exc.returncode} while syncing {source}"
            ) from exc
        return None


class PythonMirror:
    """In-process mirror: copies files whose size or mtime differ, never deletes."""

    def mirror(self, source: Path, target: Path) -> MirrorStats:
        logger.info("Syncing %s -> %s", source, target)
        stats = MirrorStats()
        try:
            target.mkdir(parents=True, exist_ok=True)
            for dirpath, dirnames, filenames in os.walk(source):
                src_dir = Path(dirpath)
                dst_dir = target / src_dir.relative_to(source)
                for name in list(dirnames):
                    src_sub = src_dir / name
                    if src_sub.is_symlink():
                        # os.walk does not descend into links; copy them as links.
                        self._copy_link(src_sub, dst_dir / name, stats)
                        continue
                    (dst_dir / name).mkdir(exist_ok=True)
                for name in filenames:
                    src_file = src_dir / name
                    dst_file = dst_dir / name
                    if src_file.is_symlink():
                        self._copy_link(src_file, dst_file, stats)
                    elif self._is_current(src_file, dst_file):
                        stats.unchanged += 1
                    else:
                        shutil.copy2(src_file, dst_file)
                        stats.copied += 1
            self._copy_directory_stats(source, target)
        except OSError as exc:
            raise OperationFailure(f"Sync {source} -> {target} failed: {exc}") from exc
        logger.info(
            "Sync complete: %d copied, %d unchanged", stats.copied, stats.unchanged
        )
        return stats

    @staticmethod
    def _is_current(src: Path, dst: Path) -> bool:
        try:
            dst_stat = dst.stat()
        except FileNotFoundError:
            return False
        src_stat = src.stat()
        return (
            dst_stat.st_size == src_stat.st_size
            and int(dst_stat.st_mtime) == int(src_stat.st_mtime)
        )

    @staticmethod
    def _copy_link(src: Path, dst: Path, stats: MirrorStats) -> None:
        link = os.readlink(src)
        if dst.is_symlink():
            if os.readlink(dst) == link:
                stats.unchanged += 1
                return
            dst.unlink()
        elif dst.exists():
            # A real copy of a linked directory is replaced by the link itself.
            remove_tree(dst)
        os.symlink(link, dst)
        stats.copied += 1

    @staticmethod
    def _copy_directory_stats(source: Path, target: Path) -> None:
        for dirpath, _dirs, _files in os.walk(source, topdown=False):
            src_dir = Path(dirpath)
            shutil.copystat(src_dir, target / src_dir.relative_to(source))


def create_mirror(settings: MirrorSettings) -> Mirror:
    backend = settings.backend
    if backend == "auto":
        backend = "rsync" if shutil.which(settings.rsync_path) else "python"
        logger.debug("Mirror backend auto-selected: %s", backend)
    if backend == "rsync":
        return RsyncMirror(settings)
    return PythonMirror()

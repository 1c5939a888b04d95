from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import yaml
from pydantic import ValidationError

from .commands import status as cmd_status
from .config import BatchSettings, MirrorSettings, Settings, find_config
from .models import BatchError
from .session import BatchSession

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(levelname).1s | %(name)s | %(message)s"
WARNINGS_LOG_NAME = "artist-batches-warnings.log"

C_RESET = "\033[0m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",  # Cyan
    logging.INFO: "\033[37m",  # Light gray
    logging.WARNING: "\033[33m",  # Yellow
    logging.ERROR: "\033[31m",  # Red
    logging.CRITICAL: "\033[35m",  # Magenta
}


class ShortPathFormatter(logging.Formatter):
    def __init__(self, fmt: str, roots: list[Path]) -> None:
        super().__init__(fmt)
        # Longest first so a destination nested in a common parent still shortens fully.
        self.roots = sorted((str(root) for root in roots if root), key=len, reverse=True)

    def _shorten(self, message: str) -> str:
        for root in self.roots:
            if not message:
                break
            message = message.replace(f"{root}/", "")
        return message

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        return self._shorten(message)


class ColorFormatter(ShortPathFormatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        if not color:
            return message
        return f"{color}{message}{C_RESET}"


class WarningBufferHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self.records: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
        except Exception:  # pragma: no cover
            msg = record.getMessage()
        self.records.append(msg)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="artist-batches",
        description="Organize artist directories into batch folders named 'First - Last'",
        epilog="Example: artist-batches /path/to/artists /path/to/organized",
    )
    parser.add_argument("source", nargs="?", type=Path, help="Directory of artist folders")
    parser.add_argument(
        "destination", nargs="?", type=Path, help="Directory that receives the batch folders"
    )
    parser.add_argument("--config", type=Path, help="Path to artist-batches.yaml")
    parser.add_argument("--log-level", default="INFO", help="Python logging level")
    parser.add_argument(
        "--status",
        action="store_true",
        help="Show the detected mode and planned batches without changing anything",
    )
    parser.add_argument(
        "--mirror",
        choices=["auto", "rsync", "python"],
        help="Backend used to sync the source into the staging area",
    )
    parser.add_argument("--batch-size", type=int, help="Artists per batch folder")
    parser.add_argument("--max-batches", type=int, help="Maximum number of batch folders")
    parser.add_argument(
        "--warnings-log",
        type=Path,
        default=None,
        help=f"Write warnings to this file (default: ./{WARNINGS_LOG_NAME})",
    )
    return parser


def load_settings(args: argparse.Namespace) -> Settings:
    config_path = find_config(args.config)
    settings = Settings.load(config_path) if config_path else Settings()
    batch_updates = {
        key: value
        for key, value in (
            ("batch_size", args.batch_size),
            ("max_batches", args.max_batches),
        )
        if value is not None
    }
    if batch_updates:
        settings.batches = BatchSettings.model_validate(
            {**settings.batches.model_dump(), **batch_updates}
        )
    if args.mirror:
        settings.mirror = MirrorSettings.model_validate(
            {**settings.mirror.model_dump(), "backend": args.mirror}
        )
    return settings


def configure_logging(
    level_name: str, display_roots: list[Path], warnings_log: Path
) -> tuple[WarningBufferHandler, logging.Handler]:
    log_level = getattr(logging, level_name.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)

    color_handler = logging.StreamHandler()
    color_handler.setFormatter(ColorFormatter(LOG_FORMAT, display_roots))
    root_logger.addHandler(color_handler)

    warn_buffer = WarningBufferHandler()
    warn_buffer.setFormatter(ShortPathFormatter(LOG_FORMAT, display_roots))
    root_logger.addHandler(warn_buffer)

    file_handler = logging.FileHandler(warnings_log, mode="w", encoding="utf-8", delay=True)
    file_handler.setLevel(logging.WARNING)
    file_handler.setFormatter(ShortPathFormatter(LOG_FORMAT, display_roots))
    root_logger.addHandler(file_handler)
    return warn_buffer, file_handler


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.source is None or args.destination is None:
        parser.print_usage(sys.stderr)
        print(
            "Example: artist-batches /path/to/artists /path/to/organized",
            file=sys.stderr,
        )
        return 1

    try:
        settings = load_settings(args)
    except (OSError, yaml.YAMLError, ValidationError) as exc:
        print(f"Error: invalid configuration: {exc}", file=sys.stderr)
        return 1

    session = BatchSession.create(args.source, args.destination, settings)
    warnings_log = args.warnings_log or Path.cwd() / WARNINGS_LOG_NAME
    warn_buffer, file_handler = configure_logging(
        args.log_level, [session.destination, session.source], warnings_log
    )
    exit_code = 0
    try:
        if args.status:
            status = cmd_status.run(session)
            for line in status.checks:
                print(line)
            for line in status.batch_lines:
                print(line)
            return 0 if status.ok else 1
        report = session.run()
        print("\n=== Done! ===")
        for line in report.summary_lines():
            print(line)
        print(
            f"Organized {len(report.placed)} artists into "
            f"{report.batches_created} directories at '{session.destination}'"
        )
    except BatchError as exc:
        logger.error("%s", exc)
        exit_code = 1
    finally:
        if warn_buffer.records:
            print("\n\033[33mWarnings/Errors summary:\033[0m")
            for line in warn_buffer.records:
                print(f" - {line}")
            print(f"\nFull warning log: {warnings_log}")
        logging.getLogger().removeHandler(file_handler)
        file_handler.close()
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from . import __version__
from .adapters.metadata_tools import MetadataToolError
from .adapters.photos_app import DestinationLibraryError
from .config import ConfigManager
from .core import Reconciler, dump_library
from .utils.error_handler import ErrorHandler, FatalReconciliationError
from .utils.logger import get_logger


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    print(f"takeout-photo-sync v{__version__}")
    if args.command is None:
        parser.print_help()
        return 2

    try:
        config = ConfigManager(Path(args.config) if args.config else None)
    except (OSError, ValueError) as exc:
        print(f"無法讀取設定檔: {exc}", file=sys.stderr)
        return 2

    if args.command == "sync":
        return _run_sync(args, config)
    if args.command == "dump":
        return _run_dump(args, config)
    return 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="takeout_photo_sync")
    parser.add_argument("--config", help="Path to config file", default=None)

    subparsers = parser.add_subparsers(dest="command")

    sync = subparsers.add_parser("sync", help="Reconcile a Takeout export with the destination library")
    sync.add_argument("--source", required=True, help="Takeout folder or library .json dump")
    sync.add_argument("--output", required=True, help="Root folder for Run_* folders")
    sync.add_argument("--what-if", action="store_true", help="Log mutating calls instead of running them")
    _add_album_filters(sync)

    dump = subparsers.add_parser("dump", help="Parse a Takeout export and write the library as JSON")
    dump.add_argument("--source", required=True, help="Takeout folder")
    dump.add_argument("--output", required=True, help="Output .json file")
    _add_album_filters(dump)

    return parser


def _add_album_filters(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--include", action="append", default=None, help="Album title pattern to include")
    parser.add_argument("--exclude", action="append", default=None, help="Album title pattern to exclude")


def _apply_overrides(args: argparse.Namespace, config: ConfigManager) -> bool:
    if args.include:
        config.set("albums.include", args.include)
    if args.exclude:
        config.set("albums.exclude", args.exclude)
    if getattr(args, "what_if", False):
        config.set("run.what_if", True)

    errors = config.validate_config()
    for error in errors:
        print(f"設定錯誤: {error}", file=sys.stderr)
    return not errors


def _run_sync(args: argparse.Namespace, config: ConfigManager) -> int:
    if not _apply_overrides(args, config):
        return 2

    reconciler = Reconciler(config)
    try:
        result = reconciler.run(Path(args.source), Path(args.output))
    except FatalReconciliationError as exc:
        print(f"執行中止 [{exc.code}]: {exc.message}", file=sys.stderr)
        return 1
    except (DestinationLibraryError, OSError) as exc:
        print(f"執行中止: {exc}", file=sys.stderr)
        return 1

    print(
        f"Sync done. Imported: {result.summary_info.imported_count}, "
        f"Ambiguous: {len(result.summary_info.ambiguous)}, "
        f"Unresolved: {len(result.summary_info.unresolved)}"
    )
    print(f"Summary written to: {result.summary_path}")
    return 0


def _run_dump(args: argparse.Namespace, config: ConfigManager) -> int:
    if not _apply_overrides(args, config):
        return 2

    logger = get_logger("takeout_photo_sync")
    error_handler = ErrorHandler()
    try:
        library = Reconciler(config).build_library(Path(args.source), logger, error_handler)
    except FatalReconciliationError as exc:
        print(f"執行中止 [{exc.code}]: {exc.message}", file=sys.stderr)
        return 1
    except (MetadataToolError, OSError, ValueError) as exc:
        print(f"執行中止: {exc}", file=sys.stderr)
        return 1

    output_path = dump_library(library, Path(args.output))
    print(f"Dump done. Albums: {len(library.albums)}, Warnings: {len(error_handler.errors)}")
    print(f"Library written to: {output_path}")
    return 0

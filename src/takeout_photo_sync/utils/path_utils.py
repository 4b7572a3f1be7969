"""路徑與相簿篩選工具。"""

from __future__ import annotations

import fnmatch
import os
from pathlib import Path
from typing import Iterable


def should_exclude_path(path: Path, run_folder_prefix: str = "Run_", logger=None) -> bool:
    for part in path.parts:
        if fnmatch.fnmatch(part, f"{run_folder_prefix}*"):
            return True

    try:
        if path.is_symlink() or os.path.islink(path):
            if logger is not None:
                logger.info(f"SKIPPED_SYMLINK: {path}")
            return True
    except OSError:
        if logger is not None:
            logger.info(f"SKIPPED_SYMLINK: {path}")
        return True

    return False


def is_album_selected(title: str, include: Iterable[str] = (), exclude: Iterable[str] = ()) -> bool:
    include_patterns = list(include)
    if include_patterns and not any(fnmatch.fnmatchcase(title, pattern) for pattern in include_patterns):
        return False
    return not any(fnmatch.fnmatchcase(title, pattern) for pattern in exclude)


def find_run_dirs(output_root: Path, run_folder_prefix: str = "Run_") -> list[Path]:
    if not output_root.exists():
        return []
    return sorted(
        (path for path in output_root.glob(f"{run_folder_prefix}*") if path.is_dir()),
        key=lambda path: path.name,
    )

"""執行摘要輸出工具。"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List

from ..models import ErrorLevel, Library, MatchStatus
from .error_handler import ErrorHandler

SUMMARY_FILE = "summary.txt"


@dataclass
class UnresolvedEntry:
    album_title: str
    path: str
    status: str
    candidates: List[str] = field(default_factory=list)


@dataclass
class SummaryInfo:
    run_time: str
    source: str
    run_dir: str
    what_if: bool
    album_count: int
    item_count: int
    paired_count: int
    status_counts: Dict[str, int]
    imported_count: int
    created_album_count: int
    code_counts: Dict[str, int]
    unresolved: List[UnresolvedEntry]
    ambiguous: List[UnresolvedEntry]
    fatal_error: str | None = None
    warnings: List[str] = field(default_factory=list)


def build_summary_info(
    *,
    library: Library,
    source: Path,
    run_dir: Path,
    what_if: bool,
    error_handler: ErrorHandler,
    imported_count: int = 0,
    created_album_count: int = 0,
    fatal_error: str | None = None,
) -> SummaryInfo:
    status_counts: dict[str, int] = {status.value: 0 for status in MatchStatus}
    unresolved: list[UnresolvedEntry] = []
    ambiguous: list[UnresolvedEntry] = []
    item_count = 0
    paired_count = 0

    for album, item in library.iter_items():
        item_count += 1
        if item.is_paired:
            paired_count += 1
        status = item.match.status
        status_counts[status.value] += 1
        if status is MatchStatus.AMBIGUOUS:
            ambiguous.append(
                UnresolvedEntry(album.title, str(item.main_part.path), status.value, list(item.match.candidates))
            )
        elif not item.is_resolved:
            unresolved.append(UnresolvedEntry(album.title, str(item.main_part.path), status.value))

    if fatal_error is None:
        fatal = next((error for error in error_handler.errors if error.is_fatal), None)
        fatal_error = fatal.format_line() if fatal else None

    return SummaryInfo(
        run_time=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        source=str(source),
        run_dir=str(run_dir),
        what_if=what_if,
        album_count=len(library.albums),
        item_count=item_count,
        paired_count=paired_count,
        status_counts=status_counts,
        imported_count=imported_count,
        created_album_count=created_album_count,
        code_counts=error_handler.count_by_code(),
        unresolved=unresolved,
        ambiguous=ambiguous,
        fatal_error=fatal_error,
        warnings=[error.format_line() for error in error_handler.get_by_level(ErrorLevel.RECOVERABLE)],
    )


def build_summary_text(info: SummaryInfo) -> str:
    lines = [
        "=== takeout-photo-sync 執行摘要 ===",
        f"執行時間: {info.run_time}",
        f"模式: {'What-if' if info.what_if else 'Sync'}",
        f"來源: {info.source}",
        f"Run folder: {info.run_dir}",
        "",
        "--- 相片庫 ---",
        f"相簿數: {info.album_count} 個",
        f"項目數: {info.item_count} 個（Live Photo {info.paired_count} 組）",
        f"狀態: {format_counts(info.status_counts)}",
        "",
        "--- 本次動作 ---",
        f"新建相簿: {info.created_album_count} 個",
        f"匯入項目: {info.imported_count} 個",
        "",
        "--- 錯誤與警告 ---",
        f"代碼統計: {format_counts(info.code_counts)}",
    ]

    if info.fatal_error:
        lines.append(f"致命錯誤，已中止: {info.fatal_error}")

    lines.extend(["", f"--- Ambiguous ({len(info.ambiguous)}) ---"])
    for entry in info.ambiguous:
        lines.append(f"[{entry.album_title}] {entry.path} -> {', '.join(entry.candidates)}")

    lines.extend(["", f"--- 未解決 ({len(info.unresolved)}) ---"])
    for entry in info.unresolved:
        lines.append(f"[{entry.album_title}] {entry.path} ({entry.status})")

    lines.extend(["", f"--- 警告 ({len(info.warnings)}) ---"])
    lines.extend(info.warnings)

    return "\n".join(lines) + "\n"


def write_summary(run_dir: Path, info: SummaryInfo) -> Path:
    run_dir.mkdir(parents=True, exist_ok=True)
    summary_path = run_dir / SUMMARY_FILE
    summary_path.write_text(build_summary_text(info), encoding="utf-8")
    return summary_path


def format_counts(counts: Dict[str, int]) -> str:
    items = [f"{key}({value})" for key, value in sorted(counts.items()) if value]
    return ", ".join(items) if items else "無"

"""Run folder 的持久化紀錄：讀取、寫入，以及疊加回新解析的相片庫。"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Iterable, List, NoReturn, Optional

from ..adapters.photos_app import DestinationLibraryClient
from ..models import AlbumBinding, BindingConflictError, CreatedAlbum, ImportedImage, Library
from ..utils import path_utils
from ..utils.error_handler import ErrorHandler, FatalReconciliationError
from ..utils.logger import get_logger

CREATED_ALBUMS_FILE = "created_albums.json"
IMPORTED_IMAGES_FILE = "imported_images.jsonl"
LEGACY_IMPORTED_IMAGES_FILE = "imported_images.json"


@dataclass
class RunState:
    created_albums: List[CreatedAlbum] = field(default_factory=list)
    imported_images: List[ImportedImage] = field(default_factory=list)
    run_dirs: List[Path] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.created_albums and not self.imported_images

    def album_title_for(self, album_id: str) -> Optional[str]:
        for record in self.created_albums:
            if record.album_id == album_id:
                return record.title
        return None


def read_created_albums(path: Path) -> list[CreatedAlbum]:
    if not path.exists():
        return []
    try:
        payload = json.loads(path.read_text(encoding="utf-8") or "[]")
    except (OSError, json.JSONDecodeError) as exc:
        raise FatalReconciliationError("E-STATE-READ", f"無法讀取 {path}: {exc}", str(path)) from exc
    if not isinstance(payload, list):
        raise FatalReconciliationError("E-STATE-READ", f"{path} 不是 JSON 陣列", str(path))
    return [CreatedAlbum.from_dict(record) for record in payload]


def read_imported_images(path: Path, logger=None) -> list[ImportedImage]:
    """讀取 NDJSON；只有最後一行允許是中斷寫入留下的殘缺紀錄。"""
    logger = logger or get_logger("RunStateReader")
    if not path.exists():
        return []
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        raise FatalReconciliationError("E-STATE-READ", f"無法讀取 {path}: {exc}", str(path)) from exc

    indexed = [(index, line.strip()) for index, line in enumerate(lines, start=1) if line.strip()]
    records: list[ImportedImage] = []
    for position, (index, line) in enumerate(indexed):
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as exc:
            if position == len(indexed) - 1:
                logger.warning(f"略過 {path.name} 第 {index} 行殘缺紀錄: {line!r}")
                break
            raise FatalReconciliationError(
                "E-STATE-READ",
                f"{path} 第 {index} 行 JSON 解析失敗: {exc}",
                str(path),
            ) from exc
        records.append(ImportedImage.from_dict(payload))
    return records


def read_legacy_imported_images(path: Path) -> list[ImportedImage]:
    """舊格式：每筆 JSON 物件後面接一個逗號，整個檔案不是合法 JSON。"""
    if not path.exists():
        return []
    try:
        text = path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise FatalReconciliationError("E-STATE-READ", f"無法讀取 {path}: {exc}", str(path)) from exc
    if text.endswith(","):
        text = text[:-1]
    if not text:
        return []
    try:
        payload = json.loads(f"[{text}]")
    except json.JSONDecodeError as exc:
        raise FatalReconciliationError("E-STATE-READ", f"{path} 解析失敗: {exc}", str(path)) from exc
    return [ImportedImage.from_dict(record) for record in payload]


def load_run_state(
    output_root: Path,
    run_folder_prefix: str = "Run_",
    *,
    exclude: Iterable[Path] = (),
    logger=None,
) -> RunState:
    logger = logger or get_logger("RunStateReader")
    excluded = {path.resolve() for path in exclude}
    state = RunState()

    for run_dir in path_utils.find_run_dirs(output_root, run_folder_prefix):
        if run_dir.resolve() in excluded:
            continue
        albums = read_created_albums(run_dir / CREATED_ALBUMS_FILE)
        images = read_imported_images(run_dir / IMPORTED_IMAGES_FILE, logger)
        images.extend(read_legacy_imported_images(run_dir / LEGACY_IMPORTED_IMAGES_FILE))
        if not albums and not images:
            continue
        logger.info(f"載入 {run_dir.name}: {len(albums)} 個相簿、{len(images)} 筆匯入紀錄")
        state.created_albums.extend(albums)
        state.imported_images.extend(images)
        state.run_dirs.append(run_dir)

    return state


class RunRecordWriter:
    """單一 run folder 的唯一寫入者。

    created_albums.json 每次整份重寫（先寫暫存檔再 replace）；
    imported_images.jsonl 逐筆 append 並 flush，中斷時最多損失最後一行。
    """

    def __init__(self, run_dir: Path, logger=None) -> None:
        self.run_dir = run_dir
        self.logger = logger or get_logger(self.__class__.__name__)
        self.created_albums_path = run_dir / CREATED_ALBUMS_FILE
        self.imported_images_path = run_dir / IMPORTED_IMAGES_FILE
        self.created_albums: list[CreatedAlbum] = read_created_albums(self.created_albums_path)
        self.imported_count = 0
        self._handle: Optional[IO[str]] = None

    def __enter__(self) -> "RunRecordWriter":
        return self

    def __exit__(self, exc_type, exc, traceback) -> None:
        self.close()

    def record_album(self, record: CreatedAlbum) -> None:
        if record in self.created_albums:
            return
        self.created_albums.append(record)
        self.run_dir.mkdir(parents=True, exist_ok=True)
        temp_path = self.created_albums_path.with_suffix(".json.tmp")
        temp_path.write_text(
            json.dumps([album.to_dict() for album in self.created_albums], ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        temp_path.replace(self.created_albums_path)

    def record_image(self, record: ImportedImage) -> None:
        if self._handle is None:
            self.run_dir.mkdir(parents=True, exist_ok=True)
            self._handle = self.imported_images_path.open("a", encoding="utf-8")
        self._handle.write(json.dumps(record.to_dict(), ensure_ascii=False) + "\n")
        self._handle.flush()
        self.imported_count += 1

    def close(self) -> None:
        if self._handle is not None and not self._handle.closed:
            self._handle.close()
        self._handle = None


@dataclass
class MergeResult:
    bound_albums: int = 0
    bound_items: int = 0
    skipped_records: int = 0


class RunStateMerger:
    def __init__(
        self,
        client: DestinationLibraryClient,
        config,
        logger=None,
        error_handler: ErrorHandler | None = None,
    ) -> None:
        self.client = client
        self.logger = logger or get_logger(self.__class__.__name__)
        self.error_handler = error_handler or ErrorHandler()
        self.include = config.get_list("albums.include")
        self.exclude = config.get_list("albums.exclude")

    def _is_selected(self, title: str) -> bool:
        return path_utils.is_album_selected(title, self.include, self.exclude)

    def merge(self, library: Library, state: RunState) -> MergeResult:
        result = MergeResult()
        if state.is_empty:
            return result
        self._merge_albums(library, state, result)
        self._merge_images(library, state, result)
        self.logger.info(
            f"疊加先前紀錄: {result.bound_albums} 個相簿、{result.bound_items} 個項目，"
            f"略過 {result.skipped_records} 筆"
        )
        return result

    def _merge_albums(self, library: Library, state: RunState, result: MergeResult) -> None:
        for record in state.created_albums:
            if not self._is_selected(record.title):
                result.skipped_records += 1
                continue

            album = library.find_album(record.title)
            if album is None:
                self._fail("E-STATE-ALBUM", f"先前建立的相簿不在本次輸入中: {record.title}")

            if album.binding is not None:
                if album.album_id == record.album_id:
                    continue
                self._fail(
                    "E-STATE-CONFLICT",
                    f"相簿 {record.title} 已綁定 {album.album_id}，紀錄卻是 {record.album_id}",
                )

            count = self.client.get_album_item_count(record.album_id)
            if count is None:
                self._fail(
                    "E-STATE-ALBUM",
                    f"相簿 {record.title} ({record.album_id}) 已不存在於目的地相片庫",
                )
            album.binding = AlbumBinding(album_id=record.album_id, original_item_count=count)
            result.bound_albums += 1

    def _merge_images(self, library: Library, state: RunState, result: MergeResult) -> None:
        for record in state.imported_images:
            album = library.find_album_by_id(record.album_id)
            if album is None:
                title = state.album_title_for(record.album_id)
                if title is not None and not self._is_selected(title):
                    result.skipped_records += 1
                    continue
                self._fail(
                    "E-STATE-IMAGE",
                    f"匯入紀錄指向未知的相簿 {record.album_id}: {record.main_path}",
                    record.main_path,
                )

            item = album.find_item_by_path(record.main_path)
            if item is None and record.video_path:
                item = album.find_item_by_path(record.video_path)
            if item is None:
                self._fail(
                    "E-STATE-IMAGE",
                    f"[{album.title}] 找不到匯入紀錄對應的項目: {record.main_path}",
                    record.main_path,
                )

            try:
                if item.bind(record.photos_id, source="run_state"):
                    result.bound_items += 1
            except BindingConflictError as exc:
                self._fail("E-STATE-CONFLICT", str(exc), record.main_path)

    def _fail(self, code: str, message: str, file_path: Optional[str] = None) -> NoReturn:
        self.logger.error(message)
        raise FatalReconciliationError(code, message, file_path)

"""匯入與整理：把對帳結果套用到目的地相片庫。"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..adapters.photos_app import DestinationLibraryClient
from ..config import ConfigManager
from ..models import Album, AlbumBinding, ContentItem, CreatedAlbum, ImportedImage, MatchStatus
from ..utils.batching import chunked_by_weight
from ..utils.error_handler import ErrorHandler
from ..utils.logger import get_logger
from .destination_matcher import DestinationMatcher
from .run_state import RunRecordWriter


@dataclass
class OrganizeResult:
    album_title: str
    created_album: bool = False
    added_count: int = 0
    imported_count: int = 0
    pending_import_count: int = 0
    skipped_ambiguous: int = 0


def import_paths(item: ContentItem) -> list[Path]:
    return [part.path for part in item.parts()]


class LibraryOrganizer:
    def __init__(
        self,
        client: DestinationLibraryClient,
        matcher: DestinationMatcher,
        writer: Optional[RunRecordWriter],
        config: ConfigManager,
        *,
        what_if: bool = False,
        logger=None,
        error_handler: ErrorHandler | None = None,
    ) -> None:
        self.client = client
        self.matcher = matcher
        self.writer = writer
        self.what_if = what_if
        self.logger = logger or get_logger(self.__class__.__name__)
        self.error_handler = error_handler or ErrorHandler()
        self.import_chunk_size = int(config.get("destination.import_chunk_size", 200))
        self.restart_every = int(config.get("destination.restart_every", 2000))
        self._files_since_restart = 0

    def organize(self, album: Album) -> OrganizeResult:
        result = OrganizeResult(album_title=album.title)
        pending = [item for item in album.items if item.match.status is MatchStatus.NO_CANDIDATE]
        result.pending_import_count = len(pending)
        result.skipped_ambiguous = sum(
            1 for item in album.items if item.match.status is MatchStatus.AMBIGUOUS
        )

        if self.what_if:
            bound = sum(1 for item in album.items if item.is_bound)
            self.logger.info(
                f"[what-if] [{album.title}] 已在相片庫 {bound} 個，將匯入 {len(pending)} 個，"
                f"ambiguous {result.skipped_ambiguous} 個"
            )
            return result

        self._ensure_album(album, result)
        self._add_bound_items(album, result)
        if pending:
            self._import_items(album, pending, result)
        return result

    def _ensure_album(self, album: Album, result: OrganizeResult) -> None:
        if album.binding is not None:
            return
        album_id = self.client.create_or_get_album(album.title)
        count = self.client.get_album_item_count(album_id)
        album.binding = AlbumBinding(album_id=album_id, original_item_count=count)
        if self.writer is not None:
            self.writer.record_album(CreatedAlbum(title=album.title, album_id=album_id))
        result.created_album = True
        self.logger.info(f"[{album.title}] 相簿 id {album_id}（原有 {count} 個項目）")

    def _add_bound_items(self, album: Album, result: OrganizeResult) -> None:
        # 由先前紀錄綁定的項目是直接匯入該相簿的，不需要再加入
        media_ids = [
            item.destination_id
            for item in album.items
            if item.is_bound and item.match.source == "matcher" and item.destination_id
        ]
        if not media_ids:
            return
        result.added_count = self.client.add_items_to_album(album.title, media_ids)
        self.logger.info(f"[{album.title}] 加入 {result.added_count}/{len(media_ids)} 個既有項目")

    def _import_items(self, album: Album, pending: list[ContentItem], result: OrganizeResult) -> None:
        chunks = list(chunked_by_weight(pending, self.import_chunk_size, lambda item: len(import_paths(item))))
        for index, chunk in enumerate(chunks, start=1):
            paths = [path for item in chunk for path in import_paths(item)]
            if (
                self.restart_every
                and self._files_since_restart
                and self._files_since_restart + len(paths) > self.restart_every
            ):
                self.client.restart()
                self._files_since_restart = 0

            self.logger.info(f"[{album.title}] 匯入第 {index}/{len(chunks)} 批（{len(paths)} 個檔案）")
            imported = self.client.import_files(album.title, paths)
            self._files_since_restart += len(paths)
            self.logger.debug(f"[{album.title}] 匯入回傳 {len(imported)} 個項目")

            for item in self.matcher.match_items(album, chunk, expect_present=True):
                self._record_import(album, item)
                result.imported_count += 1

    def _record_import(self, album: Album, item: ContentItem) -> None:
        if self.writer is None or not item.destination_id or not album.album_id:
            return
        self.writer.record_image(
            ImportedImage(
                photos_id=item.destination_id,
                main_path=str(item.main_part.path),
                album_id=album.album_id,
                video_path=str(item.video.path) if item.is_paired and item.video else None,
            )
        )

"""Live Photo 配對引擎：以 content identifier 將影像與影片合成同一項目。"""

from __future__ import annotations

from typing import Iterable

from ..models import Album, ContentItem, Library, MediaPart
from ..utils.error_handler import ErrorHandler
from ..utils.logger import get_logger


class LivePhotoPairer:
    def __init__(self, logger=None, error_handler: ErrorHandler | None = None) -> None:
        self.logger = logger or get_logger(self.__class__.__name__)
        self.error_handler = error_handler or ErrorHandler()

    def pair_album(self, album: Album, parts: Iterable[MediaPart]) -> list[ContentItem]:
        """依列舉順序處理；同一欄位的第二個檔案只會變成 extra，不會覆蓋。"""
        items: list[ContentItem] = []
        by_identifier: dict[str, ContentItem] = {}

        for part in parts:
            identifier = part.content_identifier
            if not identifier:
                items.append(ContentItem.from_part(part))
                continue

            item = by_identifier.get(identifier)
            if item is None:
                item = ContentItem.from_part(part)
                by_identifier[identifier] = item
                items.append(item)
                continue

            if not item.add_part(part):
                occupied = item.slot_for(part.kind)
                message = (
                    f"[{album.title}] {part.path.name} 與 {occupied.path.name if occupied else '?'} "
                    f"共用 content identifier {identifier}，列為疑似重複"
                )
                self.logger.warning(message)
                self.error_handler.add_warning("W-DUPLICATE-SLOT", message, str(part.path))

        album.items = items
        paired = sum(1 for item in items if item.is_paired)
        self.logger.info(f"[{album.title}] {len(items)} 個項目，其中 {paired} 組 Live Photo")
        return items

    def dedupe_across_albums(self, library: Library) -> list[tuple[Album, ContentItem]]:
        """移除在其他相簿已有完整配對的單邊項目（通常是轉檔產生的影片）。"""
        paired_identifiers: dict[str, Album] = {}
        for album, item in library.iter_items():
            identifier = item.content_identifier
            if item.is_paired and identifier and identifier not in paired_identifiers:
                paired_identifiers[identifier] = album

        dropped: list[tuple[Album, ContentItem]] = []
        for album in library.albums:
            kept: list[ContentItem] = []
            for item in album.items:
                identifier = item.content_identifier
                if (
                    not item.is_paired
                    and not item.is_bound
                    and identifier
                    and identifier in paired_identifiers
                ):
                    owner = paired_identifiers[identifier]
                    message = (
                        f"[{album.title}] 移除 {item.main_part.path.name}："
                        f"相簿 {owner.title} 已有相同 content identifier 的完整配對"
                    )
                    self.logger.info(message)
                    self.error_handler.add_info("I-DEDUP-DROPPED", message, str(item.main_part.path))
                    dropped.append((album, item))
                    continue
                kept.append(item)
            album.items = kept

        return dropped

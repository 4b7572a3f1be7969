"""以分層模糊比對，將項目對應到目的地相片庫中既有的媒體。

Tier 1: 檔名 + 大小 + 時間（容許誤差）
Tier 2: 大小 + 時間（目的地可能已自動改名）
Tier 3: 只比檔名，含目的地 ``name(n).ext`` 自動去重後綴

某一層得到多個候選就停在該層並標為 ambiguous，不再嘗試更寬鬆的層級。
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from ..adapters.photos_app import DestinationLibraryClient
from ..config import ConfigManager
from ..models import (
    Album,
    ContentItem,
    DestinationMediaInfo,
    MatchStatus,
    SearchCriteria,
)
from ..utils.batching import chunked
from ..utils.error_handler import ErrorHandler, FatalReconciliationError
from ..utils.logger import get_logger

TIERS = (1, 2, 3)
_AUTO_DEDUP_SUFFIX = re.compile(r"\s?\(\d+\)$")


@dataclass(frozen=True)
class SearchKey:
    filename: str
    timestamp: Optional[float]
    size: Optional[int]

    def to_criteria(self) -> SearchCriteria:
        return SearchCriteria(filename=self.filename, timestamp=self.timestamp, size=self.size)


def _first(*values):
    for value in values:
        if value not in (None, ""):
            return value
    return None


def build_search_key(item: ContentItem) -> SearchKey:
    image = item.image
    video = item.video
    filename = _first(
        image.manifest.title if image and image.manifest else None,
        image.path.name if image else None,
        video.manifest.title if video and video.manifest else None,
        video.path.name if video else None,
    )
    timestamp = _first(
        image.metadata.capture_timestamp if image else None,
        video.metadata.create_timestamp if video else None,
        image.metadata.modify_timestamp if image else None,
        video.metadata.modify_timestamp if video else None,
    )
    size = _first(
        image.file_size if image else None,
        video.file_size if video else None,
    )
    return SearchKey(filename=str(filename), timestamp=timestamp, size=size)


def normalize_filename(filename: str) -> str:
    path = Path(filename)
    stem = _AUTO_DEDUP_SUFFIX.sub("", path.stem)
    return f"{stem}{path.suffix}".casefold()


class DestinationMatcher:
    def __init__(
        self,
        client: DestinationLibraryClient,
        config: ConfigManager,
        logger=None,
        error_handler: ErrorHandler | None = None,
    ) -> None:
        self.client = client
        self.logger = logger or get_logger(self.__class__.__name__)
        self.error_handler = error_handler or ErrorHandler()
        self.tolerance_sec = float(config.get("matching.timestamp_tolerance_sec", 2))
        self.batch_size = int(config.get("matching.batch_size", 200))

    def match_items(
        self,
        album: Album,
        items: Iterable[ContentItem],
        *,
        expect_present: bool = False,
    ) -> list[ContentItem]:
        """比對尚未解決的項目並回傳本次綁定的項目。

        expect_present=True 用於剛匯入後的驗證：此時找不到且項目有 manifest
        代表檔名正規化有問題，視為致命錯誤。
        """
        pending = [
            item
            for item in items
            if item.match.status in {MatchStatus.UNRESOLVED, MatchStatus.NO_CANDIDATE}
        ]
        if not pending:
            return []

        keys = {id(item): build_search_key(item) for item in pending}
        candidates = self._collect_candidates(pending, keys)
        bound: list[ContentItem] = []

        for tier in TIERS:
            remaining: list[ContentItem] = []
            for item in pending:
                key = keys[id(item)]
                hits = _unique(
                    info.media_id
                    for info in candidates.get(id(item), [])
                    if self._matches_tier(tier, key, info)
                )
                if len(hits) == 1:
                    item.bind(hits[0], tier=tier)
                    bound.append(item)
                    self.logger.debug(f"[{album.title}] {key.filename} -> {hits[0]} (tier {tier})")
                elif len(hits) > 1:
                    item.mark_ambiguous(hits, tier)
                    message = (
                        f"[{album.title}] {key.filename} 在 tier {tier} 有多個候選: {', '.join(hits)}"
                    )
                    self.logger.warning(message)
                    self.error_handler.add_warning("W-AMBIGUOUS", message, str(item.main_part.path))
                else:
                    remaining.append(item)
            pending = remaining

        for item in pending:
            self._handle_no_match(album, item, keys[id(item)], expect_present)

        return bound

    def _collect_candidates(
        self,
        items: list[ContentItem],
        keys: dict[int, SearchKey],
    ) -> dict[int, list[DestinationMediaInfo]]:
        # 以項目為單位切批，Live Photo 的影像與影片永遠在同一批
        candidate_ids: dict[int, list[str]] = {}
        for batch in chunked(items, self.batch_size):
            results = self.client.search([keys[id(item)].to_criteria() for item in batch])
            for item, media_ids in zip(batch, results):
                candidate_ids[id(item)] = _unique(media_ids)

        all_ids = _unique(media_id for media_ids in candidate_ids.values() for media_id in media_ids)
        infos: dict[str, DestinationMediaInfo] = {}
        for batch_ids in chunked(all_ids, self.batch_size):
            for info in self.client.get_info(batch_ids):
                infos[info.media_id] = info

        return {
            item_id: [infos[media_id] for media_id in media_ids if media_id in infos]
            for item_id, media_ids in candidate_ids.items()
        }

    def _matches_tier(self, tier: int, key: SearchKey, info: DestinationMediaInfo) -> bool:
        if tier == 1:
            return (
                info.filename == key.filename
                and (key.size is None or info.size == key.size)
                and (key.timestamp is None or self._within_tolerance(key.timestamp, info.timestamp))
            )
        if tier == 2:
            return (
                key.size is not None
                and key.timestamp is not None
                and info.size == key.size
                and self._within_tolerance(key.timestamp, info.timestamp)
            )
        # 只去掉目的地端的 (n) 後綴；來源檔名本身的 (n) 是不同的檔案
        return info.filename == key.filename or normalize_filename(info.filename) == key.filename.casefold()

    def _within_tolerance(self, expected: float, actual: Optional[float]) -> bool:
        if actual is None:
            return False
        return abs(expected - actual) <= self.tolerance_sec

    def _handle_no_match(
        self,
        album: Album,
        item: ContentItem,
        key: SearchKey,
        expect_present: bool,
    ) -> None:
        item.mark_no_candidate()
        if not expect_present:
            self.logger.debug(f"[{album.title}] {key.filename} 不在目的地相片庫")
            return

        if item.has_manifest:
            message = f"[{album.title}] {key.filename} 帶有 manifest 但在目的地找不到"
            self.logger.error(message)
            raise FatalReconciliationError("E-MATCH-MANIFEST", message, str(item.main_part.path))

        message = f"[{album.title}] {key.filename} 在目的地找不到（無 manifest）"
        self.logger.warning(message)
        self.error_handler.add_warning("W-NO-CANDIDATE", message, str(item.main_part.path))


def _unique(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result

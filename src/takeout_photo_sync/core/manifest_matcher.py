"""將 JSON sidecar 與媒體檔配對。"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from ..config import ConfigManager
from ..models import Album, ContentItem, MediaPart, SidecarManifest
from ..utils.error_handler import ErrorHandler
from ..utils.geo_utils import coordinate_distance
from ..utils.logger import get_logger

SUPPLEMENTAL_METADATA = "supplemental-metadata"
_DUPLICATE_SUFFIX = re.compile(r"^(?P<base>.*)\((?P<number>\d+)\)$")
_MIN_SUPPLEMENTAL_PREFIX = 4


def manifest_key(manifest_path: Path) -> str:
    """由 sidecar 檔名推回對應的媒體檔名。

    ``IMG_01.JPG.json`` -> ``IMG_01.JPG``；
    ``IMG_01.JPG.supplemental-metad.json`` -> ``IMG_01.JPG``；
    ``IMG_01.JPG(1).json`` -> ``IMG_01(1).JPG``。
    """
    name = manifest_path.name
    if name.lower().endswith(".json"):
        name = name[: -len(".json")]

    number: Optional[str] = None
    duplicate = _DUPLICATE_SUFFIX.match(name)
    if duplicate:
        name = duplicate.group("base")
        number = duplicate.group("number")

    head, sep, tail = name.rpartition(".")
    if (
        sep
        and head
        and len(tail) >= _MIN_SUPPLEMENTAL_PREFIX
        and SUPPLEMENTAL_METADATA.startswith(tail.lower())
    ):
        name = head

    if number is not None:
        base = Path(name)
        name = f"{base.stem}({number}){base.suffix}"
    return name


class ManifestMatcher:
    def __init__(
        self,
        config: ConfigManager,
        logger=None,
        error_handler: ErrorHandler | None = None,
    ) -> None:
        self.logger = logger or get_logger(self.__class__.__name__)
        self.error_handler = error_handler or ErrorHandler()
        self.truncated_name_length = int(config.get("manifest.truncated_name_length", 51))
        self.geo_mismatch_threshold = float(config.get("matching.geo_mismatch_threshold", 0.001))

    def find_candidates(self, media_path: Path, manifests: list[SidecarManifest]) -> list[SidecarManifest]:
        by_name = [m for m in manifests if manifest_key(m.path) == media_path.name]
        if by_name:
            return by_name
        by_stem = [m for m in manifests if manifest_key(m.path) == media_path.stem]
        if by_stem:
            return by_stem

        if len(media_path.name) != self.truncated_name_length:
            return []

        # Takeout 會截斷過長的 GUID 檔名，只能用 title 內含截斷主檔名來找
        truncated_stem = media_path.stem
        extension = media_path.suffix.lower()
        return [
            manifest
            for manifest in manifests
            if truncated_stem in manifest.title and Path(manifest.title).suffix.lower() == extension
        ]

    def attach_manifests(self, album: Album) -> None:
        consumed: dict[Path, ContentItem] = {}
        shared: set[Path] = set()
        for item in album.items:
            for part in item.parts():
                if self._attach_part(album, item, part, consumed):
                    shared.add(part.path)

        for item in album.items:
            for part in item.parts():
                if part.manifest is None:
                    self._report_missing(item, part, part.path in shared)

    def _attach_part(
        self,
        album: Album,
        item: ContentItem,
        part: MediaPart,
        consumed: dict[Path, ContentItem],
    ) -> bool:
        """回傳候選 manifest 是否已由同一項目的配對檔取用。"""
        partner_has_candidate = False
        for candidate in self.find_candidates(part.path, album.manifests):
            owner = consumed.get(candidate.path)
            if owner is item:
                partner_has_candidate = True
                continue
            if owner is not None or part.manifest is not None:
                message = f"多餘的 manifest 已捨棄: {candidate.path.name} -> {part.path.name}"
                self.logger.warning(message)
                self.error_handler.add_warning("W-REDUNDANT-MANIFEST", message, str(candidate.path))
                continue
            part.manifest = candidate
            consumed[candidate.path] = item

        if part.manifest is not None:
            self._check_location(part)
        return partner_has_candidate

    def _report_missing(self, item: ContentItem, part: MediaPart, partner_has_candidate: bool) -> None:
        partner = item.video if part is item.image else item.image
        if partner_has_candidate or (partner is not None and partner.manifest is not None):
            message = f"{part.path.name} 沒有 manifest，Live Photo 配對檔已帶有 manifest"
            self.logger.info(message)
            self.error_handler.add_info("I-PARTNER-MANIFEST", message, str(part.path))
            return

        message = f"找不到 manifest: {part.path}"
        self.logger.warning(message)
        self.error_handler.add_warning("W-NO-MANIFEST", message, str(part.path))

    def _check_location(self, part: MediaPart) -> None:
        manifest_location = part.manifest.location if part.manifest else None
        exif_has_location = part.metadata.has_location
        if manifest_location is None and not exif_has_location:
            return

        if manifest_location is None or not exif_has_location:
            source = "manifest" if manifest_location is not None else "EXIF"
            message = f"只有 {source} 帶有定位: {part.path.name}"
        else:
            distance = coordinate_distance(
                (manifest_location.latitude, manifest_location.longitude),
                (part.metadata.latitude, part.metadata.longitude),  # type: ignore[arg-type]
            )
            if distance <= self.geo_mismatch_threshold:
                return
            message = f"manifest 與 EXIF 定位不一致 ({distance:.6f}): {part.path.name}"

        self.logger.info(message)
        self.error_handler.add_info("I-GEO-MISMATCH", message, str(part.path))

"""將 exiftool / ffprobe 紀錄轉成統一的 NormalizedMetadata。"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from ..adapters.metadata_tools import (
    FfprobeExtractor,
    ImageMetadataSource,
    VideoMetadataSource,
    build_image_source,
)
from ..config import ConfigManager
from ..models import FileKind, NormalizedMetadata
from ..utils import file_classifier
from ..utils.error_handler import FatalReconciliationError
from ..utils.logger import get_logger
from ..utils.time_utils import parse_timestamp

QUICKTIME_CONTENT_IDENTIFIER = "com.apple.quicktime.content.identifier"
QUICKTIME_CREATION_DATE = "com.apple.quicktime.creationdate"


def _group(record: dict, name: str) -> dict:
    value = record.get(name)
    return value if isinstance(value, dict) else {}


def _first(*values: object) -> object:
    for value in values:
        if value not in (None, ""):
            return value
    return None


def _to_float(value: object) -> Optional[float]:
    if value in (None, ""):
        return None
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def _to_int(value: object) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _disk_size(path: Optional[Path]) -> Optional[int]:
    if path is None:
        return None
    try:
        return path.stat().st_size
    except OSError:
        return None


def normalize_image_record(record: dict, path: Optional[Path] = None) -> NormalizedMetadata:
    """exiftool ``-g -json -d %s`` 紀錄；MOV 檔由 exiftool 讀取時也走這裡。"""
    file_group = _group(record, "File")
    maker_notes = _group(record, "MakerNotes")
    composite = _group(record, "Composite")
    exif = _group(record, "EXIF")
    quicktime = _group(record, "QuickTime")

    content_identifier = _first(
        maker_notes.get("ContentIdentifier"),
        quicktime.get("ContentIdentifier"),
    )
    return NormalizedMetadata(
        content_identifier=str(content_identifier) if content_identifier else None,
        capture_timestamp=parse_timestamp(
            _first(
                composite.get("SubSecDateTimeOriginal"),
                exif.get("DateTimeOriginal"),
            )
        ),
        create_timestamp=parse_timestamp(
            _first(
                composite.get("SubSecCreateDate"),
                quicktime.get("CreationDate"),
                quicktime.get("CreateDate"),
                exif.get("CreateDate"),
            )
        ),
        modify_timestamp=parse_timestamp(file_group.get("FileModifyDate")),
        latitude=_to_float(composite.get("GPSLatitude")),
        longitude=_to_float(composite.get("GPSLongitude")),
        file_size=_to_int(file_group.get("FileSize")) or _disk_size(path),
    )


def normalize_video_record(
    record: dict,
    path: Optional[Path] = None,
    fallback: Optional[dict] = None,
) -> NormalizedMetadata:
    """ffprobe ``-show_format`` 紀錄；缺少的欄位由 exiftool 紀錄補上。"""
    video_format = _group(record, "format")
    tags = _group(video_format, "tags")
    base = normalize_image_record(fallback, path) if fallback else NormalizedMetadata()

    content_identifier = _first(tags.get(QUICKTIME_CONTENT_IDENTIFIER), base.content_identifier)
    create_timestamp = parse_timestamp(
        _first(tags.get(QUICKTIME_CREATION_DATE), tags.get("creation_time"))
    )
    return NormalizedMetadata(
        content_identifier=str(content_identifier) if content_identifier else None,
        capture_timestamp=base.capture_timestamp,
        create_timestamp=create_timestamp if create_timestamp is not None else base.create_timestamp,
        modify_timestamp=base.modify_timestamp,
        latitude=base.latitude,
        longitude=base.longitude,
        file_size=_to_int(video_format.get("size")) or base.file_size or _disk_size(path),
    )


class MetadataNormalizer:
    def __init__(
        self,
        config: ConfigManager,
        image_source: Optional[ImageMetadataSource] = None,
        video_source: Optional[VideoMetadataSource] = None,
        logger=None,
    ) -> None:
        self.config = config
        self.logger = logger or get_logger(self.__class__.__name__)
        self.image_source = image_source or build_image_source(config, self.logger)
        self.video_source = video_source or FfprobeExtractor(config, self.logger)

    def read_directory(
        self,
        directory: Path,
        media_paths: Iterable[Path],
    ) -> dict[Path, NormalizedMetadata]:
        """一個目錄只呼叫一次 exiftool；影片另外逐檔呼叫 ffprobe。"""
        records = self.image_source.read_directory(directory)
        results: dict[Path, NormalizedMetadata] = {}

        for path in media_paths:
            record = records.get(path)
            if file_classifier.classify_file_type(path, self.config) == FileKind.VIDEO.value:
                video_record = self.video_source.read_file(path)
                if video_record is not None:
                    results[path] = normalize_video_record(video_record, path, fallback=record)
                    continue

            if record is None:
                self.logger.error(f"無法取得任何 metadata: {path}")
                raise FatalReconciliationError(
                    "E-CLASSIFY",
                    f"無法取得任何 metadata，無法判斷類型與 content identifier: {path}",
                    str(path),
                )
            results[path] = normalize_image_record(record, path)

        return results

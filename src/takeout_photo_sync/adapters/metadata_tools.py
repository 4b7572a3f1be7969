"""呼叫 exiftool / ffprobe / Pillow 取得單檔 metadata。

回傳的都是 exiftool ``-g -json`` 形狀的分組紀錄（影片為 ffprobe 的
``format`` 紀錄），由 core.metadata_normalizer 轉成統一格式。
"""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Callable, Optional, Protocol

from ..config import ConfigManager
from ..utils import file_classifier, image_utils
from ..utils.logger import get_logger

Runner = Callable[..., subprocess.CompletedProcess]


class MetadataToolError(RuntimeError):
    """外部 metadata 工具無法執行或輸出無法解析。"""


class ImageMetadataSource(Protocol):
    def read_directory(self, directory: Path) -> dict[Path, dict]:
        ...


class VideoMetadataSource(Protocol):
    def read_file(self, path: Path) -> Optional[dict]:
        ...


class ExifToolExtractor:
    def __init__(self, config: ConfigManager, logger=None, runner: Optional[Runner] = None) -> None:
        self.logger = logger or get_logger(self.__class__.__name__)
        self.exiftool_path = str(config.get("metadata.exiftool_path", "exiftool"))
        self.precision = int(config.get("metadata.coordinate_precision", 6))
        self.timeout_sec = float(config.get("metadata.timeout_sec", 300))
        self.runner = runner or subprocess.run

    def build_command(self, target: Path) -> list[str]:
        return [
            self.exiftool_path,
            "-g",
            "-json",
            "-d",
            "%s",
            "-c",
            f"%+.{self.precision}f",
            str(target),
        ]

    def read_directory(self, directory: Path) -> dict[Path, dict]:
        command = self.build_command(directory)
        try:
            result = self.runner(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout_sec,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise MetadataToolError(f"exiftool 執行失敗: {directory} ({exc})") from exc

        # exiftool 對部分檔案失敗時回傳 1，但其餘輸出仍可用
        if result.returncode not in (0, 1):
            raise MetadataToolError(
                f"exiftool 回傳 {result.returncode}: {directory} ({(result.stderr or '').strip()[:200]})"
            )
        if result.returncode == 1 and result.stderr:
            self.logger.warning(f"exiftool 警告: {directory} ({result.stderr.strip()[:200]})")
        if not (result.stdout or "").strip():
            return {}

        try:
            records = json.loads(result.stdout)
        except json.JSONDecodeError as exc:
            raise MetadataToolError(f"exiftool JSON 解析失敗: {directory} ({exc})") from exc

        by_path: dict[Path, dict] = {}
        for record in records:
            source_file = record.get("SourceFile")
            if source_file:
                by_path[Path(source_file)] = record
        return by_path


class FfprobeExtractor:
    def __init__(self, config: ConfigManager, logger=None, runner: Optional[Runner] = None) -> None:
        self.logger = logger or get_logger(self.__class__.__name__)
        self.ffprobe_path = str(config.get("metadata.ffprobe_path", "ffprobe"))
        self.timeout_sec = float(config.get("metadata.timeout_sec", 300))
        self.runner = runner or subprocess.run

    def read_file(self, path: Path) -> Optional[dict]:
        command = [
            self.ffprobe_path,
            "-print_format",
            "json",
            "-v",
            "quiet",
            "-hide_banner",
            "-show_format",
            str(path),
        ]
        try:
            result = self.runner(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout_sec,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            self.logger.warning(f"ffprobe 執行失敗: {path} ({exc})")
            return None

        if result.returncode != 0 or not (result.stdout or "").strip():
            self.logger.warning(f"ffprobe 無輸出: {path} (code={result.returncode})")
            return None
        try:
            payload = json.loads(result.stdout)
        except json.JSONDecodeError as exc:
            self.logger.warning(f"ffprobe JSON 解析失敗: {path} ({exc})")
            return None
        if not isinstance(payload, dict) or "format" not in payload:
            return None
        return payload


class PillowExtractor:
    """不依賴 exiftool 的影像讀取器；讀不到 Live Photo content identifier。"""

    def __init__(self, config: ConfigManager, logger=None) -> None:
        self.config = config
        self.logger = logger or get_logger(self.__class__.__name__)
        self.precision = int(config.get("metadata.coordinate_precision", 6))

    def read_directory(self, directory: Path) -> dict[Path, dict]:
        records: dict[Path, dict] = {}
        for path in sorted(directory.iterdir()):
            if not path.is_file():
                continue
            file_type = file_classifier.classify_file_type(path, self.config)
            if file_type == "OTHER":
                continue
            records[path] = self.read_file(path, file_type)
        return records

    def read_file(self, path: Path, file_type: str) -> dict:
        stat = path.stat()
        record: dict = {
            "SourceFile": str(path),
            "File": {
                "FileSize": stat.st_size,
                "FileModifyDate": int(stat.st_mtime),
            },
        }
        if file_type != "IMAGE":
            return record

        exif_datetime = image_utils.get_exif_datetime_original(path, self.logger)
        if exif_datetime:
            record["EXIF"] = {"DateTimeOriginal": exif_datetime}
        coordinates = image_utils.get_gps_coordinates(path, self.precision, self.logger)
        if coordinates is not None:
            record["Composite"] = {
                "GPSLatitude": coordinates[0],
                "GPSLongitude": coordinates[1],
            }
        return record


def build_image_source(config: ConfigManager, logger=None) -> ImageMetadataSource:
    if config.get("metadata.extractor", "exiftool") == "pillow":
        return PillowExtractor(config, logger)
    return ExifToolExtractor(config, logger)

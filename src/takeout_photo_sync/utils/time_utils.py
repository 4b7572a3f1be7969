"""時間戳處理工具。"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

_DATETIME_FORMATS = (
    "%Y:%m:%d %H:%M:%S.%f%z",
    "%Y:%m:%d %H:%M:%S%z",
    "%Y:%m:%d %H:%M:%S.%f",
    "%Y:%m:%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
)


def parse_timestamp(value: object) -> Optional[float]:
    """將 epoch 數字、ISO-8601 或 EXIF 格式字串轉成 epoch 秒。"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip()
    if not text or text.startswith("0000:00:00"):
        return None
    try:
        return float(text)
    except ValueError:
        pass

    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).timestamp()
        except ValueError:
            continue
    return None


def format_exif_time(value: str) -> Optional[str]:
    try:
        parsed = datetime.strptime(value, "%Y:%m:%d %H:%M:%S")
        return parsed.strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return None


def format_epoch(value: Optional[float]) -> str:
    if value is None:
        return "-"
    return datetime.fromtimestamp(value).strftime("%Y-%m-%d %H:%M:%S")


def get_timestamp_for_folder() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")

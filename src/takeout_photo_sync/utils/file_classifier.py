"""檔案類型分類工具。"""

from __future__ import annotations

from pathlib import Path

IMAGE_EXTS = {".gif", ".heic", ".jpg", ".jpeg", ".png", ".nef"}
VIDEO_EXTS = {".mov", ".mp4", ".m4v"}


def classify_file_type(path: Path, config=None) -> str:
    ext = path.suffix.lower()

    image_exts = IMAGE_EXTS
    video_exts = VIDEO_EXTS
    if config is not None:
        image_exts = {str(item).lower() for item in config.get("file_extensions.image", [])}
        video_exts = {str(item).lower() for item in config.get("file_extensions.video", [])}

    if ext in image_exts:
        return "IMAGE"
    if ext in video_exts:
        return "VIDEO"
    return "OTHER"


def is_known_type(path: Path, config=None) -> bool:
    return classify_file_type(path, config) != "OTHER"

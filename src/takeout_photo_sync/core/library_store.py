"""相片庫完整傾印（final.json）與讀回。"""

from __future__ import annotations

import json
from pathlib import Path

from ..models import Album, Library


def dump_library(library: Library, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_suffix(path.suffix + ".tmp")
    temp_path.write_text(
        json.dumps(library.to_dicts(), ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    temp_path.replace(path)
    return path


def load_library(path: Path) -> Library:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise ValueError(f"{path} 不是相簿陣列")
    return Library(albums=[Album.from_dict(album) for album in payload])

"""相簿標題的選擇與處理順序。"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ..models import Album


def is_default_title(title: str, prefixes: Iterable[str]) -> bool:
    """Google Photos 自動產生的相簿（例如 "Photos from 2019"）。"""
    return any(title.startswith(prefix) for prefix in prefixes)


def preferred_album_title(titles: Sequence[str], prefixes: Iterable[str], logger=None) -> Optional[str]:
    candidates = [title for title in dict.fromkeys(titles) if title]
    if not candidates:
        return None
    if len(candidates) == 1:
        return candidates[0]

    prefixes = list(prefixes)
    for title in candidates:
        if not is_default_title(title, prefixes):
            return title

    if logger is not None:
        logger.warning(f"有多個候選相簿標題 ({', '.join(candidates)})，選用第一個")
    return candidates[0]


def order_albums(albums: Iterable[Album], prefixes: Iterable[str]) -> list[Album]:
    """使用者自訂的相簿先處理，自動產生的年度相簿排在後面；同類維持原順序。"""
    prefixes = list(prefixes)
    return sorted(albums, key=lambda album: is_default_title(album.title, prefixes))

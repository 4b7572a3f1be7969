"""目的地相片庫介面的傳輸物件。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SearchCriteria:
    filename: str
    timestamp: Optional[float] = None
    size: Optional[int] = None


@dataclass(frozen=True)
class DestinationMediaInfo:
    media_id: str
    filename: str
    size: Optional[int]
    timestamp: Optional[float]


@dataclass(frozen=True)
class ImportedMedia:
    photo_id: str
    album_id: str

"""正規化後的單檔 metadata。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class NormalizedMetadata:
    content_identifier: Optional[str] = None
    capture_timestamp: Optional[float] = None
    create_timestamp: Optional[float] = None
    modify_timestamp: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    file_size: Optional[int] = None

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self) -> dict[str, object]:
        return {
            "content_identifier": self.content_identifier,
            "capture_timestamp": self.capture_timestamp,
            "create_timestamp": self.create_timestamp,
            "modify_timestamp": self.modify_timestamp,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "file_size": self.file_size,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "NormalizedMetadata":
        return cls(
            content_identifier=data.get("content_identifier"),
            capture_timestamp=data.get("capture_timestamp"),
            create_timestamp=data.get("create_timestamp"),
            modify_timestamp=data.get("modify_timestamp"),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            file_size=data.get("file_size"),
        )

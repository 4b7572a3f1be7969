"""Takeout 匯出的 JSON sidecar 與相簿 metadata。"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


def _parse_google_timestamp(value: object) -> Optional[float]:
    if not isinstance(value, dict):
        return None
    raw = value.get("timestamp")
    if raw in (None, ""):
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


@dataclass
class GeoData:
    latitude: float
    longitude: float
    altitude: float = 0.0

    @property
    def is_empty(self) -> bool:
        # Takeout 以 0,0 表示沒有定位
        return self.latitude == 0.0 and self.longitude == 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "altitude": self.altitude,
        }

    @classmethod
    def from_dict(cls, data: object) -> Optional["GeoData"]:
        if not isinstance(data, dict):
            return None
        try:
            geo = cls(
                latitude=float(data.get("latitude", 0.0) or 0.0),
                longitude=float(data.get("longitude", 0.0) or 0.0),
                altitude=float(data.get("altitude", 0.0) or 0.0),
            )
        except (TypeError, ValueError):
            return None
        return None if geo.is_empty else geo


@dataclass
class SidecarManifest:
    path: Path
    title: str
    description: str = ""
    photo_taken_time: Optional[float] = None
    creation_time: Optional[float] = None
    photo_last_modified_time: Optional[float] = None
    geo_data: Optional[GeoData] = None
    geo_data_exif: Optional[GeoData] = None

    @property
    def location(self) -> Optional[GeoData]:
        return self.geo_data_exif or self.geo_data

    def to_dict(self) -> dict[str, object]:
        return {
            "path": str(self.path),
            "title": self.title,
            "description": self.description,
            "photoTakenTime": {"timestamp": _format_timestamp(self.photo_taken_time)},
            "creationTime": {"timestamp": _format_timestamp(self.creation_time)},
            "photoLastModifiedTime": {
                "timestamp": _format_timestamp(self.photo_last_modified_time)
            },
            "geoData": self.geo_data.to_dict() if self.geo_data else None,
            "geoDataExif": self.geo_data_exif.to_dict() if self.geo_data_exif else None,
        }

    @classmethod
    def from_dict(cls, data: dict, path: Path) -> "SidecarManifest":
        return cls(
            path=path,
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            photo_taken_time=_parse_google_timestamp(data.get("photoTakenTime")),
            creation_time=_parse_google_timestamp(data.get("creationTime")),
            photo_last_modified_time=_parse_google_timestamp(data.get("photoLastModifiedTime")),
            geo_data=GeoData.from_dict(data.get("geoData")),
            geo_data_exif=GeoData.from_dict(data.get("geoDataExif")),
        )


@dataclass
class AlbumManifest:
    path: Path
    title: str
    description: str = ""
    access: str = ""
    date: Optional[float] = None
    location: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "path": str(self.path),
            "title": self.title,
            "description": self.description,
            "access": self.access,
            "date": {"timestamp": _format_timestamp(self.date)},
            "location": self.location,
        }

    @classmethod
    def from_dict(cls, data: dict, path: Path) -> "AlbumManifest":
        return cls(
            path=path,
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            access=str(data.get("access") or ""),
            date=_parse_google_timestamp(data.get("date")),
            location=str(data.get("location") or ""),
        )


def _format_timestamp(value: Optional[float]) -> Optional[str]:
    if value is None:
        return None
    return str(int(value))

"""單次執行留下的持久化紀錄。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class CreatedAlbum:
    title: str
    album_id: str

    def to_dict(self) -> dict[str, object]:
        return {"title": self.title, "id": self.album_id}

    @classmethod
    def from_dict(cls, data: dict) -> "CreatedAlbum":
        return cls(title=str(data["title"]), album_id=str(data["id"]))


@dataclass(frozen=True)
class ImportedImage:
    photos_id: str
    main_path: str
    album_id: str
    video_path: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "photosId": self.photos_id,
            "mainPath": self.main_path,
            "albumId": self.album_id,
        }
        if self.video_path:
            payload["videoPath"] = self.video_path
        return payload

    @classmethod
    def from_dict(cls, data: dict) -> "ImportedImage":
        return cls(
            photos_id=str(data["photosId"]),
            main_path=str(data["mainPath"]),
            album_id=str(data["albumId"]),
            video_path=str(data["videoPath"]) if data.get("videoPath") else None,
        )

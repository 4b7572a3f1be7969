"""相簿與整個相片庫模型。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional

from .content_item import ContentItem
from .sidecar_manifest import AlbumManifest, SidecarManifest


@dataclass
class AlbumBinding:
    album_id: str
    original_item_count: Optional[int] = None

    def to_dict(self) -> dict[str, object]:
        return {"id": self.album_id, "originalItemCount": self.original_item_count}


@dataclass
class Album:
    title: str
    directories: List[Path] = field(default_factory=list)
    album_manifest: Optional[AlbumManifest] = None
    items: List[ContentItem] = field(default_factory=list)
    manifests: List[SidecarManifest] = field(default_factory=list)
    media_paths: List[Path] = field(default_factory=list)
    binding: Optional[AlbumBinding] = None

    @property
    def album_id(self) -> Optional[str]:
        return self.binding.album_id if self.binding else None

    def add_directory(self, directory: Path) -> None:
        if directory not in self.directories:
            self.directories.append(directory)

    def find_item_by_path(self, path: Path | str) -> Optional[ContentItem]:
        target = Path(path)
        for item in self.items:
            if any(part.path == target for part in item.parts()):
                return item
        return None

    def to_dict(self) -> dict[str, object]:
        return {
            "title": self.title,
            "dirs": [str(directory) for directory in self.directories],
            "albumManifest": self.album_manifest.to_dict() if self.album_manifest else None,
            "manifests": [manifest.to_dict() for manifest in self.manifests],
            "items": [item.to_dict() for item in self.items],
            "binding": self.binding.to_dict() if self.binding else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Album":
        album_manifest = data.get("albumManifest")
        binding = data.get("binding")
        items = [ContentItem.from_dict(item) for item in data.get("items") or []]
        return cls(
            title=str(data["title"]),
            directories=[Path(directory) for directory in data.get("dirs") or []],
            album_manifest=(
                AlbumManifest.from_dict(album_manifest, Path(album_manifest["path"]))
                if album_manifest
                else None
            ),
            items=items,
            manifests=[
                SidecarManifest.from_dict(manifest, Path(manifest["path"]))
                for manifest in data.get("manifests") or []
            ],
            media_paths=[path for item in items for path in item.all_paths()],
            binding=(
                AlbumBinding(
                    album_id=str(binding["id"]),
                    original_item_count=binding.get("originalItemCount"),
                )
                if binding
                else None
            ),
        )


@dataclass
class Library:
    albums: List[Album] = field(default_factory=list)

    def find_album(self, title: str) -> Optional[Album]:
        for album in self.albums:
            if album.title == title:
                return album
        return None

    def find_album_by_id(self, album_id: str) -> Optional[Album]:
        for album in self.albums:
            if album.album_id == album_id:
                return album
        return None

    def iter_items(self) -> Iterator[tuple[Album, ContentItem]]:
        for album in self.albums:
            for item in album.items:
                yield album, item

    def to_dicts(self) -> list[dict[str, object]]:
        return [album.to_dict() for album in self.albums]

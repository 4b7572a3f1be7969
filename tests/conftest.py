from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Sequence

import pytest

from takeout_photo_sync.adapters.photos_app import search_term_for
from takeout_photo_sync.models import (
    DestinationMediaInfo,
    FileKind,
    ImportedMedia,
    MediaPart,
    NormalizedMetadata,
    SearchCriteria,
    SidecarManifest,
)


class FakeDestinationLibrary:
    """記憶體內的目的地相片庫，行為仿照 Photos 的 search / import。"""

    def __init__(self) -> None:
        self.media: dict[str, DestinationMediaInfo] = {}
        self.albums: dict[str, dict] = {}
        self.imported_paths: list[Path] = []
        self.import_calls = 0
        self.search_calls = 0
        self.restarts = 0
        self._next_id = 1

    def _new_id(self, prefix: str) -> str:
        value = f"{prefix}{self._next_id}"
        self._next_id += 1
        return value

    def add_media(
        self,
        filename: str,
        size: Optional[int] = None,
        timestamp: Optional[float] = None,
        media_id: Optional[str] = None,
    ) -> str:
        media_id = media_id or self._new_id("P")
        self.media[media_id] = DestinationMediaInfo(
            media_id=media_id,
            filename=filename,
            size=size,
            timestamp=timestamp,
        )
        return media_id

    def add_album(self, title: str, album_id: Optional[str] = None, items: Sequence[str] = ()) -> str:
        album_id = album_id or self._new_id("ALB")
        self.albums[album_id] = {"title": title, "items": list(items)}
        return album_id

    def _album_by_title(self, title: str) -> str:
        for album_id, album in self.albums.items():
            if album["title"] == title:
                return album_id
        return self.add_album(title)

    def search(self, criteria: Sequence[SearchCriteria]) -> list[list[str]]:
        self.search_calls += 1
        results = []
        for item in criteria:
            term = search_term_for(item.filename).casefold()
            results.append(
                [media_id for media_id, info in self.media.items() if term in info.filename.casefold()]
            )
        return results

    def get_info(self, media_ids: Sequence[str]) -> list[DestinationMediaInfo]:
        return [self.media[media_id] for media_id in media_ids if media_id in self.media]

    def create_or_get_album(self, title: str) -> str:
        return self._album_by_title(title)

    def get_album_item_count(self, album_id: str) -> Optional[int]:
        album = self.albums.get(album_id)
        return len(album["items"]) if album is not None else None

    def add_items_to_album(self, title: str, media_ids: Sequence[str]) -> int:
        items = self.albums[self._album_by_title(title)]["items"]
        added = 0
        for media_id in media_ids:
            if media_id not in items:
                items.append(media_id)
                added += 1
        return added

    def import_files(self, title: str, file_paths: Sequence[Path]) -> list[ImportedMedia]:
        self.import_calls += 1
        album_id = self._album_by_title(title)
        imported_images = {path.stem for path in file_paths if path.suffix.lower() != ".mov"}
        results = []
        for path in file_paths:
            self.imported_paths.append(path)
            # Live Photo 的影片併入同名影像
            if path.suffix.lower() == ".mov" and path.stem in imported_images:
                continue
            size = path.stat().st_size if path.exists() else None
            media_id = self.add_media(path.name, size=size)
            self.albums[album_id]["items"].append(media_id)
            results.append(ImportedMedia(photo_id=media_id, album_id=album_id))
        return results

    def restart(self) -> None:
        self.restarts += 1


class FakeImageSource:
    def __init__(self, records: dict[str, dict]) -> None:
        self.records = records
        self.directories: list[Path] = []

    def read_directory(self, directory: Path) -> dict[Path, dict]:
        self.directories.append(directory)
        return {
            directory / name: record
            for name, record in self.records.items()
            if (directory / name).exists()
        }


class FakeVideoSource:
    def __init__(self, records: Optional[dict[str, dict]] = None) -> None:
        self.records = records or {}

    def read_file(self, path: Path) -> Optional[dict]:
        return self.records.get(path.name)


@pytest.fixture
def photos() -> FakeDestinationLibrary:
    return FakeDestinationLibrary()


@pytest.fixture
def fake_sources() -> Callable[..., tuple[FakeImageSource, FakeVideoSource]]:
    def _build(
        image_records: dict[str, dict],
        video_records: Optional[dict[str, dict]] = None,
    ) -> tuple[FakeImageSource, FakeVideoSource]:
        return FakeImageSource(image_records), FakeVideoSource(video_records)

    return _build


@pytest.fixture
def make_part() -> Callable[..., MediaPart]:
    def _build(
        path: str,
        identifier: Optional[str] = None,
        *,
        size: Optional[int] = None,
        capture: Optional[float] = None,
        create: Optional[float] = None,
        modify: Optional[float] = None,
        manifest_title: Optional[str] = None,
    ) -> MediaPart:
        media_path = Path(path)
        kind = FileKind.VIDEO if media_path.suffix.lower() in {".mov", ".mp4", ".m4v"} else FileKind.IMAGE
        manifest = None
        if manifest_title is not None:
            manifest = SidecarManifest(path=media_path.with_name(media_path.name + ".json"), title=manifest_title)
        return MediaPart(
            path=media_path,
            kind=kind,
            metadata=NormalizedMetadata(
                content_identifier=identifier,
                capture_timestamp=capture,
                create_timestamp=create,
                modify_timestamp=modify,
                file_size=size,
            ),
            manifest=manifest,
        )

    return _build

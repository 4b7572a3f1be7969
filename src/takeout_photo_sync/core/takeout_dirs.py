"""Takeout 目錄探索與相簿解析。

Takeout 匯出會切成多個部分，每個部分的結構是
``<root>/<part>/Google Photos/<album>/``，同名的相簿資料夾會分散在不同部分中。
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..adapters.metadata_tools import MetadataToolError
from ..config import ConfigManager
from ..models import Album, AlbumManifest, FileKind, Library, MediaPart, SidecarManifest
from ..utils import file_classifier, path_utils
from ..utils.error_handler import ErrorHandler, FatalReconciliationError
from ..utils.logger import get_logger
from .album_titles import preferred_album_title
from .live_photo_pairer import LivePhotoPairer
from .manifest_matcher import ManifestMatcher
from .metadata_normalizer import MetadataNormalizer

GOOGLE_PHOTOS_DIR = "Google Photos"


@dataclass
class AlbumFolder:
    name: str
    dirs: List[Path] = field(default_factory=list)


@dataclass
class AlbumFiles:
    album_manifest_paths: List[Path] = field(default_factory=list)
    manifest_paths: List[Path] = field(default_factory=list)
    media_paths: List[Path] = field(default_factory=list)
    other_paths: List[Path] = field(default_factory=list)


def _list_dirs(directory: Path, run_folder_prefix: str, logger=None) -> list[Path]:
    return sorted(
        child
        for child in directory.iterdir()
        if child.is_dir() and not path_utils.should_exclude_path(child, run_folder_prefix, logger)
    )


def find_google_photos_dirs(takeout_root: Path, run_folder_prefix: str = "Run_", logger=None) -> list[Path]:
    """接受 Takeout 根目錄、``Google Photos`` 目錄本身，或直接放相簿資料夾的目錄。"""
    logger = logger or get_logger("TakeoutDirs")
    if takeout_root.name == GOOGLE_PHOTOS_DIR:
        return [takeout_root]
    if (takeout_root / GOOGLE_PHOTOS_DIR).is_dir():
        return [takeout_root / GOOGLE_PHOTOS_DIR]

    parts = _list_dirs(takeout_root, run_folder_prefix, logger)
    found = [part / GOOGLE_PHOTOS_DIR for part in parts if (part / GOOGLE_PHOTOS_DIR).is_dir()]
    if not found:
        return [takeout_root]

    for part in parts:
        if not (part / GOOGLE_PHOTOS_DIR).is_dir():
            logger.warning(f"略過 {part}（沒有 {GOOGLE_PHOTOS_DIR} 目錄）")
    return found


def get_album_folders(
    google_photos_dirs: list[Path],
    run_folder_prefix: str = "Run_",
    logger=None,
) -> list[AlbumFolder]:
    folders: dict[str, AlbumFolder] = {}
    for google_photos_dir in google_photos_dirs:
        for directory in _list_dirs(google_photos_dir, run_folder_prefix, logger):
            folder = folders.setdefault(directory.name, AlbumFolder(name=directory.name))
            folder.dirs.append(directory)
    return list(folders.values())


def get_parts_for_album(folder: AlbumFolder, config: ConfigManager, logger=None) -> AlbumFiles:
    logger = logger or get_logger("TakeoutDirs")
    album_manifest_name = str(config.get("manifest.album_manifest_name", "metadata.json"))
    files = AlbumFiles()

    for directory in folder.dirs:
        for path in sorted(directory.iterdir()):
            if path.is_dir():
                logger.debug(f"略過子目錄: {path}")
                continue
            if path.name == album_manifest_name:
                files.album_manifest_paths.append(path)
            elif path.suffix.lower() == ".json":
                files.manifest_paths.append(path)
            elif file_classifier.is_known_type(path, config):
                files.media_paths.append(path)
            else:
                files.other_paths.append(path)
                logger.info(f"略過未知類型檔案: {path}")

    return files


def _load_json_object(path: Path) -> dict:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"{path} 不是 JSON 物件")
    return payload


def read_album_manifest(path: Path) -> AlbumManifest:
    return AlbumManifest.from_dict(_load_json_object(path), path)


def read_sidecar_manifest(path: Path) -> SidecarManifest:
    return SidecarManifest.from_dict(_load_json_object(path), path)


@dataclass
class _AlbumSource:
    folder: AlbumFolder
    files: AlbumFiles
    album_manifests: List[AlbumManifest]


class AlbumParser:
    def __init__(
        self,
        config: ConfigManager,
        normalizer: Optional[MetadataNormalizer] = None,
        logger=None,
        error_handler: ErrorHandler | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or get_logger(self.__class__.__name__)
        self.error_handler = error_handler or ErrorHandler()
        self.normalizer = normalizer or MetadataNormalizer(config, logger=self.logger)
        self.manifest_matcher = ManifestMatcher(config, self.logger, self.error_handler)
        self.pairer = LivePhotoPairer(self.logger, self.error_handler)
        self.run_folder_prefix = str(config.get("run.folder_prefix", "Run_"))
        self.include = config.get_list("albums.include")
        self.exclude = config.get_list("albums.exclude")
        self.title_prefixes = config.get_list("albums.default_title_prefixes")

    def parse(self, takeout_root: Path) -> Library:
        google_photos_dirs = find_google_photos_dirs(takeout_root, self.run_folder_prefix, self.logger)
        folders = get_album_folders(google_photos_dirs, self.run_folder_prefix, self.logger)
        self.logger.info(f"找到 {len(folders)} 個相簿資料夾")

        sources: dict[str, list[_AlbumSource]] = {}
        for folder in folders:
            try:
                files = get_parts_for_album(folder, self.config, self.logger)
                album_manifests = [read_album_manifest(path) for path in files.album_manifest_paths]
            except (OSError, ValueError) as exc:
                self._record_failure(folder.name, exc)
                continue

            title = (
                preferred_album_title(
                    [manifest.title for manifest in album_manifests],
                    self.title_prefixes,
                    self.logger,
                )
                or folder.name
            )
            # 不同資料夾可能宣告相同的標題，合併後標題在相片庫中唯一
            sources.setdefault(title, []).append(_AlbumSource(folder, files, album_manifests))

        library = Library()
        for title, album_sources in sources.items():
            try:
                album = self._parse_album(title, album_sources)
            except FatalReconciliationError:
                raise
            except (OSError, ValueError, MetadataToolError) as exc:
                self._record_failure(title, exc)
                continue
            library.albums.append(album)

        # 去重要看完整的相片庫，篩選放在之後
        self.pairer.dedupe_across_albums(library)
        library.albums = [album for album in library.albums if self._is_selected(album.title)]
        self.logger.info(f"解析完成: {len(library.albums)} 個相簿")
        return library

    def _parse_album(self, title: str, album_sources: list[_AlbumSource]) -> Album:
        album = Album(title=title)
        for source in album_sources:
            for directory in source.folder.dirs:
                album.add_directory(directory)
            if album.album_manifest is None and source.album_manifests:
                album.album_manifest = source.album_manifests[0]
            album.manifests.extend(read_sidecar_manifest(path) for path in source.files.manifest_paths)
            album.media_paths.extend(source.files.media_paths)

        parts: list[MediaPart] = []
        for directory in album.directories:
            media_paths = [path for path in album.media_paths if path.parent == directory]
            if not media_paths:
                continue
            metadata = self.normalizer.read_directory(directory, media_paths)
            for path in media_paths:
                kind = FileKind(file_classifier.classify_file_type(path, self.config))
                parts.append(MediaPart(path=path, kind=kind, metadata=metadata[path]))

        self.logger.info(
            f"[{title}] {len(album.directories)} 個目錄、{len(parts)} 個媒體檔、"
            f"{len(album.manifests)} 個 manifest"
        )
        self.pairer.pair_album(album, parts)
        self.manifest_matcher.attach_manifests(album)
        return album

    def _is_selected(self, title: str) -> bool:
        if path_utils.is_album_selected(title, self.include, self.exclude):
            return True
        self.logger.info(f"依篩選條件略過相簿: {title}")
        return False

    def _record_failure(self, title: str, exc: Exception) -> None:
        message = f"相簿 {title} 解析失敗，略過: {exc}"
        self.logger.warning(message)
        self.error_handler.add_warning("W-ALBUM-PARSE", message)

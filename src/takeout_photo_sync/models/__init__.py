"""資料模型模組。"""

from .album import Album, AlbumBinding, Library
from .content_item import (
    BindingConflictError,
    ContentItem,
    FileKind,
    ItemShape,
    MatchResult,
    MatchStatus,
    MediaPart,
)
from .destination import DestinationMediaInfo, ImportedMedia, SearchCriteria
from .error_record import ErrorLevel, ProcessError
from .media_metadata import NormalizedMetadata
from .run_record import CreatedAlbum, ImportedImage
from .sidecar_manifest import AlbumManifest, GeoData, SidecarManifest

__all__ = [
    "Album",
    "AlbumBinding",
    "AlbumManifest",
    "BindingConflictError",
    "ContentItem",
    "CreatedAlbum",
    "DestinationMediaInfo",
    "ErrorLevel",
    "FileKind",
    "GeoData",
    "ImportedImage",
    "ImportedMedia",
    "ItemShape",
    "Library",
    "MatchResult",
    "MatchStatus",
    "MediaPart",
    "NormalizedMetadata",
    "ProcessError",
    "SearchCriteria",
    "SidecarManifest",
]

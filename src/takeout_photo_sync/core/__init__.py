"""核心對帳流程模組。"""

from .album_titles import is_default_title, order_albums, preferred_album_title
from .destination_matcher import DestinationMatcher, SearchKey, build_search_key, normalize_filename
from .library_store import dump_library, load_library
from .live_photo_pairer import LivePhotoPairer
from .manifest_matcher import ManifestMatcher, manifest_key
from .metadata_normalizer import MetadataNormalizer, normalize_image_record, normalize_video_record
from .organizer import LibraryOrganizer, OrganizeResult
from .reconciler import FINAL_DUMP_FILE, ReconcileResult, Reconciler, create_run_dir
from .run_state import (
    CREATED_ALBUMS_FILE,
    IMPORTED_IMAGES_FILE,
    LEGACY_IMPORTED_IMAGES_FILE,
    MergeResult,
    RunRecordWriter,
    RunState,
    RunStateMerger,
    load_run_state,
    read_created_albums,
    read_imported_images,
    read_legacy_imported_images,
)
from .takeout_dirs import (
    AlbumFiles,
    AlbumFolder,
    AlbumParser,
    find_google_photos_dirs,
    get_album_folders,
    get_parts_for_album,
)

__all__ = [
    "AlbumFiles",
    "AlbumFolder",
    "AlbumParser",
    "CREATED_ALBUMS_FILE",
    "DestinationMatcher",
    "FINAL_DUMP_FILE",
    "IMPORTED_IMAGES_FILE",
    "LEGACY_IMPORTED_IMAGES_FILE",
    "LibraryOrganizer",
    "LivePhotoPairer",
    "ManifestMatcher",
    "MergeResult",
    "MetadataNormalizer",
    "OrganizeResult",
    "ReconcileResult",
    "Reconciler",
    "RunRecordWriter",
    "RunState",
    "RunStateMerger",
    "SearchKey",
    "build_search_key",
    "create_run_dir",
    "dump_library",
    "find_google_photos_dirs",
    "get_album_folders",
    "get_parts_for_album",
    "is_default_title",
    "load_library",
    "load_run_state",
    "manifest_key",
    "normalize_filename",
    "normalize_image_record",
    "normalize_video_record",
    "order_albums",
    "preferred_album_title",
    "read_created_albums",
    "read_imported_images",
    "read_legacy_imported_images",
]

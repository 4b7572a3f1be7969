"""外部工具與目的地相片庫的轉接層。"""

from .metadata_tools import (
    ExifToolExtractor,
    FfprobeExtractor,
    ImageMetadataSource,
    MetadataToolError,
    PillowExtractor,
    VideoMetadataSource,
    build_image_source,
)
from .photos_app import DestinationLibraryClient, DestinationLibraryError, PhotosAppClient

__all__ = [
    "DestinationLibraryClient",
    "DestinationLibraryError",
    "ExifToolExtractor",
    "FfprobeExtractor",
    "ImageMetadataSource",
    "MetadataToolError",
    "PhotosAppClient",
    "PillowExtractor",
    "VideoMetadataSource",
    "build_image_source",
]

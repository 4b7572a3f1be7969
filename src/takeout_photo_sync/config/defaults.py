"""預設設定值。"""

DEFAULT_CONFIG = {
    "file_extensions": {
        "image": [".gif", ".heic", ".jpg", ".jpeg", ".png", ".nef"],
        "video": [".mov", ".mp4", ".m4v"],
    },
    "metadata": {
        "extractor": "exiftool",
        "exiftool_path": "exiftool",
        "ffprobe_path": "ffprobe",
        "coordinate_precision": 6,
        "timeout_sec": 300,
    },
    "manifest": {
        "album_manifest_name": "metadata.json",
        "truncated_name_length": 51,
    },
    "matching": {
        "timestamp_tolerance_sec": 2,
        "batch_size": 200,
        "geo_mismatch_threshold": 0.001,
    },
    "destination": {
        "osascript_path": "osascript",
        "timeout_sec": 600,
        "import_chunk_size": 200,
        "restart_every": 2000,
    },
    "albums": {
        "include": [],
        "exclude": [],
        "default_title_prefixes": ["Photos from "],
    },
    "run": {
        "folder_prefix": "Run_",
        "what_if": False,
    },
}

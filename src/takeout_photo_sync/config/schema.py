"""設定檔驗證邏輯。"""

from __future__ import annotations

from typing import Any


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def validate_config(config: dict[str, Any]) -> list[str]:
    errors: list[str] = []

    def add_error(path: str, message: str) -> None:
        errors.append(f"{path}: {message}")

    file_extensions = config.get("file_extensions", {})
    if not _is_str_list(file_extensions.get("image", [])):
        add_error("file_extensions.image", "必須是字串清單")
    if not _is_str_list(file_extensions.get("video", [])):
        add_error("file_extensions.video", "必須是字串清單")

    metadata = config.get("metadata", {})
    extractor = metadata.get("extractor", "exiftool")
    if extractor not in {"exiftool", "pillow"}:
        add_error("metadata.extractor", "必須是 exiftool 或 pillow")
    precision = metadata.get("coordinate_precision", 6)
    if not isinstance(precision, int) or not (0 <= precision <= 12):
        add_error("metadata.coordinate_precision", "必須介於 0 到 12")
    metadata_timeout = metadata.get("timeout_sec", 300)
    if not isinstance(metadata_timeout, (int, float)) or metadata_timeout <= 0:
        add_error("metadata.timeout_sec", "必須是大於 0 的數值")

    manifest = config.get("manifest", {})
    album_manifest_name = manifest.get("album_manifest_name", "metadata.json")
    if not isinstance(album_manifest_name, str) or not album_manifest_name.endswith(".json"):
        add_error("manifest.album_manifest_name", "必須是 .json 檔名")
    truncated_name_length = manifest.get("truncated_name_length", 51)
    if not isinstance(truncated_name_length, int) or truncated_name_length <= 0:
        add_error("manifest.truncated_name_length", "必須是正整數")

    matching = config.get("matching", {})
    tolerance = matching.get("timestamp_tolerance_sec", 2)
    if not isinstance(tolerance, (int, float)) or tolerance < 0:
        add_error("matching.timestamp_tolerance_sec", "必須是大於等於 0 的數值")
    batch_size = matching.get("batch_size", 200)
    if not isinstance(batch_size, int) or batch_size <= 0:
        add_error("matching.batch_size", "必須是正整數")
    geo_threshold = matching.get("geo_mismatch_threshold", 0.001)
    if not isinstance(geo_threshold, (int, float)) or geo_threshold < 0:
        add_error("matching.geo_mismatch_threshold", "必須是大於等於 0 的數值")

    destination = config.get("destination", {})
    import_chunk_size = destination.get("import_chunk_size", 200)
    restart_every = destination.get("restart_every", 2000)
    destination_timeout = destination.get("timeout_sec", 600)
    if not isinstance(import_chunk_size, int) or import_chunk_size <= 0:
        add_error("destination.import_chunk_size", "必須是正整數")
    if not isinstance(restart_every, int) or restart_every < 0:
        add_error("destination.restart_every", "必須是大於等於 0 的整數")
    if not isinstance(destination_timeout, (int, float)) or destination_timeout <= 0:
        add_error("destination.timeout_sec", "必須是大於 0 的數值")

    albums = config.get("albums", {})
    for key in ("include", "exclude", "default_title_prefixes"):
        if not _is_str_list(albums.get(key, [])):
            add_error(f"albums.{key}", "必須是字串清單")

    run = config.get("run", {})
    folder_prefix = run.get("folder_prefix", "Run_")
    if not isinstance(folder_prefix, str) or not folder_prefix.strip():
        add_error("run.folder_prefix", "必須是非空字串")
    if not isinstance(run.get("what_if", False), bool):
        add_error("run.what_if", "必須是布林值")

    return errors

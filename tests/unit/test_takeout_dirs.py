import json
from pathlib import Path

from takeout_photo_sync.config import ConfigManager
from takeout_photo_sync.core import (
    AlbumFolder,
    AlbumParser,
    MetadataNormalizer,
    find_google_photos_dirs,
    get_album_folders,
    get_parts_for_album,
    order_albums,
    preferred_album_title,
)
from takeout_photo_sync.models import Album
from takeout_photo_sync.utils.error_handler import ErrorHandler


def _touch(path: Path, content: str = "x") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_find_google_photos_dirs_in_takeout_parts(tmp_path: Path) -> None:
    (tmp_path / "Takeout" / "Google Photos").mkdir(parents=True)
    (tmp_path / "Takeout 2" / "Google Photos").mkdir(parents=True)
    (tmp_path / "Other").mkdir()
    (tmp_path / "Run_20260101_000000").mkdir()

    dirs = find_google_photos_dirs(tmp_path)

    assert dirs == [tmp_path / "Takeout" / "Google Photos", tmp_path / "Takeout 2" / "Google Photos"]


def test_find_google_photos_dirs_accepts_direct_paths(tmp_path: Path) -> None:
    google_photos = tmp_path / "Google Photos"
    (google_photos / "Trip").mkdir(parents=True)

    assert find_google_photos_dirs(google_photos) == [google_photos]
    assert find_google_photos_dirs(tmp_path) == [google_photos]
    assert find_google_photos_dirs(google_photos / "Trip") == [google_photos / "Trip"]


def test_album_folders_merge_by_leaf_name(tmp_path: Path) -> None:
    part1 = tmp_path / "Takeout" / "Google Photos"
    part2 = tmp_path / "Takeout 2" / "Google Photos"
    for directory in (part1 / "Trip", part1 / "Beach", part2 / "Trip"):
        directory.mkdir(parents=True)

    folders = get_album_folders([part1, part2])

    assert [(folder.name, folder.dirs) for folder in folders] == [
        ("Beach", [part1 / "Beach"]),
        ("Trip", [part1 / "Trip", part2 / "Trip"]),
    ]


def test_parts_for_album_split_by_type(tmp_path: Path) -> None:
    album_dir = tmp_path / "Trip"
    _touch(album_dir / "metadata.json", "{}")
    _touch(album_dir / "IMG_01.JPG.json", "{}")
    _touch(album_dir / "IMG_01.JPG")
    _touch(album_dir / "IMG_01.MOV")
    _touch(album_dir / "notes.txt")
    (album_dir / "nested").mkdir()

    files = get_parts_for_album(AlbumFolder("Trip", [album_dir]), ConfigManager())

    assert files.album_manifest_paths == [album_dir / "metadata.json"]
    assert files.manifest_paths == [album_dir / "IMG_01.JPG.json"]
    assert files.media_paths == [album_dir / "IMG_01.JPG", album_dir / "IMG_01.MOV"]
    assert files.other_paths == [album_dir / "notes.txt"]


def test_preferred_album_title() -> None:
    prefixes = ["Photos from "]
    assert preferred_album_title([], prefixes) is None
    assert preferred_album_title(["Photos from 2019"], prefixes) == "Photos from 2019"
    assert preferred_album_title(["Photos from 2019", "Trip", "Beach"], prefixes) == "Trip"
    assert preferred_album_title(["Photos from 2019", "Photos from 2020"], prefixes) == "Photos from 2019"


def test_order_albums_puts_named_albums_first() -> None:
    albums = [Album(title="Photos from 2019"), Album(title="Trip"), Album(title="Photos from 2018"), Album(title="Beach")]

    ordered = order_albums(albums, ["Photos from "])

    assert [album.title for album in ordered] == ["Trip", "Beach", "Photos from 2019", "Photos from 2018"]


def test_album_parser_merges_titles_and_pairs(tmp_path: Path, fake_sources) -> None:
    root = tmp_path / "Takeout"
    part1 = root / "Takeout" / "Google Photos"
    part2 = root / "Takeout 2" / "Google Photos"
    _touch(part1 / "Trip" / "IMG_01.JPG")
    _touch(part2 / "Trip" / "IMG_01.MOV")
    _touch(part1 / "Trip" / "IMG_01.JPG.json", json.dumps({"title": "IMG_01.JPG"}))
    _touch(part1 / "Roadtrip 2020" / "metadata.json", json.dumps({"title": "Trip"}))
    _touch(part1 / "Roadtrip 2020" / "IMG_02.JPG")
    _touch(part1 / "Photos from 2020" / "IMG_01.MP4")
    _touch(part1 / "Skipped" / "IMG_09.JPG")
    image_source, video_source = fake_sources(
        {
            "IMG_01.JPG": {"MakerNotes": {"ContentIdentifier": "L1"}},
            "IMG_02.JPG": {},
            "IMG_09.JPG": {},
        },
        {
            "IMG_01.MOV": {"format": {"tags": {"com.apple.quicktime.content.identifier": "L1"}}},
            "IMG_01.MP4": {"format": {"tags": {"com.apple.quicktime.content.identifier": "L1"}}},
        },
    )
    config = ConfigManager()
    config.set("albums.exclude", ["Skipped"])
    handler = ErrorHandler()
    parser = AlbumParser(config, MetadataNormalizer(config, image_source, video_source), error_handler=handler)

    library = parser.parse(root)

    assert sorted(album.title for album in library.albums) == ["Photos from 2020", "Trip"]
    trip = library.find_album("Trip")
    assert len(trip.directories) == 3
    assert trip.album_manifest.title == "Trip"
    paired = [item for item in trip.items if item.is_paired]
    assert len(paired) == 1
    assert paired[0].image.manifest.title == "IMG_01.JPG"
    assert library.find_album("Photos from 2020").items == []
    assert handler.count_by_code()["I-DEDUP-DROPPED"] == 1
    assert handler.count_by_code()["I-PARTNER-MANIFEST"] == 1


def test_album_parser_skips_broken_album(tmp_path: Path, fake_sources) -> None:
    google_photos = tmp_path / "Google Photos"
    _touch(google_photos / "Broken" / "IMG_01.JPG.json", "{not json")
    _touch(google_photos / "Broken" / "IMG_01.JPG")
    _touch(google_photos / "Good" / "IMG_02.JPG")
    image_source, video_source = fake_sources({"IMG_01.JPG": {}, "IMG_02.JPG": {}})
    config = ConfigManager()
    handler = ErrorHandler()
    parser = AlbumParser(config, MetadataNormalizer(config, image_source, video_source), error_handler=handler)

    library = parser.parse(google_photos)

    assert [album.title for album in library.albums] == ["Good"]
    assert handler.count_by_code()["W-ALBUM-PARSE"] == 1


def test_excluded_album_pair_still_drops_orphan(tmp_path: Path, fake_sources) -> None:
    google_photos = tmp_path / "Google Photos"
    _touch(google_photos / "Hidden" / "IMG_05.JPG")
    _touch(google_photos / "Hidden" / "IMG_05.MOV")
    _touch(google_photos / "Trip" / "IMG_05.MP4")
    identifier = {"format": {"tags": {"com.apple.quicktime.content.identifier": "L5"}}}
    image_source, video_source = fake_sources(
        {"IMG_05.JPG": {"MakerNotes": {"ContentIdentifier": "L5"}}},
        {"IMG_05.MOV": identifier, "IMG_05.MP4": identifier},
    )
    config = ConfigManager()
    config.set("albums.exclude", ["Hidden"])
    handler = ErrorHandler()
    parser = AlbumParser(config, MetadataNormalizer(config, image_source, video_source), error_handler=handler)

    library = parser.parse(google_photos)

    assert [album.title for album in library.albums] == ["Trip"]
    assert library.find_album("Trip").items == []
    assert handler.count_by_code()["I-DEDUP-DROPPED"] == 1

import json
from pathlib import Path

import pytest

from takeout_photo_sync.config import ConfigManager
from takeout_photo_sync.core import (
    CREATED_ALBUMS_FILE,
    IMPORTED_IMAGES_FILE,
    DestinationMatcher,
    LibraryOrganizer,
    RunRecordWriter,
)
from takeout_photo_sync.models import Album, AlbumBinding, ContentItem, MatchStatus
from takeout_photo_sync.utils.error_handler import ErrorHandler, FatalReconciliationError


def _organizer(photos, run_dir: Path, *, what_if: bool = False, **overrides):
    config = ConfigManager()
    for key, value in overrides.items():
        config.set(key, value)
    handler = ErrorHandler()
    matcher = DestinationMatcher(photos, config, error_handler=handler)
    writer = RunRecordWriter(run_dir)
    organizer = LibraryOrganizer(photos, matcher, writer, config, what_if=what_if, error_handler=handler)
    return organizer, writer


def _pending(part) -> ContentItem:
    item = ContentItem.from_part(part)
    item.mark_no_candidate()
    return item


def _read_jsonl(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line]


def test_creates_album_and_adds_matched_items(tmp_path: Path, photos, make_part) -> None:
    existing = photos.add_media("IMG_01.JPG")
    item = ContentItem.from_part(make_part("/t/IMG_01.JPG"))
    item.bind(existing, tier=1)
    album = Album(title="Trip", items=[item])
    organizer, writer = _organizer(photos, tmp_path / "Run_1")

    with writer:
        result = organizer.organize(album)

    assert result.created_album is True
    assert result.added_count == 1
    assert result.imported_count == 0
    assert album.binding is not None
    assert photos.albums[album.album_id]["items"] == [existing]
    created = json.loads((tmp_path / "Run_1" / CREATED_ALBUMS_FILE).read_text(encoding="utf-8"))
    assert created == [{"title": "Trip", "id": album.album_id}]
    assert photos.import_calls == 0


def test_items_bound_from_run_state_are_not_added_again(tmp_path: Path, photos, make_part) -> None:
    album_id = photos.add_album("Trip")
    item = ContentItem.from_part(make_part("/t/IMG_01.JPG"))
    item.bind("P99", source="run_state")
    album = Album(title="Trip", items=[item], binding=AlbumBinding(album_id=album_id, original_item_count=0))
    organizer, writer = _organizer(photos, tmp_path / "Run_1")

    with writer:
        result = organizer.organize(album)

    assert result.created_album is False
    assert result.added_count == 0
    assert photos.albums[album_id]["items"] == []
    assert not (tmp_path / "Run_1" / CREATED_ALBUMS_FILE).exists()


def test_imports_pending_items_without_splitting_pairs(tmp_path: Path, photos, make_part) -> None:
    single_a = _pending(make_part("/t/A.JPG"))
    pair = _pending(make_part("/t/P.JPG", "L1"))
    pair.add_part(make_part("/t/P.MOV", "L1"))
    single_b = _pending(make_part("/t/B.JPG"))
    album = Album(title="Trip", items=[single_a, pair, single_b])
    organizer, writer = _organizer(photos, tmp_path / "Run_1", **{"destination.import_chunk_size": 2})

    with writer:
        result = organizer.organize(album)

    assert photos.import_calls == 3
    assert [path.name for path in photos.imported_paths] == ["A.JPG", "P.JPG", "P.MOV", "B.JPG"]
    assert result.imported_count == 3
    assert all(item.match.status is MatchStatus.BOUND for item in album.items)

    records = _read_jsonl(tmp_path / "Run_1" / IMPORTED_IMAGES_FILE)
    assert len(records) == 3
    paired_record = next(record for record in records if record["mainPath"].endswith("P.JPG"))
    assert paired_record["videoPath"].endswith("P.MOV")
    assert paired_record["photosId"] == pair.destination_id
    assert writer.imported_count == 3


def test_restart_between_chunks_when_limit_reached(tmp_path: Path, photos, make_part) -> None:
    items = [_pending(make_part(f"/t/IMG_{index}.JPG")) for index in range(4)]
    album = Album(title="Trip", items=items)
    organizer, writer = _organizer(
        photos,
        tmp_path / "Run_1",
        **{"destination.import_chunk_size": 2, "destination.restart_every": 3},
    )

    with writer:
        organizer.organize(album)

    assert photos.import_calls == 2
    assert photos.restarts == 1


def test_restart_disabled_with_zero(tmp_path: Path, photos, make_part) -> None:
    items = [_pending(make_part(f"/t/IMG_{index}.JPG")) for index in range(4)]
    organizer, writer = _organizer(
        photos,
        tmp_path / "Run_1",
        **{"destination.import_chunk_size": 1, "destination.restart_every": 0},
    )

    with writer:
        organizer.organize(Album(title="Trip", items=items))

    assert photos.import_calls == 4
    assert photos.restarts == 0


def test_ambiguous_items_are_never_imported(tmp_path: Path, photos, make_part) -> None:
    item = ContentItem.from_part(make_part("/t/IMG_01.JPG"))
    item.mark_ambiguous(["P1", "P2"], 3)
    organizer, writer = _organizer(photos, tmp_path / "Run_1")

    with writer:
        result = organizer.organize(Album(title="Trip", items=[item]))

    assert result.skipped_ambiguous == 1
    assert photos.import_calls == 0
    assert item.match.status is MatchStatus.AMBIGUOUS


def test_what_if_changes_nothing(tmp_path: Path, photos, make_part) -> None:
    album = Album(title="Trip", items=[_pending(make_part("/t/IMG_01.JPG"))])
    organizer, writer = _organizer(photos, tmp_path / "Run_1", what_if=True)

    with writer:
        result = organizer.organize(album)

    assert result.pending_import_count == 1
    assert photos.albums == {}
    assert photos.import_calls == 0
    assert not (tmp_path / "Run_1").exists()


class _LosingLibrary:
    """匯入後什麼都找不到的相片庫。"""

    def __init__(self, inner) -> None:
        self.inner = inner

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def import_files(self, title, file_paths):
        self.inner.import_calls += 1
        return []


def test_missing_import_with_manifest_is_fatal(tmp_path: Path, photos, make_part) -> None:
    library = _LosingLibrary(photos)
    item = _pending(make_part("/t/IMG_01.JPG", manifest_title="IMG_01.JPG"))
    organizer, writer = _organizer(library, tmp_path / "Run_1")

    with writer, pytest.raises(FatalReconciliationError) as excinfo:
        organizer.organize(Album(title="Trip", items=[item]))

    assert excinfo.value.code == "E-MATCH-MANIFEST"
    assert not (tmp_path / "Run_1" / IMPORTED_IMAGES_FILE).exists()


def test_missing_import_without_manifest_warns(tmp_path: Path, photos, make_part) -> None:
    library = _LosingLibrary(photos)
    item = _pending(make_part("/t/IMG_01.JPG"))
    organizer, writer = _organizer(library, tmp_path / "Run_1")

    with writer:
        result = organizer.organize(Album(title="Trip", items=[item]))

    assert result.imported_count == 0
    assert organizer.error_handler.count_by_code()["W-NO-CANDIDATE"] == 1

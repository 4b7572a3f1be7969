from pathlib import Path

import pytest

from takeout_photo_sync.config import ConfigManager
from takeout_photo_sync.core import DestinationMatcher, build_search_key, normalize_filename
from takeout_photo_sync.models import Album, ContentItem, MatchStatus
from takeout_photo_sync.utils.error_handler import ErrorHandler, FatalReconciliationError


def _matcher(photos, handler=None, **overrides) -> DestinationMatcher:
    config = ConfigManager()
    for key, value in overrides.items():
        config.set(key, value)
    return DestinationMatcher(photos, config, error_handler=handler or ErrorHandler())


def _item(part) -> ContentItem:
    return ContentItem.from_part(part)


@pytest.mark.parametrize(
    ("filename", "expected"),
    [
        ("IMG_01.JPG", "img_01.jpg"),
        ("IMG_01(1).JPG", "img_01.jpg"),
        ("IMG_01 (12).JPG", "img_01.jpg"),
        ("IMG_(1)_01.JPG", "img_(1)_01.jpg"),
    ],
)
def test_normalize_filename(filename: str, expected: str) -> None:
    assert normalize_filename(filename) == expected


def test_search_key_preference_order(make_part) -> None:
    item = _item(make_part("/t/IMG_01.JPG", "L1", modify=30.0, manifest_title="Original.JPG"))
    item.add_part(make_part("/t/IMG_01.MOV", "L1", size=500, create=20.0, manifest_title="Original.MOV"))

    key = build_search_key(item)

    assert key.filename == "Original.JPG"
    assert key.timestamp == 20.0
    assert key.size == 500


def test_search_key_video_only(make_part) -> None:
    key = build_search_key(_item(make_part("/t/CLIP.MOV", modify=5.0, size=9)))

    assert key.filename == "CLIP.MOV"
    assert key.timestamp == 5.0
    assert key.size == 9


def test_tier1_filename_size_timestamp(photos, make_part) -> None:
    expected = photos.add_media("IMG_01.JPG", size=100, timestamp=1000.0)
    photos.add_media("IMG_01.JPG", size=200, timestamp=5000.0)
    item = _item(make_part("/t/IMG_01.JPG", size=100, capture=1001.5))

    bound = _matcher(photos).match_items(Album(title="Trip"), [item])

    assert bound == [item]
    assert item.destination_id == expected
    assert item.match.tier == 1


def test_tier1_outside_tolerance_falls_through(photos, make_part) -> None:
    photos.add_media("IMG_01.JPG", size=100, timestamp=1000.0)
    item = _item(make_part("/t/IMG_01.JPG", size=100, capture=1003.0))

    _matcher(photos).match_items(Album(title="Trip"), [item])

    assert item.is_bound
    assert item.match.tier == 3


def test_tier2_size_and_timestamp_after_rename(photos, make_part) -> None:
    expected = photos.add_media("IMG_01-1.JPG", size=100, timestamp=1000.0)
    photos.add_media("IMG_01-2.JPG", size=300, timestamp=1000.0)
    item = _item(make_part("/t/IMG_01.JPG", size=100, capture=1000.0))

    _matcher(photos).match_items(Album(title="Trip"), [item])

    assert item.destination_id == expected
    assert item.match.tier == 2


def test_tier3_auto_dedup_suffix(photos, make_part) -> None:
    expected = photos.add_media("IMG_01(1).JPG")
    item = _item(make_part("/t/IMG_01.JPG", size=100, capture=1000.0))

    _matcher(photos).match_items(Album(title="Trip"), [item])

    assert item.destination_id == expected
    assert item.match.tier == 3


def test_tier3_source_suffix_is_not_stripped(photos, make_part) -> None:
    photos.add_media("IMG_01.JPG", size=100, timestamp=1000.0)
    copy = _item(make_part("/t/IMG_01(1).JPG", size=999, capture=5000.0))

    _matcher(photos).match_items(Album(title="Trip"), [copy])

    assert copy.destination_id is None
    assert copy.match.status is MatchStatus.NO_CANDIDATE


def test_same_name_resolved_by_size(photos, make_part) -> None:
    small = photos.add_media("IMG_9999.JPG", size=100, timestamp=1000.0)
    large = photos.add_media("IMG_9999.JPG", size=200, timestamp=1000.0)
    first = _item(make_part("/a/IMG_9999.JPG", size=100, capture=1000.0))
    second = _item(make_part("/b/IMG_9999.JPG", size=200, capture=1000.0))

    _matcher(photos).match_items(Album(title="Trip"), [first, second])

    assert first.destination_id == small
    assert second.destination_id == large


def test_ambiguous_tier_never_binds(photos, make_part) -> None:
    first = photos.add_media("IMG_9999.JPG", size=100, timestamp=1000.0)
    second = photos.add_media("IMG_9999.JPG", size=100, timestamp=1000.0)
    item = _item(make_part("/t/IMG_9999.JPG", size=100, capture=1000.0))
    handler = ErrorHandler()

    bound = _matcher(photos, handler).match_items(Album(title="Trip"), [item])

    assert bound == []
    assert item.is_bound is False
    assert item.match.status is MatchStatus.AMBIGUOUS
    assert item.match.tier == 1
    assert item.match.candidates == [first, second]
    assert handler.count_by_code() == {"W-AMBIGUOUS": 1}
    assert first in handler.errors[0].message and second in handler.errors[0].message


def test_ambiguous_item_is_not_rematched(photos, make_part) -> None:
    photos.add_media("IMG_9999.JPG", size=100, timestamp=1000.0)
    photos.add_media("IMG_9999.JPG", size=100, timestamp=1000.0)
    item = _item(make_part("/t/IMG_9999.JPG", size=100, capture=1000.0))
    matcher = _matcher(photos)
    matcher.match_items(Album(title="Trip"), [item])

    matcher.match_items(Album(title="Trip"), [item])

    assert photos.search_calls == 1
    assert item.match.status is MatchStatus.AMBIGUOUS


def test_bound_items_are_skipped(photos, make_part) -> None:
    item = _item(make_part("/t/IMG_02.JPG"))
    item.bind("P1", source="run_state")

    assert _matcher(photos).match_items(Album(title="Trip"), [item]) == []
    assert photos.search_calls == 0
    assert item.destination_id == "P1"


def test_missing_size_and_timestamp_match_on_name(photos, make_part) -> None:
    expected = photos.add_media("IMG_03.PNG", size=10, timestamp=1.0)
    item = _item(make_part("/t/IMG_03.PNG"))

    _matcher(photos).match_items(Album(title="Trip"), [item])

    assert item.destination_id == expected
    assert item.match.tier == 1


def test_no_candidate_before_import(photos, make_part) -> None:
    handler = ErrorHandler()
    item = _item(make_part("/t/IMG_04.JPG", size=1, manifest_title="IMG_04.JPG"))

    _matcher(photos, handler).match_items(Album(title="Trip"), [item])

    assert item.match.status is MatchStatus.NO_CANDIDATE
    assert handler.errors == []


def test_expected_item_without_manifest_warns(photos, make_part) -> None:
    handler = ErrorHandler()
    item = _item(make_part("/t/IMG_04.JPG", size=1))

    _matcher(photos, handler).match_items(Album(title="Trip"), [item], expect_present=True)

    assert item.match.status is MatchStatus.NO_CANDIDATE
    assert handler.count_by_code() == {"W-NO-CANDIDATE": 1}


def test_expected_item_with_manifest_is_fatal(photos, make_part) -> None:
    item = _item(make_part("/t/IMG_04.JPG", size=1, manifest_title="IMG_04.JPG"))

    with pytest.raises(FatalReconciliationError) as excinfo:
        _matcher(photos).match_items(Album(title="Trip"), [item], expect_present=True)

    assert excinfo.value.code == "E-MATCH-MANIFEST"


def test_search_is_batched_by_item(photos, make_part) -> None:
    items = []
    for index in range(5):
        photos.add_media(f"IMG_1{index}.JPG")
        item = _item(make_part(f"/t/IMG_1{index}.JPG", f"L{index}"))
        item.add_part(make_part(f"/t/IMG_1{index}.MOV", f"L{index}"))
        items.append(item)

    bound = _matcher(photos, **{"matching.batch_size": 2}).match_items(Album(title="Trip"), items)

    assert photos.search_calls == 3
    assert len(bound) == 5
    assert all(item.is_paired for item in items)
    assert [item.destination_id for item in items] == list(photos.media)
    assert Path("/t/IMG_10.MOV") in items[0].all_paths()

import pytest

from humanizer.services.chunker import chunk_document
from humanizer.services.selection import (
    PATTERN_NAMES,
    bookends,
    chunk_previews,
    evenly_distributed,
    merge_selection,
    normalize_selection,
    preview_text,
    select_pattern,
    select_range,
)


def test_named_patterns_on_twenty_chunks() -> None:
    assert select_pattern("first10", 20) == list(range(10))
    assert select_pattern("last10", 20) == list(range(10, 20))
    assert select_pattern("every3rd", 20) == [0, 3, 6, 9, 12, 15, 18]
    assert select_pattern("every5th", 20) == [0, 5, 10, 15]
    assert select_pattern("bookends", 20) == [0, 1, 2, 17, 18, 19]
    assert select_pattern("distributed", 20) == [0, 2, 4, 6, 8, 10, 12, 14, 16, 18]


def test_patterns_clamp_to_small_documents() -> None:
    assert select_pattern("first10", 4) == [0, 1, 2, 3]
    assert select_pattern("last10", 4) == [0, 1, 2, 3]
    assert bookends(5) == [0, 1, 2]
    assert evenly_distributed(3) == [0, 1, 2]
    for name in PATTERN_NAMES:
        assert select_pattern(name, 0) == []


def test_unknown_pattern_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown selection pattern"):
        select_pattern("middle", 10)


def test_select_range_is_inclusive_and_validated() -> None:
    assert select_range(2, 4, 10) == [2, 3, 4]
    with pytest.raises(ValueError):
        select_range(4, 2, 10)
    with pytest.raises(ValueError):
        select_range(0, 10, 10)


def test_merge_and_normalize_keep_first_seen_order() -> None:
    assert merge_selection([3, 1], [1, 0, 3]) == [3, 1, 0]
    assert normalize_selection([2, 2, 0], 3) == [2, 0]
    with pytest.raises(ValueError, match="out of range"):
        normalize_selection([0, 3], 3)


def test_previews_truncate_long_chunks() -> None:
    chunks = chunk_document("word " * 200)

    previews = chunk_previews(chunks, length=20)

    assert previews[0].preview == preview_text(chunks[0].content, 20)
    assert previews[0].preview.endswith("...")
    assert len(previews[0].preview) == 23
    assert previews[0].word_count == 200
    assert preview_text("short") == "short"

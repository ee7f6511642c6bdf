from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from humanizer.services.chunker import TextChunk

PREVIEW_LENGTH = 500

PATTERN_NAMES: tuple[str, ...] = (
    "first10",
    "last10",
    "every3rd",
    "every5th",
    "bookends",
    "distributed",
)


@dataclass(frozen=True)
class ChunkPreview:
    index: int
    chunk_id: str
    preview: str
    word_count: int
    start_word: int
    end_word: int


def preview_text(content: str, length: int = PREVIEW_LENGTH) -> str:
    if len(content) <= length:
        return content
    return content[:length] + "..."


def chunk_previews(chunks: list[TextChunk], length: int = PREVIEW_LENGTH) -> list[ChunkPreview]:
    return [
        ChunkPreview(
            index=chunk.index,
            chunk_id=chunk.chunk_id,
            preview=preview_text(chunk.content, length),
            word_count=chunk.word_count,
            start_word=chunk.start_word,
            end_word=chunk.end_word,
        )
        for chunk in chunks
    ]


def first_n(total: int, n: int = 10) -> list[int]:
    return list(range(min(n, total)))


def last_n(total: int, n: int = 10) -> list[int]:
    return list(range(max(0, total - n), total))


def every_kth(total: int, k: int) -> list[int]:
    if k < 1:
        raise ValueError("k must be >= 1")
    return list(range(0, total, k))


def bookends(total: int, edge: int = 3) -> list[int]:
    selected = first_n(total, edge)
    if total > edge * 2:
        selected.extend(range(total - edge, total))
    return selected


def evenly_distributed(total: int, count: int = 10) -> list[int]:
    if total <= count:
        return list(range(total))
    return list(dict.fromkeys((i * total) // count for i in range(count)))


def select_pattern(name: str, total: int) -> list[int]:
    if name == "first10":
        return first_n(total, 10)
    if name == "last10":
        return last_n(total, 10)
    if name == "every3rd":
        return every_kth(total, 3)
    if name == "every5th":
        return every_kth(total, 5)
    if name == "bookends":
        return bookends(total)
    if name == "distributed":
        return evenly_distributed(total)
    raise ValueError(f"Unknown selection pattern: {name}")


def select_range(start: int, end: int, total: int) -> list[int]:
    if start < 0 or end < start or end >= total:
        raise ValueError(f"Invalid chunk range {start}-{end} for {total} chunks")
    return list(range(start, end + 1))


def merge_selection(existing: Iterable[int], new: Iterable[int]) -> list[int]:
    return list(dict.fromkeys([*existing, *new]))


def normalize_selection(indices: Iterable[int], total: int) -> list[int]:
    """Drop duplicates keeping first-seen order; reject out-of-range indices."""
    normalized = list(dict.fromkeys(indices))
    for index in normalized:
        if index < 0 or index >= total:
            raise ValueError(f"Chunk index {index} is out of range for {total} chunks")
    return normalized

from __future__ import annotations

from dataclasses import dataclass
import math
import re
from typing import Callable

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")

PARAGRAPH_JOINER = "\n\n"


@dataclass(frozen=True)
class TextChunk:
    index: int
    content: str
    start_word: int
    end_word: int
    word_count: int

    @property
    def chunk_id(self) -> str:
        return f"chunk-{self.index}"


def count_words(text: str) -> int:
    return len(text.split())


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / 4)


def target_chunk_words(total_words: int, base_words: int = 1000) -> int:
    if total_words > 100_000:
        return 4000
    if total_words > 50_000:
        return 3000
    if total_words > 20_000:
        return 2000
    return base_words


def estimate_chunk_count(text: str, base_words: int = 1000) -> int:
    total_words = count_words(text)
    if total_words == 0:
        return 0
    return math.ceil(total_words / target_chunk_words(total_words, base_words))


def join_chunks(contents: list[str]) -> str:
    return PARAGRAPH_JOINER.join(content for content in contents if content.strip())


def _pack_sentences(paragraph: str, *, limit: int, measure: Callable[[str], int]) -> list[str]:
    pieces: list[str] = []
    current: list[str] = []
    current_size = 0

    for sentence in _SENTENCE_BREAK.split(paragraph):
        sentence = sentence.strip()
        if not sentence:
            continue
        size = measure(sentence)
        if current and current_size + size > limit:
            pieces.append(" ".join(current))
            current = []
            current_size = 0
        current.append(sentence)
        current_size += size

    if current:
        pieces.append(" ".join(current))
    return pieces


def _pack_paragraphs(text: str, *, limit: int, measure: Callable[[str], int]) -> list[str]:
    if limit <= 0:
        raise ValueError("chunk limit must be > 0")

    pieces: list[str] = []
    current: list[str] = []
    current_size = 0

    for paragraph in _PARAGRAPH_BREAK.split(text):
        paragraph = paragraph.strip()
        if not paragraph:
            continue

        size = measure(paragraph)
        if size > limit:
            if current:
                pieces.append(PARAGRAPH_JOINER.join(current))
                current = []
                current_size = 0
            pieces.extend(_pack_sentences(paragraph, limit=limit, measure=measure))
            continue

        if current and current_size + size > limit:
            pieces.append(PARAGRAPH_JOINER.join(current))
            current = []
            current_size = 0
        current.append(paragraph)
        current_size += size

    if current:
        pieces.append(PARAGRAPH_JOINER.join(current))
    return pieces


def split_by_tokens(text: str, max_tokens: int) -> list[str]:
    """Split text into pieces of roughly ``max_tokens`` (len/4 estimate)."""
    if not text.strip():
        return []
    if estimate_tokens(text) <= max_tokens:
        return [text.strip()]
    return _pack_paragraphs(text, limit=max_tokens, measure=estimate_tokens)


def chunk_document(text: str, base_words: int = 1000) -> list[TextChunk]:
    """Split a document into word-bounded chunks.

    Paragraphs are packed greedily up to the adaptive word target. A paragraph
    longer than the target is split on sentence ends; a single sentence longer
    than the target becomes its own oversized chunk.
    """
    stripped = text.strip()
    if not stripped:
        return []

    total_words = count_words(stripped)
    target = target_chunk_words(total_words, base_words)

    if total_words <= target:
        contents = [stripped]
    else:
        contents = _pack_paragraphs(stripped, limit=target, measure=count_words)

    chunks: list[TextChunk] = []
    cursor = 0
    for index, content in enumerate(contents):
        words = count_words(content)
        chunks.append(
            TextChunk(
                index=index,
                content=content,
                start_word=cursor,
                end_word=cursor + words,
                word_count=words,
            )
        )
        cursor += words
    return chunks

from __future__ import annotations

import re

_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"```[^\n]*\n?([\s\S]*?)```"), r"\1"),
    (re.compile(r"`([^`]+)`"), r"\1"),
    (re.compile(r"^#{1,6}[ \t]+", re.MULTILINE), ""),
    (re.compile(r"!\[([^\]]*)\]\([^)]*\)"), r"\1"),
    (re.compile(r"\[([^\]]+)\]\([^)]*\)"), r"\1"),
    (re.compile(r"\*\*(.+?)\*\*"), r"\1"),
    (re.compile(r"__(.+?)__"), r"\1"),
    (re.compile(r"(?<![\w*])\*(?!\s)(.+?)(?<!\s)\*(?![\w*])"), r"\1"),
    (re.compile(r"(?<![\w_])_(?!\s)(.+?)(?<!\s)_(?![\w_])"), r"\1"),
    (re.compile(r"^[ \t]*(?:-{3,}|\*{3,}|_{3,})[ \t]*$", re.MULTILINE), ""),
    (re.compile(r"^[ \t]*>[ \t]?", re.MULTILINE), ""),
    (re.compile(r"^[ \t]*[-*+][ \t]+", re.MULTILINE), "• "),
    (re.compile(r"^[ \t]*(\d+)\.[ \t]+", re.MULTILINE), r"\1. "),
    (re.compile(r"\n{3,}"), "\n\n"),
]

_MATH_SEGMENTS = re.compile(r"\$\$[\s\S]*?\$\$|\\\[[\s\S]*?\\\]|\\\([\s\S]*?\\\)|\$[^$\n]+?\$")
_MATH_TOKEN = re.compile(r"\x00MATH(\d+)\x00")


def strip_markdown(text: str) -> str:
    stripped = text
    for pattern, replacement in _RULES:
        stripped = pattern.sub(replacement, stripped)
    return stripped.strip()


def _normalize_math(segment: str) -> str:
    if segment.startswith("$$"):
        return f"\\[{segment[2:-2]}\\]"
    if segment.startswith("$"):
        return f"\\({segment[1:-1]}\\)"
    return segment


def preserve_math_and_strip_markdown(text: str) -> str:
    """Strip markdown while keeping LaTeX intact, normalising ``$`` delimiters."""
    segments: list[str] = []

    def _stash(match: re.Match[str]) -> str:
        segments.append(_normalize_math(match.group(0)))
        return f"\x00MATH{len(segments) - 1}\x00"

    # NUL delimits the math tokens, so it must not survive from the input
    protected = _MATH_SEGMENTS.sub(_stash, text.replace("\x00", ""))
    stripped = strip_markdown(protected)
    return _MATH_TOKEN.sub(lambda m: segments[int(m.group(1))], stripped)

from __future__ import annotations

import re

DOLLAR_SIGN_FREE_PROMPT = (
    "CRITICAL FORMATTING RULE: NEVER use dollar signs ($) in your response. "
    'Instead of writing "$15" write "15 dollars". '
    'Instead of "$N" write "N dollars". '
    "This prevents serious formatting issues. "
    'Always convert monetary amounts to the "X dollars" format.'
)

_AMOUNT = re.compile(r"\$(\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)")
_VARIABLE = re.compile(r"\$([A-Za-z][A-Za-z0-9]*)")

MATH_PLACEHOLDER_PREFIX = "__MATH_BLOCK_"
_PLACEHOLDER = re.compile(r"__MATH_BLOCK_(\d+)__")

_DISPLAY_BRACKETS = re.compile(r"\\\[[\s\S]*?\\\]")
_DISPLAY_DOLLARS = re.compile(r"\$\$[\s\S]*?\$\$")
_INLINE_PARENS = re.compile(r"\\\([\s\S]*?\\\)")
_INLINE_DOLLARS = re.compile(r"\$([^$\n]+?)\$(?!\d)")
_MATH_CHARS = re.compile(r"[a-zA-Z\\{}^_=+\-*/()\[\]]")


def remove_dollar_signs(text: str) -> str:
    cleaned = _AMOUNT.sub(r"\1 dollars", text)
    cleaned = _VARIABLE.sub(r"\1 dollars", cleaned)
    return cleaned.replace("$", "dollars")


def _placeholder(index: int) -> str:
    return f"{MATH_PLACEHOLDER_PREFIX}{index:03d}__"


def protect_math_formulas(text: str) -> tuple[str, list[str]]:
    """Swap LaTeX regions for placeholders so prompt rewrites cannot touch them."""
    formulas: list[str] = []

    def _stash(match: re.Match[str]) -> str:
        formulas.append(match.group(0))
        return _placeholder(len(formulas) - 1)

    def _stash_inline(match: re.Match[str]) -> str:
        # "$5 and $6" is money, not math
        if not _MATH_CHARS.search(match.group(1)):
            return match.group(0)
        return _stash(match)

    protected = _DISPLAY_BRACKETS.sub(_stash, text)
    protected = _DISPLAY_DOLLARS.sub(_stash, protected)
    protected = _INLINE_PARENS.sub(_stash, protected)
    protected = _INLINE_DOLLARS.sub(_stash_inline, protected)
    return protected, formulas


def restore_math_formulas(text: str, formulas: list[str]) -> str:
    def _restore(match: re.Match[str]) -> str:
        index = int(match.group(1))
        if index >= len(formulas):
            return match.group(0)
        return formulas[index]

    return _PLACEHOLDER.sub(_restore, text)

"""Tokens: trimmed text units derived from a subtitle's token list.

Also home of the ``word:senseIndex`` reference format used to point at one
sense of a word from a token position.
"""

from __future__ import annotations

import re

from lexispine.records.base import RecordModel, TrimmedStr

# Punctuation that tokenizers leak into tokens; such tokens are not words.
PUNCTUATION = "()-.,;:!?\"'[]{}…—–“”‘’"
_PUNCTUATION_RE = re.compile("[" + re.escape(PUNCTUATION) + "]")


class Token(RecordModel):
    """A single token; identity is its literal text."""

    text: TrimmedStr


def has_invalid_punctuation(token: str) -> bool:
    """True when ``token`` contains any character of :data:`PUNCTUATION`."""
    return bool(_PUNCTUATION_RE.search(token))


def sanitize_thai_text(text: str) -> str:
    """Strip tokenizer-hostile punctuation and surrounding whitespace."""
    return _PUNCTUATION_RE.sub("", text).strip()


def unique_tokens(token_lists: list[list[str]]) -> tuple[list[str], list[str]]:
    """Collect unique trimmed tokens in first-seen order.

    Returns:
        ``(kept, rejected)``: usable tokens and tokens dropped for punctuation.
    """
    seen: set[str] = set()
    kept: list[str] = []
    rejected: list[str] = []
    for tokens in token_lists:
        for raw in tokens:
            token = raw.strip()
            if not token or token in seen:
                continue
            seen.add(token)
            if has_invalid_punctuation(token):
                rejected.append(token)
            else:
                kept.append(token)
    return kept, rejected


def parse_word_reference(reference: str | None) -> tuple[str | None, int | None]:
    """Split ``"word:3"`` into ``("word", 3)``.

    Missing parts come back as ``None``; a non-numeric index is an error.
    """
    if not reference:
        return None, None
    word, _, index = reference.partition(":")
    word = word.strip() or None
    index = index.strip()
    if not index:
        return word, None
    if not index.isdigit():
        raise ValueError(f"invalid sense index in word reference {reference!r}")
    return word, int(index)


def format_word_reference(word: str, sense_index: int | None = None) -> str:
    if not word:
        return ""
    if sense_index is None:
        return word
    return f"{word}:{sense_index}"


__all__ = [
    "PUNCTUATION",
    "Token",
    "has_invalid_punctuation",
    "sanitize_thai_text",
    "unique_tokens",
    "parse_word_reference",
    "format_word_reference",
]

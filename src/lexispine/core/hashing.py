"""
Deterministic sense identifiers.

Senses written before the ``word_th_id`` column existed can only be found by
recomputing their identifiers from ``(word, index)``. This module reproduces
that legacy 32-bit rolling hash bit-for-bit so old rows stay reachable.

Manifesto:
    - **Deterministic:** same word and index always produce the same id
    - **Compatible:** matches ids already stored in the sense table
    - **Queried as a set:** lookups probe a fixed range of indices at once

Architecture:
    ::

        pattern = f"{word_th}-{index}"
        h = 0
        for unit in utf16_code_units(pattern):
            h = int32(h * 31 + unit)
        sense_id = abs(h) * 1000 + index

Examples:
    >>> sense_id("a", 0) == sense_id("a", 0)
    True
    >>> sense_id("a", 3) % 1000
    3
    >>> len(candidate_sense_ids("บ้าน"))
    21

Tags:
    hashing, identifiers, legacy-compat, lexispine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

_INT32_MASK = 0xFFFFFFFF
_INT32_SIGN = 0x80000000

DEFAULT_PROBE_COUNT = 21


def _to_int32(value: int) -> int:
    value &= _INT32_MASK
    return value - (1 << 32) if value & _INT32_SIGN else value


def _utf16_units(text: str) -> list[int]:
    raw = text.encode("utf-16-le")
    return [int.from_bytes(raw[i : i + 2], "little") for i in range(0, len(raw), 2)]


def rolling_hash32(text: str) -> int:
    """Signed 32-bit ``h * 31 + c`` hash over the UTF-16 code units of ``text``."""
    h = 0
    for unit in _utf16_units(text):
        h = _to_int32((h << 5) - h + unit)
    return h


def sense_id(word_th: str, index: int) -> int:
    """Identifier of the ``index``-th sense of ``word_th``.

    Args:
        word_th: Word text the sense belongs to
        index: Zero-based position of the sense in the dictionary answer

    Returns:
        ``abs(hash) * 1000 + index``
    """
    if index < 0:
        raise ValueError(f"sense index must be >= 0, got {index}")
    return abs(rolling_hash32(f"{word_th}-{index}")) * 1000 + index


def candidate_sense_ids(word_th: str, count: int = DEFAULT_PROBE_COUNT) -> list[int]:
    """Hash-derived ids for indices ``0..count-1``, queried as one set."""
    return [sense_id(word_th, index) for index in range(count)]


__all__ = [
    "DEFAULT_PROBE_COUNT",
    "rolling_hash32",
    "sense_id",
    "candidate_sense_ids",
]

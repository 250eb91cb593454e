"""Validation gate: parse-or-throw entry points and sealed constructors."""

from lexispine.validation.gate import (
    Trusted,
    enforce,
    enforce_all,
    enforce_layered,
    seal_complete_word,
    seal_sense,
    seal_senses,
    seal_subtitle,
    seal_word,
    validate,
)

__all__ = [
    "Trusted",
    "enforce",
    "enforce_all",
    "enforce_layered",
    "seal_complete_word",
    "seal_sense",
    "seal_senses",
    "seal_subtitle",
    "seal_word",
    "validate",
]

"""Record schemas: the structural shape of every persisted entity."""

from lexispine.records.base import (
    GENERATED_SOURCE,
    NORMALIZED_SOURCE,
    RAW_SOURCE_MARKERS,
    RecordModel,
    is_blank,
)
from lexispine.records.sense import (
    SchemaVersion,
    Sense,
    SenseV1,
    SenseV2,
    SenseV3,
    detect_schema_version,
    load_sense,
    sanitize_label,
)
from lexispine.records.subtitle import Subtitle, TokenList
from lexispine.records.token import (
    Token,
    format_word_reference,
    has_invalid_punctuation,
    parse_word_reference,
    sanitize_thai_text,
    unique_tokens,
)
from lexispine.records.word import Word

__all__ = [
    "GENERATED_SOURCE",
    "NORMALIZED_SOURCE",
    "RAW_SOURCE_MARKERS",
    "RecordModel",
    "is_blank",
    "SchemaVersion",
    "Sense",
    "SenseV1",
    "SenseV2",
    "SenseV3",
    "detect_schema_version",
    "load_sense",
    "sanitize_label",
    "Subtitle",
    "TokenList",
    "Token",
    "format_word_reference",
    "has_invalid_punctuation",
    "parse_word_reference",
    "sanitize_thai_text",
    "unique_tokens",
    "Word",
]

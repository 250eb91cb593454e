"""Sense records in three additive schema generations.

Manifesto:
    A sense starts life as a raw dictionary answer (V1), gains parts of
    speech and an English definition (V2), then a one-word English gloss
    (V3). Each generation only adds optional fields, so a V1 row is also a
    valid V2 and V3 row. Which generation a loaded sense belongs to is
    decided once, at load time, and carried as ``schema_version``; nothing
    downstream re-probes optional fields.

ARCHITECTURE
────────────
::

    SenseV1   id, definition_th, word_th_id?, source?, created_at?
      └── SenseV2   + pos_th?, pos_eng?, definition_eng?
            └── SenseV3   + label_eng?  (letters only)

    load_sense(row) → parse with SenseV3 → detect version → narrowest model

Example::

    sense = load_sense({"id": "42", "definition_th": "ที่อยู่อาศัย", "source": "orst"})
    assert sense.schema_version is SchemaVersion.V1
    assert sense.id == 42

Tags:
    lexispine, records, sense, schema-version, tagged-variant

Doc-Types:
    api-reference
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, ClassVar

from pydantic import AfterValidator, Field

from lexispine.records.base import (
    RAW_SOURCE_MARKERS,
    Identifier,
    NonBlankStr,
    RecordModel,
    is_blank,
)

_ENGLISH_WORD = re.compile(r"^[A-Za-z]+$")
_THAI_SCRIPT = re.compile(r"[\u0E00-\u0E7F]")
_NON_LETTERS = re.compile(r"[^A-Za-z]")


class SchemaVersion(str, Enum):
    """Sense schema generation."""

    V1 = "v1"
    V2 = "v2"
    V3 = "v3"

    @property
    def rank(self) -> int:
        return int(self.value[1:])


def _english_label(value: str) -> str:
    if _THAI_SCRIPT.search(value):
        raise ValueError("label_eng must not contain Thai script")
    if not _ENGLISH_WORD.match(value):
        raise ValueError("label_eng must be a single English word (letters only, no spaces)")
    return value


EnglishLabel = Annotated[str, AfterValidator(_english_label)]


class SenseV1(RecordModel):
    """One dictionary meaning of a word."""

    schema_version: ClassVar[SchemaVersion] = SchemaVersion.V1

    id: Identifier
    definition_th: NonBlankStr
    word_th_id: str | None = None
    source: str | None = None
    created_at: datetime | None = Field(default=None, strict=False)

    def is_raw(self, markers: tuple[str, ...] = RAW_SOURCE_MARKERS) -> bool:
        """True when the sense still carries a raw-dictionary marker."""
        return self.source in markers


class SenseV2(SenseV1):
    """V1 plus parts of speech and an English definition."""

    schema_version: ClassVar[SchemaVersion] = SchemaVersion.V2

    pos_th: str | None = None
    pos_eng: str | None = None
    definition_eng: str | None = None


class SenseV3(SenseV2):
    """V2 plus a single-word English gloss."""

    schema_version: ClassVar[SchemaVersion] = SchemaVersion.V3

    label_eng: EnglishLabel | None = None


Sense = SenseV1 | SenseV2 | SenseV3

_BY_VERSION: dict[SchemaVersion, type[SenseV1]] = {
    SchemaVersion.V1: SenseV1,
    SchemaVersion.V2: SenseV2,
    SchemaVersion.V3: SenseV3,
}

V2_FIELDS = ("pos_th", "pos_eng", "definition_eng")
V3_FIELDS = ("label_eng",)


def schema_for(version: SchemaVersion) -> type[SenseV1]:
    return _BY_VERSION[version]


def detect_schema_version(sense: SenseV3) -> SchemaVersion:
    """Narrowest generation whose fields cover everything populated on ``sense``."""
    if any(not is_blank(getattr(sense, name)) for name in V3_FIELDS):
        return SchemaVersion.V3
    if any(not is_blank(getattr(sense, name)) for name in V2_FIELDS):
        return SchemaVersion.V2
    return SchemaVersion.V1


def load_sense(data: Mapping[str, Any] | SenseV1) -> SenseV1:
    """Parse a sense row and return it as its narrowest generation.

    The row is parsed with the widest schema first (generations are
    additive); the result is re-parsed with the detected generation so the
    returned object's class is its tag.
    """
    if isinstance(data, SenseV1):
        data = data.model_dump()
    wide = SenseV3.model_validate(data)
    version = detect_schema_version(wide)
    model = _BY_VERSION[version]
    if model is SenseV3:
        return wide
    return model.model_validate(wide.model_dump(include=set(model.model_fields)))


def sanitize_label(label: str | None) -> str:
    """Reduce a language-model gloss to a single English word.

    Keeps the first whitespace-separated word and strips everything that is
    not an ASCII letter. Thai script anywhere in the input is rejected
    rather than stripped.
    """
    if label is None or not label.strip():
        raise ValueError("label_eng must be a non-empty string")
    if _THAI_SCRIPT.search(label):
        raise ValueError("label_eng contains Thai characters")
    first = label.strip().split()[0]
    cleaned = _NON_LETTERS.sub("", first)
    if not cleaned:
        raise ValueError("label_eng is empty after sanitization")
    return cleaned


__all__ = [
    "SchemaVersion",
    "SenseV1",
    "SenseV2",
    "SenseV3",
    "Sense",
    "V2_FIELDS",
    "V3_FIELDS",
    "schema_for",
    "detect_schema_version",
    "load_sense",
    "sanitize_label",
]

"""Word record: a Thai word keyed by its literal text."""

from __future__ import annotations

from lexispine.records.base import RecordModel, TrimmedStr, is_blank


class Word(RecordModel):
    """A dictionary word.

    ``g2p`` (romanization) and ``phonetic_en`` (phonetic spelling) are
    filled in by the enrichment steps; both start out empty.
    """

    word_th: TrimmedStr
    g2p: str | None = None
    phonetic_en: str | None = None

    @property
    def has_romanization(self) -> bool:
        return not is_blank(self.g2p)

    @property
    def has_phonetic(self) -> bool:
        return not is_blank(self.phonetic_en)


__all__ = ["Word"]

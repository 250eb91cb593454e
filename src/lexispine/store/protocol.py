"""Record store protocol.

Reads return plain dicts: persisted rows are untrusted until they pass the
validation gate. Writes accept only ``Trusted`` records, so nothing
reaches persistence without passing the gate first.

Writes are upserts keyed by stable identifiers (``word_th`` for words,
``id`` for senses and subtitles), so repeated runs converge instead of
duplicating. A word and its senses are written in separate calls; callers
read back and re-validate rather than assume atomicity.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, Protocol, runtime_checkable

from lexispine.core.hashing import DEFAULT_PROBE_COUNT
from lexispine.records.sense import SenseV1
from lexispine.records.subtitle import Subtitle
from lexispine.records.word import Word
from lexispine.validation.gate import Trusted

Row = dict[str, Any]


@runtime_checkable
class RecordStore(Protocol):
    async def fetch_word(self, word_th: str) -> Row | None:
        """The word row, or None."""
        ...

    async def fetch_words(self, words: Iterable[str]) -> dict[str, Row]:
        """Word rows keyed by ``word_th``; unknown words are absent."""
        ...

    async def fetch_senses(self, word_th: str, probe_count: int = DEFAULT_PROBE_COUNT) -> list[Row]:
        """Senses linked by ``word_th_id`` or by hash-derived candidate id.

        Rows written before the ``word_th_id`` column existed are found by
        ``candidate_sense_ids(word_th, probe_count)``. The union is
        deduplicated by id and ordered by id.
        """
        ...

    async def upsert_word(self, word: Trusted[Word]) -> None: ...

    async def upsert_senses(self, senses: Sequence[Trusted[SenseV1]]) -> None: ...

    async def fetch_subtitles(self, media_id: str) -> list[Row]:
        """Subtitles whose id is ``media_id`` or starts with ``{media_id}_``, by start time."""
        ...

    async def upsert_subtitles(self, subtitles: Sequence[Trusted[Subtitle]]) -> None: ...


def subtitle_belongs_to(subtitle_id: str, media_id: str) -> bool:
    return subtitle_id == media_id or subtitle_id.startswith(f"{media_id}_")


__all__ = ["Row", "RecordStore", "subtitle_belongs_to"]

"""In-memory record store for tests and single-process use."""

from __future__ import annotations

import copy
from collections.abc import Iterable, Sequence

from lexispine.core.hashing import DEFAULT_PROBE_COUNT, candidate_sense_ids
from lexispine.core.logging import get_logger
from lexispine.records.sense import SenseV1
from lexispine.records.subtitle import Subtitle
from lexispine.records.word import Word
from lexispine.store.protocol import Row, subtitle_belongs_to
from lexispine.validation.gate import Trusted

logger = get_logger(__name__)


class InMemoryRecordStore:
    """Dict-backed store; every read returns a copy."""

    def __init__(
        self,
        words: Iterable[Row] = (),
        senses: Iterable[Row] = (),
        subtitles: Iterable[Row] = (),
    ):
        # Seeded rows bypass the gate so tests can plant malformed data
        self.words: dict[str, Row] = {row["word_th"]: dict(row) for row in words}
        self.senses: dict[int, Row] = {row["id"]: dict(row) for row in senses}
        self.subtitles: dict[str, Row] = {row["id"]: copy.deepcopy(dict(row)) for row in subtitles}
        self.writes: list[tuple[str, str]] = []

    async def fetch_word(self, word_th: str) -> Row | None:
        row = self.words.get(word_th)
        return dict(row) if row is not None else None

    async def fetch_words(self, words: Iterable[str]) -> dict[str, Row]:
        return {w: dict(self.words[w]) for w in words if w in self.words}

    async def fetch_senses(self, word_th: str, probe_count: int = DEFAULT_PROBE_COUNT) -> list[Row]:
        candidates = set(candidate_sense_ids(word_th, probe_count))
        found = {
            key: dict(row)
            for key, row in self.senses.items()
            if row.get("word_th_id") == word_th or key in candidates
        }
        return [found[key] for key in sorted(found)]

    async def upsert_word(self, word: Trusted[Word]) -> None:
        row = word.value.to_row()
        self.words[row["word_th"]] = row
        self.writes.append(("word", row["word_th"]))

    async def upsert_senses(self, senses: Sequence[Trusted[SenseV1]]) -> None:
        for sense in senses:
            row = sense.value.to_row()
            self.senses[row["id"]] = row
            self.writes.append(("sense", str(row["id"])))

    async def fetch_subtitles(self, media_id: str) -> list[Row]:
        rows = [copy.deepcopy(row) for key, row in self.subtitles.items() if subtitle_belongs_to(key, media_id)]
        return sorted(rows, key=lambda row: row.get("start_sec_th") or 0)

    async def upsert_subtitles(self, subtitles: Sequence[Trusted[Subtitle]]) -> None:
        for subtitle in subtitles:
            row = subtitle.value.to_row()
            self.subtitles[row["id"]] = row
            self.writes.append(("subtitle", row["id"]))


__all__ = ["InMemoryRecordStore"]

"""Record stores with scripted misbehaviour for read-back tests."""

from __future__ import annotations

from typing import Any

from lexispine.core.hashing import DEFAULT_PROBE_COUNT
from lexispine.store.memory import InMemoryRecordStore
from lexispine.store.protocol import Row


class DriftingRecordStore(InMemoryRecordStore):
    """Returns rows that differ from what was written.

    ``word_drift`` and ``sense_drift`` are merged into every word / sense
    row read back after the first write, simulating a datastore that
    rewrites or truncates values.
    """

    def __init__(
        self,
        *args: Any,
        word_drift: dict[str, Any] | None = None,
        sense_drift: dict[str, Any] | None = None,
        drop_senses: bool = False,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.word_drift = word_drift or {}
        self.sense_drift = sense_drift or {}
        self.drop_senses = drop_senses

    async def fetch_word(self, word_th: str) -> Row | None:
        row = await super().fetch_word(word_th)
        if row is not None and self.writes:
            row.update(self.word_drift)
        return row

    async def fetch_senses(self, word_th: str, probe_count: int = DEFAULT_PROBE_COUNT) -> list[Row]:
        rows = await super().fetch_senses(word_th, probe_count)
        if not self.writes:
            return rows
        if self.drop_senses:
            return []
        for row in rows:
            row.update(self.sense_drift)
        return rows

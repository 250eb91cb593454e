"""SQLAlchemy record store: ``words_th``, ``meanings_th``, ``subtitles_th``.

Manifesto:
    The datastore is an external collaborator; this module only maps the
    three record shapes onto tables and keeps writes idempotent. Upserts
    go through ``Session.merge`` keyed by primary key, so re-running a
    batch updates rows instead of duplicating them. Calls run in a worker
    thread so the event loop keeps serving other coroutines.

ARCHITECTURE
────────────
::

    LexiBase (DeclarativeBase, type_annotation_map)
      ├── WordTable      words_th     word_th PK, g2p?, phonetic_en?
      ├── MeaningTable   meanings_th  id PK, definition_th, word_th_id?, source?,
      │                               created_at?, pos_th?, pos_eng?,
      │                               definition_eng?, label_eng?
      └── SubtitleTable  subtitles_th id PK, thai, start_sec_th, end_sec_th, tokens_th?

    create_lexi_engine(url)  ── SQLite pragmas, shared in-memory pool
    SqlRecordStore(engine)   ── RecordStore over a sessionmaker

Example::

    store = SqlRecordStore.from_url("sqlite:///lexispine.db")
    store.create_schema()
    row = await store.fetch_word("บ้าน")

Tags:
    lexispine, store, sqlalchemy, orm, upsert

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

import asyncio
import datetime
from collections.abc import Iterable, Sequence
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime, Float, Text, create_engine, event, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from lexispine.core.errors import StorageError
from lexispine.core.hashing import DEFAULT_PROBE_COUNT, candidate_sense_ids
from lexispine.core.logging import get_logger
from lexispine.records.sense import SenseV1
from lexispine.records.subtitle import Subtitle
from lexispine.records.word import Word
from lexispine.store.protocol import Row
from lexispine.validation.gate import Trusted

logger = get_logger(__name__)


class LexiBase(DeclarativeBase):
    """Shared declarative base.

    * ``str``   → ``Text``
    * ``int``   → ``BigInteger``  (sense ids exceed 32 bits)
    * ``float`` → ``Float``
    * ``datetime.datetime`` → ``DateTime``
    * ``dict``  → ``JSON``
    """

    type_annotation_map = {
        str: Text,
        int: BigInteger,
        float: Float,
        datetime.datetime: DateTime(timezone=True),
        dict: JSON,
    }


class WordTable(LexiBase):
    __tablename__ = "words_th"

    word_th: Mapped[str] = mapped_column(primary_key=True)
    g2p: Mapped[str | None]
    phonetic_en: Mapped[str | None]


class MeaningTable(LexiBase):
    __tablename__ = "meanings_th"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    definition_th: Mapped[str]
    word_th_id: Mapped[str | None] = mapped_column(index=True)
    source: Mapped[str | None]
    created_at: Mapped[datetime.datetime | None]
    # V2
    pos_th: Mapped[str | None]
    pos_eng: Mapped[str | None]
    definition_eng: Mapped[str | None]
    # V3
    label_eng: Mapped[str | None]


class SubtitleTable(LexiBase):
    __tablename__ = "subtitles_th"

    id: Mapped[str] = mapped_column(primary_key=True)
    thai: Mapped[str]
    start_sec_th: Mapped[float]
    end_sec_th: Mapped[float]
    tokens_th: Mapped[dict | None]


_WORD_COLUMNS = ("word_th", "g2p", "phonetic_en")
_MEANING_COLUMNS = (
    "id",
    "definition_th",
    "word_th_id",
    "source",
    "created_at",
    "pos_th",
    "pos_eng",
    "definition_eng",
    "label_eng",
)
_SUBTITLE_COLUMNS = ("id", "thai", "start_sec_th", "end_sec_th", "tokens_th")


def create_lexi_engine(url: str = "sqlite:///lexispine.db", *, echo: bool = False, **kwargs: Any) -> Engine:
    """Create a SQLAlchemy engine with sane defaults.

    SQLite gets WAL and foreign keys; an in-memory SQLite database uses a
    single shared connection so worker threads see the same data.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo, **kwargs)

    kwargs.setdefault("connect_args", {"check_same_thread": False})
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs.setdefault("poolclass", StaticPool)
    engine = create_engine(url, echo=echo, **kwargs)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def _to_row(obj: Any, columns: Sequence[str]) -> Row:
    return {name: getattr(obj, name) for name in columns}


class SqlRecordStore:
    """``RecordStore`` backed by SQLAlchemy ORM sessions."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._sessions: sessionmaker[Session] = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> SqlRecordStore:
        return cls(create_lexi_engine(url, **kwargs))

    def create_schema(self) -> None:
        LexiBase.metadata.create_all(self.engine)

    async def _run(self, operation: str, fn: Any, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args)
        except SQLAlchemyError as exc:
            logger.error("store.error", operation=operation, error=str(exc))
            raise StorageError(f"{operation} failed: {exc}", cause=exc) from exc

    # =========================================================================
    # Words
    # =========================================================================

    def _fetch_words(self, words: list[str]) -> dict[str, Row]:
        with self._sessions() as session:
            rows = session.scalars(select(WordTable).where(WordTable.word_th.in_(words))).all()
            return {row.word_th: _to_row(row, _WORD_COLUMNS) for row in rows}

    async def fetch_word(self, word_th: str) -> Row | None:
        rows = await self._run("fetch_word", self._fetch_words, [word_th])
        return rows.get(word_th)

    async def fetch_words(self, words: Iterable[str]) -> dict[str, Row]:
        return await self._run("fetch_words", self._fetch_words, list(words))

    def _upsert(self, table: type[LexiBase], rows: list[Row]) -> None:
        with self._sessions.begin() as session:
            for row in rows:
                session.merge(table(**row))

    async def upsert_word(self, word: Trusted[Word]) -> None:
        await self._run("upsert_word", self._upsert, WordTable, [word.value.to_row()])

    # =========================================================================
    # Senses
    # =========================================================================

    def _fetch_senses(self, word_th: str, probe_count: int) -> list[Row]:
        candidates = candidate_sense_ids(word_th, probe_count)
        stmt = (
            select(MeaningTable)
            .where(or_(MeaningTable.word_th_id == word_th, MeaningTable.id.in_(candidates)))
            .order_by(MeaningTable.id)
        )
        with self._sessions() as session:
            return [_to_row(row, _MEANING_COLUMNS) for row in session.scalars(stmt).all()]

    async def fetch_senses(self, word_th: str, probe_count: int = DEFAULT_PROBE_COUNT) -> list[Row]:
        return await self._run("fetch_senses", self._fetch_senses, word_th, probe_count)

    async def upsert_senses(self, senses: Sequence[Trusted[SenseV1]]) -> None:
        rows = []
        for sense in senses:
            row = dict.fromkeys(_MEANING_COLUMNS)
            row.update(sense.value.to_row())
            rows.append(row)
        await self._run("upsert_senses", self._upsert, MeaningTable, rows)

    # =========================================================================
    # Subtitles
    # =========================================================================

    def _fetch_subtitles(self, media_id: str) -> list[Row]:
        stmt = (
            select(SubtitleTable)
            .where(or_(SubtitleTable.id == media_id, SubtitleTable.id.startswith(f"{media_id}_", autoescape=True)))
            .order_by(SubtitleTable.start_sec_th)
        )
        with self._sessions() as session:
            return [_to_row(row, _SUBTITLE_COLUMNS) for row in session.scalars(stmt).all()]

    async def fetch_subtitles(self, media_id: str) -> list[Row]:
        return await self._run("fetch_subtitles", self._fetch_subtitles, media_id)

    async def upsert_subtitles(self, subtitles: Sequence[Trusted[Subtitle]]) -> None:
        rows = [subtitle.value.to_row() for subtitle in subtitles]
        await self._run("upsert_subtitles", self._upsert, SubtitleTable, rows)


__all__ = [
    "LexiBase",
    "WordTable",
    "MeaningTable",
    "SubtitleTable",
    "create_lexi_engine",
    "SqlRecordStore",
]

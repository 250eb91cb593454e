"""Step handlers: oracle calls wrapped for the enrichment workflow.

Manifesto:
    A handler is the only place an oracle is called. It takes the current
    (validated) context, calls one oracle through the shared rate limiter
    and a deadline, passes the answer through the validation gate and
    returns the new context fields. It never mutates the context and
    never persists anything.

ARCHITECTURE
────────────
::

    EnrichmentHandlers(oracles, settings, limiter)
      ├── tokenize            input_text        → tokens
      ├── g2p                 word_th           → g2p            (blank answer is fatal)
      ├── phonetic            word_th, g2p      → phonetic_en
      ├── dictionary_lookup   word_th           → raw_senses     (ids hashed, raw marker kept)
      ├── normalize           senses, target    → normalized_senses
      │     raw / lm senses   → SenseNormalizer     (same count, ids kept)
      │     target ≥ V2       → SenseEnricher.enrich_v2  (V2 fields)
      │     target = V3       → SenseEnricher.enrich_v3  (label_eng, sanitized)
      └── generate_meanings   word_th           → lm_senses      (dictionary fallback)

Tags:
    lexispine, oracles, handlers, normalization, language-model

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Awaitable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any, TypeVar

from lexispine.contracts.completeness import (
    V2CompleteSense,
    V3CompleteSense,
    needs_normalization,
    needs_v2_enrichment,
    needs_v3_enrichment,
)
from lexispine.core.errors import ConfigError, OracleResponseError, SenseCountMismatchError
from lexispine.core.hashing import sense_id
from lexispine.core.logging import get_logger
from lexispine.core.settings import LexiSettings, get_settings
from lexispine.oracles.protocols import NormalizationHints, OracleSuite
from lexispine.oracles.rate_limit import AsyncTokenBucket
from lexispine.oracles.timeout import call_with_timeout
from lexispine.orchestration.context import PipelineContext
from lexispine.orchestration.step_types import EnrichmentTarget
from lexispine.records.base import GENERATED_SOURCE, is_blank
from lexispine.records.sense import V2_FIELDS, SenseV1, load_sense, sanitize_label
from lexispine.records.token import sanitize_thai_text
from lexispine.validation.gate import enforce_all, enforce_layered

logger = get_logger(__name__)

T = TypeVar("T")


def hints_from_context(context: PipelineContext) -> NormalizationHints:
    return NormalizationHints(
        word_th=context.word_th or "",
        full_text=context.full_text,
        all_tokens=tuple(context.all_tokens or ()),
        word_position=context.word_position,
        g2p=context.g2p,
        phonetic_en=context.phonetic_en,
        show_name=context.show_name,
        season=context.season,
        episode=context.episode,
    )


def _rows(senses: Sequence[SenseV1]) -> list[dict[str, Any]]:
    return [sense.model_dump() for sense in senses]


def _no_definition(value: Any) -> bool:
    # Non-string definitions go on to the gate and fail there
    return value is None or (isinstance(value, str) and is_blank(value))


def _check_count(senses: Sequence[Any], answer: Any, oracle: str) -> list[Mapping[str, Any]]:
    if not isinstance(answer, list):
        raise OracleResponseError(f"{oracle} returned {type(answer).__name__}, expected a list", oracle=oracle)
    if len(answer) != len(senses):
        raise SenseCountMismatchError(expected=len(senses), actual=len(answer), oracle=oracle)
    for index, item in enumerate(answer):
        if not isinstance(item, Mapping):
            raise OracleResponseError(f"{oracle} returned a non-object at index {index}", oracle=oracle)
    return answer


class EnrichmentHandlers:
    """The five workflow step handlers plus the meaning fallback."""

    def __init__(
        self,
        oracles: OracleSuite,
        settings: LexiSettings | None = None,
        limiter: AsyncTokenBucket | None = None,
    ):
        self.oracles = oracles
        self.settings = settings or get_settings()
        # One bucket paces every oracle call made through these handlers
        self.limiter = limiter or AsyncTokenBucket(
            rate=self.settings.oracle_rate_per_second,
            capacity=self.settings.oracle_burst,
        )

    async def _call(self, oracle: str, call: Awaitable[T]) -> T:
        await self.limiter.acquire()
        return await call_with_timeout(call, self.settings.oracle_timeout_seconds, oracle=oracle)

    @property
    def raw_marker(self) -> str:
        return self.settings.raw_source_markers[0]

    # =========================================================================
    # Reading
    # =========================================================================

    async def tokenize(self, context: PipelineContext, target: EnrichmentTarget) -> dict[str, Any]:
        text = sanitize_thai_text(context.input_text or "")
        if not text:
            raise OracleResponseError("Nothing to tokenize after sanitization", oracle="tokenizer")
        tokens = await self._call("tokenizer", self.oracles.tokenizer.tokenize(text))
        cleaned = [t.strip() for t in tokens or [] if isinstance(t, str) and t.strip()]
        if not cleaned:
            raise OracleResponseError("Tokenizer returned no tokens", oracle="tokenizer")
        return {"tokens": cleaned}

    async def g2p(self, context: PipelineContext, target: EnrichmentTarget) -> dict[str, Any]:
        value = await self._call("g2p", self.oracles.g2p.romanize(context.word_th))
        if not isinstance(value, str) or is_blank(value):
            raise OracleResponseError(f"G2P returned no romanization for '{context.word_th}'", oracle="g2p")
        return {"g2p": value.strip()}

    async def phonetic(self, context: PipelineContext, target: EnrichmentTarget) -> dict[str, Any]:
        value = await self._call("phonetic", self.oracles.phonetic.analyze(context.word_th, context.g2p))
        if value is None or is_blank(value):
            logger.info("phonetic.empty", word_th=context.word_th, g2p=context.g2p)
            return {}
        return {"phonetic_en": value.strip()}

    # =========================================================================
    # Senses
    # =========================================================================

    async def dictionary_lookup(self, context: PipelineContext, target: EnrichmentTarget) -> dict[str, Any]:
        word_th = context.word_th
        answer = await self._call("dictionary", self.oracles.dictionary.lookup(word_th))
        rows: list[dict[str, Any]] = []
        for index, entry in enumerate(answer or []):
            if not isinstance(entry, Mapping):
                raise OracleResponseError(f"Dictionary returned a non-object at index {index}", oracle="dictionary")
            row = dict(entry)
            if _no_definition(row.get("definition_th")):
                continue
            if row.get("id") is None:
                row["id"] = sense_id(word_th, index)
            source = row.get("source")
            if is_blank(source):
                row["source"] = self.raw_marker
            elif source not in self.settings.raw_source_markers:
                raise OracleResponseError(
                    f"Dictionary sense tagged '{source}', expected a raw-dictionary marker",
                    oracle="dictionary",
                )
            row["word_th_id"] = word_th
            row.setdefault("created_at", datetime.now(UTC))
            rows.append(row)

        senses = enforce_all(load_sense, rows, label="raw_senses")
        logger.debug("dictionary.senses", word_th=word_th, count=len(senses))
        return {"raw_senses": senses}

    async def generate_meanings(self, context: PipelineContext) -> list[SenseV1]:
        """Language-model meanings for a word the dictionary does not know.

        Returns an empty list when no generator is configured.
        """
        generator = self.oracles.generator
        if generator is None:
            return []
        word_th = context.word_th
        answer = await self._call("generator", generator.generate(word_th, hints_from_context(context)))
        rows: list[dict[str, Any]] = []
        for index, entry in enumerate(answer or []):
            if not isinstance(entry, Mapping):
                raise OracleResponseError(f"Generator returned a non-object at index {index}", oracle="generator")
            row = dict(entry)
            if _no_definition(row.get("definition_th")):
                continue
            row["id"] = row.get("id") if row.get("id") is not None else sense_id(word_th, index)
            row["source"] = row.get("source") or GENERATED_SOURCE
            row["word_th_id"] = word_th
            row.setdefault("created_at", datetime.now(UTC))
            rows.append(row)
        return enforce_all(load_sense, rows, label="lm_senses")

    async def normalize(self, context: PipelineContext, target: EnrichmentTarget) -> dict[str, Any]:
        hints = hints_from_context(context)
        if context.raw_senses:
            senses = await self._normalize(list(context.raw_senses), hints)
        elif context.normalized_senses:
            senses = list(context.normalized_senses)
            if needs_normalization(senses, self.settings.raw_source_markers):
                senses = await self._normalize(senses, hints)
        else:
            senses = await self._normalize(list(context.lm_senses or []), hints)

        if target.rank >= EnrichmentTarget.V2.rank and needs_v2_enrichment(senses):
            senses = await self._enrich_v2(senses, hints)
        if target is EnrichmentTarget.V3 and needs_v3_enrichment(senses):
            senses = await self._enrich_v3(senses, hints)
        return {"normalized_senses": senses}

    async def _normalize(self, senses: list[SenseV1], hints: NormalizationHints) -> list[SenseV1]:
        answer = await self._call("normalizer", self.oracles.normalizer.normalize(_rows(senses), hints))
        answer = _check_count(senses, answer, "normalizer")

        now = datetime.now(UTC)
        rows = []
        for original, new in zip(senses, answer, strict=True):
            definition = new.get("definition_th")
            if not isinstance(definition, str) or is_blank(definition):
                raise OracleResponseError(
                    f"Normalizer returned no definition for sense {original.id}", oracle="normalizer"
                )
            row = original.model_dump()
            row.update(
                definition_th=definition.strip(),
                source=self.settings.normalized_source,
                word_th_id=original.word_th_id or hints.word_th,
                created_at=original.created_at or now,
            )
            rows.append(row)
        logger.debug("normalize.done", word_th=hints.word_th, count=len(rows))
        return enforce_all(load_sense, rows, label="normalized_senses")

    def _enricher(self, level: str):
        if self.oracles.enricher is None:
            raise ConfigError(f"Target {level} requires a SenseEnricher oracle")
        return self.oracles.enricher

    async def _enrich_v2(self, senses: list[SenseV1], hints: NormalizationHints) -> list[SenseV1]:
        enricher = self._enricher("v2")
        answer = await self._call("enricher", enricher.enrich_v2(_rows(senses), hints))
        answer = _check_count(senses, answer, "enricher")
        enriched = []
        for original, new in zip(senses, answer, strict=True):
            row = original.model_dump()
            row.update({name: new.get(name) for name in V2_FIELDS})
            enriched.append(enforce_layered(load_sense, V2CompleteSense, row, label=f"sense {original.id}"))
        return enriched

    async def _enrich_v3(self, senses: list[SenseV1], hints: NormalizationHints) -> list[SenseV1]:
        enricher = self._enricher("v3")
        answer = await self._call("enricher", enricher.enrich_v3(_rows(senses), hints))
        answer = _check_count(senses, answer, "enricher")
        enriched = []
        for original, new in zip(senses, answer, strict=True):
            raw_label = new.get("label_eng")
            if raw_label is not None and not isinstance(raw_label, str):
                raise OracleResponseError(f"label_eng for sense {original.id} is not a string", oracle="enricher")
            try:
                label = sanitize_label(raw_label)
            except ValueError as exc:
                raise OracleResponseError(
                    f"Invalid label_eng for sense {original.id}: {exc}", oracle="enricher"
                ) from exc
            row = original.model_dump()
            row["label_eng"] = label
            enriched.append(enforce_layered(load_sense, V3CompleteSense, row, label=f"sense {original.id}"))
        return enriched


__all__ = ["EnrichmentHandlers", "hints_from_context"]

"""Batch Runner — enrich every token of an episode, one token at a time.

Manifesto:
    The batch is the unit an operator starts and watches. It walks the
    subtitles of one episode, tokenizes what is not yet tokenized, then
    takes each unique token through plan → execute → classify → persist →
    read back. Work is strictly sequential with a pause between tokens so
    oracle call rates stay bounded. The first fatal failure stops the
    batch and names the token; a tolerable dictionary failure is
    compensated or leaves the token unresolved, never "done".

ARCHITECTURE
────────────
::

    run_episode(media_id, target)
      fetch subtitles ── gate (Subtitle)
      tokenize untokenized subtitles ── executor [tokenize], fatal → abort
      upsert tokenized subtitles
      unique_tokens(...)  → kept, rejected (punctuation)
      for token in kept:
          cancellation check, pause between tokens
          process_token(token, hints, target)

    process_token(word_th, hints, target)
      1. fetch word + senses, SkipPlanner.plan        ── plan.computed
      2. skip                                         ── token.skipped
      3. execute plan minus normalize; classify       ── BatchAbortedError
      4. no senses (empty or tolerated failure):
           fallback generator → lm_senses             ── token.compensated
           nothing → unresolved, word persisted only
      5. execute [normalize]; classify
      6. seal + upsert word, then senses
      7. read back, compare, re-validate              ── readback.mismatch
                                                         | ReadBackMismatchError

Example::

    runner = BatchRunner(store, StepExecutor(workflow, events=bus), fallback=handlers.generate_meanings)
    summary = await runner.run_episode("show-s01e01")
    print(summary.to_dict())

Tags:
    lexispine, orchestration, batch, compensation, read-back

Doc-Types:
    api-reference, architecture
"""

from __future__ import annotations

import asyncio
import uuid
from collections import Counter
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from lexispine.contracts.completeness import CompleteWord, needs_normalization
from lexispine.contracts.integrity import EpisodeIntegrity, check_episode_integrity
from lexispine.core.errors import (
    BatchAbortedError,
    BatchCancelledError,
    OracleError,
    ReadBackMismatchError,
)
from lexispine.core.events import EventBus, emit
from lexispine.core.logging import LogContext, get_logger
from lexispine.core.settings import LexiSettings, ReadBackPolicy, get_settings
from lexispine.oracles.protocols import NormalizationHints
from lexispine.orchestration.cancellation import CancellationToken
from lexispine.orchestration.context import PipelineContext, merge_outputs
from lexispine.orchestration.executor import StepExecutor
from lexispine.orchestration.failures import FailureClassifier, FailureReport
from lexispine.orchestration.planner import Plan, SkipPlanner
from lexispine.orchestration.step_result import StepResult
from lexispine.orchestration.step_types import DICTIONARY_LOOKUP, NORMALIZE, TOKENIZE, EnrichmentTarget
from lexispine.records.base import is_blank
from lexispine.records.sense import SenseV1, load_sense
from lexispine.records.subtitle import Subtitle
from lexispine.records.token import unique_tokens
from lexispine.records.word import Word
from lexispine.store.protocol import RecordStore
from lexispine.validation.gate import (
    enforce_all,
    enforce_layered,
    seal_senses,
    seal_subtitle,
    seal_word,
    validate,
)

logger = get_logger(__name__)

MeaningFallback = Callable[[PipelineContext], Awaitable[list[SenseV1]]]

_COMPARED_SENSE_FIELDS = (
    "definition_th",
    "word_th_id",
    "source",
    "pos_th",
    "pos_eng",
    "definition_eng",
    "label_eng",
)


class TokenOutcome(str, Enum):
    """What happened to one token."""

    SKIPPED = "skipped"  # Already complete for the target
    PROCESSED = "processed"
    COMPENSATED = "compensated"  # Processed with generated meanings
    UNRESOLVED = "unresolved"  # No senses from any source; not processed


@dataclass(frozen=True)
class TokenResult:
    """Outcome of ``process_token``."""

    word_th: str
    outcome: TokenOutcome
    plan: Plan
    results: list[StepResult] = field(default_factory=list)
    reason: str | None = None
    context: PipelineContext | None = None

    @property
    def done(self) -> bool:
        return self.outcome is not TokenOutcome.UNRESOLVED


@dataclass
class BatchSummary:
    """Per-outcome token lists for one batch run."""

    media_id: str | None = None
    target: EnrichmentTarget = EnrichmentTarget.V1
    processed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    compensated: list[str] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)
    rejected: list[str] = field(default_factory=list)
    subtitles_tokenized: int = 0
    skip_reasons: Counter[str] = field(default_factory=Counter)

    def record(self, result: TokenResult) -> None:
        if result.outcome is TokenOutcome.SKIPPED:
            self.skipped.append(result.word_th)
        elif result.outcome is TokenOutcome.COMPENSATED:
            self.compensated.append(result.word_th)
        elif result.outcome is TokenOutcome.UNRESOLVED:
            self.unresolved.append(result.word_th)
        else:
            self.processed.append(result.word_th)
        if result.reason and result.outcome in (TokenOutcome.SKIPPED, TokenOutcome.UNRESOLVED):
            self.skip_reasons[result.reason] += 1

    @property
    def total(self) -> int:
        return len(self.processed) + len(self.skipped) + len(self.compensated) + len(self.unresolved)

    def to_dict(self) -> dict[str, Any]:
        return {
            "media_id": self.media_id,
            "target": self.target.value,
            "total": self.total,
            "processed": len(self.processed),
            "skipped": len(self.skipped),
            "compensated": len(self.compensated),
            "unresolved": len(self.unresolved),
            "rejected": len(self.rejected),
            "subtitles_tokenized": self.subtitles_tokenized,
            "skip_reasons": dict(self.skip_reasons),
        }


def hints_for_token(
    word_th: str,
    subtitles: Sequence[Subtitle],
    show_name: str | None = None,
    season: int | None = None,
    episode: int | None = None,
) -> NormalizationHints:
    """Sentence context from the first subtitle containing ``word_th``."""
    for subtitle in subtitles:
        tokens = [t.strip() for t in subtitle.tokens]
        if word_th in tokens:
            return NormalizationHints(
                word_th=word_th,
                full_text=subtitle.thai,
                all_tokens=tuple(tokens),
                word_position=tokens.index(word_th),
                show_name=show_name,
                season=season,
                episode=episode,
            )
    return NormalizationHints(word_th=word_th, show_name=show_name, season=season, episode=episode)


class BatchRunner:
    """Drives planner, executor, classifier and store for a batch of tokens."""

    def __init__(
        self,
        store: RecordStore,
        executor: StepExecutor,
        planner: SkipPlanner | None = None,
        classifier: FailureClassifier | None = None,
        settings: LexiSettings | None = None,
        events: EventBus | None = None,
        fallback: MeaningFallback | None = None,
        cancellation: CancellationToken | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.store = store
        self.executor = executor
        self.settings = settings or get_settings()
        self.planner = planner or SkipPlanner(raw_markers=self.settings.raw_source_markers)
        self.classifier = classifier or FailureClassifier(executor.workflow)
        self.events = events or executor.events
        self.fallback = fallback
        self.cancellation = cancellation or executor.cancellation
        self._sleep = sleep

    def _check_cancelled(self, where: str) -> None:
        if self.cancellation is not None:
            self.cancellation.raise_if_cancelled(where)

    # =========================================================================
    # Episode
    # =========================================================================

    async def run_episode(
        self,
        media_id: str,
        target: EnrichmentTarget = EnrichmentTarget.V1,
        show_name: str | None = None,
        season: int | None = None,
        episode: int | None = None,
    ) -> BatchSummary:
        """Enrich every token of ``media_id`` up to ``target``.

        Raises:
            BatchAbortedError: A fatal step failure; names the token or subtitle
            BatchCancelledError: The cancellation token fired
            StructuralValidationError: A persisted row is malformed
            ReadBackMismatchError: Read-back differed under the ``fail`` policy
        """
        batch_id = uuid.uuid4().hex[:12]
        summary = BatchSummary(media_id=media_id, target=target)

        async with LogContext(batch_id=batch_id, media_id=media_id):
            logger.info("batch.start", target=target.value)
            await emit(self.events, "batch.started", "batch", batch_id, media_id=media_id, target=target.value)
            try:
                subtitles = await self._tokenized_subtitles(media_id, summary, batch_id)

                tokens, summary.rejected = unique_tokens([s.tokens for s in subtitles])
                if summary.rejected:
                    logger.info("batch.tokens.rejected", count=len(summary.rejected), tokens=summary.rejected)

                for index, token in enumerate(tokens):
                    if index:
                        await self._sleep(self.settings.inter_token_delay_seconds)
                    self._check_cancelled(f"token '{token}'")
                    hints = hints_for_token(token, subtitles, show_name, season, episode)
                    result = await self.process_token(token, hints, target, correlation_id=batch_id)
                    summary.record(result)

            except BatchAbortedError as exc:
                logger.error("batch.aborted", record=exc.record, steps=exc.steps, summary=summary.to_dict())
                await emit(
                    self.events,
                    "batch.aborted",
                    "batch",
                    batch_id,
                    record=exc.record,
                    steps=exc.steps,
                    error=str(exc),
                    summary=summary.to_dict(),
                )
                raise
            except BatchCancelledError as exc:
                logger.warning("batch.cancelled", reason=str(exc), summary=summary.to_dict())
                await emit(self.events, "batch.cancelled", "batch", batch_id, reason=str(exc), summary=summary.to_dict())
                raise

            logger.info("batch.complete", **summary.to_dict())
            await emit(self.events, "batch.completed", "batch", batch_id, **summary.to_dict())
        return summary

    async def _tokenized_subtitles(
        self,
        media_id: str,
        summary: BatchSummary,
        correlation_id: str,
    ) -> list[Subtitle]:
        rows = await self.store.fetch_subtitles(media_id)
        subtitles: list[Subtitle] = enforce_all(Subtitle, rows, label="subtitles_th")

        updated = []
        result: list[Subtitle] = []
        for subtitle in subtitles:
            if subtitle.is_tokenized:
                result.append(subtitle)
                continue
            self._check_cancelled(f"subtitle '{subtitle.id}'")
            run = await self.executor.execute(
                PipelineContext(input_text=subtitle.thai),
                [TOKENIZE],
                correlation_id=correlation_id,
            )
            self.classifier.raise_for_fatal(run.results, record=subtitle.id)
            row = subtitle.to_row()
            row["tokens_th"] = {"tokens": list(run.context.tokens or [])}
            sealed = seal_subtitle(row, label=subtitle.id)
            updated.append(sealed)
            result.append(sealed.value)
            await emit(
                self.events,
                "subtitle.tokenized",
                "batch",
                correlation_id,
                subtitle_id=subtitle.id,
                token_count=len(sealed.value.tokens),
            )

        if updated:
            await self.store.upsert_subtitles(updated)
            summary.subtitles_tokenized = len(updated)
            logger.info("batch.subtitles.tokenized", count=len(updated))
        return result

    async def check_episode(self, media_id: str) -> EpisodeIntegrity:
        """Integrity report: every token of every subtitle has a valid word with senses."""
        rows = await self.store.fetch_subtitles(media_id)
        tokens: dict[str, None] = {}
        for row in rows:
            parsed = validate(Subtitle, row)
            if parsed.passed:
                tokens.update(dict.fromkeys(t.strip() for t in parsed.value.tokens))
        words = await self.store.fetch_words(tokens)
        senses = {
            token: await self.store.fetch_senses(token, self.settings.sense_id_probe_count) for token in tokens
        }
        return check_episode_integrity(media_id, rows, words, senses)

    # =========================================================================
    # Token
    # =========================================================================

    async def process_token(
        self,
        word_th: str,
        hints: NormalizationHints | None = None,
        target: EnrichmentTarget = EnrichmentTarget.V1,
        correlation_id: str | None = None,
    ) -> TokenResult:
        """Plan, execute, compensate, persist and verify one token.

        Usable on its own for single-record processing.
        """
        async with LogContext(token=word_th):
            word_row = await self.store.fetch_word(word_th)
            sense_rows = await self.store.fetch_senses(word_th, self.settings.sense_id_probe_count)
            plan = self.planner.plan(word_th, word_row, sense_rows, target)
            await emit(
                self.events,
                "plan.computed",
                "planner",
                correlation_id,
                word_th=word_th,
                target=target.value,
                steps=list(plan.steps),
                reasons=dict(plan.reasons),
            )

            if plan.skip:
                logger.debug("batch.token.skipped", reason="complete")
                await emit(self.events, "token.skipped", "batch", correlation_id, word_th=word_th, reason="complete")
                return TokenResult(word_th, TokenOutcome.SKIPPED, plan, reason="complete")

            context = self._context_for(word_th, plan, hints)
            results: list[StepResult] = []

            # Reading and dictionary first; normalize waits for compensation
            first = [name for name in plan.steps if name != NORMALIZE]
            report = FailureReport()
            if first:
                run = await self.executor.execute(context, first, target, correlation_id)
                results.extend(run.results)
                report = self.classifier.raise_for_fatal(run.results, record=word_th)
                context = run.context

            compensated = False
            if plan.needs(DICTIONARY_LOOKUP) and not context.senses():
                reason = (
                    "dictionary lookup failed"
                    if report.tolerated(DICTIONARY_LOOKUP)
                    else "dictionary returned no senses"
                )
                generated = await self._compensate(context, reason)
                if not generated:
                    results.append(StepResult.skip(NORMALIZE, reason))
                    await self._persist_word(context)
                    logger.warning("batch.token.unresolved", reason=reason)
                    await emit(
                        self.events,
                        "token.skipped",
                        "batch",
                        correlation_id,
                        word_th=word_th,
                        reason=reason,
                        unresolved=True,
                    )
                    return TokenResult(word_th, TokenOutcome.UNRESOLVED, plan, results, reason, context)

                context = merge_outputs(context, {"lm_senses": generated}, label="compensation")
                compensated = True
                await emit(
                    self.events,
                    "token.compensated",
                    "batch",
                    correlation_id,
                    word_th=word_th,
                    reason=reason,
                    sense_count=len(generated),
                )

            if plan.needs(NORMALIZE):
                run = await self.executor.execute(context, [NORMALIZE], target, correlation_id)
                results.extend(run.results)
                self.classifier.raise_for_fatal(run.results, record=word_th)
                context = run.context

            word = await self._persist_word(context)
            senses = list(context.normalized_senses or []) if plan.needs(NORMALIZE) else []
            if senses:
                await self.store.upsert_senses(seal_senses(senses, label="normalized_senses"))
            await self._read_back(word, senses, correlation_id)

            outcome = TokenOutcome.COMPENSATED if compensated else TokenOutcome.PROCESSED
            logger.info("batch.token.processed", steps=list(plan.steps), outcome=outcome.value)
            await emit(
                self.events,
                "token.processed",
                "batch",
                correlation_id,
                word_th=word_th,
                steps=list(plan.steps),
                outcome=outcome.value,
            )
            return TokenResult(word_th, outcome, plan, results, context=context)

    def _context_for(
        self,
        word_th: str,
        plan: Plan,
        hints: NormalizationHints | None,
    ) -> PipelineContext:
        data: dict[str, Any] = {"word_th": word_th}
        if plan.word is not None:
            if not is_blank(plan.word.g2p):
                data["g2p"] = plan.word.g2p
            if not is_blank(plan.word.phonetic_en):
                data["phonetic_en"] = plan.word.phonetic_en
        if plan.senses:
            # Any raw or untagged sense sends the whole set back through the normalizer
            if needs_normalization(plan.senses, self.planner.raw_markers):
                data["raw_senses"] = list(plan.senses)
            else:
                data["normalized_senses"] = list(plan.senses)
        if hints is not None:
            data.update(
                full_text=hints.full_text,
                all_tokens=list(hints.all_tokens) or None,
                word_position=hints.word_position,
                show_name=hints.show_name,
                season=hints.season,
                episode=hints.episode,
            )
        return PipelineContext(**data)

    async def _compensate(self, context: PipelineContext, reason: str) -> list[SenseV1]:
        if self.fallback is None:
            return []
        logger.info("batch.token.fallback", reason=reason)
        try:
            return list(await self.fallback(context))
        except OracleError as exc:
            logger.warning("batch.token.fallback_failed", error=str(exc), error_type=type(exc).__name__)
            return []

    # =========================================================================
    # Persistence
    # =========================================================================

    async def _persist_word(self, context: PipelineContext) -> Word:
        sealed = seal_word(
            {"word_th": context.word_th, "g2p": context.g2p, "phonetic_en": context.phonetic_en},
            label="words_th",
        )
        await self.store.upsert_word(sealed)
        return sealed.value

    async def _read_back(self, word: Word, senses: Sequence[SenseV1], correlation_id: str | None) -> None:
        differences: list[str] = []

        row = await self.store.fetch_word(word.word_th)
        if row is None:
            differences.append("word missing")
        else:
            stored = enforce_layered(Word, CompleteWord, row, label="words_th")
            differences.extend(
                f"word.{name}" for name in ("g2p", "phonetic_en") if getattr(stored, name) != getattr(word, name)
            )

        if senses:
            rows = await self.store.fetch_senses(word.word_th, self.settings.sense_id_probe_count)
            stored_senses = {s.id: s for s in enforce_all(load_sense, rows, label="meanings_th")}
            for sense in senses:
                persisted = stored_senses.get(sense.id)
                if persisted is None:
                    differences.append(f"sense[{sense.id}] missing")
                    continue
                differences.extend(
                    f"sense[{sense.id}].{name}"
                    for name in _COMPARED_SENSE_FIELDS
                    if getattr(persisted, name, None) != getattr(sense, name, None)
                )

        if not differences:
            return
        if self.settings.read_back_policy is ReadBackPolicy.FAIL:
            raise ReadBackMismatchError("token", word.word_th, differences)
        logger.warning("batch.readback.mismatch", differences=differences)
        await emit(
            self.events,
            "readback.mismatch",
            "batch",
            correlation_id,
            word_th=word.word_th,
            differences=differences,
        )


__all__ = [
    "MeaningFallback",
    "TokenOutcome",
    "TokenResult",
    "BatchSummary",
    "BatchRunner",
    "hints_for_token",
]

"""Tests for the enrichment step handlers."""

import pytest

from lexispine.core.errors import (
    CompletenessViolation,
    ConfigError,
    OracleResponseError,
    OracleTimeoutError,
    SenseCountMismatchError,
)
from lexispine.core.hashing import sense_id
from lexispine.core.settings import LexiSettings
from lexispine.oracles.handlers import EnrichmentHandlers, hints_from_context
from lexispine.oracles.rate_limit import AsyncTokenBucket
from lexispine.orchestration.context import PipelineContext
from lexispine.orchestration.step_types import EnrichmentTarget
from lexispine.records.sense import SchemaVersion, SenseV2, SenseV3

from tests._support.fault_injection import FaultPlan
from tests._support.oracles import (
    ScriptedDictionary,
    ScriptedEnricher,
    ScriptedG2P,
    ScriptedGenerator,
    ScriptedNormalizer,
    ScriptedPhonetic,
    scripted_suite,
)
from tests._support.rows import WORD, normalized_sense_row, raw_sense_row, v2_sense_row


def _handlers(settings, **oracles):
    return EnrichmentHandlers(scripted_suite(**oracles), settings=settings)


def _raw_context(count=1):
    return PipelineContext(word_th=WORD, raw_senses=[raw_sense_row(index=i) for i in range(count)])


# ---------------------------------------------------------------------------
# Reading steps
# ---------------------------------------------------------------------------


class TestReadingHandlers:
    @pytest.mark.asyncio
    async def test_tokenize_strips_punctuation(self, handlers):
        out = await handlers.tokenize(PipelineContext(input_text="บ้าน (ใหม่)"), EnrichmentTarget.V1)
        assert out == {"tokens": ["บ้าน", "ใหม่"]}

    @pytest.mark.asyncio
    async def test_tokenize_nothing_left(self, handlers):
        with pytest.raises(OracleResponseError):
            await handlers.tokenize(PipelineContext(input_text="(...)"), EnrichmentTarget.V1)

    @pytest.mark.asyncio
    async def test_g2p(self, handlers):
        assert await handlers.g2p(PipelineContext(word_th=WORD), EnrichmentTarget.V1) == {"g2p": "baan4"}

    @pytest.mark.asyncio
    async def test_blank_g2p_is_an_error(self, settings):
        handlers = _handlers(settings, g2p=ScriptedG2P(readings={WORD: "  "}))
        with pytest.raises(OracleResponseError, match="no romanization"):
            await handlers.g2p(PipelineContext(word_th=WORD), EnrichmentTarget.V1)

    @pytest.mark.asyncio
    async def test_phonetic(self, handlers):
        out = await handlers.phonetic(PipelineContext(word_th=WORD, g2p="baan4"), EnrichmentTarget.V1)
        assert out == {"phonetic_en": "baan"}

    @pytest.mark.asyncio
    async def test_phonetic_may_have_no_answer(self, settings):
        handlers = _handlers(settings, phonetic=ScriptedPhonetic(default=None))
        assert await handlers.phonetic(PipelineContext(word_th=WORD, g2p="baan4"), EnrichmentTarget.V1) == {}


# ---------------------------------------------------------------------------
# Dictionary lookup
# ---------------------------------------------------------------------------


class TestDictionaryLookup:
    @pytest.mark.asyncio
    async def test_derives_ids_and_marks_raw(self, handlers):
        out = await handlers.dictionary_lookup(PipelineContext(word_th=WORD), EnrichmentTarget.V1)
        [sense] = out["raw_senses"]
        assert sense.id == sense_id(WORD, 0)
        assert sense.source == "orst"
        assert sense.word_th_id == WORD
        assert sense.created_at is not None

    @pytest.mark.asyncio
    async def test_blank_definitions_skipped(self, settings):
        dictionary = ScriptedDictionary(
            entries={WORD: [{"definition_th": " "}, {"definition_th": "เรือน", "source": "ORST"}]}
        )
        handlers = _handlers(settings, dictionary=dictionary)
        out = await handlers.dictionary_lookup(PipelineContext(word_th=WORD), EnrichmentTarget.V1)
        [sense] = out["raw_senses"]
        assert sense.id == sense_id(WORD, 1)
        assert sense.source == "ORST"

    @pytest.mark.asyncio
    async def test_unknown_word_returns_empty(self, handlers):
        out = await handlers.dictionary_lookup(PipelineContext(word_th="ไป"), EnrichmentTarget.V1)
        assert out == {"raw_senses": []}

    @pytest.mark.asyncio
    async def test_non_raw_source_rejected(self, settings):
        dictionary = ScriptedDictionary(entries={WORD: [{"definition_th": "เรือน", "source": "gpt"}]})
        handlers = _handlers(settings, dictionary=dictionary)
        with pytest.raises(OracleResponseError, match="raw-dictionary marker"):
            await handlers.dictionary_lookup(PipelineContext(word_th=WORD), EnrichmentTarget.V1)


# ---------------------------------------------------------------------------
# Normalize
# ---------------------------------------------------------------------------


class TestNormalize:
    @pytest.mark.asyncio
    async def test_raw_senses_normalized_in_place(self, handlers):
        out = await handlers.normalize(_raw_context(2), EnrichmentTarget.V1)
        senses = out["normalized_senses"]
        assert [s.id for s in senses] == [sense_id(WORD, 0), sense_id(WORD, 1)]
        assert {s.source for s in senses} == {"gpt-normalized"}
        assert senses[0].definition_th == "ที่อยู่อาศัย (ปรับแล้ว)"
        assert all(s.schema_version is SchemaVersion.V1 for s in senses)

    @pytest.mark.asyncio
    async def test_count_mismatch(self, settings):
        handlers = _handlers(settings, normalizer=ScriptedNormalizer(drop=1))
        with pytest.raises(SenseCountMismatchError) as info:
            await handlers.normalize(_raw_context(2), EnrichmentTarget.V1)
        assert (info.value.expected, info.value.actual) == (2, 1)

    @pytest.mark.asyncio
    async def test_normalized_senses_not_renormalized(self, settings):
        normalizer = ScriptedNormalizer()
        handlers = _handlers(settings, normalizer=normalizer)
        context = PipelineContext(word_th=WORD, normalized_senses=[normalized_sense_row()])
        out = await handlers.normalize(context, EnrichmentTarget.V1)
        assert normalizer.calls == []
        assert out["normalized_senses"][0].definition_th == "ที่อยู่อาศัย"

    @pytest.mark.asyncio
    async def test_untagged_senses_are_normalized(self, settings):
        normalizer = ScriptedNormalizer()
        handlers = _handlers(settings, normalizer=normalizer)
        context = PipelineContext(word_th=WORD, normalized_senses=[normalized_sense_row(source=None)])
        out = await handlers.normalize(context, EnrichmentTarget.V1)
        assert len(normalizer.calls) == 1
        assert out["normalized_senses"][0].source == "gpt-normalized"

    @pytest.mark.asyncio
    async def test_generated_senses_are_normalized(self, settings):
        normalizer = ScriptedNormalizer()
        handlers = _handlers(settings, normalizer=normalizer)
        context = PipelineContext(word_th=WORD, lm_senses=[raw_sense_row(source="gpt")])
        out = await handlers.normalize(context, EnrichmentTarget.V1)
        assert len(normalizer.calls) == 1
        assert out["normalized_senses"][0].source == "gpt-normalized"

    @pytest.mark.asyncio
    async def test_v2_target_enriches(self, handlers):
        out = await handlers.normalize(_raw_context(), EnrichmentTarget.V2)
        [sense] = out["normalized_senses"]
        assert isinstance(sense, SenseV2)
        assert (sense.pos_th, sense.pos_eng, sense.definition_eng) == ("คำนาม", "noun", "a place to live")

    @pytest.mark.asyncio
    async def test_v3_target_labels(self, handlers):
        out = await handlers.normalize(_raw_context(), EnrichmentTarget.V3)
        [sense] = out["normalized_senses"]
        assert isinstance(sense, SenseV3)
        assert sense.label_eng == "house"

    @pytest.mark.asyncio
    async def test_v3_only_calls_v3_when_v2_complete(self, settings):
        enricher = ScriptedEnricher()
        handlers = _handlers(settings, enricher=enricher)
        context = PipelineContext(word_th=WORD, normalized_senses=[v2_sense_row()])
        await handlers.normalize(context, EnrichmentTarget.V3)
        assert [call[0] for call in enricher.calls] == ["v3"]

    @pytest.mark.asyncio
    async def test_label_sanitized(self, settings):
        handlers = _handlers(settings, enricher=ScriptedEnricher(label=" Home! sweet"))
        out = await handlers.normalize(_raw_context(), EnrichmentTarget.V3)
        assert out["normalized_senses"][0].label_eng == "Home"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("label", ["บ้าน", "!!!", 7])
    async def test_bad_label_is_oracle_error(self, settings, label):
        handlers = _handlers(settings, enricher=ScriptedEnricher(label=label))
        with pytest.raises(OracleResponseError):
            await handlers.normalize(_raw_context(), EnrichmentTarget.V3)

    @pytest.mark.asyncio
    async def test_incomplete_v2_answer_is_completeness_violation(self, settings):
        handlers = _handlers(settings, enricher=ScriptedEnricher(pos_eng=None))
        with pytest.raises(CompletenessViolation):
            await handlers.normalize(_raw_context(), EnrichmentTarget.V2)

    @pytest.mark.asyncio
    async def test_enricher_required_above_v1(self, settings):
        handlers = _handlers(settings, enricher=None)
        with pytest.raises(ConfigError):
            await handlers.normalize(_raw_context(), EnrichmentTarget.V2)


# ---------------------------------------------------------------------------
# Meaning fallback
# ---------------------------------------------------------------------------


class TestGenerateMeanings:
    @pytest.mark.asyncio
    async def test_no_generator(self, settings):
        handlers = _handlers(settings, generator=None)
        assert await handlers.generate_meanings(PipelineContext(word_th=WORD)) == []

    @pytest.mark.asyncio
    async def test_generated_senses_tagged(self, settings):
        generator = ScriptedGenerator(meanings={"ไป": [{"definition_th": "เคลื่อนที่"}]})
        handlers = _handlers(settings, generator=generator)
        [sense] = await handlers.generate_meanings(PipelineContext(word_th="ไป", full_text="ไป ไหน"))
        assert sense.id == sense_id("ไป", 0)
        assert sense.source == "gpt"
        assert sense.word_th_id == "ไป"
        assert generator.calls[0][1].full_text == "ไป ไหน"


# ---------------------------------------------------------------------------
# Pacing and deadlines
# ---------------------------------------------------------------------------


class TestCallPolicy:
    def test_default_limiter_from_settings(self, oracles):
        settings = LexiSettings(_env_file=None, oracle_rate_per_second=2.5, oracle_burst=7)
        handlers = EnrichmentHandlers(oracles, settings=settings)
        assert handlers.limiter.rate == 2.5
        assert handlers.limiter.capacity == 7

    @pytest.mark.asyncio
    async def test_limiter_consumed_per_call(self, oracles, settings):
        limiter = AsyncTokenBucket(rate=1, capacity=3, clock=lambda: 0.0)
        handlers = EnrichmentHandlers(oracles, settings=settings, limiter=limiter)
        await handlers.g2p(PipelineContext(word_th=WORD), EnrichmentTarget.V1)
        await handlers.phonetic(PipelineContext(word_th=WORD, g2p="baan4"), EnrichmentTarget.V1)
        assert limiter.available_tokens == 1

    @pytest.mark.asyncio
    async def test_hung_oracle_times_out(self):
        faults = FaultPlan()
        faults.install("g2p", delay_seconds=1.0)
        settings = LexiSettings(_env_file=None, oracle_timeout_seconds=0.01)
        handlers = EnrichmentHandlers(scripted_suite(faults), settings=settings)
        with pytest.raises(OracleTimeoutError) as info:
            await handlers.g2p(PipelineContext(word_th=WORD), EnrichmentTarget.V1)
        assert info.value.oracle == "g2p"
        assert info.value.retryable

    def test_hints_from_context(self):
        context = PipelineContext(word_th=WORD, all_tokens=["บ้าน", "ใหม่"], word_position=0, season=1)
        hints = hints_from_context(context)
        assert hints.all_tokens == ("บ้าน", "ใหม่")
        assert hints.to_dict()["season"] == 1

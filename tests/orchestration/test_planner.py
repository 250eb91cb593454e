"""Tests for SkipPlanner: the minimal steps a persisted token needs."""

import pytest

from lexispine.core.errors import StructuralValidationError
from lexispine.orchestration.planner import SkipPlanner
from lexispine.orchestration.step_types import (
    DICTIONARY_LOOKUP,
    G2P,
    NORMALIZE,
    PHONETIC,
    EnrichmentTarget,
)
from lexispine.records.word import Word

from tests._support.rows import (
    WORD,
    normalized_sense_row,
    raw_sense_row,
    v2_sense_row,
    word_row,
)

COMPLETE_WORD = word_row(g2p="baan4", phonetic_en="baan")


class TestScenarios:
    def test_unknown_word_needs_everything(self, planner):
        plan = planner.plan(WORD, word_row(), [])
        assert plan.steps == (G2P, PHONETIC, DICTIONARY_LOOKUP, NORMALIZE)
        assert not plan.skip

    def test_missing_word_row_needs_everything(self, planner):
        assert planner.plan(WORD, None, []).steps == (G2P, PHONETIC, DICTIONARY_LOOKUP, NORMALIZE)

    def test_raw_sense_needs_normalize_only(self, planner):
        plan = planner.plan(WORD, COMPLETE_WORD, [raw_sense_row()])
        assert plan.steps == (NORMALIZE,)
        assert plan.reasons[NORMALIZE] == "raw-dictionary sense present"

    def test_normalized_token_is_skipped(self, planner):
        plan = planner.plan(WORD, COMPLETE_WORD, [normalized_sense_row()])
        assert plan.steps == ()
        assert plan.skip

    def test_word_without_senses_is_never_complete(self, planner):
        plan = planner.plan(WORD, COMPLETE_WORD, [])
        assert plan.steps == (DICTIONARY_LOOKUP, NORMALIZE)
        assert plan.reasons[DICTIONARY_LOOKUP] == "no senses"


class TestReadingRules:
    def test_either_reading_completes_the_word(self, planner):
        plan = planner.plan(WORD, word_row(g2p="baan4"), [normalized_sense_row()])
        assert plan.skip

    def test_phonetic_only(self, planner):
        plan = planner.plan(WORD, word_row(phonetic_en="baan"), [normalized_sense_row()])
        assert plan.skip

    def test_blank_readings_count_as_missing(self, planner):
        plan = planner.plan(WORD, word_row(g2p=" ", phonetic_en=""), [normalized_sense_row()])
        assert plan.steps == (G2P, PHONETIC)


class TestSenseRules:
    def test_raw_sense_is_sticky(self, planner):
        senses = [v2_sense_row(index=0, source="orst", label_eng="house"), normalized_sense_row(index=1)]
        plan = planner.plan(WORD, COMPLETE_WORD, senses, EnrichmentTarget.V3)
        assert plan.steps == (NORMALIZE,)

    def test_missing_source_needs_normalize(self, planner):
        plan = planner.plan(WORD, COMPLETE_WORD, [raw_sense_row(source=None)])
        assert plan.steps == (NORMALIZE,)
        assert plan.reasons[NORMALIZE] == "sense fails NormalizedSense"

    def test_v2_target(self, planner):
        assert planner.plan(WORD, COMPLETE_WORD, [normalized_sense_row()], EnrichmentTarget.V2).steps == (
            NORMALIZE,
        )
        assert planner.plan(WORD, COMPLETE_WORD, [v2_sense_row()], EnrichmentTarget.V2).skip

    def test_v3_target(self, planner):
        plan = planner.plan(WORD, COMPLETE_WORD, [v2_sense_row()], EnrichmentTarget.V3)
        assert plan.reasons == {NORMALIZE: "sense fails V3CompleteSense"}
        labelled = v2_sense_row(label_eng="house")
        assert planner.plan(WORD, COMPLETE_WORD, [labelled], EnrichmentTarget.V3).skip

    def test_lower_target_skips_richer_senses(self, planner):
        assert planner.plan(WORD, COMPLETE_WORD, [v2_sense_row(label_eng="house")]).skip

    def test_custom_raw_markers(self):
        planner = SkipPlanner(raw_markers=("dict",))
        assert planner.plan(WORD, COMPLETE_WORD, [raw_sense_row()]).skip
        assert planner.plan(WORD, COMPLETE_WORD, [raw_sense_row(source="dict")]).steps == (NORMALIZE,)


class TestPlanShape:
    def test_parsed_rows_carried(self, planner):
        plan = planner.plan(WORD, COMPLETE_WORD, [raw_sense_row()])
        assert plan.word == Word(word_th=WORD, g2p="baan4", phonetic_en="baan")
        assert [s.source for s in plan.senses] == ["orst"]
        assert plan.needs(NORMALIZE) and not plan.needs(G2P)

    def test_to_dict(self, planner):
        data = planner.plan(WORD, None, []).to_dict()
        assert data["target"] == "v1"
        assert data["skip"] is False
        assert list(data["reasons"]) == [G2P, PHONETIC, DICTIONARY_LOOKUP, NORMALIZE]

    def test_accepts_parsed_models(self, planner):
        plan = planner.plan(WORD, Word(word_th=WORD, g2p="baan4"), [])
        assert plan.steps == (DICTIONARY_LOOKUP, NORMALIZE)


class TestMalformedRows:
    def test_malformed_word(self, planner):
        with pytest.raises(StructuralValidationError) as info:
            planner.plan(WORD, {"word_th": WORD, "g2p": 4}, [])
        assert info.value.fields == ["word.g2p"]
        assert info.value.label == WORD

    def test_malformed_sense(self, planner):
        with pytest.raises(StructuralValidationError) as info:
            planner.plan(WORD, COMPLETE_WORD, [normalized_sense_row(), {"id": -1, "definition_th": "x"}])
        assert info.value.fields == ["senses[1].id"]

    def test_malformed_label(self, planner):
        with pytest.raises(StructuralValidationError):
            planner.plan(WORD, COMPLETE_WORD, [v2_sense_row(label_eng="two words")], EnrichmentTarget.V3)

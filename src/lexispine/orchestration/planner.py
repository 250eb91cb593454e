"""Skip Planner — the minimal set of steps a persisted token still needs.

Manifesto:
    Oracle calls are slow and language-model calls cost money. Before any
    step runs, the planner checks the persisted word and its senses
    against the completeness contracts and schedules only what is missing.
    Running it again after a successful run yields nothing: that is the
    idempotence the whole pipeline relies on instead of transaction logs.

    Normalization is sticky and forward-only: a sense that still carries
    the raw-dictionary marker is always scheduled, whatever else passes;
    a normalized sense is never normalized again for the same target.

ARCHITECTURE
────────────
::

    plan(word_th, word_row, sense_rows, target)
      parse rows (structural failure → StructuralValidationError)
      1. token contract passes ∧ senses ∧ none raw          → skip
      2. word fails CompleteWord → g2p (if blank), phonetic (if blank)
      3. no senses              → dictionary-lookup (+ normalize)
      4. raw sense ∨ not normalized ∨ target contract fails → normalize
      5. nothing scheduled      → skip

    Plan(steps, reasons, skip, word, senses)   steps in graph order

Example::

    plan = SkipPlanner().plan("บ้าน", {"word_th": "บ้าน"}, [])
    assert plan.steps == ("g2p", "phonetic", "dictionary-lookup", "normalize")

Tags:
    lexispine, orchestration, planner, skip, idempotence

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from lexispine.contracts.completeness import (
    CompleteWord,
    Contract,
    TokenContract,
    check_senses,
    needs_normalization,
    needs_v2_enrichment,
    needs_v3_enrichment,
    sense_has_label,
    sense_has_v2_fields,
    token_contract,
)
from lexispine.core.errors import StructuralValidationError
from lexispine.core.logging import get_logger
from lexispine.orchestration.step_types import (
    CANONICAL_ORDER,
    DICTIONARY_LOOKUP,
    G2P,
    NORMALIZE,
    PHONETIC,
    EnrichmentTarget,
)
from lexispine.records.base import RAW_SOURCE_MARKERS
from lexispine.records.sense import SenseV1, load_sense
from lexispine.records.word import Word

logger = get_logger(__name__)

_SENSE: Contract[SenseV1] = Contract("Sense", load_sense)


@dataclass(frozen=True)
class Plan:
    """Steps still required for one token.

    Attributes:
        word_th: The token
        target: Completeness level planned for
        steps: Step names in graph order (empty when skipping)
        reasons: Why each step was scheduled
        word: Parsed persisted word, if any
        senses: Parsed persisted senses
    """

    word_th: str
    target: EnrichmentTarget
    steps: tuple[str, ...] = ()
    reasons: dict[str, str] = field(default_factory=dict)
    word: Word | None = None
    senses: tuple[SenseV1, ...] = ()

    @property
    def skip(self) -> bool:
        return not self.steps

    def needs(self, step: str) -> bool:
        return step in self.steps

    def to_dict(self) -> dict[str, Any]:
        return {
            "word_th": self.word_th,
            "target": self.target.value,
            "steps": list(self.steps),
            "reasons": dict(self.reasons),
            "skip": self.skip,
        }


class SkipPlanner:
    """Computes the minimal step list from persisted state."""

    def __init__(
        self,
        raw_markers: tuple[str, ...] = RAW_SOURCE_MARKERS,
        step_order: Sequence[str] = CANONICAL_ORDER,
    ):
        self.raw_markers = tuple(raw_markers)
        self.step_order = tuple(step_order)
        self._contracts: dict[EnrichmentTarget, TokenContract] = {
            EnrichmentTarget.V1: token_contract("CompleteToken", self.raw_markers),
            EnrichmentTarget.V2: token_contract("V2CompleteToken", self.raw_markers, sense_has_v2_fields),
            EnrichmentTarget.V3: token_contract(
                "V3CompleteToken", self.raw_markers, sense_has_v2_fields, sense_has_label
            ),
        }

    def contract_for(self, target: EnrichmentTarget) -> TokenContract:
        return self._contracts[target]

    def _parse(
        self,
        word_th: str,
        word: Mapping[str, Any] | Word | None,
        senses: Sequence[Mapping[str, Any] | SenseV1],
    ) -> tuple[Word | None, list[SenseV1]]:
        issues = []
        parsed_word: Word | None = None
        if word is not None:
            base = CompleteWord.parse_base(word)
            issues.extend(issue.under("word") for issue in base.issues)
            parsed_word = base.value
        sense_result = check_senses(_SENSE, senses)
        issues.extend(sense_result.issues)
        if issues:
            raise StructuralValidationError(
                "Persisted record is malformed", issues=issues, label=word_th
            )
        return parsed_word, list(sense_result.value or [])

    def plan(
        self,
        word_th: str,
        word: Mapping[str, Any] | Word | None,
        senses: Sequence[Mapping[str, Any] | SenseV1] = (),
        target: EnrichmentTarget = EnrichmentTarget.V1,
    ) -> Plan:
        """Steps needed to bring ``word_th`` to ``target``.

        Args:
            word_th: The token
            word: Persisted word row, or None when the word is unknown
            senses: Persisted sense rows
            target: Completeness level to reach

        Raises:
            StructuralValidationError: A persisted row is malformed
        """
        parsed_word, parsed_senses = self._parse(word_th, word, senses)
        has_raw = any(s.is_raw(self.raw_markers) for s in parsed_senses)

        # 1. Fully done for this target
        if (
            parsed_word is not None
            and parsed_senses
            and not has_raw
            and self._contracts[target].passes(parsed_word, parsed_senses)
        ):
            return self._finish(word_th, target, {}, parsed_word, parsed_senses)

        reasons: dict[str, str] = {}

        # 2. Reading
        if parsed_word is None or not CompleteWord.passes(parsed_word):
            if parsed_word is None or not parsed_word.has_romanization:
                reasons[G2P] = "romanization is blank"
            if parsed_word is None or not parsed_word.has_phonetic:
                reasons[PHONETIC] = "phonetic spelling is blank"

        # 3. Senses
        if not parsed_senses:
            reasons[DICTIONARY_LOOKUP] = "no senses"
            reasons[NORMALIZE] = "dictionary senses arrive raw"

        # 4. Normalization / enrichment
        elif has_raw:
            reasons[NORMALIZE] = "raw-dictionary sense present"
        elif needs_normalization(parsed_senses, self.raw_markers):
            reasons[NORMALIZE] = "sense fails NormalizedSense"
        elif target is not EnrichmentTarget.V1 and needs_v2_enrichment(parsed_senses):
            reasons[NORMALIZE] = "sense fails V2CompleteSense"
        elif target is EnrichmentTarget.V3 and needs_v3_enrichment(parsed_senses):
            reasons[NORMALIZE] = "sense fails V3CompleteSense"

        # 5. Nothing left
        return self._finish(word_th, target, reasons, parsed_word, parsed_senses)

    def _finish(
        self,
        word_th: str,
        target: EnrichmentTarget,
        reasons: dict[str, str],
        word: Word | None,
        senses: list[SenseV1],
    ) -> Plan:
        steps = tuple(name for name in self.step_order if name in reasons)
        logger.debug(
            "plan.computed",
            word_th=word_th,
            target=target.value,
            steps=list(steps),
            sense_count=len(senses),
        )
        return Plan(
            word_th=word_th,
            target=target,
            steps=steps,
            reasons={name: reasons[name] for name in steps},
            word=word,
            senses=tuple(senses),
        )


__all__ = ["Plan", "SkipPlanner"]

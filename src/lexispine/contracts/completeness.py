"""Completeness contracts: "is this record done?" for each enrichment tier.

Manifesto:
    A record can be well-formed and still unfinished. Contracts layer
    business rules on top of a record schema without weakening it: the base
    schema always parses first, and only a structurally valid record is
    ever judged complete or incomplete. A malformed record is reported as
    invalid, never as "needs work".

ARCHITECTURE
────────────
::

    Contract(name, parse, rules)
      check(data) → ContractResult
        1. parse(data)        ── ValidationError → invalid (structural issues)
        2. rule(value) ...    ── issues → unmet (business-rule issues)

    CompleteWord      = Word      ∧ (g2p ∨ phonetic_en)
    NormalizedSense   = Sense     ∧ source ∉ {∅, raw markers}
    V2CompleteSense   = Sense     ∧ pos_th ∧ pos_eng ∧ definition_eng
    V3CompleteSense   = V2CompleteSense ∧ label_eng

    TokenContract(word, sense rules)
      CompleteToken    = CompleteWord ∧ ∀ sense: NormalizedSense
      V2CompleteToken  = CompleteToken ∧ ∀ sense: V2CompleteSense
      V3CompleteToken  = CompleteToken ∧ ∀ sense: V3CompleteSense

Example::

    result = CompleteWord.check({"word_th": "บ้าน"})
    assert not result.passed and not result.structural
    assert result.fields == ["g2p", "phonetic_en"]

Tags:
    lexispine, contracts, completeness, validation, skip-planning

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from pydantic import ValidationError

from lexispine.contracts.issues import (
    ContractResult,
    IntegrityIssue,
    issues_from_validation_error,
)
from lexispine.records.base import RAW_SOURCE_MARKERS, is_blank
from lexispine.records.sense import V2_FIELDS, SenseV1, load_sense
from lexispine.records.word import Word

T = TypeVar("T")

Rule = Callable[[Any], list[IntegrityIssue]]


@dataclass(frozen=True)
class Contract(Generic[T]):
    """A record schema plus business-rule predicates."""

    name: str
    parse: Callable[[Any], T]
    rules: tuple[Rule, ...] = ()

    def parse_base(self, data: Any) -> ContractResult[T]:
        """Structural validation only."""
        try:
            value = self.parse(data)
        except ValidationError as exc:
            return ContractResult.invalid(issues_from_validation_error(exc))
        return ContractResult.ok(value)

    def evaluate(self, value: T) -> list[IntegrityIssue]:
        """Business rules against an already-parsed value."""
        issues: list[IntegrityIssue] = []
        for rule in self.rules:
            issues.extend(rule(value))
        return issues

    def check(self, data: Any) -> ContractResult[T]:
        base = self.parse_base(data)
        if not base.passed:
            return base
        issues = self.evaluate(base.value)
        if issues:
            return ContractResult.unmet(base.value, issues)
        return base

    def passes(self, data: Any) -> bool:
        return self.check(data).passed

    def extend(self, name: str, *rules: Rule) -> Contract[T]:
        """A stricter contract over the same base schema."""
        return Contract(name=name, parse=self.parse, rules=self.rules + rules)


# =============================================================================
# Rules
# =============================================================================


def word_has_reading(word: Word) -> list[IntegrityIssue]:
    if word.has_romanization or word.has_phonetic:
        return []
    message = "Word must have g2p OR phonetic_en"
    return [
        IntegrityIssue.business_rule(
            "g2p", message, expected="non-blank g2p or phonetic_en", actual=word.g2p
        ),
        IntegrityIssue.business_rule(
            "phonetic_en", message, expected="non-blank g2p or phonetic_en", actual=word.phonetic_en
        ),
    ]


def sense_is_normalized(markers: tuple[str, ...] = RAW_SOURCE_MARKERS) -> Rule:
    expected = f"a provenance tag other than {' / '.join(markers)}"

    def rule(sense: SenseV1) -> list[IntegrityIssue]:
        if is_blank(sense.source):
            return [
                IntegrityIssue.business_rule(
                    "source", "Sense source is required", expected=expected, actual=sense.source
                )
            ]
        if sense.source in markers:
            return [
                IntegrityIssue.business_rule(
                    "source",
                    "Sense has not been normalized",
                    expected=expected,
                    actual=sense.source,
                )
            ]
        return []

    return rule


def _required_fields(names: Sequence[str], message: str) -> Rule:
    def rule(sense: SenseV1) -> list[IntegrityIssue]:
        issues = []
        for name in names:
            value = getattr(sense, name, None)
            if is_blank(value):
                issues.append(
                    IntegrityIssue.business_rule(name, message, expected=f"non-blank {name}", actual=value)
                )
        return issues

    return rule


sense_has_v2_fields = _required_fields(
    V2_FIELDS, "Sense V2 must have pos_th, pos_eng and definition_eng populated"
)
sense_has_label = _required_fields(("label_eng",), "Sense V3 must have label_eng populated")


# =============================================================================
# Record contracts
# =============================================================================


CompleteWord: Contract[Word] = Contract("CompleteWord", Word.model_validate, (word_has_reading,))


def normalized_sense_contract(markers: tuple[str, ...] = RAW_SOURCE_MARKERS) -> Contract[SenseV1]:
    return Contract("NormalizedSense", load_sense, (sense_is_normalized(markers),))


NormalizedSense = normalized_sense_contract()
V2CompleteSense: Contract[SenseV1] = Contract("V2CompleteSense", load_sense, (sense_has_v2_fields,))
V3CompleteSense = V2CompleteSense.extend("V3CompleteSense", sense_has_label)


def check_senses(
    contract: Contract[SenseV1],
    senses: Sequence[Any],
    prefix: str = "senses",
) -> ContractResult[list[SenseV1]]:
    """Run ``contract`` over every sense; an empty set passes.

    All senses are parsed before any rule runs, so one malformed sense makes
    the whole set invalid rather than incomplete.
    """
    parsed: list[SenseV1] = []
    structural: list[IntegrityIssue] = []
    for index, data in enumerate(senses):
        base = contract.parse_base(data)
        if base.passed:
            parsed.append(base.value)
        else:
            structural.extend(issue.under(f"{prefix}[{index}]") for issue in base.issues)
    if structural:
        return ContractResult.invalid(structural)

    issues = [
        issue.under(f"{prefix}[{index}]")
        for index, sense in enumerate(parsed)
        for issue in contract.evaluate(sense)
    ]
    if issues:
        return ContractResult.unmet(parsed, issues)
    return ContractResult.ok(parsed)


def check_normalized_senses(senses: Sequence[Any], markers: tuple[str, ...] = RAW_SOURCE_MARKERS):
    return check_senses(normalized_sense_contract(markers), senses)


def check_v2_senses(senses: Sequence[Any]):
    return check_senses(V2CompleteSense, senses)


def check_v3_senses(senses: Sequence[Any]):
    return check_senses(V3CompleteSense, senses)


def needs_normalization(senses: Sequence[SenseV1], markers: tuple[str, ...] = RAW_SOURCE_MARKERS) -> bool:
    """Any raw-marker sense, or any sense failing ``NormalizedSense``."""
    rule = sense_is_normalized(markers)
    return any(rule(sense) for sense in senses)


def needs_v2_enrichment(senses: Sequence[SenseV1]) -> bool:
    return any(sense_has_v2_fields(sense) for sense in senses)


def needs_v3_enrichment(senses: Sequence[SenseV1]) -> bool:
    """True only when every sense is V2-complete and some lack a label."""
    if not senses or needs_v2_enrichment(senses):
        return False
    return any(sense_has_label(sense) for sense in senses)


# =============================================================================
# Token contracts
# =============================================================================


@dataclass(frozen=True)
class TokenState:
    """A parsed word with its parsed senses."""

    word: Word
    senses: list[SenseV1] = field(default_factory=list)


@dataclass(frozen=True)
class TokenContract:
    """``CompleteWord`` for the word plus sense rules applied to every sense."""

    name: str
    word: Contract[Word]
    sense: Contract[SenseV1]

    def check(self, word: Any, senses: Sequence[Any] = ()) -> ContractResult[TokenState]:
        word_base = self.word.parse_base(word)
        structural = [issue.under("word") for issue in word_base.issues]
        sense_base = check_senses(self.sense, senses)
        if sense_base.structural:
            structural.extend(sense_base.issues)
        if structural:
            return ContractResult.invalid(structural)

        state = TokenState(word=word_base.value, senses=list(sense_base.value))
        issues = [issue.under("word") for issue in self.word.evaluate(state.word)]
        if not sense_base.passed:
            issues.extend(sense_base.issues)
        if issues:
            return ContractResult.unmet(state, issues)
        return ContractResult.ok(state)

    def passes(self, word: Any, senses: Sequence[Any] = ()) -> bool:
        return self.check(word, senses).passed


def token_contract(
    name: str = "CompleteToken",
    markers: tuple[str, ...] = RAW_SOURCE_MARKERS,
    *extra: Rule,
) -> TokenContract:
    sense = normalized_sense_contract(markers)
    if extra:
        sense = sense.extend(name, *extra)
    return TokenContract(name=name, word=CompleteWord, sense=sense)


CompleteToken = token_contract()
V2CompleteToken = token_contract("V2CompleteToken", RAW_SOURCE_MARKERS, sense_has_v2_fields)
V3CompleteToken = token_contract(
    "V3CompleteToken", RAW_SOURCE_MARKERS, sense_has_v2_fields, sense_has_label
)


__all__ = [
    "Contract",
    "Rule",
    "CompleteWord",
    "NormalizedSense",
    "V2CompleteSense",
    "V3CompleteSense",
    "normalized_sense_contract",
    "word_has_reading",
    "sense_is_normalized",
    "sense_has_v2_fields",
    "sense_has_label",
    "check_senses",
    "check_normalized_senses",
    "check_v2_senses",
    "check_v3_senses",
    "needs_normalization",
    "needs_v2_enrichment",
    "needs_v3_enrichment",
    "TokenState",
    "TokenContract",
    "token_contract",
    "CompleteToken",
    "V2CompleteToken",
    "V3CompleteToken",
]

"""Integrity reports for subtitles and whole episodes.

Answers "is this episode fully enriched?" for a UI or an operator: every
subtitle must parse, and every token it references must have a
structurally valid word row with at least one valid sense.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from lexispine.contracts.completeness import Contract, check_senses
from lexispine.contracts.issues import IntegrityIssue, IssueKind
from lexispine.records.sense import SenseV1, load_sense
from lexispine.records.subtitle import Subtitle
from lexispine.records.word import Word

_WORD = Contract("Word", Word.model_validate)
_SUBTITLE = Contract("Subtitle", Subtitle.model_validate)
_SENSE: Contract[SenseV1] = Contract("Sense", load_sense)


@dataclass(frozen=True)
class WordIntegrity:
    word_th: str
    passed: bool
    issues: list[IntegrityIssue] = field(default_factory=list)
    sense_count: int = 0


@dataclass(frozen=True)
class SubtitleIntegrity:
    subtitle_id: str
    passed: bool
    issues: list[IntegrityIssue] = field(default_factory=list)
    words: list[WordIntegrity] = field(default_factory=list)

    @property
    def failed_words(self) -> list[str]:
        return [w.word_th for w in self.words if not w.passed]


@dataclass(frozen=True)
class EpisodeIntegrity:
    media_id: str
    subtitles: list[SubtitleIntegrity] = field(default_factory=list)

    @property
    def subtitle_count(self) -> int:
        return len(self.subtitles)

    @property
    def passed_subtitles(self) -> int:
        return sum(1 for s in self.subtitles if s.passed)

    @property
    def failed_subtitles(self) -> int:
        return self.subtitle_count - self.passed_subtitles

    @property
    def passed(self) -> bool:
        return self.failed_subtitles == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "media_id": self.media_id,
            "passed": self.passed,
            "subtitle_count": self.subtitle_count,
            "passed_subtitles": self.passed_subtitles,
            "failed_subtitles": self.failed_subtitles,
        }


def check_word_integrity(
    word_th: str,
    word: Any | None,
    senses: Sequence[Any] = (),
) -> WordIntegrity:
    if word is None:
        return WordIntegrity(
            word_th=word_th,
            passed=False,
            issues=[
                IntegrityIssue(
                    field="word",
                    message=f"Word '{word_th}' not found",
                    kind=IssueKind.MISSING,
                    present=False,
                    expected="word row with word_th and senses",
                )
            ],
        )

    issues = [issue.under("word") for issue in _WORD.parse_base(word).issues]
    issues.extend(check_senses(_SENSE, senses, prefix="word.senses").issues)
    if not senses:
        issues.append(
            IntegrityIssue(
                field="word.senses",
                message="Word must have at least one sense",
                kind=IssueKind.MISSING,
                present=False,
                expected="at least one sense",
            )
        )
    return WordIntegrity(word_th=word_th, passed=not issues, issues=issues, sense_count=len(senses))


def check_subtitle_integrity(
    subtitle: Any,
    words: Mapping[str, Any],
    senses: Mapping[str, Sequence[Any]],
) -> SubtitleIntegrity:
    """Check one subtitle row and every word its tokens reference.

    Args:
        subtitle: Raw subtitle row
        words: Word rows keyed by ``word_th``
        senses: Sense rows keyed by ``word_th``
    """
    base = _SUBTITLE.parse_base(subtitle)
    if not base.passed:
        raw_id = subtitle.get("id") if isinstance(subtitle, Mapping) else None
        return SubtitleIntegrity(
            subtitle_id=str(raw_id or "unknown"),
            passed=False,
            issues=list(base.issues),
        )

    parsed: Subtitle = base.value
    word_results = [
        check_word_integrity(token, words.get(token), senses.get(token, ()))
        for token in dict.fromkeys(t.strip() for t in parsed.tokens)
    ]
    return SubtitleIntegrity(
        subtitle_id=parsed.id,
        passed=all(w.passed for w in word_results),
        words=word_results,
    )


def check_episode_integrity(
    media_id: str,
    subtitles: Sequence[Any],
    words: Mapping[str, Any],
    senses: Mapping[str, Sequence[Any]],
) -> EpisodeIntegrity:
    return EpisodeIntegrity(
        media_id=media_id,
        subtitles=[check_subtitle_integrity(s, words, senses) for s in subtitles],
    )


__all__ = [
    "WordIntegrity",
    "SubtitleIntegrity",
    "EpisodeIntegrity",
    "check_word_integrity",
    "check_subtitle_integrity",
    "check_episode_integrity",
]

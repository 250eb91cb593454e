"""Oracle protocols: the external services the enrichment steps consume.

Manifesto:
    Oracles are slow, cost money and fail. The core never knows how they
    talk to the outside world; it depends only on these async protocols.
    Production adapters (tokenizer API, G2P model, dictionary scraper,
    language model) and the scripted fakes used in tests implement the same
    shapes, so the workflow engine is tested without a network.

ARCHITECTURE
────────────
::

    OracleSuite
      ├── tokenizer   : Tokenizer.tokenize(text)            → list[str]
      ├── g2p         : G2PConverter.romanize(word)         → str
      ├── phonetic    : PhoneticAnalyzer.analyze(word, g2p) → str | None
      ├── dictionary  : DictionaryLookup.lookup(word)       → list[dict]   (raw senses)
      ├── normalizer  : SenseNormalizer.normalize(senses, hints)  → list[dict]
      ├── enricher?   : SenseEnricher.enrich_v2 / enrich_v3      → list[dict]
      └── generator?  : MeaningGenerator.generate(word, hints)   → list[dict]

    Every answer is untrusted: handlers pass it through the validation gate.

Tags:
    lexispine, oracles, protocol, language-model, dictionary

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

SenseRow = Mapping[str, Any]


@dataclass(frozen=True)
class NormalizationHints:
    """Context a language model gets alongside the senses.

    Attributes:
        word_th: The word being processed
        full_text: Subtitle line the word was found in
        all_tokens: Every token of that line
        word_position: Index of the word within ``all_tokens``
        g2p: Romanization, when known
        phonetic_en: Phonetic spelling, when known
        show_name: Show title
        season: Season number
        episode: Episode number
    """

    word_th: str
    full_text: str | None = None
    all_tokens: tuple[str, ...] = ()
    word_position: int | None = None
    g2p: str | None = None
    phonetic_en: str | None = None
    show_name: str | None = None
    season: int | None = None
    episode: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "word_th": self.word_th,
            "full_text": self.full_text,
            "all_tokens": list(self.all_tokens),
            "word_position": self.word_position,
            "g2p": self.g2p,
            "phonetic_en": self.phonetic_en,
            "show_name": self.show_name,
            "season": self.season,
            "episode": self.episode,
        }


@runtime_checkable
class Tokenizer(Protocol):
    async def tokenize(self, text: str) -> list[str]: ...


@runtime_checkable
class G2PConverter(Protocol):
    async def romanize(self, word: str) -> str: ...


@runtime_checkable
class PhoneticAnalyzer(Protocol):
    async def analyze(self, word: str, g2p: str) -> str | None: ...


@runtime_checkable
class DictionaryLookup(Protocol):
    """Raw dictionary senses for a word.

    An empty list means "no entry" and is a normal answer. Availability
    problems are raised as ``OracleUnavailableError``.
    """

    async def lookup(self, word: str) -> list[dict[str, Any]]: ...


@runtime_checkable
class SenseNormalizer(Protocol):
    """Rewrite raw senses; must return exactly one output per input."""

    async def normalize(
        self, senses: Sequence[SenseRow], hints: NormalizationHints
    ) -> list[dict[str, Any]]: ...


@runtime_checkable
class SenseEnricher(Protocol):
    """Add V2 fields (parts of speech, English definition) or the V3 label."""

    async def enrich_v2(
        self, senses: Sequence[SenseRow], hints: NormalizationHints
    ) -> list[dict[str, Any]]: ...

    async def enrich_v3(
        self, senses: Sequence[SenseRow], hints: NormalizationHints
    ) -> list[dict[str, Any]]: ...


@runtime_checkable
class MeaningGenerator(Protocol):
    """Language-model meanings for words the dictionary does not know."""

    async def generate(self, word: str, hints: NormalizationHints) -> list[dict[str, Any]]: ...


@dataclass
class OracleSuite:
    """The set of oracles one workflow is bound to."""

    tokenizer: Tokenizer
    g2p: G2PConverter
    phonetic: PhoneticAnalyzer
    dictionary: DictionaryLookup
    normalizer: SenseNormalizer
    enricher: SenseEnricher | None = None
    generator: MeaningGenerator | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


__all__ = [
    "SenseRow",
    "NormalizationHints",
    "Tokenizer",
    "G2PConverter",
    "PhoneticAnalyzer",
    "DictionaryLookup",
    "SenseNormalizer",
    "SenseEnricher",
    "MeaningGenerator",
    "OracleSuite",
]

"""Oracle protocols, pacing and the workflow step handlers that call them."""

from lexispine.oracles.protocols import (
    DictionaryLookup,
    G2PConverter,
    MeaningGenerator,
    NormalizationHints,
    OracleSuite,
    PhoneticAnalyzer,
    SenseEnricher,
    SenseNormalizer,
    Tokenizer,
)
from lexispine.oracles.rate_limit import AsyncTokenBucket
from lexispine.oracles.timeout import call_with_timeout

__all__ = [
    "DictionaryLookup",
    "G2PConverter",
    "MeaningGenerator",
    "NormalizationHints",
    "OracleSuite",
    "PhoneticAnalyzer",
    "SenseEnricher",
    "SenseNormalizer",
    "Tokenizer",
    "AsyncTokenBucket",
    "call_with_timeout",
]

"""Completeness contracts and structured integrity issues."""

from lexispine.contracts.completeness import (
    CompleteToken,
    CompleteWord,
    Contract,
    NormalizedSense,
    TokenContract,
    TokenState,
    V2CompleteSense,
    V2CompleteToken,
    V3CompleteSense,
    V3CompleteToken,
    check_normalized_senses,
    check_senses,
    check_v2_senses,
    check_v3_senses,
    needs_normalization,
    needs_v2_enrichment,
    needs_v3_enrichment,
    normalized_sense_contract,
    token_contract,
)
from lexispine.contracts.integrity import (
    EpisodeIntegrity,
    SubtitleIntegrity,
    WordIntegrity,
    check_episode_integrity,
    check_subtitle_integrity,
    check_word_integrity,
)
from lexispine.contracts.issues import ContractResult, IntegrityIssue, IssueKind

__all__ = [
    "CompleteToken",
    "CompleteWord",
    "Contract",
    "NormalizedSense",
    "TokenContract",
    "TokenState",
    "V2CompleteSense",
    "V2CompleteToken",
    "V3CompleteSense",
    "V3CompleteToken",
    "check_normalized_senses",
    "check_senses",
    "check_v2_senses",
    "check_v3_senses",
    "needs_normalization",
    "needs_v2_enrichment",
    "needs_v3_enrichment",
    "normalized_sense_contract",
    "token_contract",
    "EpisodeIntegrity",
    "SubtitleIntegrity",
    "WordIntegrity",
    "check_episode_integrity",
    "check_subtitle_integrity",
    "check_word_integrity",
    "ContractResult",
    "IntegrityIssue",
    "IssueKind",
]

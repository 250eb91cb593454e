"""
Lexispine - schema-gated incremental enrichment of Thai dictionary entries.

Sub-packages:
- lexispine.core: errors, logging, settings, events, identifiers
- lexispine.records: record schemas (Word, Sense V1-V3, Subtitle, Token)
- lexispine.contracts: completeness contracts and integrity reports
- lexispine.validation: the validation gate and sealed constructors
- lexispine.oracles: oracle protocols, step handlers, pacing
- lexispine.orchestration: workflow, planner, executor, batch runner
- lexispine.store: record stores (in-memory, SQLAlchemy)
"""

__version__ = "0.1.0"

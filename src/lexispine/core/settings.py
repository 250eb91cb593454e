"""Runtime settings for the enrichment engine.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    Pacing, timeouts and the read-back policy change between a laptop run
    and a production batch; none of them belong in code.

    - **Pydantic validation:** type-checked at startup, not mid-batch
    - **Environment-driven:** reads ``LEXISPINE_*`` env vars and ``.env``
    - **Sensible defaults:** works out of the box against SQLite

Examples:
    >>> from lexispine.core.settings import LexiSettings
    >>> settings = LexiSettings(read_back_policy="fail", inter_token_delay_seconds=0)
    >>> settings.read_back_policy
    <ReadBackPolicy.FAIL: 'fail'>

Tags:
    settings, configuration, pydantic, environment, lexispine

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ReadBackPolicy(str, Enum):
    """What to do when persisted data differs from what was written."""

    WARN = "warn"  # Log and emit readback.mismatch, keep going
    FAIL = "fail"  # Raise ReadBackMismatchError


class LexiSettings(BaseSettings):
    """Settings shared by the executor, batch runner and record store.

    Fields
    ──────
    log_level                 : Structlog log level
    log_json                  : JSON logs (None = auto-detect from tty)
    inter_token_delay_seconds : Pause between tokens in a batch
    oracle_timeout_seconds    : Deadline for every oracle call
    oracle_rate_per_second    : Token-bucket refill rate shared by all oracles
    oracle_burst              : Token-bucket capacity
    read_back_policy          : warn | fail on post-write mismatch
    sense_id_probe_count      : Hash-derived candidate ids per word (0..n-1)
    raw_source_markers        : Provenance tags meaning "not yet normalized"
    normalized_source         : Provenance tag written by the normalize step
    database_url              : SQLAlchemy URL for SqlRecordStore
    """

    model_config = SettingsConfigDict(
        env_prefix="LEXISPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None

    # ── Pacing / resilience ──────────────────────────────────────
    inter_token_delay_seconds: float = Field(default=0.1, ge=0)
    oracle_timeout_seconds: float = Field(default=30.0, gt=0)
    oracle_rate_per_second: float = Field(default=5.0, gt=0)
    oracle_burst: int = Field(default=5, ge=1)

    # ── Data rules ───────────────────────────────────────────────
    read_back_policy: ReadBackPolicy = ReadBackPolicy.WARN
    sense_id_probe_count: int = Field(default=21, ge=1)
    raw_source_markers: tuple[str, ...] = ("orst", "ORST")
    normalized_source: str = "gpt-normalized"

    # ── Storage ──────────────────────────────────────────────────
    database_url: str = "sqlite:///lexispine.db"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return upper

    @field_validator("normalized_source")
    @classmethod
    def _not_a_raw_marker(cls, value: str, info: ValidationInfo) -> str:
        markers = info.data.get("raw_source_markers", ())
        if not value.strip() or value in markers:
            raise ValueError("normalized_source must be non-blank and differ from the raw markers")
        return value


@lru_cache
def get_settings() -> LexiSettings:
    """Process-wide settings, loaded once from the environment."""
    return LexiSettings()

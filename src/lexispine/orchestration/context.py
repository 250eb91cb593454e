"""Pipeline context: the only channel between enrichment steps.

Manifesto:
    Steps never call each other and never share globals; each reads a
    subset of this object and returns new fields. The context is closed
    (unknown fields are rejected) and frozen; the executor builds a new
    validated copy after every step, so a failed step leaves the previous
    context intact for a retry.

ARCHITECTURE
────────────
::

    subtitle-level   input_text, tokens
    word-level       word_th, g2p, phonetic_en
    senses           raw_senses (dictionary), lm_senses (generated),
                     normalized_senses (normalize output)
    hints            full_text, all_tokens, word_position,
                     show_name, season, episode

    validate_context(data) → PipelineContext | ContextShapeError
    merge_outputs(ctx, {field: value}) → new PipelineContext

Tags:
    lexispine, orchestration, context, immutable, pydantic

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, SerializeAsAny

from lexispine.core.errors import ContextShapeError, StructuralValidationError
from lexispine.records.base import NonBlankStr, TrimmedStr
from lexispine.records.sense import SenseV1, load_sense
from lexispine.validation.gate import Trusted, enforce, seal


def _as_sense(value: Any) -> Any:
    if isinstance(value, Mapping):
        return load_sense(value)
    return value


ContextSense = Annotated[SerializeAsAny[SenseV1], BeforeValidator(_as_sense)]


class PipelineContext(BaseModel):
    """Fields accumulated across one workflow run."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    # Subtitle level
    input_text: NonBlankStr | None = None
    tokens: list[TrimmedStr] | None = None

    # Word level
    word_th: TrimmedStr | None = None
    g2p: str | None = None
    phonetic_en: str | None = None

    # Senses
    raw_senses: list[ContextSense] | None = None
    lm_senses: list[ContextSense] | None = None
    normalized_senses: list[ContextSense] | None = None

    # Hints for language-model calls
    full_text: str | None = None
    all_tokens: list[str] | None = None
    word_position: int | None = Field(default=None, ge=0)
    show_name: str | None = None
    season: int | None = Field(default=None, ge=0)
    episode: int | None = Field(default=None, ge=0)

    def present_fields(self) -> list[str]:
        return [name for name, value in self if value is not None]

    def senses(self) -> list[SenseV1]:
        """Best available senses: normalized, else raw, else generated."""
        return list(self.normalized_senses or self.raw_senses or self.lm_senses or [])


CONTEXT_FIELDS: frozenset[str] = frozenset(PipelineContext.model_fields)


def _fields(context: PipelineContext) -> dict[str, Any]:
    # Shallow: sense instances keep their schema generation
    return {name: getattr(context, name) for name in CONTEXT_FIELDS}


def validate_context(data: PipelineContext | Mapping[str, Any], label: str | None = None) -> PipelineContext:
    """Parse ``data`` as a context; any failure is a ``ContextShapeError``."""
    if isinstance(data, PipelineContext):
        data = _fields(data)
    try:
        return enforce(PipelineContext, data, label)
    except StructuralValidationError as exc:
        raise ContextShapeError(
            "Pipeline context has an invalid shape",
            issues=exc.issues,
            label=label,
            cause=exc.cause,
        ) from exc


def merge_outputs(
    context: PipelineContext,
    outputs: Mapping[str, Any],
    label: str | None = None,
) -> PipelineContext:
    """New context with ``outputs`` merged in.

    ``None`` outputs are dropped: a step adds fields and never clears one.
    Unknown field names and wrongly shaped values raise ``ContextShapeError``.
    """
    data = _fields(context)
    data.update({name: value for name, value in outputs.items() if value is not None})
    return validate_context(data, label)


def seal_context(data: PipelineContext | Mapping[str, Any], label: str | None = None) -> Trusted[PipelineContext]:
    if isinstance(data, PipelineContext):
        data = _fields(data)
    return seal(PipelineContext, data, label)


__all__ = [
    "PipelineContext",
    "CONTEXT_FIELDS",
    "validate_context",
    "merge_outputs",
    "seal_context",
]

"""Step Types — static definition of one enrichment step.

Manifesto:
    A step is declared, not discovered: which context fields it needs,
    which it produces, which step must run before it and whether its
    failure is survivable. The executor and the failure classifier read
    this metadata; nothing infers it from handler code.

ARCHITECTURE
────────────
::

    StepSpec
      ├── name                ── "tokenize", "g2p", "phonetic", ...
      ├── requires            ── field names and AnyOf(...) groups
      ├── produces            ── fields the handler writes
      ├── depends_on          ── hard dependencies (injected when missing)
      ├── tolerable           ── failure does not abort the batch
      ├── handler             ── async (context, target) → {field: value}
      └── timeout_seconds     ── per-step deadline (None = executor default)

    EnrichmentTarget  ── V1 (normalized), V2 (pos + English), V3 (label)

Related modules:
    workflow.py       — Workflow that orders the steps
    executor.py       — runs them
    step_result.py    — outcome of one run

Tags:
    lexispine, orchestration, step-types, dependencies

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from lexispine.records.sense import SchemaVersion

if TYPE_CHECKING:
    from lexispine.orchestration.context import PipelineContext

# Canonical step names
TOKENIZE = "tokenize"
G2P = "g2p"
PHONETIC = "phonetic"
DICTIONARY_LOOKUP = "dictionary-lookup"
NORMALIZE = "normalize"

CANONICAL_ORDER: tuple[str, ...] = (TOKENIZE, G2P, PHONETIC, DICTIONARY_LOOKUP, NORMALIZE)


class EnrichmentTarget(str, Enum):
    """Completeness level a run should reach."""

    V1 = "v1"  # Word has a reading, every sense normalized
    V2 = "v2"  # + parts of speech and English definition
    V3 = "v3"  # + single-word English label

    @property
    def schema_version(self) -> SchemaVersion:
        return SchemaVersion(self.value)

    @property
    def rank(self) -> int:
        return self.schema_version.rank


StepHandler = Callable[["PipelineContext", EnrichmentTarget], Awaitable[Mapping[str, Any]]]


@dataclass(frozen=True)
class AnyOf:
    """Requirement satisfied by any one of ``fields``."""

    fields: tuple[str, ...]

    def __post_init__(self):
        if not self.fields:
            raise ValueError("AnyOf needs at least one field")

    def __str__(self) -> str:
        return " | ".join(self.fields)


Requirement = str | AnyOf


def is_present(value: Any) -> bool:
    """A context field counts as present when it carries data."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    return True


@dataclass(frozen=True)
class StepSpec:
    """One named step of an enrichment workflow."""

    name: str
    handler: StepHandler
    requires: tuple[Requirement, ...] = ()
    produces: tuple[str, ...] = ()
    depends_on: tuple[str, ...] = ()
    tolerable: bool = False
    description: str = ""
    timeout_seconds: float | None = None
    config: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Step name is required")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError(f"Step '{self.name}' timeout must be positive")

    def required_fields(self) -> set[str]:
        names: set[str] = set()
        for requirement in self.requires:
            if isinstance(requirement, AnyOf):
                names.update(requirement.fields)
            else:
                names.add(requirement)
        return names

    def missing(self, context: PipelineContext | Mapping[str, Any]) -> list[str]:
        """Unsatisfied requirements, rendered as field names or ``a | b`` groups."""
        get = context.get if isinstance(context, Mapping) else (lambda name: getattr(context, name, None))
        missing: list[str] = []
        for requirement in self.requires:
            if isinstance(requirement, AnyOf):
                if not any(is_present(get(name)) for name in requirement.fields):
                    missing.append(str(requirement))
            elif not is_present(get(requirement)):
                missing.append(requirement)
        return missing

    def outputs_present(self, context: PipelineContext) -> bool:
        """True when every field this step produces is already in ``context``."""
        return all(is_present(getattr(context, name, None)) for name in self.produces)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "requires": [str(r) for r in self.requires],
            "produces": list(self.produces),
            "depends_on": list(self.depends_on),
            "tolerable": self.tolerable,
            "description": self.description,
            "timeout_seconds": self.timeout_seconds,
        }

    def __repr__(self) -> str:
        flag = ", tolerable" if self.tolerable else ""
        return f"StepSpec({self.name!r}{flag})"


__all__ = [
    "TOKENIZE",
    "G2P",
    "PHONETIC",
    "DICTIONARY_LOOKUP",
    "NORMALIZE",
    "CANONICAL_ORDER",
    "EnrichmentTarget",
    "StepHandler",
    "AnyOf",
    "Requirement",
    "is_present",
    "StepSpec",
]

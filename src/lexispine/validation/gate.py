"""Validation gate: the single choke point for data crossing a boundary.

Manifesto:
    Rows from the datastore and answers from oracles are untrusted until
    parsed. The gate parses or throws, with zero silent fallback, and keeps
    the two failure kinds apart: ``StructuralValidationError`` for
    malformed data, ``CompletenessViolation`` for well-formed data that is
    not done yet. Callers and tests depend on telling them apart.

ARCHITECTURE
────────────
::

    enforce(schema, data)                    → value | StructuralValidationError
    enforce_layered(base, contract, data)    → value | Structural… | CompletenessViolation
    validate(schema, data)                   → ContractResult   (never raises)

    seal_word / seal_sense / seal_subtitle   → Trusted[T]
      Trusted(...) refuses construction without the gate's private key;
      the record store only accepts Trusted values.

Example::

    word = enforce(Word, row, label="words_th")
    complete = enforce_layered(Word, CompleteWord, row)
    trusted = seal_word({"word_th": "บ้าน", "g2p": "baan4"})
    await store.upsert_word(trusted)

Tags:
    lexispine, validation, gate, sealed-constructor, pydantic

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from lexispine.contracts.completeness import CompleteWord, Contract
from lexispine.contracts.issues import ContractResult, issues_from_validation_error
from lexispine.core.errors import CompletenessViolation, StructuralValidationError
from lexispine.records.sense import SenseV1, load_sense
from lexispine.records.subtitle import Subtitle
from lexispine.records.word import Word

T = TypeVar("T")

Schema = type[BaseModel] | Callable[[Any], Any] | Contract[Any]


def _parser(schema: Schema) -> Callable[[Any], Any]:
    if isinstance(schema, Contract):
        return schema.parse
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        return schema.model_validate
    return schema


def _schema_name(schema: Schema) -> str:
    if isinstance(schema, Contract):
        return schema.name
    return getattr(schema, "__name__", type(schema).__name__)


def enforce(schema: Schema, data: Any, label: str | None = None) -> Any:
    """Parse ``data`` with ``schema`` or raise ``StructuralValidationError``."""
    try:
        return _parser(schema)(data)
    except ValidationError as exc:
        raise StructuralValidationError(
            f"{_schema_name(schema)} validation failed",
            issues=issues_from_validation_error(exc),
            label=label,
            cause=exc,
        ) from exc


def enforce_layered(
    base: Schema,
    contract: Contract[Any],
    data: Any,
    label: str | None = None,
) -> Any:
    """Structural parse first, then the contract's business rules.

    Raises:
        StructuralValidationError: ``base`` rejected the data
        CompletenessViolation: the data is well-formed but fails ``contract``
    """
    value = enforce(base, data, label)
    result = contract.check(value)
    if result.structural:
        raise StructuralValidationError(
            f"{contract.name} validation failed", issues=result.issues, label=label
        )
    if not result.passed:
        raise CompletenessViolation(f"{contract.name} not satisfied", issues=result.issues, label=label)
    return result.value


def enforce_all(schema: Schema, rows: Sequence[Any], label: str | None = None) -> list[Any]:
    """``enforce`` over a list; issue paths are indexed (``[2].source``)."""
    parsed = []
    for index, row in enumerate(rows):
        try:
            parsed.append(enforce(schema, row))
        except StructuralValidationError as exc:
            prefix = f"{label}[{index}]" if label else f"[{index}]"
            raise StructuralValidationError(
                f"{_schema_name(schema)} validation failed",
                issues=[issue.under(prefix) for issue in exc.issues],
                label=label,
                cause=exc.cause,
            ) from exc
    return parsed


def validate(schema: Schema, data: Any) -> ContractResult[Any]:
    """Non-raising check for planners and UIs."""
    if isinstance(schema, Contract):
        return schema.check(data)
    try:
        return ContractResult.ok(_parser(schema)(data))
    except ValidationError as exc:
        return ContractResult.invalid(issues_from_validation_error(exc))


# =============================================================================
# Sealed constructors
# =============================================================================


_GATE_KEY = object()


class Trusted(Generic[T]):
    """A record that has passed the gate.

    Only the ``seal_*`` functions in this module can construct one.
    """

    __slots__ = ("_value",)

    def __init__(self, value: T, *, _key: object = None):
        if _key is not _GATE_KEY:
            raise TypeError("Trusted records can only be produced by the validation gate")
        self._value = value

    @property
    def value(self) -> T:
        return self._value

    def __repr__(self) -> str:
        return f"Trusted({self._value!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Trusted) and other._value == self._value

    def __hash__(self) -> int:
        return hash(self._value)


def seal(schema: Schema, data: Any, label: str | None = None) -> Trusted[Any]:
    return Trusted(enforce(schema, data, label), _key=_GATE_KEY)


def seal_word(data: Any, label: str | None = None) -> Trusted[Word]:
    return seal(Word, data, label)


def seal_complete_word(data: Any, label: str | None = None) -> Trusted[Word]:
    return Trusted(enforce_layered(Word, CompleteWord, data, label), _key=_GATE_KEY)


def seal_sense(data: Any, label: str | None = None) -> Trusted[SenseV1]:
    return seal(load_sense, data, label)


def seal_senses(rows: Sequence[Any], label: str | None = None) -> list[Trusted[SenseV1]]:
    return [Trusted(s, _key=_GATE_KEY) for s in enforce_all(load_sense, rows, label)]


def seal_subtitle(data: Any, label: str | None = None) -> Trusted[Subtitle]:
    return seal(Subtitle, data, label)


__all__ = [
    "Schema",
    "enforce",
    "enforce_layered",
    "enforce_all",
    "validate",
    "Trusted",
    "seal",
    "seal_word",
    "seal_complete_word",
    "seal_sense",
    "seal_senses",
    "seal_subtitle",
]

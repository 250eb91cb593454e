"""Shared building blocks for the record schemas.

Every persisted entity is a frozen pydantic model that forbids unknown
fields and runs in strict mode: a string never silently becomes a number,
with two deliberate exceptions (identifiers and numeric offsets, which
accept the integer and decimal spellings a datastore may hand back).

Tags:
    lexispine, records, pydantic, strict

Doc-Types:
    api-reference
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict

RAW_SOURCE_MARKERS: tuple[str, ...] = ("orst", "ORST")
NORMALIZED_SOURCE = "gpt-normalized"
GENERATED_SOURCE = "gpt"

_DIGITS = re.compile(r"^\d+$")


class RecordModel(BaseModel):
    """Base for every record schema: strict, closed and immutable."""

    model_config = ConfigDict(extra="forbid", frozen=True, strict=True)

    def to_row(self) -> dict[str, Any]:
        """Plain dict suitable for persistence (``None`` fields kept)."""
        return self.model_dump()


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be empty or only whitespace")
    return value


def _trimmed(value: str) -> str:
    if value != value.strip():
        raise ValueError("must not have leading or trailing whitespace")
    return value


def _coerce_identifier(value: Any) -> Any:
    # bool is an int subclass; True is never a valid identifier
    if isinstance(value, bool):
        raise ValueError("identifier must be an integer, not a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _DIGITS.match(value.strip()):
        return int(value.strip())
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, Decimal) and value.is_finite() and value == value.to_integral_value():
        return int(value)
    raise ValueError(f"identifier must be a non-negative integer, got {value!r}")


def _non_negative(value: int) -> int:
    if value < 0:
        raise ValueError("identifier must be non-negative")
    return value


def _coerce_number(value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError("must be a number, not a boolean")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            raise ValueError(f"must be numeric, got {value!r}") from None
    return value


NonBlankStr = Annotated[str, AfterValidator(_not_blank)]
TrimmedStr = Annotated[str, AfterValidator(_not_blank), AfterValidator(_trimmed)]
Identifier = Annotated[int, BeforeValidator(_coerce_identifier), AfterValidator(_non_negative)]
Seconds = Annotated[float, BeforeValidator(_coerce_number)]


def is_blank(value: str | None) -> bool:
    """True for ``None``, empty and whitespace-only strings."""
    return value is None or not value.strip()


__all__ = [
    "RAW_SOURCE_MARKERS",
    "NORMALIZED_SOURCE",
    "GENERATED_SOURCE",
    "RecordModel",
    "NonBlankStr",
    "TrimmedStr",
    "Identifier",
    "Seconds",
    "is_blank",
]

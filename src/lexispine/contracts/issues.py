"""Structured validation issues shared by contracts, the gate and the UI.

One ``IntegrityIssue`` per violated field: where (bracket path), what
happened, whether the field was there at all, what was expected and what
was found. Callers branch on ``kind`` and ``field``; nothing parses the
message text.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import ValidationError

T = TypeVar("T")


class IssueKind(str, Enum):
    """Why a field was rejected."""

    STRUCTURAL = "structural"  # Wrong type, out of range, unknown field
    MISSING = "missing"  # Required field absent
    BUSINESS_RULE = "business_rule"  # Well-formed but not complete


_EXPECTED = {
    "missing": "a value",
    "extra_forbidden": "no such field",
    "string_type": "a string",
    "int_type": "an integer",
    "float_type": "a number",
    "datetime_type": "an ISO-8601 datetime",
    "datetime_parsing": "an ISO-8601 datetime",
    "datetime_from_date_parsing": "an ISO-8601 datetime",
    "list_type": "a list",
    "model_type": "an object",
    "dict_type": "an object",
    "too_short": "a non-empty list",
    "greater_than_equal": "a value >= {ge}",
    "less_than": "a value < {lt}",
}


def format_path(loc: Iterable[str | int]) -> str:
    """``("senses", 0, "source")`` → ``senses[0].source``."""
    out = ""
    for part in loc:
        if isinstance(part, int):
            out += f"[{part}]"
        elif out:
            out += f".{part}"
        else:
            out = str(part)
    return out or "(root)"


def join_path(prefix: str, path: str) -> str:
    if not prefix:
        return path
    if path == "(root)":
        return prefix
    if path.startswith("["):
        return prefix + path
    return f"{prefix}.{path}"


@dataclass(frozen=True)
class IntegrityIssue:
    """One violated field.

    Attributes:
        field: Bracket path to the field (``senses[1].source``)
        message: Human-readable explanation
        kind: Structural, missing or business rule
        present: Whether the field exists in the data
        expected: What was expected
        actual: What was found, when present
    """

    field: str
    message: str
    kind: IssueKind
    present: bool = True
    expected: str = ""
    actual: Any = None

    @property
    def is_structural(self) -> bool:
        return self.kind is not IssueKind.BUSINESS_RULE

    def under(self, prefix: str) -> IntegrityIssue:
        """Same issue, re-rooted below ``prefix``."""
        return IntegrityIssue(
            field=join_path(prefix, self.field),
            message=self.message,
            kind=self.kind,
            present=self.present,
            expected=self.expected,
            actual=self.actual,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "field": self.field,
            "message": self.message,
            "kind": self.kind.value,
            "present": self.present,
            "expected": self.expected,
        }
        if self.present:
            result["actual"] = repr(self.actual)
        return result

    @classmethod
    def business_rule(
        cls,
        field: str,
        message: str,
        *,
        expected: str,
        actual: Any = None,
    ) -> IntegrityIssue:
        return cls(
            field=field,
            message=message,
            kind=IssueKind.BUSINESS_RULE,
            present=actual is not None,
            expected=expected,
            actual=actual,
        )


def issues_from_validation_error(error: ValidationError) -> list[IntegrityIssue]:
    """Translate pydantic errors into one ``IntegrityIssue`` per location."""
    issues: list[IntegrityIssue] = []
    for detail in error.errors(include_url=False):
        error_type = detail["type"]
        missing = error_type == "missing"
        message = detail["msg"].removeprefix("Value error, ")
        template = _EXPECTED.get(error_type)
        if template is None:
            expected = message
        else:
            try:
                expected = template.format(**detail.get("ctx", {}))
            except (KeyError, IndexError):
                expected = template
        issues.append(
            IntegrityIssue(
                field=format_path(detail["loc"]),
                message=message,
                kind=IssueKind.MISSING if missing else IssueKind.STRUCTURAL,
                present=not missing,
                expected=expected,
                actual=None if missing else detail.get("input"),
            )
        )
    return issues


@dataclass(frozen=True)
class ContractResult(Generic[T]):
    """Outcome of one contract check.

    ``structural`` is True when the base schema rejected the data: the
    record is invalid, not merely incomplete. ``value`` holds the parsed
    record whenever the base schema passed.
    """

    passed: bool
    issues: tuple[IntegrityIssue, ...] = field(default_factory=tuple)
    value: T | None = None

    @property
    def structural(self) -> bool:
        return any(issue.is_structural for issue in self.issues)

    @property
    def incomplete(self) -> bool:
        return not self.passed and not self.structural

    @property
    def fields(self) -> list[str]:
        return [issue.field for issue in self.issues]

    @classmethod
    def ok(cls, value: T) -> ContractResult[T]:
        return cls(passed=True, value=value)

    @classmethod
    def invalid(cls, issues: Sequence[IntegrityIssue]) -> ContractResult[T]:
        return cls(passed=False, issues=tuple(issues))

    @classmethod
    def unmet(cls, value: T, issues: Sequence[IntegrityIssue]) -> ContractResult[T]:
        return cls(passed=False, issues=tuple(issues), value=value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "structural": self.structural,
            "errors": [issue.to_dict() for issue in self.issues],
        }


__all__ = [
    "IssueKind",
    "IntegrityIssue",
    "ContractResult",
    "format_path",
    "join_path",
    "issues_from_validation_error",
]

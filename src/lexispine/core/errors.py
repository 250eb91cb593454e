"""
Structured error types for lexispine.

Every failure the enrichment engine can raise is a ``LexiError``. The
hierarchy keeps the three error kinds of the engine apart so callers can
branch on type instead of parsing messages:

- **Structural:** data does not match a record schema. Always fatal.
- **Completeness:** data is well-formed but not yet done. A scheduling
  signal, raised only when a caller explicitly demands completeness.
- **Oracle:** an external call failed. Tolerable or fatal depending on the
  step that made the call.

Manifesto:
    - **Typed Error Hierarchy:** malformed and incomplete never share a class
    - **Explicit Retry Semantics:** each error knows if it is retryable
    - **Rich Context:** errors carry batch, token and step for logs
    - **Error Chaining:** the underlying exception survives as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                          LexiError                               │
        │  (category, retryable, context, cause)                           │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  StructuralValidationError   CompletenessViolation               │
        │  (STRUCTURAL, issues)        (COMPLETENESS, issues)              │
        │       │                                                          │
        │  ContextShapeError                                               │
        │                                                                  │
        │  OracleError                 OrchestrationError                  │
        │  (ORACLE)                    (ORCHESTRATION)                     │
        │       │                           │                              │
        │  OracleUnavailableError      WorkflowDefinitionError             │
        │    OracleTimeoutError        StepDependencyError                 │
        │  OracleResponseError         BatchAbortedError                   │
        │    SenseCountMismatchError   BatchCancelledError                 │
        │                                                                  │
        │  StorageError                ConfigError                         │
        │  (STORAGE)                   (CONFIG)                            │
        │       │                                                          │
        │  ReadBackMismatchError                                           │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = OracleUnavailableError("dictionary offline")
    >>> error.retryable
    True
    >>> error.with_context(step="dictionary-lookup", token="บ้าน").context.step
    'dictionary-lookup'

Tags:
    error-handling, exception-hierarchy, validation, oracle, lexispine

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from lexispine.contracts.issues import IntegrityIssue


class ErrorCategory(str, Enum):
    """
    Error categories for routing, logging and abort decisions.

    STRUCTURAL and COMPLETENESS are the two validation outcomes and must
    stay distinct. ORACLE covers every external call.
    """

    STRUCTURAL = "STRUCTURAL"  # Record schema violation
    COMPLETENESS = "COMPLETENESS"  # Contract not yet satisfied
    ORACLE = "ORACLE"  # Tokenizer, G2P, dictionary, language model
    ORCHESTRATION = "ORCHESTRATION"  # Workflow graph, executor, batch
    STORAGE = "STORAGE"  # Record store read/write
    CONFIG = "CONFIG"  # Invalid settings
    INTERNAL = "INTERNAL"  # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"  # Uncategorized errors


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Typed fields for the identifiers every log line in a batch carries;
    anything else goes into ``metadata``.

    Attributes:
        workflow: Name of the workflow
        step: Name of the step that failed
        run_id: Executor run identifier
        batch_id: Batch run identifier
        token: Token (word text) being processed
        record_id: Subtitle or sense identifier
        metadata: Additional key-value pairs
    """

    workflow: str | None = None
    step: str | None = None
    run_id: str | None = None
    batch_id: str | None = None
    token: str | None = None
    record_id: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["workflow", "step", "run_id", "batch_id", "token", "record_id"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class LexiError(Exception):
    """
    Base exception for all lexispine errors.

    Subclasses set ``default_category`` and ``default_retryable`` so that
    raising sites only pass a message and, where useful, a ``cause``.

    Examples:
        >>> error = LexiError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.to_dict()["retryable"]
        False
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> LexiError:
        """
        Add context to this error (fluent API).

        Usage:
            raise OracleResponseError("empty romanization").with_context(
                step="g2p", token="บ้าน"
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


def _render_issues(message: str, issues: Sequence[IntegrityIssue]) -> str:
    if not issues:
        return message
    details = "; ".join(f"{issue.field}: {issue.message}" for issue in issues)
    return f"{message}: {details}"


class StructuralValidationError(LexiError):
    """
    Data does not match a record schema.

    Raised by the validation gate. Never retryable and never repaired: a
    malformed record means a systemic bug upstream, so it unwinds to the
    batch boundary.

    Attributes:
        issues: One ``IntegrityIssue`` per violated field
        label: Optional description of where the data came from
    """

    default_category = ErrorCategory.STRUCTURAL
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        issues: Sequence[IntegrityIssue] = (),
        label: str | None = None,
        **kwargs: Any,
    ):
        self.issues = list(issues)
        self.label = label
        prefix = f"{label}: {message}" if label else message
        super().__init__(_render_issues(prefix, self.issues), **kwargs)

    @property
    def fields(self) -> list[str]:
        """Paths of every violated field."""
        return [issue.field for issue in self.issues]

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["issues"] = [issue.to_dict() for issue in self.issues]
        return result


class ContextShapeError(StructuralValidationError):
    """The pipeline context failed validation before or after a step."""

    pass


class CompletenessViolation(LexiError):
    """
    Data is well-formed but fails a completeness contract.

    Deliberately not a subclass of ``StructuralValidationError``: callers
    abort on the structural kind and schedule work on this one.
    """

    default_category = ErrorCategory.COMPLETENESS
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        issues: Sequence[IntegrityIssue] = (),
        label: str | None = None,
        **kwargs: Any,
    ):
        self.issues = list(issues)
        self.label = label
        prefix = f"{label}: {message}" if label else message
        super().__init__(_render_issues(prefix, self.issues), **kwargs)

    @property
    def fields(self) -> list[str]:
        """Paths of every violated field."""
        return [issue.field for issue in self.issues]

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["issues"] = [issue.to_dict() for issue in self.issues]
        return result


# =============================================================================
# ORACLE ERRORS
# =============================================================================


class OracleError(LexiError):
    """An external oracle call failed."""

    default_category = ErrorCategory.ORACLE
    default_retryable = False

    def __init__(self, message: str, *, oracle: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.oracle = oracle


class OracleUnavailableError(OracleError):
    """Network or availability failure. The only tolerable oracle failure kind."""

    default_retryable = True


class OracleTimeoutError(OracleUnavailableError):
    """An oracle call exceeded its deadline."""

    def __init__(
        self,
        message: str | None = None,
        *,
        timeout: float,
        elapsed: float | None = None,
        oracle: str | None = None,
        **kwargs: Any,
    ):
        self.timeout = timeout
        self.elapsed = elapsed
        name = oracle or "oracle call"
        super().__init__(
            message or f"{name} exceeded timeout of {timeout}s",
            oracle=oracle,
            **kwargs,
        )


class OracleResponseError(OracleError):
    """The oracle answered, but the answer is empty or malformed."""

    pass


class SenseCountMismatchError(OracleResponseError):
    """The normalizer returned a different number of senses than it was given."""

    def __init__(self, *, expected: int, actual: int, **kwargs: Any):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Oracle returned {actual} senses, expected {expected}", **kwargs)


# =============================================================================
# ORCHESTRATION ERRORS
# =============================================================================


class OrchestrationError(LexiError):
    """Workflow graph, executor or batch error."""

    default_category = ErrorCategory.ORCHESTRATION
    default_retryable = False


class WorkflowDefinitionError(OrchestrationError):
    """The workflow graph is invalid or a requested step is unknown."""

    pass


class StepDependencyError(OrchestrationError):
    """A step's required context fields are absent."""

    def __init__(self, step: str, missing: Sequence[str]):
        self.step = step
        self.missing = list(missing)
        super().__init__(f"Step '{step}' requires missing context field(s): {', '.join(self.missing)}")
        self.context.step = step


@dataclass(frozen=True)
class FatalStep:
    """One fatal step failure reported by a batch abort."""

    step: str
    message: str
    error: BaseException | None = None


class BatchAbortedError(OrchestrationError):
    """
    A fatal failure stopped the batch.

    Names every fatal step with its message and the record that caused it,
    so the operator knows where to resume.
    """

    def __init__(
        self,
        failures: Sequence[FatalStep],
        *,
        record: str | None = None,
        **kwargs: Any,
    ):
        self.failures = list(failures)
        self.record = record
        listed = "; ".join(f"{f.step}: {f.message}" for f in self.failures)
        where = f" while processing '{record}'" if record else ""
        cause = kwargs.pop("cause", None)
        if cause is None and self.failures:
            cause = self.failures[0].error
        super().__init__(f"Batch aborted{where}: {listed}", cause=cause, **kwargs)
        if record is not None:
            self.context.token = record

    @property
    def steps(self) -> list[str]:
        return [f.step for f in self.failures]


class BatchCancelledError(OrchestrationError):
    """The cancellation signal fired."""

    pass


# =============================================================================
# STORAGE / CONFIG ERRORS
# =============================================================================


class StorageError(LexiError):
    """Record store read/write error."""

    default_category = ErrorCategory.STORAGE
    default_retryable = False


class ReadBackMismatchError(StorageError):
    """Data read back after a write differs from what was written."""

    def __init__(self, entity: str, key: str, differences: Sequence[str]):
        self.entity = entity
        self.key = key
        self.differences = list(differences)
        super().__init__(f"Read-back mismatch for {entity} '{key}': {', '.join(self.differences)}")


class ConfigError(LexiError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: BaseException) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, LexiError):
        return error.retryable
    retryable_types = (
        ConnectionError,
        TimeoutError,
    )
    return isinstance(error, retryable_types)


def categorize_error(error: BaseException) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, LexiError):
        return error.category
    if isinstance(error, (ConnectionError, TimeoutError)):
        return ErrorCategory.ORACLE
    if isinstance(error, ValueError):
        return ErrorCategory.STRUCTURAL
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "LexiError",
    # Validation
    "StructuralValidationError",
    "ContextShapeError",
    "CompletenessViolation",
    # Oracle
    "OracleError",
    "OracleUnavailableError",
    "OracleTimeoutError",
    "OracleResponseError",
    "SenseCountMismatchError",
    # Orchestration
    "OrchestrationError",
    "WorkflowDefinitionError",
    "StepDependencyError",
    "FatalStep",
    "BatchAbortedError",
    "BatchCancelledError",
    # Storage / config
    "StorageError",
    "ReadBackMismatchError",
    "ConfigError",
    # Utilities
    "is_retryable",
    "categorize_error",
]

"""Core primitives: errors, logging, settings, events and identifiers."""

from lexispine.core.errors import (
    BatchAbortedError,
    BatchCancelledError,
    CompletenessViolation,
    ContextShapeError,
    ErrorCategory,
    ErrorContext,
    LexiError,
    OracleError,
    OracleResponseError,
    OracleTimeoutError,
    OracleUnavailableError,
    ReadBackMismatchError,
    SenseCountMismatchError,
    StepDependencyError,
    StructuralValidationError,
    WorkflowDefinitionError,
)
from lexispine.core.events import (
    Event,
    EventBus,
    InMemoryEventBus,
    NullEventBus,
    RecordingEventBus,
)
from lexispine.core.hashing import candidate_sense_ids, sense_id
from lexispine.core.logging import LogContext, configure_logging, get_logger
from lexispine.core.settings import LexiSettings, ReadBackPolicy, get_settings

__all__ = [
    "BatchAbortedError",
    "BatchCancelledError",
    "CompletenessViolation",
    "ContextShapeError",
    "ErrorCategory",
    "ErrorContext",
    "LexiError",
    "OracleError",
    "OracleResponseError",
    "OracleTimeoutError",
    "OracleUnavailableError",
    "ReadBackMismatchError",
    "SenseCountMismatchError",
    "StepDependencyError",
    "StructuralValidationError",
    "WorkflowDefinitionError",
    "Event",
    "EventBus",
    "InMemoryEventBus",
    "NullEventBus",
    "RecordingEventBus",
    "candidate_sense_ids",
    "sense_id",
    "LogContext",
    "configure_logging",
    "get_logger",
    "LexiSettings",
    "ReadBackPolicy",
    "get_settings",
]

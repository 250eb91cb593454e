"""Step Result — outcome of one step inside one executor run.

Never persisted. The executor produces one per step it attempted (or
deliberately skipped); the failure classifier partitions them.

Example::

    result = StepResult.fail("dictionary-lookup", exc, tolerable=True)
    assert not result.success and result.tolerable
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from lexispine.core.errors import categorize_error


@dataclass(frozen=True)
class StepResult:
    """
    Result from executing a workflow step.

    Attributes:
        step: Step name
        success: Whether the step completed
        error: The exception, when the step failed
        error_message: Human-readable error text
        tolerable: Failure does not abort the batch (from step metadata)
        duration_seconds: Wall time spent in the handler
        skipped_reason: Set when the step was deliberately not run
        produced: Context fields the step wrote
    """

    step: str
    success: bool
    error: BaseException | None = None
    error_message: str | None = None
    tolerable: bool = False
    duration_seconds: float = 0.0
    skipped_reason: str | None = None
    produced: tuple[str, ...] = ()

    def __post_init__(self):
        if not self.success and self.skipped_reason is None and not self.error_message:
            object.__setattr__(
                self,
                "error_message",
                str(self.error) if self.error is not None else "Step failed without error message",
            )

    # =========================================================================
    # Factories
    # =========================================================================

    @classmethod
    def ok(
        cls,
        step: str,
        produced: tuple[str, ...] = (),
        duration_seconds: float = 0.0,
    ) -> StepResult:
        return cls(step=step, success=True, produced=produced, duration_seconds=duration_seconds)

    @classmethod
    def fail(
        cls,
        step: str,
        error: BaseException | str,
        *,
        tolerable: bool = False,
        duration_seconds: float = 0.0,
    ) -> StepResult:
        if isinstance(error, BaseException):
            return cls(
                step=step,
                success=False,
                error=error,
                error_message=str(error) or type(error).__name__,
                tolerable=tolerable,
                duration_seconds=duration_seconds,
            )
        return cls(
            step=step,
            success=False,
            error_message=error,
            tolerable=tolerable,
            duration_seconds=duration_seconds,
        )

    @classmethod
    def skip(cls, step: str, reason: str) -> StepResult:
        """A step that was planned but deliberately not run."""
        return cls(step=step, success=False, tolerable=True, skipped_reason=reason)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None

    @property
    def failed(self) -> bool:
        return not self.success and not self.skipped

    @property
    def fatal(self) -> bool:
        return self.failed and not self.tolerable

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "step": self.step,
            "success": self.success,
            "tolerable": self.tolerable,
            "duration_seconds": self.duration_seconds,
        }
        if self.error_message:
            result["error"] = self.error_message
        if self.error is not None:
            result["error_category"] = categorize_error(self.error).value
        if self.skipped_reason:
            result["skipped_reason"] = self.skipped_reason
        if self.produced:
            result["produced"] = list(self.produced)
        return result


__all__ = ["StepResult"]

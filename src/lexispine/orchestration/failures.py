"""Failure Classifier — continue or abort after an executor run.

Tolerable failures are logged and left for the caller to compensate (the
record is *not* processed); any fatal failure aborts the whole batch with
a ``BatchAbortedError`` naming every fatal step and its message.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from lexispine.core.errors import BatchAbortedError, FatalStep
from lexispine.core.logging import get_logger
from lexispine.orchestration.step_result import StepResult
from lexispine.orchestration.workflow import Workflow

logger = get_logger(__name__)


@dataclass(frozen=True)
class FailureReport:
    """Failed step results split by severity."""

    tolerable: list[StepResult] = field(default_factory=list)
    fatal: list[StepResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.fatal

    @property
    def clean(self) -> bool:
        return not self.fatal and not self.tolerable

    def tolerated(self, step: str) -> bool:
        return any(r.step == step for r in self.tolerable)


class FailureClassifier:
    """Partitions step results using the workflow's tolerance metadata."""

    def __init__(self, workflow: Workflow):
        self.workflow = workflow

    def classify(self, results: Sequence[StepResult], record: str | None = None) -> FailureReport:
        """
        Split failures into tolerable and fatal.

        A failure is tolerable only when the step is marked tolerable in
        the workflow *and* the executor judged the error survivable.
        Skipped steps are not failures.
        """
        report = FailureReport()
        for result in results:
            if not result.failed:
                continue
            step = self.workflow.get_step(result.step)
            if step is not None and step.tolerable and result.tolerable:
                report.tolerable.append(result)
                logger.warning(
                    "step.tolerated",
                    step=result.step,
                    record=record,
                    error=result.error_message,
                )
            else:
                report.fatal.append(result)
        return report

    def raise_for_fatal(self, results: Sequence[StepResult], record: str | None = None) -> FailureReport:
        """Classify, raising ``BatchAbortedError`` if anything is fatal.

        Returns:
            The report, when every failure is tolerable
        """
        report = self.classify(results, record)
        if report.fatal:
            failures = [
                FatalStep(step=r.step, message=r.error_message or "unknown error", error=r.error)
                for r in report.fatal
            ]
            logger.error(
                "batch.fatal_step",
                record=record,
                steps=[f.step for f in failures],
                errors=[f.message for f in failures],
            )
            raise BatchAbortedError(failures, record=record)
        return report


__all__ = ["FailureReport", "FailureClassifier"]

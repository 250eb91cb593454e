"""Step Executor — runs a requested subset of workflow steps.

Manifesto:
    The caller says *which* steps; the workflow says *in what order* and
    *what else must run first*. The executor threads one context through
    the steps, validating it before and after each step, and never lets a
    step mutate it in place. A malformed context is a programming error
    and always aborts; an oracle outage on a tolerable step is recorded
    and execution continues.

ARCHITECTURE
────────────
::

    execute(context, requested, target)
      1. validate context                       ── ContextShapeError
      2. order requested names by the graph     ── WorkflowDefinitionError
      3. inject missing hard dependencies       ── step.injected
      4. for each step:
           cancellation check                   ── BatchCancelledError
           pre-validate, required fields        ── StepDependencyError
           await handler (with timeout)
           merge outputs → new context          ── ContextShapeError
           tolerable failure → record, continue
           fatal failure     → record, stop
      5. ExecutionResult(results, context)

    Raised immediately (never recorded): context shape errors, structural
    validation errors from the gate, missing dependencies, cancellation.

Example::

    executor = StepExecutor(workflow, events=bus)
    result = await executor.execute(PipelineContext(word_th="บ้าน"), ["phonetic"])
    assert [r.step for r in result.results] == ["g2p", "phonetic"]

Tags:
    lexispine, orchestration, executor, validation, dependency-injection

Doc-Types:
    api-reference
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from lexispine.core.errors import (
    BatchCancelledError,
    ContextShapeError,
    StepDependencyError,
    StructuralValidationError,
    is_retryable,
)
from lexispine.core.events import EventBus, NullEventBus, emit
from lexispine.core.logging import get_logger
from lexispine.oracles.timeout import call_with_timeout
from lexispine.orchestration.cancellation import CancellationToken
from lexispine.orchestration.context import PipelineContext, merge_outputs, validate_context
from lexispine.orchestration.step_result import StepResult
from lexispine.orchestration.step_types import EnrichmentTarget, StepSpec
from lexispine.orchestration.workflow import Workflow

logger = get_logger(__name__)

# Raised straight through; never turned into a StepResult
_ALWAYS_RAISE = (StructuralValidationError, StepDependencyError, BatchCancelledError)


@dataclass
class ExecutionResult:
    """Ordered step results plus the final context."""

    results: list[StepResult]
    context: PipelineContext
    injected: list[str] = field(default_factory=list)

    @property
    def aborted(self) -> bool:
        return any(r.fatal for r in self.results)

    @property
    def failed_steps(self) -> list[str]:
        return [r.step for r in self.results if r.failed]

    def result_for(self, step: str) -> StepResult | None:
        for result in self.results:
            if result.step == step:
                return result
        return None

    def succeeded(self, step: str) -> bool:
        result = self.result_for(step)
        return result is not None and result.success


def is_tolerable_failure(step: StepSpec, error: BaseException) -> bool:
    """Only availability failures (network, timeout) of a tolerable step are survivable.

    A malformed answer is an ``OracleResponseError`` and stays fatal.
    """
    return step.tolerable and is_retryable(error)


class StepExecutor:
    """Runs workflow steps against a pipeline context."""

    def __init__(
        self,
        workflow: Workflow,
        events: EventBus | None = None,
        cancellation: CancellationToken | None = None,
        default_timeout: float | None = None,
    ):
        self.workflow = workflow
        self.events = events or NullEventBus()
        self.cancellation = cancellation
        self.default_timeout = default_timeout

    def resolve(self, requested: Iterable[str], context: PipelineContext) -> tuple[list[str], list[str]]:
        """Graph-ordered step names, with hard dependencies injected.

        A dependency is injected when it was not requested and the context
        lacks what it produces.

        Returns:
            ``(ordered, injected)``
        """
        wanted = self.workflow.order(requested)
        injected: list[str] = []
        pending = list(wanted)
        while pending:
            step = self.workflow.require_step(pending.pop())
            for dep_name in step.depends_on:
                if dep_name in wanted or dep_name in injected:
                    continue
                dep = self.workflow.require_step(dep_name)
                if not dep.outputs_present(context):
                    injected.append(dep_name)
                    pending.append(dep_name)
        return self.workflow.order(wanted + injected), injected

    async def execute(
        self,
        context: PipelineContext | Mapping[str, Any],
        requested: Iterable[str],
        target: EnrichmentTarget = EnrichmentTarget.V1,
        correlation_id: str | None = None,
    ) -> ExecutionResult:
        """Run ``requested`` steps (plus injected dependencies) in graph order.

        Args:
            context: Starting context (validated first)
            requested: Step names, any order
            target: Completeness level handed to each handler
            correlation_id: Ties emitted events to a batch

        Raises:
            ContextShapeError: The context is malformed before or after a step
            StructuralValidationError: A handler's data failed the gate
            StepDependencyError: A step's required fields are absent
            BatchCancelledError: The cancellation token fired
            WorkflowDefinitionError: A requested step does not exist
        """
        current = validate_context(context, label=f"{self.workflow.name}:input")
        ordered, injected = self.resolve(requested, current)

        for name in injected:
            dependent = next(
                s for s in ordered if name in self.workflow.require_step(s).depends_on
            )
            logger.debug("step.injected", workflow=self.workflow.name, step=name, required_by=dependent)
            await emit(
                self.events,
                "step.injected",
                "executor",
                correlation_id,
                step=name,
                required_by=dependent,
                word_th=current.word_th,
            )

        logger.debug(
            "executor.start",
            workflow=self.workflow.name,
            steps=ordered,
            target=target.value,
            word_th=current.word_th,
        )

        results: list[StepResult] = []
        for name in ordered:
            step = self.workflow.require_step(name)
            if self.cancellation is not None:
                self.cancellation.raise_if_cancelled(f"step '{name}'")

            result, current = await self._run_step(step, current, target, correlation_id)
            results.append(result)
            if result.fatal:
                break

        return ExecutionResult(results=results, context=current, injected=injected)

    async def _run_step(
        self,
        step: StepSpec,
        context: PipelineContext,
        target: EnrichmentTarget,
        correlation_id: str | None,
    ) -> tuple[StepResult, PipelineContext]:
        context = validate_context(context, label=f"{step.name}:pre")
        missing = step.missing(context)
        if missing:
            raise StepDependencyError(step.name, missing)

        await emit(self.events, "step.started", "executor", correlation_id, step=step.name, word_th=context.word_th)
        timeout = step.timeout_seconds or self.default_timeout
        started = time.monotonic()
        try:
            outputs = await call_with_timeout(step.handler(context, target), timeout, oracle=step.name)
        except _ALWAYS_RAISE:
            raise
        except Exception as exc:
            duration = time.monotonic() - started
            tolerable = is_tolerable_failure(step, exc)
            result = StepResult.fail(step.name, exc, tolerable=tolerable, duration_seconds=duration)
            log = logger.warning if tolerable else logger.error
            log(
                "step.failed",
                workflow=self.workflow.name,
                step=step.name,
                tolerable=tolerable,
                error=result.error_message,
                error_type=type(exc).__name__,
            )
            await emit(
                self.events,
                "step.failed",
                "executor",
                correlation_id,
                step=step.name,
                tolerable=tolerable,
                error=result.error_message,
                word_th=context.word_th,
            )
            return result, context

        unknown = set(outputs) - set(step.produces)
        if unknown:
            raise ContextShapeError(
                f"Step '{step.name}' wrote undeclared field(s): {', '.join(sorted(unknown))}",
                label=step.name,
            )
        merged = merge_outputs(context, outputs, label=f"{step.name}:post")
        duration = time.monotonic() - started
        produced = tuple(name for name in step.produces if outputs.get(name) is not None)

        logger.debug(
            "step.complete",
            workflow=self.workflow.name,
            step=step.name,
            produced=list(produced),
            duration_seconds=duration,
        )
        await emit(
            self.events,
            "step.completed",
            "executor",
            correlation_id,
            step=step.name,
            produced=list(produced),
            duration_seconds=duration,
            word_th=context.word_th,
        )
        return StepResult.ok(step.name, produced=produced, duration_seconds=duration), merged


__all__ = ["ExecutionResult", "StepExecutor", "is_tolerable_failure"]

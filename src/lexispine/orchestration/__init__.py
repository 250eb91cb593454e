"""
Lexispine Orchestration — the schema-gated incremental workflow engine.

ARCHITECTURE
────────────
::

    Workflow (DAG of StepSpecs)          ─ tokenize → g2p → phonetic
                                           → dictionary-lookup → normalize
    SkipPlanner                          ─ persisted state → minimal steps
    StepExecutor                         ─ runs steps, validates context
    FailureClassifier                    ─ tolerable vs fatal
    BatchRunner                          ─ episode loop, compensation,
                                           persist + read-back
    PipelineContext                      ─ immutable context flowing step-to-step
    StepResult                           ─ ok / fail / skip
    CancellationToken                    ─ cooperative stop signal

MODULE MAP (recommended reading order)
──────────────────────────────────────
1. step_types.py     ─ StepSpec, EnrichmentTarget, canonical step names
2. step_result.py    ─ StepResult
3. context.py        ─ PipelineContext, merge_outputs
4. workflow.py       ─ Workflow + build_enrichment_workflow
5. executor.py       ─ StepExecutor
6. planner.py        ─ SkipPlanner
7. failures.py       ─ FailureClassifier
8. cancellation.py   ─ CancellationToken
9. batch.py          ─ BatchRunner

Example::

    from lexispine.orchestration import BatchRunner, StepExecutor, build_enrichment_workflow

    workflow = build_enrichment_workflow(oracles)
    runner = BatchRunner(store, StepExecutor(workflow))
    summary = await runner.run_episode("show-s01e01")
"""

from lexispine.orchestration.batch import (
    BatchRunner,
    BatchSummary,
    TokenOutcome,
    TokenResult,
    hints_for_token,
)
from lexispine.orchestration.cancellation import CancellationToken
from lexispine.orchestration.context import (
    PipelineContext,
    merge_outputs,
    seal_context,
    validate_context,
)
from lexispine.orchestration.executor import ExecutionResult, StepExecutor
from lexispine.orchestration.failures import FailureClassifier, FailureReport
from lexispine.orchestration.planner import Plan, SkipPlanner
from lexispine.orchestration.step_result import StepResult
from lexispine.orchestration.step_types import (
    CANONICAL_ORDER,
    DICTIONARY_LOOKUP,
    G2P,
    NORMALIZE,
    PHONETIC,
    TOKENIZE,
    AnyOf,
    EnrichmentTarget,
    StepSpec,
)
from lexispine.orchestration.workflow import Workflow, build_enrichment_workflow

__all__ = [
    # Batch
    "BatchRunner",
    "BatchSummary",
    "TokenOutcome",
    "TokenResult",
    "hints_for_token",
    "CancellationToken",
    # Context
    "PipelineContext",
    "merge_outputs",
    "seal_context",
    "validate_context",
    # Execution
    "ExecutionResult",
    "StepExecutor",
    "FailureClassifier",
    "FailureReport",
    "Plan",
    "SkipPlanner",
    "StepResult",
    # Steps
    "CANONICAL_ORDER",
    "DICTIONARY_LOOKUP",
    "G2P",
    "NORMALIZE",
    "PHONETIC",
    "TOKENIZE",
    "AnyOf",
    "EnrichmentTarget",
    "StepSpec",
    "Workflow",
    "build_enrichment_workflow",
]

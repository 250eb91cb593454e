"""
Shared pytest fixtures for lexispine tests.

This module provides:
- Settings with pacing disabled and no environment leakage
- A recording event bus
- Scripted oracles sharing one fault plan
- The canonical workflow, executor, planner and batch runner

Usage:
    Fixtures are auto-discovered by pytest; request them as arguments.

    async def test_something(runner, store):
        ...
"""

from __future__ import annotations

from pathlib import Path

import pytest

from lexispine.core.events import RecordingEventBus
from lexispine.core.settings import LexiSettings
from lexispine.oracles.handlers import EnrichmentHandlers
from lexispine.oracles.protocols import OracleSuite
from lexispine.orchestration.batch import BatchRunner
from lexispine.orchestration.executor import StepExecutor
from lexispine.orchestration.failures import FailureClassifier
from lexispine.orchestration.planner import SkipPlanner
from lexispine.orchestration.workflow import Workflow, build_enrichment_workflow
from lexispine.store.memory import InMemoryRecordStore

from tests._support.fault_injection import FaultPlan
from tests._support.oracles import ScriptedDictionary, ScriptedGenerator, scripted_suite
from tests._support.rows import WORD


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark tests without explicit markers as unit tests."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)
        if "store" in str(test_path) and "sql" in item.name:
            item.add_marker(pytest.mark.integration)
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Core fixtures
# =============================================================================


@pytest.fixture
def settings() -> LexiSettings:
    return LexiSettings(
        _env_file=None,
        inter_token_delay_seconds=0,
        oracle_timeout_seconds=5,
        oracle_rate_per_second=1000,
        oracle_burst=1000,
    )


@pytest.fixture
def bus() -> RecordingEventBus:
    return RecordingEventBus()


@pytest.fixture
def faults() -> FaultPlan:
    return FaultPlan()


@pytest.fixture
def dictionary(faults: FaultPlan) -> ScriptedDictionary:
    return ScriptedDictionary(
        faults=faults,
        entries={WORD: [{"definition_th": " ที่อยู่อาศัย "}]},
    )


@pytest.fixture
def generator(faults: FaultPlan) -> ScriptedGenerator:
    return ScriptedGenerator(faults=faults)


@pytest.fixture
def oracles(faults: FaultPlan, dictionary: ScriptedDictionary, generator: ScriptedGenerator) -> OracleSuite:
    return scripted_suite(faults, dictionary=dictionary, generator=generator)


@pytest.fixture
def handlers(oracles: OracleSuite, settings: LexiSettings) -> EnrichmentHandlers:
    return EnrichmentHandlers(oracles, settings=settings)


@pytest.fixture
def workflow(oracles: OracleSuite, settings: LexiSettings) -> Workflow:
    return build_enrichment_workflow(oracles, settings=settings)


@pytest.fixture
def executor(workflow: Workflow, bus: RecordingEventBus) -> StepExecutor:
    return StepExecutor(workflow, events=bus)


@pytest.fixture
def planner() -> SkipPlanner:
    return SkipPlanner()


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def runner(
    store: InMemoryRecordStore,
    executor: StepExecutor,
    planner: SkipPlanner,
    settings: LexiSettings,
    bus: RecordingEventBus,
) -> BatchRunner:
    return BatchRunner(
        store,
        executor,
        planner=planner,
        classifier=FailureClassifier(executor.workflow),
        settings=settings,
        events=bus,
    )

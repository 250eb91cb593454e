"""Workflow — ordered enrichment steps with a dependency graph.

Manifesto:
    The workflow is the blueprint: it declares which steps exist, in what
    order they run and which ones may fail without stopping the batch. It
    never decides what a given record needs (the planner does) and never
    runs anything (the executor does). It is built once per process,
    validated once, and not mutated afterwards.

ARCHITECTURE
────────────
::

    Workflow(name, steps)
      ├── __post_init__  ── unique names, known deps, no self-deps, no cycles
      ├── order(names)   ── sort a requested subset into graph order
      ├── topological_order()
      ├── get_step(name) / step_index(name)
      └── is_tolerable(name)

    build_enrichment_workflow(oracles, settings)
      tokenize → g2p → phonetic(depends g2p) → dictionary-lookup(tolerable) → normalize

Example::

    workflow = build_enrichment_workflow(oracles, get_settings())
    workflow.order(["normalize", "g2p"])   # → ["g2p", "normalize"]

Tags:
    lexispine, orchestration, workflow, DAG, steps

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections import defaultdict, deque
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from lexispine.core.errors import WorkflowDefinitionError
from lexispine.orchestration.step_types import (
    DICTIONARY_LOOKUP,
    G2P,
    NORMALIZE,
    PHONETIC,
    TOKENIZE,
    AnyOf,
    StepSpec,
)

if TYPE_CHECKING:
    from lexispine.core.settings import LexiSettings
    from lexispine.oracles.protocols import OracleSuite
    from lexispine.oracles.rate_limit import AsyncTokenBucket


@dataclass(frozen=True)
class Workflow:
    """
    A named, ordered collection of steps.

    Attributes:
        name: Workflow name (used in logs and events)
        steps: Steps in execution order
        description: Human-readable description
    """

    name: str
    steps: tuple[StepSpec, ...]
    description: str = ""
    _index: dict[str, int] = field(default_factory=dict, init=False, repr=False, compare=False)
    _rank: dict[str, int] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "steps", tuple(self.steps))
        if not self.steps:
            raise WorkflowDefinitionError(f"Workflow '{self.name}' has no steps")
        self._validate_steps()
        self._validate_dependencies()
        self._validate_no_cycles()
        self._index.update({step.name: i for i, step in enumerate(self.steps)})
        self._rank.update({name: i for i, name in enumerate(self.topological_order())})

    def _validate_steps(self) -> None:
        """Validate step names are unique."""
        step_names: set[str] = set()
        for step in self.steps:
            if step.name in step_names:
                raise WorkflowDefinitionError(f"Duplicate step name: {step.name}")
            step_names.add(step.name)

    def _validate_dependencies(self) -> None:
        """Validate that all depends_on references point to existing steps."""
        step_names = {s.name for s in self.steps}
        for step in self.steps:
            for dep in step.depends_on:
                if dep == step.name:
                    raise WorkflowDefinitionError(f"Step '{step.name}' depends on itself")
                if dep not in step_names:
                    raise WorkflowDefinitionError(f"Step '{step.name}' depends on unknown step: '{dep}'")

    def _validate_no_cycles(self) -> None:
        """Validate the dependency graph has no cycles (Kahn's algorithm)."""
        if not any(step.depends_on for step in self.steps):
            return

        adjacency: dict[str, list[str]] = defaultdict(list)
        in_degree: dict[str, int] = {s.name: 0 for s in self.steps}
        for step in self.steps:
            for dep in step.depends_on:
                adjacency[dep].append(step.name)
                in_degree[step.name] += 1

        queue: deque[str] = deque(name for name, deg in in_degree.items() if deg == 0)
        visited = 0
        while queue:
            node = queue.popleft()
            visited += 1
            for neighbor in adjacency[node]:
                in_degree[neighbor] -= 1
                if in_degree[neighbor] == 0:
                    queue.append(neighbor)

        if visited != len(self.steps):
            cycle_nodes = [name for name, deg in in_degree.items() if deg > 0]
            raise WorkflowDefinitionError(f"Dependency cycle detected among steps: {cycle_nodes}")

    # =========================================================================
    # Queries
    # =========================================================================

    def topological_order(self) -> list[str]:
        """Step names respecting depends_on, ties broken by declaration order."""
        in_degree = {s.name: len(s.depends_on) for s in self.steps}
        dependents: dict[str, list[str]] = defaultdict(list)
        for step in self.steps:
            for dep in step.depends_on:
                dependents[dep].append(step.name)

        ready = [s.name for s in self.steps if in_degree[s.name] == 0]
        order: list[str] = []
        while ready:
            ready.sort(key=self.step_index)
            node = ready.pop(0)
            order.append(node)
            for child in dependents[node]:
                in_degree[child] -= 1
                if in_degree[child] == 0:
                    ready.append(child)
        return order

    def get_step(self, name: str) -> StepSpec | None:
        index = self._index.get(name)
        return None if index is None else self.steps[index]

    def require_step(self, name: str) -> StepSpec:
        step = self.get_step(name)
        if step is None:
            raise WorkflowDefinitionError(f"Unknown step '{name}' in workflow '{self.name}'")
        return step

    def step_names(self) -> list[str]:
        return [s.name for s in self.steps]

    def step_index(self, name: str) -> int:
        """Position of ``name``, or -1 if not found."""
        return self._index.get(name, -1)

    def order(self, names: Iterable[str]) -> list[str]:
        """Sort ``names`` into dependency order, dropping duplicates.

        Raises:
            WorkflowDefinitionError: A name is not a step of this workflow
        """
        unique = list(dict.fromkeys(names))
        for name in unique:
            self.require_step(name)
        return sorted(unique, key=self._rank.__getitem__)

    def is_tolerable(self, name: str) -> bool:
        return self.require_step(name).tolerable

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "steps": [s.to_dict() for s in self.steps],
        }

    def __repr__(self) -> str:
        return f"Workflow(name={self.name!r}, steps={self.step_names()})"


def build_enrichment_workflow(
    oracles: OracleSuite,
    settings: LexiSettings | None = None,
    limiter: AsyncTokenBucket | None = None,
    name: str = "thai.enrichment",
) -> Workflow:
    """The canonical five-step enrichment workflow bound to ``oracles``.

    Every step shares one limiter; without ``limiter`` it is built from ``settings``.
    """
    # Imported here: handlers depend on the orchestration package
    from lexispine.oracles.handlers import EnrichmentHandlers

    handlers = EnrichmentHandlers(oracles, settings=settings, limiter=limiter)
    return Workflow(
        name=name,
        description="Thai word enrichment: reading, dictionary senses, normalized senses",
        steps=(
            StepSpec(
                name=TOKENIZE,
                handler=handlers.tokenize,
                requires=("input_text",),
                produces=("tokens",),
                description="Split subtitle text into word tokens",
            ),
            StepSpec(
                name=G2P,
                handler=handlers.g2p,
                requires=("word_th",),
                produces=("g2p",),
                description="Romanize the word",
            ),
            StepSpec(
                name=PHONETIC,
                handler=handlers.phonetic,
                requires=("word_th", "g2p"),
                produces=("phonetic_en",),
                depends_on=(G2P,),
                description="Derive an English phonetic spelling from the romanization",
            ),
            StepSpec(
                name=DICTIONARY_LOOKUP,
                handler=handlers.dictionary_lookup,
                requires=("word_th",),
                produces=("raw_senses",),
                tolerable=True,
                description="Fetch raw dictionary senses; a missing entry is compensated later",
            ),
            StepSpec(
                name=NORMALIZE,
                handler=handlers.normalize,
                requires=("word_th", AnyOf(("raw_senses", "normalized_senses", "lm_senses"))),
                produces=("normalized_senses",),
                description="Normalize senses, enriching to V2/V3 when the target asks",
            ),
        ),
    )


__all__ = ["Workflow", "build_enrichment_workflow"]

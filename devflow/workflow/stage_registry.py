"""Centralized Stage Registry for the 4-step review workflow.

This module provides a single source of truth for stage metadata: ordering,
required artifacts and the quality-gate checklist of every stage.

Stages (one reviewed pull request each):
- TEST_STUBS: failing tests that pin down the expected behavior
- ARCHITECTURE: design document and diagrams, no code
- OBJECT_DESIGN: interfaces, types and signatures with stub bodies
- IMPLEMENTATION: the code that makes the test stubs pass
"""

from dataclasses import dataclass, field

from devflow.config import Stage
from devflow.workflow.errors import ImpossibleTransition


@dataclass(frozen=True)
class StageMetadata:
    """Immutable metadata for a workflow stage."""

    # Identifiers
    stage: Stage
    display_name: str  # e.g., "Test Stubs"
    display_index: int  # 1-based position shown in PR titles ("[1/4]")
    description: str

    # Artifacts a submission for this stage is expected to contain
    required_artifacts: tuple[str, ...] = ()

    # Ordered quality-gate checklist (condition ids from gate_conditions)
    conditions: tuple[str, ...] = ()

    # Whether a Simple feature may skip this stage
    skippable_when_simple: bool = False

    # Conventional-commit type for change-set titles, e.g. "test" in "test(feature): ..."
    change_set_prefix: str = ""

    labels: tuple[str, ...] = field(default_factory=tuple)

    @property
    def slug(self) -> str:
        return self.stage.value


# =============================================================================
# Stage Definitions - Single Source of Truth
# =============================================================================

_STAGES: list[StageMetadata] = [
    StageMetadata(
        stage=Stage.TEST_STUBS,
        display_name="Test Stubs",
        display_index=1,
        description=(
            "Write the tests first. Cover the happy path, edge cases and error "
            "handling. Every test must fail with a clear message because nothing "
            "is implemented yet."
        ),
        required_artifacts=("test files", "test run summary"),
        conditions=(
            "test-files-present",
            "test-categories-covered",
            "tests-fail-with-clear-messages",
            "no-implementation-code",
        ),
        change_set_prefix="test",
        labels=("tests",),
    ),
    StageMetadata(
        stage=Stage.ARCHITECTURE,
        display_name="Architecture",
        display_index=2,
        description=(
            "Describe the components, data flow and integration points. "
            "At least one diagram; no implementation code."
        ),
        required_artifacts=("design document", "diagram"),
        conditions=(
            "design-document-present",
            "diagram-present",
            "no-implementation-code",
        ),
        skippable_when_simple=True,
        change_set_prefix="docs",
        labels=("architecture",),
    ),
    StageMetadata(
        stage=Stage.OBJECT_DESIGN,
        display_name="Object Design",
        display_index=3,
        description=(
            "Define classes, interfaces and signatures with stub bodies. "
            "The type checker must pass and the test stubs must still collect."
        ),
        required_artifacts=("interface files", "type check summary", "test run summary"),
        conditions=(
            "interface-files-present",
            "type-check-clean",
            "tests-still-collect",
        ),
        skippable_when_simple=True,
        change_set_prefix="refactor",
        labels=("design",),
    ),
    StageMetadata(
        stage=Stage.IMPLEMENTATION,
        display_name="Implementation",
        display_index=4,
        description=(
            "Fill in the stub bodies until every test passes and the type checker is clean."
        ),
        required_artifacts=("implementation files", "test run summary", "type check summary"),
        conditions=(
            "implementation-files-present",
            "all-tests-pass",
            "type-check-clean",
        ),
        change_set_prefix="feat",
        labels=("implementation",),
    ),
]


# =============================================================================
# Stage Registry Class
# =============================================================================


class StageRegistry:
    """Lookup table for stage metadata.

    Pure lookup, no mutable state.

    Example:
        registry = get_stage_registry()
        registry.conditions_for(Stage.ARCHITECTURE)
        registry.next_stage(Stage.TEST_STUBS)  # Stage.ARCHITECTURE
    """

    def __init__(self, stages: list[StageMetadata] | None = None):
        """Initialize the registry.

        Args:
            stages: Optional custom stage list. Uses default if not provided.
        """
        self._stages = stages or _STAGES
        self._by_stage: dict[Stage, StageMetadata] = {s.stage: s for s in self._stages}
        self._order: list[Stage] = [s.stage for s in self._stages]

    # =========================================================================
    # Lookup Methods
    # =========================================================================

    def get(self, stage: Stage) -> StageMetadata:
        """Get stage metadata.

        Raises:
            ValueError: If the stage is not registered
        """
        if stage not in self._by_stage:
            raise ValueError(f"Unknown stage: {stage}. Valid stages: {Stage.values()}")
        return self._by_stage[stage]

    def get_by_slug(self, slug: str) -> StageMetadata:
        """Get stage metadata by slug (e.g., "object-design").

        Raises:
            ValueError: If slug not found
        """
        try:
            stage = Stage(slug)
        except ValueError:
            raise ValueError(f"Unknown stage slug: {slug}. Valid slugs: {Stage.values()}") from None
        return self.get(stage)

    def conditions_for(self, stage: Stage) -> tuple[str, ...]:
        """Return the ordered checklist condition ids for a stage."""
        return self.get(stage).conditions

    # =========================================================================
    # Ordering
    # =========================================================================

    def stage_order(self) -> list[Stage]:
        """Stages in workflow order."""
        return list(self._order)

    def stage_index(self, stage: Stage) -> int:
        """0-based position of a stage in workflow order."""
        self.get(stage)
        return self._order.index(stage)

    def first_stage(self) -> Stage:
        return self._order[0]

    def next_stage(self, stage: Stage) -> Stage:
        """Return the stage that follows ``stage``.

        Raises:
            ImpossibleTransition: If ``stage`` is the last stage
        """
        index = self.stage_index(stage)
        if index + 1 >= len(self._order):
            raise ImpossibleTransition(
                f"No stage follows {stage.value}", from_stage=stage, to_stage=None
            )
        return self._order[index + 1]

    def stages_between(self, start: Stage, end: Stage) -> list[Stage]:
        """Stages from ``start`` to ``end`` inclusive, in workflow order."""
        lo, hi = self.stage_index(start), self.stage_index(end)
        return self._order[lo : hi + 1]

    def __len__(self) -> int:
        return len(self._stages)

    def __iter__(self):
        return iter(self._stages)


# =============================================================================
# Module-level singleton for convenience
# =============================================================================

_registry: StageRegistry | None = None


def get_stage_registry() -> StageRegistry:
    """Get the global stage registry singleton."""
    global _registry
    if _registry is None:
        _registry = StageRegistry()
    return _registry


def conditions_for(stage: Stage) -> tuple[str, ...]:
    """Ordered checklist condition ids for a stage."""
    return get_stage_registry().conditions_for(stage)


def get_stage_metadata(stage: Stage) -> StageMetadata:
    """Get stage metadata."""
    return get_stage_registry().get(stage)


def stage_index(stage: Stage) -> int:
    """0-based position of a stage in workflow order."""
    return get_stage_registry().stage_index(stage)


def next_stage(stage: Stage) -> Stage:
    """Return the stage that follows ``stage``."""
    return get_stage_registry().next_stage(stage)


STAGES: list[StageMetadata] = list(get_stage_registry())

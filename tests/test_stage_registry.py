"""Tests for the stage definition table.

Tests cover:
- StageMetadata dataclass
- StageRegistry ordering and lookups
- Checklist ordering per stage
"""

import pytest

from devflow.config import Stage
from devflow.workflow import ImpossibleTransition
from devflow.workflow.gate_conditions import CONDITIONS
from devflow.workflow.stage_registry import (
    STAGES,
    StageMetadata,
    StageRegistry,
    conditions_for,
    get_stage_metadata,
    get_stage_registry,
    next_stage,
    stage_index,
)


class TestStageMetadata:
    """Test StageMetadata dataclass."""

    def test_stage_metadata_immutable(self):
        """StageMetadata fields cannot be reassigned."""
        meta = get_stage_metadata(Stage.TEST_STUBS)
        with pytest.raises(AttributeError):  # FrozenInstanceError
            meta.display_name = "Other"

    def test_slug_matches_stage_value(self):
        """Slug is the kebab-case stage value."""
        for meta in STAGES:
            assert meta.slug == meta.stage.value

    def test_display_indices_are_sequential(self):
        """Display indices run 1..4 in workflow order."""
        assert [m.display_index for m in STAGES] == [1, 2, 3, 4]

    def test_only_middle_stages_skippable(self):
        """Only Architecture and Object Design may be skipped for simple features."""
        skippable = {m.stage for m in STAGES if m.skippable_when_simple}
        assert skippable == {Stage.ARCHITECTURE, Stage.OBJECT_DESIGN}


class TestStageOrdering:
    """Test stage order and navigation."""

    def test_order_matches_workflow(self):
        """stage_order lists the four stages in workflow order."""
        assert get_stage_registry().stage_order() == [
            Stage.TEST_STUBS,
            Stage.ARCHITECTURE,
            Stage.OBJECT_DESIGN,
            Stage.IMPLEMENTATION,
        ]

    def test_stage_index(self):
        """stage_index is 0-based."""
        assert stage_index(Stage.TEST_STUBS) == 0
        assert stage_index(Stage.IMPLEMENTATION) == 3

    def test_next_stage(self):
        """next_stage returns the following stage."""
        assert next_stage(Stage.TEST_STUBS) is Stage.ARCHITECTURE
        assert next_stage(Stage.OBJECT_DESIGN) is Stage.IMPLEMENTATION

    def test_next_stage_past_implementation_is_impossible(self):
        """Nothing follows Implementation."""
        with pytest.raises(ImpossibleTransition):
            next_stage(Stage.IMPLEMENTATION)

    def test_stages_between_inclusive(self):
        """stages_between includes both ends."""
        registry = get_stage_registry()
        assert registry.stages_between(Stage.ARCHITECTURE, Stage.IMPLEMENTATION) == [
            Stage.ARCHITECTURE,
            Stage.OBJECT_DESIGN,
            Stage.IMPLEMENTATION,
        ]

    def test_first_stage(self):
        """Every feature starts at Test Stubs."""
        assert get_stage_registry().first_stage() is Stage.TEST_STUBS


class TestConditionsFor:
    """Test per-stage checklists."""

    def test_every_condition_is_known(self):
        """Every checklist id has a registered predicate."""
        for stage in Stage:
            for condition_id in conditions_for(stage):
                assert condition_id in CONDITIONS

    def test_test_stub_checklist_order(self):
        """Test Stubs checklist is returned in its fixed order."""
        assert conditions_for(Stage.TEST_STUBS) == (
            "test-files-present",
            "test-categories-covered",
            "tests-fail-with-clear-messages",
            "no-implementation-code",
        )

    def test_architecture_requires_diagram(self):
        """Architecture checklist includes a diagram."""
        assert "diagram-present" in conditions_for(Stage.ARCHITECTURE)

    def test_conditions_are_tuples(self):
        """Checklists are immutable tuples."""
        assert isinstance(conditions_for(Stage.IMPLEMENTATION), tuple)


class TestLookups:
    """Test metadata lookups."""

    def test_get_by_slug(self):
        """Slug lookup resolves to the stage metadata."""
        assert get_stage_registry().get_by_slug("object-design").stage is Stage.OBJECT_DESIGN

    def test_unknown_slug_raises(self):
        """Unknown slugs raise ValueError listing the valid ones."""
        with pytest.raises(ValueError, match="Unknown stage slug"):
            get_stage_registry().get_by_slug("deployment")

    def test_custom_registry(self):
        """A custom registry only knows its own stages."""
        custom = StageRegistry(
            [
                StageMetadata(
                    stage=Stage.TEST_STUBS,
                    display_name="Only",
                    display_index=1,
                    description="single stage",
                )
            ]
        )
        assert len(custom) == 1
        with pytest.raises(ImpossibleTransition):
            custom.next_stage(Stage.TEST_STUBS)
        with pytest.raises(ValueError):
            custom.get(Stage.IMPLEMENTATION)

"""Shared test fixtures and helpers.

Provides passing artifacts for every stage plus a controller wired to the
default configuration.
"""

import pytest

from devflow.config import Stage
from devflow.project import ProjectConfig
from devflow.workflow import (
    StageArtifacts,
    TestRunSummary,
    TransitionController,
    TypeCheckSummary,
    WorkflowInstanceManager,
)

# ---------------------------------------------------------------------------
# Passing artifacts per stage
# ---------------------------------------------------------------------------

_TEST_STUB_ARTIFACTS = StageArtifacts(
    files=["tests/test_rate_limiter.py"],
    test_categories=["happy_path", "edge_case", "error"],
    test_run=TestRunSummary(
        passed=0,
        failed=3,
        total=3,
        failure_messages=[
            "NotImplementedError: RateLimiter.allow",
            "NotImplementedError: RateLimiter.allow (burst)",
            "NotImplementedError: RateLimiter.reset",
        ],
    ),
)

_ARCHITECTURE_ARTIFACTS = StageArtifacts(
    files=["docs/rate-limiting.md"],
    design_document="# Rate limiting\n\n```mermaid\ngraph TD; A-->B\n```\n",
)

_OBJECT_DESIGN_ARTIFACTS = StageArtifacts(
    files=["app/rate_limiter.py"],
    type_check=TypeCheckSummary(tool="mypy", errors=0),
    test_run=TestRunSummary(passed=0, failed=3, total=3),
)

_IMPLEMENTATION_ARTIFACTS = StageArtifacts(
    files=["app/rate_limiter.py"],
    type_check=TypeCheckSummary(tool="mypy", errors=0),
    test_run=TestRunSummary(passed=3, failed=0, total=3),
)

PASSING_ARTIFACTS: dict[Stage, StageArtifacts] = {
    Stage.TEST_STUBS: _TEST_STUB_ARTIFACTS,
    Stage.ARCHITECTURE: _ARCHITECTURE_ARTIFACTS,
    Stage.OBJECT_DESIGN: _OBJECT_DESIGN_ARTIFACTS,
    Stage.IMPLEMENTATION: _IMPLEMENTATION_ARTIFACTS,
}


def passing_artifacts(stage: Stage) -> StageArtifacts:
    """A fresh copy of artifacts that satisfy ``stage``'s gate."""
    return PASSING_ARTIFACTS[stage].model_copy(deep=True)


@pytest.fixture
def manager():
    """Instance manager with the default configuration."""
    return WorkflowInstanceManager(ProjectConfig())


@pytest.fixture
def events():
    """List collecting every event emitted by the controller fixture."""
    return []


@pytest.fixture
def controller(manager, events):
    """Transition controller recording emitted events."""
    return TransitionController(manager=manager, listeners=[events.append])


@pytest.fixture
def complex_instance(controller):
    return controller.start("rate-limiting", "complex")


@pytest.fixture
def simple_instance(controller):
    return controller.start("typo-fix", "simple")


@pytest.fixture
def artifacts_for():
    """Factory returning passing artifacts for a stage."""
    return passing_artifacts

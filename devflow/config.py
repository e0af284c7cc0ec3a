"""Centralized configuration for devflow.

This module provides a single source of truth for workflow constants and the
enums shared across the stage registry, the instance manager and the CLI.

Design Principles:
- All iteration limits and file locations in one place
- Enums for type-safe stage, status and outcome values
"""

from enum import Enum

# =============================================================================
# Enums for Type Safety
# =============================================================================


class Stage(Enum):
    """The four review stages of a feature, in workflow order."""

    TEST_STUBS = "test-stubs"
    ARCHITECTURE = "architecture"
    OBJECT_DESIGN = "object-design"
    IMPLEMENTATION = "implementation"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid stage slugs as strings."""
        return [stage.value for stage in cls]


class Complexity(Enum):
    """Complexity classification of a feature request."""

    SIMPLE = "simple"
    COMPLEX = "complex"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid complexity values as strings."""
        return [c.value for c in cls]


class StageStatus(Enum):
    """Valid status values for a stage within one workflow instance."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"  # gate passed, waiting for human review
    APPROVED = "approved"
    SKIPPED = "skipped"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid status values as strings."""
        return [status.value for status in cls]


class InstanceStatus(Enum):
    """Lifecycle status of a workflow instance."""

    ACTIVE = "active"
    COMPLETE = "complete"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not InstanceStatus.ACTIVE


class GateOutcome(Enum):
    """Outcome kinds produced by the gate evaluator."""

    PASS = "pass"
    FAIL = "fail"
    ESCALATE = "escalate"


class EscalationResolution(Enum):
    """Human decisions that clear a pending escalation."""

    EXTEND = "extend"  # grant another round of iterations
    ACCEPT = "accept"  # approve the stage as it stands
    ABORT = "abort"  # cancel the feature


# =============================================================================
# Iteration Limits
# =============================================================================

# Review rounds allowed per stage before a human decision is required
DEFAULT_MAX_ITERATIONS = 3


# =============================================================================
# Test Categories
# =============================================================================

# Categories every test-stub submission must cover
REQUIRED_TEST_CATEGORIES = ("happy_path", "edge_case", "error")


# =============================================================================
# File Locations
# =============================================================================

# Project configuration file looked up in the working directory
DEFAULT_CONFIG_FILE = "devflow.yaml"

# Directory holding one YAML file per tracked feature
DEFAULT_STATE_DIR = ".devflow"

# Environment variable overriding DEFAULT_STATE_DIR
STATE_DIR_ENV_VAR = "DEVFLOW_STATE_DIR"

"""Workflow core for devflow.

This package provides the stage registry, the gate evaluator and the
per-feature state machine that walks a feature through the four reviewed
stages.
"""

# Stage registry and gate imports (no configuration dependency)
from .artifacts import StageArtifacts, TestRunSummary, TypeCheckSummary
from .errors import (
    AlreadyTerminal,
    EscalationRequired,
    GateFailed,
    ImpossibleTransition,
    InvalidComplexity,
    WorkflowError,
)
from .gate_evaluator import GateEvaluator, GateResult, evaluate_gate
from .stage_registry import (
    STAGES,
    StageMetadata,
    StageRegistry,
    conditions_for,
    get_stage_metadata,
    get_stage_registry,
    next_stage,
)
from .workflow_instance import EventKind, StageRecord, TransitionEvent, WorkflowInstance


# Lazy import for modules that depend on devflow.project. project_config
# imports workflow.errors before it defines ProjectConfig, so importing
# devflow.project first would hand these modules a partial project_config.
def __getattr__(name):
    """Lazy import for configuration-dependent modules."""
    if name == "WorkflowInstanceManager":
        from .instance_manager import WorkflowInstanceManager

        return WorkflowInstanceManager
    if name == "TransitionController":
        from .transition_controller import TransitionController

        return TransitionController
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    # State machine (lazy loaded)
    "WorkflowInstanceManager",
    "TransitionController",
    # Stage registry
    "STAGES",
    "StageMetadata",
    "StageRegistry",
    "conditions_for",
    "get_stage_metadata",
    "get_stage_registry",
    "next_stage",
    # Gates
    "GateEvaluator",
    "GateResult",
    "evaluate_gate",
    "StageArtifacts",
    "TestRunSummary",
    "TypeCheckSummary",
    # Instances
    "WorkflowInstance",
    "StageRecord",
    "TransitionEvent",
    "EventKind",
    # Errors
    "WorkflowError",
    "InvalidComplexity",
    "AlreadyTerminal",
    "ImpossibleTransition",
    "EscalationRequired",
    "GateFailed",
]

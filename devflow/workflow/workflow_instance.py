"""Pydantic models for a tracked feature workflow.

A WorkflowInstance is one feature's progress through the four stages. It is a
plain data record: all mutation goes through WorkflowInstanceManager and
TransitionController so the invariants live in one place.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from devflow.config import Complexity, InstanceStatus, Stage, StageStatus
from devflow.workflow.artifacts import StageArtifacts
from devflow.workflow.gate_evaluator import GateResult


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string with a Z suffix."""
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class EventKind(str, Enum):
    """Kinds of entries in an instance's audit trail."""

    CREATED = "created"
    SKIPPED = "skipped"
    SUBMITTED = "submitted"
    GATE_PASSED = "gate_passed"
    GATE_FAILED = "gate_failed"
    FEEDBACK = "feedback"
    ESCALATED = "escalated"
    ESCALATION_RESOLVED = "escalation_resolved"
    APPROVED = "approved"
    ADVANCED = "advanced"
    REVERTED = "reverted"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TransitionEvent(BaseModel):
    """One audit-trail entry."""

    kind: EventKind
    feature_id: str
    from_stage: Stage | None = None
    to_stage: Stage | None = None
    at: str = Field(default_factory=utc_now)
    detail: dict[str, Any] = Field(default_factory=dict)


class FeedbackRound(BaseModel):
    """Unresolved review issues recorded against one iteration."""

    iteration: int
    issues: list[str] = Field(default_factory=list)
    at: str = Field(default_factory=utc_now)


class StageRecord(BaseModel):
    """Progress of one stage within an instance."""

    status: StageStatus = StageStatus.PENDING
    iteration_count: int = 0
    total_iterations: int = 0  # lifetime count, survives approval resets
    extra_iterations: int = 0  # granted by escalation resolutions
    needs_escalation: bool = False
    artifacts: StageArtifacts | None = None
    last_gate: dict[str, Any] | None = None
    feedback: list[FeedbackRound] = Field(default_factory=list)

    @property
    def approved(self) -> bool:
        return self.status is StageStatus.APPROVED

    @property
    def skipped(self) -> bool:
        return self.status is StageStatus.SKIPPED

    @property
    def gate_result(self) -> GateResult | None:
        if self.last_gate is None:
            return None
        return GateResult.from_dict(self.last_gate)


class WorkflowInstance(BaseModel):
    """One feature's progress through the workflow.

    Attributes:
        feature_id: Feature identifier, e.g. "rate-limiting"
        complexity: SIMPLE or COMPLEX
        status: ACTIVE until Implementation is approved (COMPLETE) or the
            workflow is explicitly aborted (CANCELLED)
        current_stage: Stage currently being worked on. Stays on the last
            stage once the instance is terminal.
        stages: Per-stage records, one for every Stage
        iteration_limits: Per-stage review iteration limits captured from the
            project configuration at creation time
        history: Audit trail of every transition
    """

    feature_id: str
    complexity: Complexity
    status: InstanceStatus = InstanceStatus.ACTIVE
    current_stage: Stage = Stage.TEST_STUBS
    stages: dict[Stage, StageRecord] = Field(default_factory=dict)
    iteration_limits: dict[Stage, int] = Field(default_factory=dict)
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)
    cancel_reason: str | None = None
    history: list[TransitionEvent] = Field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def current_record(self) -> StageRecord:
        return self.stages[self.current_stage]

    def record_for(self, stage: Stage) -> StageRecord:
        return self.stages[stage]

    def iteration_count(self, stage: Stage | None = None) -> int:
        return self.stages[stage or self.current_stage].iteration_count

    def iteration_limit(self, stage: Stage | None = None) -> int:
        """Effective iteration limit, including granted extensions."""
        stage = stage or self.current_stage
        return self.iteration_limits[stage] + self.stages[stage].extra_iterations

    def is_approved(self, stage: Stage) -> bool:
        return self.stages[stage].approved

    def skipped_stages(self) -> list[Stage]:
        return [stage for stage in Stage if self.stages[stage].skipped]

    def log_event(
        self,
        kind: EventKind,
        from_stage: Stage | None = None,
        to_stage: Stage | None = None,
        **detail: Any,
    ) -> TransitionEvent:
        """Append an audit-trail entry and bump ``updated_at``."""
        event = TransitionEvent(
            kind=kind,
            feature_id=self.feature_id,
            from_stage=from_stage,
            to_stage=to_stage,
            detail=detail,
        )
        self.history.append(event)
        self.updated_at = event.at
        return event

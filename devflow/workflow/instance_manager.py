"""Lifecycle operations on WorkflowInstance records.

The manager owns every mutation of an instance: creation, submissions,
review feedback, forward moves, the backward "design flaw" move and
cancellation. It never judges artifact quality; that is the gate
evaluator's job.
"""

import logging

from devflow.config import Complexity, InstanceStatus, Stage, StageStatus
from devflow.project.project_config import DEFAULT_CONFIG, ProjectConfig
from devflow.workflow.artifacts import StageArtifacts
from devflow.workflow.errors import (
    AlreadyTerminal,
    EscalationRequired,
    ImpossibleTransition,
    InvalidComplexity,
)
from devflow.workflow.gate_evaluator import GateEvaluator, GateResult
from devflow.workflow.stage_registry import StageRegistry, get_stage_registry
from devflow.workflow.workflow_instance import (
    EventKind,
    FeedbackRound,
    StageRecord,
    WorkflowInstance,
)

logger = logging.getLogger(__name__)


def parse_complexity(value: Complexity | str) -> Complexity:
    """Coerce a complexity value, accepting case-insensitive strings.

    Raises:
        InvalidComplexity: If the value is not a recognized classification
    """
    if isinstance(value, Complexity):
        return value
    if isinstance(value, str):
        try:
            return Complexity(value.strip().lower())
        except ValueError:
            pass
    raise InvalidComplexity(value)


class WorkflowInstanceManager:
    """Creates and mutates workflow instances.

    Args:
        config: Project configuration, read once per created instance
        registry: Stage registry (defaults to the global registry)
        evaluator: Gate evaluator used for iteration-limit checks
    """

    def __init__(
        self,
        config: ProjectConfig | None = None,
        registry: StageRegistry | None = None,
        evaluator: GateEvaluator | None = None,
    ):
        self.config = config or DEFAULT_CONFIG
        self.registry = registry or get_stage_registry()
        self.evaluator = evaluator or GateEvaluator(self.registry)

    # =========================================================================
    # Creation
    # =========================================================================

    def create(self, feature_id: str, complexity: Complexity | str) -> WorkflowInstance:
        """Start tracking a new feature.

        Architecture and Object Design are marked skipped for Simple features
        unless the configuration requires them; disabled stages are always
        skipped.

        Raises:
            InvalidComplexity: If complexity is not SIMPLE or COMPLEX
            ValueError: If feature_id is empty
        """
        complexity = parse_complexity(complexity)
        feature_id = (feature_id or "").strip()
        if not feature_id:
            raise ValueError("feature_id must be a non-empty string")

        stages: dict[Stage, StageRecord] = {}
        for stage in self.registry.stage_order():
            skipped = self.config.is_skipped(stage, complexity)
            stages[stage] = StageRecord(status=StageStatus.SKIPPED if skipped else StageStatus.PENDING)

        first = self.registry.first_stage()
        stages[first].status = StageStatus.IN_PROGRESS

        instance = WorkflowInstance(
            feature_id=feature_id,
            complexity=complexity,
            current_stage=first,
            stages=stages,
            iteration_limits={s: self.config.iteration_limit(s) for s in self.registry.stage_order()},
        )
        instance.log_event(EventKind.CREATED, to_stage=first, complexity=complexity.value)
        for stage in instance.skipped_stages():
            instance.log_event(EventKind.SKIPPED, to_stage=stage)

        logger.info(
            f"Created workflow for '{feature_id}' ({complexity.value}); "
            f"skipped: {[s.value for s in instance.skipped_stages()] or 'none'}"
        )
        return instance

    # =========================================================================
    # Review Loop
    # =========================================================================

    def record_submission(
        self, instance: WorkflowInstance, artifacts: StageArtifacts | dict
    ) -> StageRecord:
        """Store artifacts for the current stage.

        Any previous gate result is discarded: the new artifacts have not been
        evaluated yet.

        Raises:
            AlreadyTerminal: If the instance is complete or cancelled
            EscalationRequired: If the stage is waiting for a human decision
        """
        self.ensure_active(instance)
        self.ensure_not_escalated(instance)
        if not isinstance(artifacts, StageArtifacts):
            artifacts = StageArtifacts.model_validate(artifacts)

        record = instance.current_record
        record.artifacts = artifacts
        record.last_gate = None
        record.status = StageStatus.IN_PROGRESS
        instance.log_event(
            EventKind.SUBMITTED,
            from_stage=instance.current_stage,
            files=len(artifacts.files),
        )
        return record

    def record_gate_result(self, instance: WorkflowInstance, result: GateResult) -> None:
        """Attach a gate result to the current stage."""
        self.ensure_active(instance)
        if result.stage is not instance.current_stage:
            raise ImpossibleTransition(
                f"Gate result for {result.stage.value} does not match current stage "
                f"{instance.current_stage.value}",
                from_stage=instance.current_stage,
                to_stage=result.stage,
            )
        record = instance.current_record
        record.last_gate = result.to_dict()
        if result.is_pass:
            record.status = StageStatus.SUBMITTED
            instance.log_event(EventKind.GATE_PASSED, from_stage=result.stage)
        else:
            instance.log_event(
                EventKind.GATE_FAILED,
                from_stage=result.stage,
                unmet_conditions=list(result.unmet_conditions),
            )

    def record_feedback(self, instance: WorkflowInstance, unresolved_issues: list[str]) -> int:
        """Record a revision request on the current stage.

        Returns:
            The new iteration count

        Raises:
            AlreadyTerminal: If the instance is complete or cancelled
            EscalationRequired: If the count would exceed the stage's limit.
                The count is left unchanged and the stage is flagged.
        """
        self.ensure_active(instance)
        stage = instance.current_stage
        record = instance.current_record
        limit = instance.iteration_limit(stage)

        if record.needs_escalation:
            raise EscalationRequired(instance.feature_id, stage, record.iteration_count, limit)

        check = self.evaluator.check_iterations(stage, record.iteration_count + 1, limit)
        if not check.is_pass:
            record.needs_escalation = True
            instance.log_event(
                EventKind.ESCALATED,
                from_stage=stage,
                iteration_count=record.iteration_count,
                limit=limit,
                unresolved_issues=list(unresolved_issues),
            )
            logger.warning(
                f"'{instance.feature_id}' exceeded {limit} review iterations at {stage.value}"
            )
            raise EscalationRequired(instance.feature_id, stage, record.iteration_count, limit)

        record.iteration_count += 1
        record.total_iterations += 1
        record.feedback.append(
            FeedbackRound(iteration=record.iteration_count, issues=list(unresolved_issues))
        )
        record.last_gate = None
        record.status = StageStatus.IN_PROGRESS
        instance.log_event(
            EventKind.FEEDBACK,
            from_stage=stage,
            iteration_count=record.iteration_count,
            issues=len(unresolved_issues),
        )
        return record.iteration_count

    def grant_extension(self, instance: WorkflowInstance) -> int:
        """Clear a pending escalation and allow another round of iterations.

        The iteration count is not reset; the stage's limit grows by the
        configured limit instead.

        Returns:
            The new effective iteration limit
        """
        self.ensure_active(instance)
        stage = instance.current_stage
        record = instance.current_record
        record.extra_iterations += instance.iteration_limits[stage]
        record.needs_escalation = False
        limit = instance.iteration_limit(stage)
        instance.log_event(
            EventKind.ESCALATION_RESOLVED, from_stage=stage, resolution="extend", limit=limit
        )
        return limit

    # =========================================================================
    # Stage Transitions
    # =========================================================================

    def advance(self, instance: WorkflowInstance, to_stage: Stage | None = None) -> WorkflowInstance:
        """Approve the current stage and move to the next non-skipped stage.

        The approved stage's iteration count resets to 0. Approving
        Implementation completes the workflow.

        Args:
            instance: Instance to advance
            to_stage: Optional expected destination; must be the next
                non-skipped stage

        Raises:
            AlreadyTerminal: If the instance is complete or cancelled
            ImpossibleTransition: If ``to_stage`` is not the next stage
        """
        self.ensure_active(instance)
        current = instance.current_stage
        target = self._next_active_stage(instance, current)

        if to_stage is not None and to_stage is not target:
            expected = target.value if target else "complete"
            raise ImpossibleTransition(
                f"Cannot move '{instance.feature_id}' from {current.value} to "
                f"{to_stage.value}; next stage is {expected}",
                from_stage=current,
                to_stage=to_stage,
            )

        record = instance.current_record
        record.status = StageStatus.APPROVED
        record.iteration_count = 0
        record.needs_escalation = False
        instance.log_event(EventKind.APPROVED, from_stage=current)

        if target is None:
            instance.status = InstanceStatus.COMPLETE
            instance.log_event(EventKind.COMPLETED, from_stage=current)
            logger.info(f"Workflow for '{instance.feature_id}' is complete")
            return instance

        instance.current_stage = target
        instance.stages[target].status = StageStatus.IN_PROGRESS
        instance.log_event(EventKind.ADVANCED, from_stage=current, to_stage=target)
        logger.info(f"'{instance.feature_id}' advanced {current.value} -> {target.value}")
        return instance

    def revert(self, instance: WorkflowInstance, target: Stage, reason: str = "") -> WorkflowInstance:
        """Move back to an earlier stage after a design flaw is discovered.

        The target stage and every non-skipped stage after it lose their
        approval, iteration count and pending escalation.

        Raises:
            AlreadyTerminal: If the instance is complete or cancelled
            ImpossibleTransition: If ``target`` is not strictly earlier than
                the current stage, or was skipped
        """
        self.ensure_active(instance)
        current = instance.current_stage

        if self.registry.stage_index(target) >= self.registry.stage_index(current):
            raise ImpossibleTransition(
                f"Cannot revert '{instance.feature_id}' from {current.value} to "
                f"{target.value}: target must be an earlier stage",
                from_stage=current,
                to_stage=target,
            )
        if instance.stages[target].skipped:
            raise ImpossibleTransition(
                f"Cannot revert '{instance.feature_id}' to skipped stage {target.value}",
                from_stage=current,
                to_stage=target,
            )

        for stage in self.registry.stages_between(target, current):
            record = instance.stages[stage]
            if record.skipped:
                continue
            record.status = StageStatus.PENDING
            record.iteration_count = 0
            record.extra_iterations = 0
            record.needs_escalation = False
            record.last_gate = None

        instance.stages[target].status = StageStatus.IN_PROGRESS
        instance.current_stage = target
        instance.log_event(EventKind.REVERTED, from_stage=current, to_stage=target, reason=reason)
        logger.warning(
            f"'{instance.feature_id}' reverted {current.value} -> {target.value}: {reason}"
        )
        return instance

    def cancel(self, instance: WorkflowInstance, reason: str = "") -> WorkflowInstance:
        """Explicitly abort the workflow.

        Raises:
            AlreadyTerminal: If the instance is complete or cancelled
        """
        self.ensure_active(instance)
        instance.status = InstanceStatus.CANCELLED
        instance.cancel_reason = reason or None
        instance.log_event(EventKind.CANCELLED, from_stage=instance.current_stage, reason=reason)
        logger.info(f"Workflow for '{instance.feature_id}' cancelled: {reason}")
        return instance

    # =========================================================================
    # Helpers
    # =========================================================================

    def _next_active_stage(self, instance: WorkflowInstance, stage: Stage) -> Stage | None:
        """Next non-skipped stage after ``stage``, or None after the last one."""
        order = self.registry.stage_order()
        for candidate in order[self.registry.stage_index(stage) + 1 :]:
            if not instance.stages[candidate].skipped:
                return candidate
        return None

    @staticmethod
    def ensure_active(instance: WorkflowInstance) -> None:
        if instance.is_terminal:
            raise AlreadyTerminal(instance.feature_id, instance.status.value)

    @staticmethod
    def ensure_not_escalated(instance: WorkflowInstance) -> None:
        record = instance.current_record
        if record.needs_escalation:
            raise EscalationRequired(
                instance.feature_id,
                instance.current_stage,
                record.iteration_count,
                instance.iteration_limit(),
            )

"""Transition controller: the per-instance state machine.

States: test-stubs -> architecture -> object-design -> implementation ->
complete, plus cancelled. Architecture and object-design may be skipped for
simple features.

Transitions:
- submit + PASS gate + external approval  -> next stage (or complete)
- submit + FAIL gate                      -> stay, iteration count unchanged
- review feedback past the limit          -> stay, flagged for escalation
- design flaw discovered                  -> back to the named earlier stage
- explicit abort                          -> cancelled

The controller never auto-advances or auto-cancels on escalation; it emits an
``escalated`` event and waits for resolve_escalation().
"""

import logging
from collections.abc import Callable

from devflow.config import EscalationResolution, Stage
from devflow.project.project_config import ProjectConfig
from devflow.workflow.artifacts import StageArtifacts
from devflow.workflow.errors import EscalationRequired, GateFailed
from devflow.workflow.gate_evaluator import GateEvaluator, GateResult
from devflow.workflow.instance_manager import WorkflowInstanceManager
from devflow.workflow.workflow_instance import EventKind, TransitionEvent, WorkflowInstance

logger = logging.getLogger(__name__)

EventListener = Callable[[TransitionEvent], None]


class TransitionController:
    """Drives workflow instances from external signals.

    Args:
        manager: Instance manager performing the mutations
        evaluator: Gate evaluator for submissions
        listeners: Callables notified of every new audit-trail event, in order

    Example:
        controller = TransitionController.from_config(config)
        instance = controller.start("rate-limiting", "complex")
        result = controller.submit(instance, artifacts)
        if result.is_pass:
            # open the PR, wait for the reviewer, then:
            controller.approve(instance)
    """

    def __init__(
        self,
        manager: WorkflowInstanceManager | None = None,
        evaluator: GateEvaluator | None = None,
        listeners: list[EventListener] | None = None,
    ):
        self.manager = manager or WorkflowInstanceManager()
        self.evaluator = evaluator or self.manager.evaluator
        self.listeners: list[EventListener] = list(listeners or [])

    @classmethod
    def from_config(
        cls, config: ProjectConfig, listeners: list[EventListener] | None = None
    ) -> "TransitionController":
        return cls(manager=WorkflowInstanceManager(config), listeners=listeners)

    def add_listener(self, listener: EventListener) -> None:
        self.listeners.append(listener)

    # =========================================================================
    # Signals
    # =========================================================================

    def start(self, feature_id: str, complexity) -> WorkflowInstance:
        """Create an instance for a new feature request."""
        instance = self.manager.create(feature_id, complexity)
        self._emit(instance, 0)
        return instance

    def submit(self, instance: WorkflowInstance, artifacts: StageArtifacts | dict) -> GateResult:
        """Record a submission for the current stage and run its gate.

        A FAIL result leaves the stage and its iteration count unchanged; the
        driver fixes the artifacts and submits again.

        Returns:
            The GateResult (PASS or FAIL). Call ``raise_for_failure()`` on it
            to turn a FAIL into GateFailed.
        """
        mark = len(instance.history)
        try:
            record = self.manager.record_submission(instance, artifacts)
            result = self.evaluator.evaluate(instance.current_stage, record.artifacts)
            self.manager.record_gate_result(instance, result)
        finally:
            self._emit(instance, mark)

        if not result.is_pass:
            logger.info(
                f"'{instance.feature_id}' {result.stage.value} gate failed: "
                f"{', '.join(result.unmet_conditions)}"
            )
        return result

    def approve(self, instance: WorkflowInstance) -> WorkflowInstance:
        """Handle the external "change-set approved" signal.

        Raises:
            AlreadyTerminal: If the instance is complete or cancelled
            EscalationRequired: If the stage awaits a human decision
            GateFailed: If the current stage has no passing submission
        """
        self.manager.ensure_active(instance)
        self.manager.ensure_not_escalated(instance)

        stage = instance.current_stage
        result = instance.current_record.gate_result
        if result is None:
            raise GateFailed(stage, ())
        result.raise_for_failure()

        mark = len(instance.history)
        try:
            return self.manager.advance(instance)
        finally:
            self._emit(instance, mark)

    def request_changes(self, instance: WorkflowInstance, unresolved_issues: list[str]) -> int:
        """Handle reviewer feedback asking for another revision.

        Returns:
            The new iteration count for the current stage

        Raises:
            EscalationRequired: Once the iteration limit is exceeded. An
                ``escalated`` event is emitted first.
        """
        mark = len(instance.history)
        try:
            return self.manager.record_feedback(instance, unresolved_issues)
        finally:
            self._emit(instance, mark)

    def report_design_flaw(
        self, instance: WorkflowInstance, target_stage: Stage, reason: str
    ) -> WorkflowInstance:
        """Move back to an earlier stage whose design turned out to be wrong."""
        mark = len(instance.history)
        try:
            return self.manager.revert(instance, target_stage, reason)
        finally:
            self._emit(instance, mark)

    def resolve_escalation(
        self,
        instance: WorkflowInstance,
        resolution: EscalationResolution | str,
        reason: str = "",
    ) -> WorkflowInstance:
        """Apply the human decision for a stage flagged for escalation.

        Args:
            resolution: EXTEND grants another round of iterations, ACCEPT
                approves the stage as it stands, ABORT cancels the workflow

        Raises:
            ValueError: If the current stage is not flagged for escalation
        """
        resolution = EscalationResolution(resolution)
        self.manager.ensure_active(instance)
        if not instance.current_record.needs_escalation:
            raise ValueError(
                f"'{instance.feature_id}' has no pending escalation at {instance.current_stage.value}"
            )

        mark = len(instance.history)
        try:
            if resolution is EscalationResolution.EXTEND:
                self.manager.grant_extension(instance)
            elif resolution is EscalationResolution.ACCEPT:
                instance.log_event(
                    EventKind.ESCALATION_RESOLVED,
                    from_stage=instance.current_stage,
                    resolution=resolution.value,
                    reason=reason,
                )
                self.manager.advance(instance)
            else:
                self.manager.cancel(instance, reason or "aborted after escalation")
        finally:
            self._emit(instance, mark)
        return instance

    def abort(self, instance: WorkflowInstance, reason: str = "") -> WorkflowInstance:
        """Explicitly cancel the workflow."""
        mark = len(instance.history)
        try:
            return self.manager.cancel(instance, reason)
        finally:
            self._emit(instance, mark)

    # =========================================================================
    # Queries
    # =========================================================================

    def pending_escalation(self, instance: WorkflowInstance) -> EscalationRequired | None:
        """The escalation the driver must resolve, if any."""
        if instance.is_terminal or not instance.current_record.needs_escalation:
            return None
        return EscalationRequired(
            instance.feature_id,
            instance.current_stage,
            instance.iteration_count(),
            instance.iteration_limit(),
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _emit(self, instance: WorkflowInstance, mark: int) -> None:
        """Notify listeners of events appended since ``mark``."""
        for event in instance.history[mark:]:
            for listener in self.listeners:
                try:
                    listener(event)
                except Exception as e:
                    logger.warning(f"Event listener failed on {event.kind.value}: {e}")

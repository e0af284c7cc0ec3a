"""Exception types raised by the workflow core.

Two families:
- Usage errors (InvalidComplexity, AlreadyTerminal, ImpossibleTransition) are
  fatal. They signal a programming mistake and are never retried.
- Review errors (EscalationRequired, GateFailed) are expected. They carry
  enough detail for the driver to pick its next action without re-deriving it.
"""

from devflow.config import Complexity, Stage


class WorkflowError(Exception):
    """Base exception for all workflow errors."""

    recoverable: bool = False


class InvalidComplexity(WorkflowError, ValueError):
    """Complexity classification is not one of the recognized values."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(
            f"Invalid complexity {value!r}; expected one of {', '.join(Complexity.values())}"
        )


class AlreadyTerminal(WorkflowError):
    """Operation attempted on a Complete or Cancelled instance."""

    def __init__(self, feature_id: str, status: str):
        self.feature_id = feature_id
        self.status = status
        super().__init__(f"Workflow for '{feature_id}' is already {status}")


class ImpossibleTransition(WorkflowError):
    """Malformed stage ordering request (skipping, moving past the end, ...)."""

    def __init__(
        self,
        message: str,
        from_stage: Stage | None = None,
        to_stage: Stage | None = None,
    ):
        self.from_stage = from_stage
        self.to_stage = to_stage
        super().__init__(message)


class EscalationRequired(WorkflowError):
    """Review iterations on a stage exceeded the limit.

    The driver should pause and obtain a human decision.
    """

    recoverable = True

    def __init__(self, feature_id: str, stage: Stage, iteration_count: int, limit: int):
        self.feature_id = feature_id
        self.stage = stage
        self.iteration_count = iteration_count
        self.limit = limit
        super().__init__(
            f"'{feature_id}' needs escalation at stage {stage.value}: "
            f"{iteration_count} of {limit} review iterations already used"
        )


class GateFailed(WorkflowError):
    """The stage checklist is not satisfied.

    ``unmet_conditions`` is ordered as the stage checklist is.
    """

    recoverable = True

    def __init__(self, stage: Stage, unmet_conditions: list[str] | tuple[str, ...]):
        self.stage = stage
        self.unmet_conditions = tuple(unmet_conditions)
        conditions = ", ".join(self.unmet_conditions) or "no passing submission"
        super().__init__(f"Quality gate for {stage.value} not satisfied: {conditions}")

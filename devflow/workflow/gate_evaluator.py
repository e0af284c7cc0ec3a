"""Gate evaluator: checks a submission against its stage checklist.

Evaluation is pure. Unmet conditions are reported, never raised; only a
malformed stage is an error. Human review approval is an external signal
and is not modeled here.
"""

import logging
from dataclasses import dataclass, field

from devflow.config import GateOutcome, Stage
from devflow.workflow.artifacts import StageArtifacts
from devflow.workflow.errors import GateFailed
from devflow.workflow.gate_conditions import get_condition
from devflow.workflow.stage_registry import StageRegistry, get_stage_registry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GateResult:
    """Result of a gate evaluation.

    Attributes:
        outcome: PASS, FAIL or ESCALATE
        stage: Stage the result refers to
        unmet_conditions: Failed condition ids, in checklist order (FAIL only)
        iteration_count: Iterations already used on the stage (ESCALATE only)
        limit: Iteration limit that was hit (ESCALATE only)
    """

    outcome: GateOutcome
    stage: Stage
    unmet_conditions: tuple[str, ...] = field(default_factory=tuple)
    iteration_count: int | None = None
    limit: int | None = None

    @classmethod
    def passed(cls, stage: Stage) -> "GateResult":
        return cls(outcome=GateOutcome.PASS, stage=stage)

    @classmethod
    def failed(cls, stage: Stage, unmet_conditions: list[str] | tuple[str, ...]) -> "GateResult":
        return cls(outcome=GateOutcome.FAIL, stage=stage, unmet_conditions=tuple(unmet_conditions))

    @classmethod
    def escalate(cls, stage: Stage, iteration_count: int, limit: int) -> "GateResult":
        return cls(
            outcome=GateOutcome.ESCALATE,
            stage=stage,
            iteration_count=iteration_count,
            limit=limit,
        )

    @property
    def is_pass(self) -> bool:
        return self.outcome is GateOutcome.PASS

    def raise_for_failure(self) -> None:
        """Raise GateFailed if this is a FAIL result."""
        if self.outcome is GateOutcome.FAIL:
            raise GateFailed(self.stage, self.unmet_conditions)

    def to_dict(self) -> dict:
        data: dict = {"outcome": self.outcome.value, "stage": self.stage.value}
        if self.unmet_conditions:
            data["unmet_conditions"] = list(self.unmet_conditions)
        if self.iteration_count is not None:
            data["iteration_count"] = self.iteration_count
            data["limit"] = self.limit
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "GateResult":
        return cls(
            outcome=GateOutcome(data["outcome"]),
            stage=Stage(data["stage"]),
            unmet_conditions=tuple(data.get("unmet_conditions", ())),
            iteration_count=data.get("iteration_count"),
            limit=data.get("limit"),
        )


class GateEvaluator:
    """Evaluates stage checklists.

    Args:
        registry: Stage registry to read checklists from (defaults to the
            global registry)
    """

    def __init__(self, registry: StageRegistry | None = None):
        self.registry = registry or get_stage_registry()

    def evaluate(self, stage: Stage, artifacts: StageArtifacts) -> GateResult:
        """Run every checklist condition for ``stage`` over ``artifacts``.

        Returns:
            GateResult.passed, or GateResult.failed with the unmet condition
            ids in checklist order
        """
        unmet = [
            condition_id
            for condition_id in self.registry.conditions_for(stage)
            if not get_condition(condition_id)(artifacts)
        ]
        if unmet:
            logger.debug(f"Gate {stage.value}: {len(unmet)} unmet condition(s): {unmet}")
            return GateResult.failed(stage, unmet)
        return GateResult.passed(stage)

    def check_iterations(self, stage: Stage, next_count: int, limit: int) -> GateResult:
        """Decide whether another review iteration is allowed.

        Args:
            stage: Stage under review
            next_count: Iteration count the stage would reach
            limit: Maximum iterations allowed on the stage

        Returns:
            GateResult.passed, or GateResult.escalate when ``next_count``
            exceeds ``limit``
        """
        if next_count > limit:
            return GateResult.escalate(stage, iteration_count=next_count - 1, limit=limit)
        return GateResult.passed(stage)


def evaluate_gate(stage: Stage, artifacts: StageArtifacts) -> GateResult:
    """Convenience wrapper around GateEvaluator().evaluate()."""
    return GateEvaluator().evaluate(stage, artifacts)

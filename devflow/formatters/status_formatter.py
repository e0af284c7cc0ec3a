"""Markdown rendering of workflow state for the driver and the CLI."""

from devflow.config import StageStatus
from devflow.workflow.errors import EscalationRequired
from devflow.workflow.gate_conditions import get_condition
from devflow.workflow.gate_evaluator import GateResult
from devflow.workflow.stage_registry import get_stage_registry
from devflow.workflow.workflow_instance import WorkflowInstance

_STATUS_ICONS = {
    StageStatus.PENDING: "·",
    StageStatus.IN_PROGRESS: "▶",
    StageStatus.SUBMITTED: "?",
    StageStatus.APPROVED: "✓",
    StageStatus.SKIPPED: "-",
}


def format_instance_status(instance: WorkflowInstance) -> str:
    """Render an instance as a markdown summary.

    Args:
        instance: Workflow instance

    Returns:
        Formatted markdown string
    """
    registry = get_stage_registry()
    lines = [
        f"## {instance.feature_id}",
        "",
        f"**Complexity:** {instance.complexity.value}  ",
        f"**Status:** {instance.status.value}  ",
    ]
    if not instance.is_terminal:
        lines.append(f"**Current stage:** {registry.get(instance.current_stage).display_name}  ")
    if instance.cancel_reason:
        lines.append(f"**Cancelled because:** {instance.cancel_reason}  ")

    lines.extend(
        [
            "",
            "| # | Stage | Status | Iterations |",
            "|---|-------|--------|------------|",
        ]
    )
    for meta in registry:
        record = instance.stages[meta.stage]
        icon = _STATUS_ICONS.get(record.status, "")
        if record.skipped:
            iterations = "-"
        else:
            iterations = f"{record.iteration_count}/{instance.iteration_limit(meta.stage)}"
        flag = " ⚠ escalation" if record.needs_escalation else ""
        lines.append(
            f"| {meta.display_index} | {meta.display_name} | {icon} {record.status.value}{flag} | {iterations} |"
        )

    gate = None if instance.is_terminal else instance.current_record.gate_result
    if gate is not None:
        lines.extend(["", format_gate_result(gate)])

    return "\n".join(lines)


def format_gate_result(result: GateResult) -> str:
    """Render a gate result with unmet conditions in checklist order."""
    name = get_stage_registry().get(result.stage).display_name
    if result.is_pass:
        return f"**{name} gate:** passed, ready for review"
    if result.unmet_conditions:
        lines = [f"**{name} gate:** failed", ""]
        lines.extend(
            f"- `{cid}`: {get_condition(cid).description}" for cid in result.unmet_conditions
        )
        return "\n".join(lines)
    return f"**{name} gate:** escalate after {result.iteration_count} of {result.limit} iterations"


def format_escalation(error: EscalationRequired) -> str:
    """Render an escalation notice with the available decisions."""
    name = get_stage_registry().get(error.stage).display_name
    return "\n".join(
        [
            "## Human Decision Required",
            "",
            f"`{error.feature_id}` used {error.iteration_count} of {error.limit} review "
            f"iterations on **{name}** and still has unresolved issues.",
            "",
            "- **extend**: allow another round of review iterations",
            "- **accept**: approve the stage as it stands",
            "- **abort**: cancel the feature",
        ]
    )

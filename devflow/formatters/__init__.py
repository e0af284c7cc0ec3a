"""Output formatting for devflow."""

from .status_formatter import format_escalation, format_gate_result, format_instance_status

__all__ = ["format_escalation", "format_gate_result", "format_instance_status"]

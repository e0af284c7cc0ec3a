"""Tests for markdown status rendering."""

import pytest

from devflow.config import Stage
from devflow.formatters import format_escalation, format_gate_result, format_instance_status
from devflow.workflow import EscalationRequired, GateResult, StageArtifacts


class TestFormatInstanceStatus:
    """Test the per-feature status table."""

    def test_new_instance(self, complex_instance):
        """A new instance shows its header and one row per stage."""
        text = format_instance_status(complex_instance)

        assert text.startswith("## rate-limiting")
        assert "**Complexity:** complex" in text
        assert "**Current stage:** Test Stubs" in text
        assert "| 1 | Test Stubs | ▶ in_progress | 0/3 |" in text
        assert "| 4 | Implementation | · pending | 0/3 |" in text

    def test_skipped_stages(self, simple_instance):
        """Skipped stages show no iteration count."""
        text = format_instance_status(simple_instance)
        assert "| 2 | Architecture | - skipped | - |" in text

    def test_failed_gate_is_shown(self, controller, complex_instance):
        """A failed gate lists its unmet conditions."""
        controller.submit(complex_instance, StageArtifacts())
        text = format_instance_status(complex_instance)
        assert "**Test Stubs gate:** failed" in text
        assert "`test-files-present`" in text

    def test_escalation_flag(self, controller, complex_instance):
        """A stage awaiting a decision is flagged."""
        for _ in range(3):
            controller.request_changes(complex_instance, [])
        with pytest.raises(EscalationRequired):
            controller.request_changes(complex_instance, [])
        assert "⚠ escalation" in format_instance_status(complex_instance)

    def test_cancelled(self, controller, complex_instance):
        """Cancelled workflows show the reason instead of a current stage."""
        controller.abort(complex_instance, "superseded")
        text = format_instance_status(complex_instance)
        assert "**Status:** cancelled" in text
        assert "**Cancelled because:** superseded" in text
        assert "Current stage" not in text


class TestFormatGateResult:
    """Test gate result rendering."""

    def test_pass(self):
        """A passing gate renders as a single line."""
        assert format_gate_result(GateResult.passed(Stage.ARCHITECTURE)) == (
            "**Architecture gate:** passed, ready for review"
        )

    def test_fail_keeps_checklist_order(self):
        """Unmet conditions are listed in checklist order."""
        result = GateResult.failed(Stage.IMPLEMENTATION, ["all-tests-pass", "type-check-clean"])
        lines = format_gate_result(result).splitlines()
        assert lines[2].startswith("- `all-tests-pass`")
        assert lines[3].startswith("- `type-check-clean`")

    def test_escalate(self):
        """Escalations show the used and allowed iterations."""
        result = GateResult.escalate(Stage.ARCHITECTURE, iteration_count=3, limit=3)
        assert "escalate after 3 of 3 iterations" in format_gate_result(result)


class TestFormatEscalation:
    """Test the human decision prompt."""

    def test_lists_decisions(self):
        """The prompt names the stage and all three decisions."""
        text = format_escalation(EscalationRequired("rate-limiting", Stage.ARCHITECTURE, 3, 3))
        assert "## Human Decision Required" in text
        assert "used 3 of 3 review iterations on **Architecture**" in text
        for decision in ("extend", "accept", "abort"):
            assert f"**{decision}**" in text

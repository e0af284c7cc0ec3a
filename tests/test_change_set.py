"""Tests for change-set building and the gh CLI wrapper.

gh is never invoked: subprocess.run is patched throughout.
"""

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from devflow.config import Stage
from devflow.review import ChangeSetError, ChangeSetRequest, GitHubCLI, build_change_set_request
from devflow.workflow import StageArtifacts


def _completed(stdout="", returncode=0, stderr=""):
    """Build a CompletedProcess stand-in."""
    result = MagicMock(spec=subprocess.CompletedProcess)
    result.stdout = stdout
    result.stderr = stderr
    result.returncode = returncode
    return result


@pytest.fixture
def gh(tmp_path):
    """Create a GitHubCLI rooted in a temporary directory."""
    return GitHubCLI(tmp_path)


class TestBuildChangeSetRequest:
    """Test change-set request building."""

    def test_test_stubs_request(self, controller, complex_instance, artifacts_for):
        """Test Stubs requests get the test prefix, branch and label."""
        controller.submit(complex_instance, artifacts_for(Stage.TEST_STUBS))
        request = build_change_set_request(complex_instance)

        assert request.title == "test(rate-limiting): [1/4] Test Stubs"
        assert request.head_branch == "rate-limiting/1-test-stubs"
        assert request.base_branch == "main"
        assert request.labels == ["tests"]
        assert request.files == ["tests/test_rate_limiter.py"]

    def test_body_lists_checked_conditions(self, controller, complex_instance, artifacts_for):
        """A passing gate renders every condition checked."""
        controller.submit(complex_instance, artifacts_for(Stage.TEST_STUBS))
        body = build_change_set_request(complex_instance).body

        assert "### Quality gate" in body
        assert "- [x] At least one test file is part of the change-set" in body
        assert "- [ ]" not in body
        assert "`tests/test_rate_limiter.py`" in body
        assert "0 of 3 tests pass" in body

    def test_failed_gate_leaves_boxes_unchecked(self, controller, complex_instance):
        """Unmet conditions render as unchecked boxes."""
        controller.submit(complex_instance, StageArtifacts(files=["tests/test_rate_limiter.py"]))
        body = build_change_set_request(complex_instance).body

        assert "- [x] At least one test file is part of the change-set" in body
        assert "- [ ] Happy-path, edge-case and error tests are all present" in body

    def test_simple_feature_numbering_skips_design(self, controller, simple_instance, artifacts_for):
        """Simple features number only the stages they visit."""
        controller.submit(simple_instance, artifacts_for(Stage.TEST_STUBS))
        controller.approve(simple_instance)
        request = build_change_set_request(simple_instance, artifacts_for(Stage.IMPLEMENTATION))

        assert request.title == "feat(typo-fix): [2/2] Implementation"
        assert request.head_branch == "typo-fix/2-implementation"
        assert "- mypy: 0 error(s), 0 warning(s)" in request.body

    def test_branch_slug_is_sanitized(self, controller):
        """Feature ids are lowercased and sanitized for branch names."""
        instance = controller.start("Auth Flow/OAuth", "complex")
        request = build_change_set_request(instance, base_branch="develop", draft=True)

        assert request.head_branch == "auth-flow-oauth/1-test-stubs"
        assert request.base_branch == "develop"
        assert request.draft


class TestGitHubCLI:
    """Test the gh command wrapper."""

    def test_open_change_set(self, gh, tmp_path):
        """open_change_set runs gh pr create and returns the URL."""
        request = ChangeSetRequest(
            feature_id="rate-limiting",
            stage=Stage.ARCHITECTURE,
            title="docs(rate-limiting): [2/4] Architecture",
            body="body",
            head_branch="rate-limiting/2-architecture",
            labels=["architecture"],
            draft=True,
        )
        url = "https://github.com/acme/app/pull/42"
        with patch("subprocess.run", return_value=_completed(stdout=f"Creating PR\n{url}\n")) as mock_run:
            assert gh.open_change_set(request) == url

        cmd = mock_run.call_args[0][0]
        assert cmd[:3] == ["gh", "pr", "create"]
        assert cmd[cmd.index("--head") + 1] == "rate-limiting/2-architecture"
        assert cmd[cmd.index("--label") + 1] == "architecture"
        assert "--draft" in cmd
        assert mock_run.call_args[1]["cwd"] == tmp_path

    def test_command_failure_raises(self, gh):
        """A non-zero exit raises ChangeSetError with stderr."""
        request = ChangeSetRequest(
            feature_id="x", stage=Stage.TEST_STUBS, title="t", body="b", head_branch="x/1-test-stubs"
        )
        with patch("subprocess.run", return_value=_completed(returncode=1, stderr="no remote")):
            with pytest.raises(ChangeSetError) as exc_info:
                gh.open_change_set(request)
        assert exc_info.value.returncode == 1
        assert exc_info.value.stderr == "no remote"

    def test_missing_executable_raises(self, tmp_path):
        """A missing gh binary raises ChangeSetError."""
        gh = GitHubCLI(tmp_path, gh_cmd="/nonexistent/gh")
        with patch("subprocess.run", side_effect=FileNotFoundError()):
            with pytest.raises(ChangeSetError, match="not found"):
                gh.review_decision("42")

    @pytest.mark.parametrize(
        "decision,approved",
        [("APPROVED", True), ("CHANGES_REQUESTED", False), ("REVIEW_REQUIRED", False), (None, False)],
    )
    def test_is_approved(self, gh, decision, approved):
        """Only an APPROVED review decision counts as approval."""
        stdout = json.dumps({"reviewDecision": decision})
        with patch("subprocess.run", return_value=_completed(stdout=stdout)) as mock_run:
            assert gh.is_approved("42") is approved
        assert mock_run.call_args[0][0] == ["gh", "pr", "view", "42", "--json", "reviewDecision"]

    def test_unexpected_output_raises(self, gh):
        """Non-JSON output raises ChangeSetError."""
        with patch("subprocess.run", return_value=_completed(stdout="not json")):
            with pytest.raises(ChangeSetError, match="Unexpected"):
                gh.review_decision("42")

"""Change-set requests for the review host.

The workflow produces one request per stage: "open a reviewable change-set
containing these artifacts with this title and description". It consumes one
signal back: "this change-set was approved".

GitHubCLI hands both to the ``gh`` command-line tool. Any other host can be
driven from a ChangeSetRequest directly.

Prerequisites for GitHubCLI:
    brew install gh   # or see https://cli.github.com
    gh auth login
"""

import json
import logging
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from devflow.config import Stage
from devflow.workflow.artifacts import StageArtifacts
from devflow.workflow.errors import WorkflowError
from devflow.workflow.gate_conditions import get_condition
from devflow.workflow.stage_registry import get_stage_registry
from devflow.workflow.workflow_instance import WorkflowInstance

logger = logging.getLogger(__name__)

_BRANCH_UNSAFE_RE = re.compile(r"[^a-z0-9-]+")


@dataclass
class ChangeSetRequest:
    """A reviewable change-set for one stage of one feature.

    Attributes:
        feature_id: Feature the change-set belongs to
        stage: Stage under review
        title: Change-set title, e.g. "test(rate-limiting): [1/4] Test Stubs"
        body: Markdown description
        head_branch: Branch holding the stage's commits
        base_branch: Branch the change-set targets
        labels: Labels to apply
        files: Files included in the change-set
        draft: Open as a draft
    """

    feature_id: str
    stage: Stage
    title: str
    body: str
    head_branch: str
    base_branch: str = "main"
    labels: list[str] = field(default_factory=list)
    files: list[str] = field(default_factory=list)
    draft: bool = False


class ChangeSetError(WorkflowError):
    """Error from the review host."""

    def __init__(self, message: str, returncode: int = 1, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


def _branch_slug(feature_id: str) -> str:
    return _BRANCH_UNSAFE_RE.sub("-", feature_id.lower()).strip("-") or "feature"


def build_change_set_request(
    instance: WorkflowInstance,
    artifacts: StageArtifacts | None = None,
    base_branch: str = "main",
    draft: bool = False,
) -> ChangeSetRequest:
    """Build the change-set request for the instance's current stage.

    Stage numbering counts only the stages this feature goes through, so a
    simple feature's implementation change-set is "[2/2]".

    Args:
        instance: Workflow instance
        artifacts: Submitted artifacts; defaults to the stage's last submission
        base_branch: Target branch
        draft: Open as a draft

    Returns:
        ChangeSetRequest
    """
    registry = get_stage_registry()
    stage = instance.current_stage
    meta = registry.get(stage)
    record = instance.current_record
    artifacts = artifacts or record.artifacts or StageArtifacts()

    active = [s for s in registry.stage_order() if not instance.stages[s].skipped]
    position = active.index(stage) + 1 if stage in active else meta.display_index
    total = len(active)

    title = f"{meta.change_set_prefix}({instance.feature_id}): [{position}/{total}] {meta.display_name}"
    head_branch = f"{_branch_slug(instance.feature_id)}/{position}-{stage.value}"

    return ChangeSetRequest(
        feature_id=instance.feature_id,
        stage=stage,
        title=title,
        body=_format_body(instance, stage, artifacts, position, total),
        head_branch=head_branch,
        base_branch=base_branch,
        labels=list(meta.labels),
        files=list(artifacts.files),
        draft=draft,
    )


def _format_body(
    instance: WorkflowInstance,
    stage: Stage,
    artifacts: StageArtifacts,
    position: int,
    total: int,
) -> str:
    """Markdown description: purpose, checklist, files and tool results."""
    meta = get_stage_registry().get(stage)
    gate = instance.current_record.gate_result
    unmet = set(gate.unmet_conditions) if gate else set()

    lines = [
        f"## {meta.display_name} ({position} of {total}) for `{instance.feature_id}`",
        "",
        meta.description,
        "",
        "### Quality gate",
        "",
    ]
    for condition_id in meta.conditions:
        checked = gate is not None and condition_id not in unmet
        mark = "x" if checked else " "
        lines.append(f"- [{mark}] {get_condition(condition_id).description}")

    if artifacts.files:
        lines.extend(["", "### Files", ""])
        lines.extend(f"- `{path}`" for path in artifacts.files)

    results = []
    if artifacts.test_run is not None:
        results.append(f"- Tests: {artifacts.test_run.summary}")
    if artifacts.type_check is not None:
        tc = artifacts.type_check
        results.append(f"- {tc.tool}: {tc.errors} error(s), {tc.warnings} warning(s)")
    if results:
        lines.extend(["", "### Tool results", "", *results])

    if artifacts.notes.strip():
        lines.extend(["", "### Notes", "", artifacts.notes.strip()])

    return "\n".join(lines)


class GitHubCLI:
    """Opens change-sets and reads review decisions through ``gh``.

    Example:
        gh = GitHubCLI("/path/to/repo")
        url = gh.open_change_set(build_change_set_request(instance))
        if gh.is_approved(url):
            controller.approve(instance)
    """

    def __init__(self, repo_dir: Path | str, gh_cmd: str = "gh"):
        """Initialize CLI wrapper.

        Args:
            repo_dir: Local clone of the repository
            gh_cmd: Path to the gh executable
        """
        self.repo_dir = Path(repo_dir)
        self.gh_cmd = gh_cmd

    def _run(self, args: list[str], check: bool = True) -> subprocess.CompletedProcess:
        """Execute a gh command.

        Raises:
            ChangeSetError: On non-zero exit when ``check`` is set, or when
                the executable is missing
        """
        cmd = [self.gh_cmd] + args
        try:
            result = subprocess.run(
                cmd,
                cwd=self.repo_dir,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as e:
            raise ChangeSetError(f"'{self.gh_cmd}' executable not found") from e

        if check and result.returncode != 0:
            raise ChangeSetError(
                f"Command failed: {' '.join(cmd[:3])}",
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result

    def open_change_set(self, request: ChangeSetRequest) -> str:
        """Open a pull request for the request.

        Returns:
            URL of the new pull request
        """
        args = [
            "pr",
            "create",
            "--title",
            request.title,
            "--body",
            request.body,
            "--base",
            request.base_branch,
            "--head",
            request.head_branch,
        ]
        if request.draft:
            args.append("--draft")
        for label in request.labels:
            args.extend(["--label", label])

        result = self._run(args)
        url = result.stdout.strip().splitlines()[-1] if result.stdout.strip() else ""
        logger.info(f"Opened change-set for '{request.feature_id}' {request.stage.value}: {url}")
        return url

    def review_decision(self, pr_ref: str) -> str:
        """Review decision of a pull request ("APPROVED", "CHANGES_REQUESTED", ...)."""
        result = self._run(["pr", "view", pr_ref, "--json", "reviewDecision"])
        try:
            data = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as e:
            raise ChangeSetError(f"Unexpected gh output: {result.stdout!r}") from e
        return data.get("reviewDecision") or ""

    def is_approved(self, pr_ref: str) -> bool:
        return self.review_decision(pr_ref) == "APPROVED"

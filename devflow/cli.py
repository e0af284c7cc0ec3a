"""Command-line driver for devflow.

Usage:
    devflow start rate-limiting --complexity complex
    devflow submit rate-limiting --artifacts stubs.yaml --open-pr
    devflow feedback rate-limiting --issue "missing timeout test"
    devflow approve rate-limiting --pr 42
    devflow revert rate-limiting --to architecture --reason "cache layer misplaced"
    devflow resolve rate-limiting extend
    devflow status rate-limiting
    devflow list

Exit codes: 0 on success, 1 when the driver must act (gate failed,
escalation pending), 2 on usage errors.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import yaml
from dotenv import load_dotenv

from devflow.config import EscalationResolution, Stage
from devflow.formatters import format_escalation, format_gate_result, format_instance_status
from devflow.project import load_project_config
from devflow.review import GitHubCLI, build_change_set_request
from devflow.session import InstanceStore
from devflow.telemetry import LoggingConfig, setup_logging
from devflow.workflow import (
    EscalationRequired,
    GateFailed,
    TransitionController,
    TransitionEvent,
    WorkflowError,
    get_stage_registry,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ACTION_REQUIRED = 1
EXIT_USAGE_ERROR = 2


def _log_event(event: TransitionEvent) -> None:
    stages = " -> ".join(s.value for s in (event.from_stage, event.to_stage) if s is not None)
    logger.info(f"[{event.feature_id}] {event.kind.value} {stages}".rstrip())


def _load_artifacts(path: str) -> dict:
    """Read a YAML or JSON artifacts file."""
    artifacts_path = Path(path)
    try:
        data = yaml.safe_load(artifacts_path.read_text()) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ValueError(f"Cannot read artifacts file {artifacts_path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Artifacts file {artifacts_path} must contain a mapping")
    return data


# =============================================================================
# Command Handlers
# =============================================================================


def cmd_start(args, store: InstanceStore) -> int:
    if store.exists(args.feature):
        print(f"ERROR: '{args.feature}' is already tracked")
        return EXIT_USAGE_ERROR
    config = load_project_config(args.config)
    controller = TransitionController.from_config(config, listeners=[_log_event])
    instance = controller.start(args.feature, args.complexity)
    store.save(instance)
    print(format_instance_status(instance))
    return EXIT_OK


def cmd_submit(args, store: InstanceStore, controller: TransitionController) -> int:
    instance = store.load(args.feature)
    try:
        result = controller.submit(instance, _load_artifacts(args.artifacts))
    finally:
        store.save(instance)

    print(format_gate_result(result))
    if not result.is_pass:
        return EXIT_ACTION_REQUIRED

    if args.open_pr:
        request = build_change_set_request(instance, base_branch=args.base, draft=args.draft)
        url = GitHubCLI(Path.cwd()).open_change_set(request)
        print(f"Opened change-set: {url}")
    return EXIT_OK


def cmd_feedback(args, store: InstanceStore, controller: TransitionController) -> int:
    instance = store.load(args.feature)
    try:
        count = controller.request_changes(instance, args.issue or [])
    finally:
        store.save(instance)
    print(
        f"Iteration {count} of {instance.iteration_limit()} recorded for "
        f"{instance.current_stage.value}"
    )
    return EXIT_OK


def cmd_approve(args, store: InstanceStore, controller: TransitionController) -> int:
    instance = store.load(args.feature)
    if args.pr and not GitHubCLI(Path.cwd()).is_approved(args.pr):
        print(f"Change-set {args.pr} is not approved yet")
        return EXIT_ACTION_REQUIRED
    try:
        controller.approve(instance)
    finally:
        store.save(instance)
    print(format_instance_status(instance))
    return EXIT_OK


def cmd_revert(args, store: InstanceStore, controller: TransitionController) -> int:
    instance = store.load(args.feature)
    try:
        target = get_stage_registry().get_by_slug(args.to).stage
        controller.report_design_flaw(instance, target, args.reason)
    finally:
        store.save(instance)
    print(format_instance_status(instance))
    return EXIT_OK


def cmd_resolve(args, store: InstanceStore, controller: TransitionController) -> int:
    instance = store.load(args.feature)
    try:
        controller.resolve_escalation(instance, args.resolution, args.reason)
    finally:
        store.save(instance)
    print(format_instance_status(instance))
    return EXIT_OK


def cmd_cancel(args, store: InstanceStore, controller: TransitionController) -> int:
    instance = store.load(args.feature)
    try:
        controller.abort(instance, args.reason)
    finally:
        store.save(instance)
    print(format_instance_status(instance))
    return EXIT_OK


def cmd_status(args, store: InstanceStore, controller: TransitionController) -> int:
    instance = store.load(args.feature)
    if args.json:
        print(json.dumps(instance.model_dump(mode="json"), indent=2))
    else:
        print(format_instance_status(instance))
    return EXIT_ACTION_REQUIRED if controller.pending_escalation(instance) else EXIT_OK


def cmd_list(args, store: InstanceStore, controller: TransitionController) -> int:
    instances = store.load_all()
    if not instances:
        print("No workflows tracked")
        return EXIT_OK
    for instance in instances:
        where = instance.status.value if instance.is_terminal else instance.current_stage.value
        print(f"{instance.feature_id}\t{instance.complexity.value}\t{where}")
    return EXIT_OK


COMMANDS = {
    "submit": cmd_submit,
    "feedback": cmd_feedback,
    "approve": cmd_approve,
    "revert": cmd_revert,
    "resolve": cmd_resolve,
    "cancel": cmd_cancel,
    "status": cmd_status,
    "list": cmd_list,
}


# =============================================================================
# CLI Entry Point
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devflow",
        description="Track features through the 4-step reviewed workflow",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--state-dir", type=str, default=None, help="Directory for workflow files")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log transitions")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("start", help="Start tracking a feature")
    p.add_argument("feature")
    p.add_argument("--complexity", required=True, help="simple or complex")
    p.add_argument("--config", type=str, default=None, help="Path to devflow.yaml")

    p = sub.add_parser("submit", help="Submit artifacts for the current stage")
    p.add_argument("feature")
    p.add_argument("--artifacts", required=True, help="YAML or JSON artifacts file")
    p.add_argument("--open-pr", action="store_true", help="Open a pull request with gh on pass")
    p.add_argument("--base", default="main", help="Base branch for the pull request")
    p.add_argument("--draft", action="store_true", help="Open the pull request as a draft")

    p = sub.add_parser("feedback", help="Record review feedback on the current stage")
    p.add_argument("feature")
    p.add_argument("--issue", action="append", help="Unresolved issue (repeatable)")

    p = sub.add_parser("approve", help="Signal that the current stage was approved")
    p.add_argument("feature")
    p.add_argument("--pr", default=None, help="Check this pull request's review decision first")

    p = sub.add_parser("revert", help="Go back to an earlier stage after a design flaw")
    p.add_argument("feature")
    p.add_argument("--to", required=True, help=f"Earlier stage: {', '.join(Stage.values())}")
    p.add_argument("--reason", required=True)

    p = sub.add_parser("resolve", help="Resolve a pending escalation")
    p.add_argument("feature")
    p.add_argument("resolution", choices=[r.value for r in EscalationResolution])
    p.add_argument("--reason", default="")

    p = sub.add_parser("cancel", help="Abort a workflow")
    p.add_argument("feature")
    p.add_argument("--reason", default="")

    p = sub.add_parser("status", help="Show a workflow")
    p.add_argument("feature")
    p.add_argument("--json", action="store_true", help="Print the raw instance as JSON")

    sub.add_parser("list", help="List tracked workflows")
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    log_config = LoggingConfig.from_env()
    if args.verbose:
        log_config.log_level = "INFO"
    setup_logging(log_config, force=True)

    store = InstanceStore(args.state_dir)
    try:
        if args.command == "start":
            return cmd_start(args, store)
        controller = TransitionController(listeners=[_log_event])
        return COMMANDS[args.command](args, store, controller)
    except EscalationRequired as e:
        print(format_escalation(e))
        return EXIT_ACTION_REQUIRED
    except GateFailed as e:
        print(f"ERROR: {e}")
        return EXIT_ACTION_REQUIRED
    except (WorkflowError, ValueError) as e:
        # Covers ConfigError, StoreError, ChangeSetError and usage errors
        print(f"ERROR: {e}")
        return EXIT_USAGE_ERROR


if __name__ == "__main__":
    sys.exit(main())

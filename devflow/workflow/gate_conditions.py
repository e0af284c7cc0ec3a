"""Quality-gate predicates for stage submissions.

Every condition is an independent, pure check over a StageArtifacts value.
No I/O and no hidden state: the same artifacts always give the same answer.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import PurePosixPath

from devflow.config import REQUIRED_TEST_CATEGORIES
from devflow.workflow.artifacts import StageArtifacts

logger = logging.getLogger(__name__)

DOC_SUFFIXES = frozenset({".md", ".rst", ".txt", ".adoc"})
DIAGRAM_SUFFIXES = frozenset({".mmd", ".mermaid", ".puml", ".plantuml", ".drawio", ".svg", ".png"})
SOURCE_SUFFIXES = frozenset(
    {".py", ".pyi", ".js", ".jsx", ".ts", ".tsx", ".go", ".rs", ".java", ".kt", ".rb", ".c", ".cc", ".cpp", ".h", ".cs", ".swift"}
)
_TEST_DIRS = frozenset({"tests", "test", "__tests__", "spec", "specs"})


# =============================================================================
# File Classification
# =============================================================================


def is_test_file(path: str) -> bool:
    """True for files that belong to a test suite."""
    p = PurePosixPath(path.replace("\\", "/"))
    name = p.name.lower()
    if name.startswith("test_") or name == "conftest.py":
        return True
    if p.stem.lower().endswith(("_test", ".test", ".spec", "_spec")):
        return True
    return any(part.lower() in _TEST_DIRS for part in p.parts[:-1])


def is_doc_file(path: str) -> bool:
    return PurePosixPath(path).suffix.lower() in DOC_SUFFIXES


def is_diagram_file(path: str) -> bool:
    return PurePosixPath(path).suffix.lower() in DIAGRAM_SUFFIXES


def is_source_file(path: str) -> bool:
    """True for non-test source files (implementation or interfaces)."""
    if is_test_file(path):
        return False
    return PurePosixPath(path).suffix.lower() in SOURCE_SUFFIXES


# =============================================================================
# Predicates
# =============================================================================


def _test_files_present(artifacts: StageArtifacts) -> bool:
    return any(is_test_file(f) for f in artifacts.files)


def _test_categories_covered(artifacts: StageArtifacts) -> bool:
    covered = set(artifacts.test_categories)
    return all(category in covered for category in REQUIRED_TEST_CATEGORIES)


def _tests_fail_with_clear_messages(artifacts: StageArtifacts) -> bool:
    run = artifacts.test_run
    if run is None or run.total == 0:
        return False
    # Stubs must fail, not error out during collection
    if run.passed or run.errors or run.failed != run.total:
        return False
    messages = [m for m in run.failure_messages if m.strip()]
    return len(messages) >= run.failed


def _no_implementation_code(artifacts: StageArtifacts) -> bool:
    return not any(is_source_file(f) for f in artifacts.files)


def _design_document_present(artifacts: StageArtifacts) -> bool:
    if artifacts.design_document.strip():
        return True
    return any(is_doc_file(f) for f in artifacts.files)


def _diagram_present(artifacts: StageArtifacts) -> bool:
    if any(d.strip() for d in artifacts.diagrams):
        return True
    if "```mermaid" in artifacts.design_document:
        return True
    return any(is_diagram_file(f) for f in artifacts.files)


def _source_files_present(artifacts: StageArtifacts) -> bool:
    return any(is_source_file(f) for f in artifacts.files)


def _type_check_clean(artifacts: StageArtifacts) -> bool:
    return artifacts.type_check is not None and artifacts.type_check.clean


def _tests_still_collect(artifacts: StageArtifacts) -> bool:
    run = artifacts.test_run
    return run is not None and run.total > 0 and run.errors == 0


def _all_tests_pass(artifacts: StageArtifacts) -> bool:
    run = artifacts.test_run
    if run is None or run.total == 0:
        return False
    return run.failed == 0 and run.errors == 0 and run.passed == run.total


# =============================================================================
# Condition Table
# =============================================================================


@dataclass(frozen=True)
class GateCondition:
    """A named checklist item."""

    id: str
    description: str
    check: Callable[[StageArtifacts], bool]

    def __call__(self, artifacts: StageArtifacts) -> bool:
        return bool(self.check(artifacts))


_CONDITIONS: list[GateCondition] = [
    GateCondition(
        "test-files-present",
        "At least one test file is part of the change-set",
        _test_files_present,
    ),
    GateCondition(
        "test-categories-covered",
        "Happy-path, edge-case and error tests are all present",
        _test_categories_covered,
    ),
    GateCondition(
        "tests-fail-with-clear-messages",
        "Every test fails (none pass, none error) and each failure has a message",
        _tests_fail_with_clear_messages,
    ),
    GateCondition(
        "no-implementation-code",
        "The change-set contains no implementation source files",
        _no_implementation_code,
    ),
    GateCondition(
        "design-document-present",
        "A design document describes components and data flow",
        _design_document_present,
    ),
    GateCondition(
        "diagram-present",
        "At least one diagram is present",
        _diagram_present,
    ),
    GateCondition(
        "interface-files-present",
        "Interface or type definition source files are part of the change-set",
        _source_files_present,
    ),
    GateCondition(
        "type-check-clean",
        "The type checker reports zero errors",
        _type_check_clean,
    ),
    GateCondition(
        "tests-still-collect",
        "The test suite still runs without collection errors",
        _tests_still_collect,
    ),
    GateCondition(
        "implementation-files-present",
        "Implementation source files are part of the change-set",
        _source_files_present,
    ),
    GateCondition(
        "all-tests-pass",
        "Every test passes",
        _all_tests_pass,
    ),
]

CONDITIONS: dict[str, GateCondition] = {c.id: c for c in _CONDITIONS}


def get_condition(condition_id: str) -> GateCondition:
    """Look up a checklist condition by id.

    Raises:
        KeyError: If no condition has that id
    """
    try:
        return CONDITIONS[condition_id]
    except KeyError:
        raise KeyError(
            f"Unknown gate condition: {condition_id}. Known: {sorted(CONDITIONS)}"
        ) from None

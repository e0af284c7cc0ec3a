"""File-backed persistence for workflow instances.

Each tracked feature is stored as one YAML file in the state directory:

    .devflow/
    ├── rate-limiting.yaml
    └── typo-fix.yaml

Instances share no state, so each file is independent. A lock serializes
reads and writes from threads of the same process.
"""

import logging
import os
import re
import threading
from pathlib import Path

import yaml
from pydantic import ValidationError

from devflow.config import DEFAULT_STATE_DIR, STATE_DIR_ENV_VAR
from devflow.workflow.errors import WorkflowError
from devflow.workflow.workflow_instance import WorkflowInstance

logger = logging.getLogger(__name__)

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]+")


class StoreError(WorkflowError):
    """A persisted instance is missing or unreadable."""

    def __init__(self, message: str, feature_id: str | None = None):
        self.feature_id = feature_id
        super().__init__(message)


def default_state_dir() -> Path:
    """State directory from DEVFLOW_STATE_DIR, else ``.devflow`` in the cwd."""
    return Path(os.getenv(STATE_DIR_ENV_VAR, DEFAULT_STATE_DIR))


def feature_filename(feature_id: str) -> str:
    """File name used to store ``feature_id``."""
    slug = _UNSAFE_CHARS_RE.sub("-", feature_id.strip()).strip("-.")
    if not slug:
        raise StoreError(f"Cannot derive a file name from feature id {feature_id!r}", feature_id)
    return f"{slug}.yaml"


class InstanceStore:
    """Saves and loads WorkflowInstance records.

    Args:
        state_dir: Directory holding the instance files. Created on first save.
    """

    def __init__(self, state_dir: Path | str | None = None) -> None:
        self.state_dir = Path(state_dir) if state_dir is not None else default_state_dir()
        self._lock = threading.Lock()

    def _path_for(self, feature_id: str) -> Path:
        return self.state_dir / feature_filename(feature_id)

    def exists(self, feature_id: str) -> bool:
        return self._path_for(feature_id).exists()

    def save(self, instance: WorkflowInstance) -> Path:
        """Write an instance to disk, replacing any previous version.

        Returns:
            Path of the written file
        """
        path = self._path_for(instance.feature_id)
        data = instance.model_dump(mode="json")
        with self._lock:
            tmp_path = path.with_suffix(".yaml.tmp")
            try:
                self.state_dir.mkdir(parents=True, exist_ok=True)
                tmp_path.write_text(yaml.safe_dump(data, sort_keys=False, allow_unicode=True))
                tmp_path.replace(path)
            except OSError as e:
                tmp_path.unlink(missing_ok=True)
                raise StoreError(f"Cannot write {path}: {e}", instance.feature_id) from e
        logger.debug(f"Saved workflow '{instance.feature_id}' to {path}")
        return path

    def load(self, feature_id: str) -> WorkflowInstance:
        """Read an instance from disk.

        Raises:
            StoreError: If no instance is stored for ``feature_id`` or the
                file cannot be parsed
        """
        path = self._path_for(feature_id)
        with self._lock:
            if not path.exists():
                raise StoreError(f"No workflow tracked for '{feature_id}'", feature_id)
            try:
                data = yaml.safe_load(path.read_text()) or {}
            except (yaml.YAMLError, OSError) as e:
                raise StoreError(f"Cannot read {path}: {e}", feature_id) from e

        try:
            instance = WorkflowInstance.model_validate(data)
        except ValidationError as e:
            raise StoreError(f"Corrupted workflow file {path}: {e}", feature_id) from e

        # Distinct ids can share a file name once sanitized
        if instance.feature_id != feature_id.strip():
            raise StoreError(
                f"{path} belongs to '{instance.feature_id}', not '{feature_id}'", feature_id
            )
        return instance

    def load_all(self) -> list[WorkflowInstance]:
        """Load every readable instance; unreadable files are logged and skipped."""
        if not self.state_dir.exists():
            return []
        instances = []
        for path in sorted(self.state_dir.glob("*.yaml")):
            try:
                with self._lock:
                    data = yaml.safe_load(path.read_text()) or {}
                instances.append(WorkflowInstance.model_validate(data))
            except (yaml.YAMLError, OSError, ValidationError) as e:
                logger.warning(f"Skipping unreadable workflow file {path}: {e}")
        return sorted(instances, key=lambda i: i.feature_id)


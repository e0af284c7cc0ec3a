"""Project configuration for devflow.

Configuration lives in ``devflow.yaml`` at the project root and is read once,
when a workflow instance is created. The loaded value is immutable and is
passed explicitly to the components that need it.

Example devflow.yaml:
    max_iterations: 3
    stages:
      architecture:
        required: true          # never skipped, even for simple features
      object-design:
        enabled: false          # always skipped
      implementation:
        max_iterations: 5       # per-stage override
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from devflow.config import DEFAULT_CONFIG_FILE, DEFAULT_MAX_ITERATIONS, Complexity, Stage
from devflow.workflow.errors import WorkflowError
from devflow.workflow.stage_registry import get_stage_metadata

logger = logging.getLogger(__name__)

# Stages that can never be disabled or skipped
MANDATORY_STAGES = (Stage.TEST_STUBS, Stage.IMPLEMENTATION)


class ConfigError(WorkflowError):
    """Invalid project configuration."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message)


class StageSettings(BaseModel):
    """Per-stage switches."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = True
    required: bool = False
    max_iterations: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _consistent(self) -> "StageSettings":
        if self.required and not self.enabled:
            raise ValueError("a stage cannot be both required and disabled")
        return self


class ProjectConfig(BaseModel):
    """Immutable project-wide workflow configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_iterations: int = Field(default=DEFAULT_MAX_ITERATIONS, ge=1)
    stages: dict[Stage, StageSettings] = Field(default_factory=dict)

    @field_validator("stages", mode="before")
    @classmethod
    def _normalize_stage_keys(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            return v
        normalized = {}
        for key, value in v.items():
            slug = key.value if isinstance(key, Stage) else str(key).strip().lower().replace("_", "-")
            normalized[slug] = value if value is not None else {}
        return normalized

    @model_validator(mode="after")
    def _mandatory_stages_enabled(self) -> "ProjectConfig":
        for stage in MANDATORY_STAGES:
            settings = self.stages.get(stage)
            if settings is not None and not settings.enabled:
                raise ValueError(f"stage '{stage.value}' cannot be disabled")
        return self

    def settings_for(self, stage: Stage) -> StageSettings:
        return self.stages.get(stage) or StageSettings()

    def iteration_limit(self, stage: Stage) -> int:
        """Review iterations allowed on ``stage`` before escalation."""
        override = self.settings_for(stage).max_iterations
        return override if override is not None else self.max_iterations

    def is_skipped(self, stage: Stage, complexity: Complexity) -> bool:
        """Whether ``stage`` is skipped for a feature of ``complexity``."""
        if stage in MANDATORY_STAGES:
            return False
        settings = self.settings_for(stage)
        if not settings.enabled:
            return True
        if settings.required:
            return False
        return complexity is Complexity.SIMPLE and get_stage_metadata(stage).skippable_when_simple


DEFAULT_CONFIG = ProjectConfig()


def load_project_config(path: str | Path | None = None) -> ProjectConfig:
    """Load project configuration from a YAML file.

    Args:
        path: Config file path. Defaults to ``devflow.yaml`` in the working
            directory; a missing default file yields the default config.

    Returns:
        ProjectConfig

    Raises:
        ConfigError: If the file is unreadable, not YAML, or invalid
    """
    explicit = path is not None
    config_path = Path(path) if explicit else Path.cwd() / DEFAULT_CONFIG_FILE

    if not config_path.exists():
        if explicit:
            raise ConfigError("configuration file not found", config_path)
        logger.debug(f"No {DEFAULT_CONFIG_FILE} found, using defaults")
        return DEFAULT_CONFIG

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML: {e}", config_path) from e
    except OSError as e:
        raise ConfigError(f"cannot read file: {e}", config_path) from e

    if not isinstance(data, dict):
        raise ConfigError("top level must be a mapping", config_path)

    try:
        config = ProjectConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(str(e), config_path) from e

    logger.info(f"Loaded project configuration from {config_path}")
    return config

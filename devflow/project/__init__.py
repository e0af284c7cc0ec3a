"""Project-level configuration for devflow."""

from .project_config import (
    DEFAULT_CONFIG,
    MANDATORY_STAGES,
    ConfigError,
    ProjectConfig,
    StageSettings,
    load_project_config,
)

__all__ = [
    "DEFAULT_CONFIG",
    "MANDATORY_STAGES",
    "ConfigError",
    "ProjectConfig",
    "StageSettings",
    "load_project_config",
]

"""Configuration, option validation and logging helpers."""

from __future__ import annotations

from .errors import (
    ConfigurationError,
    MigrationDefinitionError,
    OptionValidationError,
    SchemaDefinitionError,
)
from .logging import configure_logging
from .options import Autogenerate, resolve_column_type
from .repo import DEFAULT_REPO, RepoConfig, load_repo_config, repo_config_from_alembic

__all__ = [
    "DEFAULT_REPO",
    "Autogenerate",
    "ConfigurationError",
    "MigrationDefinitionError",
    "OptionValidationError",
    "RepoConfig",
    "SchemaDefinitionError",
    "configure_logging",
    "load_repo_config",
    "repo_config_from_alembic",
    "resolve_column_type",
]

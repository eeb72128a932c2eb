"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when configuration values are invalid."""


class OptionValidationError(ConfigurationError):
    """Raised when a declaration receives an option value of the wrong shape."""


class SchemaDefinitionError(ConfigurationError):
    """Raised when a schema declaration conflicts with what is already declared."""


class MigrationDefinitionError(ConfigurationError):
    """Raised when a table block receives a conflicting or unsupported column operation."""

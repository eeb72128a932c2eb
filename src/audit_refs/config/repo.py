"""Repository-level defaults for the declarators."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final

from .errors import ConfigurationError
from .options import COLUMN_TYPES, resolve_column_type

if TYPE_CHECKING:
    from collections.abc import Mapping

    from alembic.config import Config
    from sqlalchemy.types import TypeEngine

log = logging.getLogger(__name__)

DEFAULT_REPO: Final[str] = "default"
DEFAULT_FOREIGN_KEY_TYPE: Final[str] = "bigint"
ALEMBIC_ATTRIBUTE: Final[str] = "audit_refs"
ALEMBIC_REPO_OPTION: Final[str] = "audit_refs_repo"
ALEMBIC_PYPROJECT_OPTION: Final[str] = "audit_refs_pyproject"


@dataclass(frozen=True, slots=True)
class RepoConfig:
    """Defaults scoped to one data-store connection.

    ``migration_audits`` is overlaid by call-site options in
    :func:`audit_refs.migration.audits`; ``foreign_key_type`` is the column type used
    by ``references`` when none is given.
    """

    name: str = DEFAULT_REPO
    migration_audits: Mapping[str, object] = field(default_factory=dict)
    foreign_key_type: str = DEFAULT_FOREIGN_KEY_TYPE

    def __post_init__(self) -> None:
        if self.foreign_key_type not in COLUMN_TYPES:
            known = ", ".join(sorted(COLUMN_TYPES))
            raise ConfigurationError(
                f"Repo {self.name!r}: unknown foreign_key_type {self.foreign_key_type!r} "
                f"(expected one of: {known})"
            )

    def column_type(self) -> TypeEngine[Any] | type[TypeEngine[Any]]:
        return resolve_column_type(self.foreign_key_type)


def _load_pyproject(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as pyproject_file:
            return tomllib.load(pyproject_file)
    except FileNotFoundError:
        log.debug("No pyproject.toml at %s; using empty repo configuration", path)
        return {}


def load_repo_config(
    repo: str = DEFAULT_REPO, *, pyproject_path: Path | None = None
) -> RepoConfig:
    """Read ``[tool.audit_refs.repos.<repo>]`` from pyproject.toml.

    A missing file or section yields a configuration without defaults.
    """

    path = pyproject_path or Path.cwd() / "pyproject.toml"
    document = _load_pyproject(path)
    repos = document.get("tool", {}).get("audit_refs", {}).get("repos", {})
    section = repos.get(repo, {})
    if not isinstance(section, dict):
        raise ConfigurationError(f"[tool.audit_refs.repos.{repo}] must be a table")

    migration_audits = section.get("migration_audits", {})
    if not isinstance(migration_audits, dict):
        raise ConfigurationError(
            f"[tool.audit_refs.repos.{repo}].migration_audits must be a table"
        )
    foreign_key_type = section.get("foreign_key_type", DEFAULT_FOREIGN_KEY_TYPE)
    if not isinstance(foreign_key_type, str):
        raise ConfigurationError(
            f"[tool.audit_refs.repos.{repo}].foreign_key_type must be a string"
        )

    log.debug("Loaded repo configuration %r from %s", repo, path)
    return RepoConfig(
        name=repo,
        migration_audits=dict(migration_audits),
        foreign_key_type=foreign_key_type,
    )


def repo_config_from_alembic(config: Config) -> RepoConfig:
    """Return the repo configuration for an Alembic run.

    An explicit :class:`RepoConfig` stored in ``config.attributes["audit_refs"]`` wins;
    otherwise the repo named by the ``audit_refs_repo`` main option is loaded from
    pyproject.toml (``audit_refs_pyproject`` overrides its location).
    """

    explicit = config.attributes.get(ALEMBIC_ATTRIBUTE)
    if explicit is not None:
        if not isinstance(explicit, RepoConfig):
            raise ConfigurationError(
                f"config.attributes[{ALEMBIC_ATTRIBUTE!r}] must be a RepoConfig, "
                f"got {type(explicit).__name__}"
            )
        return explicit

    repo = config.get_main_option(ALEMBIC_REPO_OPTION) or DEFAULT_REPO
    pyproject = config.get_main_option(ALEMBIC_PYPROJECT_OPTION)
    return load_repo_config(repo, pyproject_path=Path(pyproject) if pyproject else None)

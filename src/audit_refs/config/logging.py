"""Log configuration for migration environments and scripts using audit-refs."""

from __future__ import annotations

import logging
from typing import Final

PACKAGE_LOGGER: Final = "audit_refs"
LOG_FORMAT: Final = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(
    *, level: int = logging.INFO, declarations: int | None = None, force: bool = False
) -> None:
    """Set up the root logger and, optionally, the level of the ``audit_refs`` loggers.

    Declarators log every association and column at DEBUG while executed table
    operations log at INFO. ``declarations=logging.DEBUG`` surfaces the former from
    an Alembic ``env.py`` without turning on DEBUG for SQLAlchemy and Alembic too.
    """

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    if declarations is not None:
        logging.getLogger(PACKAGE_LOGGER).setLevel(declarations)

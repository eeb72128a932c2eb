"""Audit foreign-key columns for migration table blocks."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from audit_refs.config.errors import MigrationDefinitionError
from audit_refs.config.options import MigrationAuditOptions, parse_options

from .table import Reference, references

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .table import TableBuilder

log = logging.getLogger(__name__)

_AUDIT_OPTIONS = frozenset(MigrationAuditOptions.model_fields)


def _effective_options(
    table: TableBuilder, options: Mapping[str, object]
) -> MigrationAuditOptions:
    merged = {**table.config.migration_audits, **options}
    return parse_options(MigrationAuditOptions, merged, context=f"audits() on {table.name!r}")


def _column_names(parsed: MigrationAuditOptions) -> list[str]:
    return [f"{role}_id" for role in (parsed.inserted_by, parsed.updated_by) if role is not False]


def _forwarded(options: Mapping[str, object]) -> dict[str, object]:
    return {key: value for key, value in options.items() if key not in _AUDIT_OPTIONS}


def _reference(
    table: TableBuilder, target: str | Reference, options: Mapping[str, object]
) -> Reference:
    # repo defaults < options set on the Reference < call-site options
    merged = _forwarded(table.config.migration_audits)
    if isinstance(target, Reference):
        merged.update(
            (key, value) for key, value in target.options().items() if value is not None
        )
        target = target.table
    merged.update(_forwarded(options))
    return references(target, **merged)


def audits(table: TableBuilder, reference: str | Reference, **options: object) -> None:
    """Add ``inserted_by_id`` and ``updated_by_id`` columns referencing ``reference``.

    Options overlay the repo's ``migration_audits`` defaults key by key. ``inserted_by``
    and ``updated_by`` set the column prefix (``False`` skips the column) and ``null``
    (default ``False``) controls nullability. Everything else is passed to
    :func:`references`, e.g. ``column``, ``on_delete`` or ``type``; options already set
    on a :class:`Reference` take precedence over the repo defaults.
    """

    parsed = _effective_options(table, options)
    target = _reference(table, reference, options)
    names = _column_names(parsed)
    if len(set(names)) != len(names):
        raise MigrationDefinitionError(f"audits() needs distinct column names, got {names}")
    for name in names:
        table.ensure_column_available(name)

    for name in names:
        table.add(name, target, null=parsed.null)
    log.debug("Declared audit columns %s on %s -> %s", names, table.name, target.target)


def remove_audits(table: TableBuilder, **options: object) -> None:
    """Drop the audit columns :func:`audits` would add with the same options."""

    if table.mode != "alter":
        raise MigrationDefinitionError(
            f"remove_audits() needs an alter block, got {table.mode!r}"
        )
    parsed = _effective_options(table, options)
    for name in _column_names(parsed):
        table.remove(name)

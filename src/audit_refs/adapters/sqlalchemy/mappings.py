"""SQLAlchemy tables and imperative mappings for schema definitions.

Insert hooks become column defaults and update hooks become ``onupdate``,
so explicitly assigned values always win.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import Column, ForeignKey, Table
from sqlalchemy.orm import configure_mappers, relationship

from audit_refs.config.errors import SchemaDefinitionError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from sqlalchemy import MetaData, orm
    from sqlalchemy.engine import Engine

    from audit_refs.config.options import Autogenerate
    from audit_refs.schema.definition import HookEntry, SchemaDefinition

log = logging.getLogger(__name__)


def _populate_with(hook: Autogenerate) -> Callable[[], Any]:
    def populate() -> Any:
        return hook.invoke()

    return populate


def _hooks_by_field(entries: Iterable[HookEntry]) -> dict[str, Autogenerate]:
    hooks: dict[str, Autogenerate] = {}
    for fields, hook in entries:
        for name in fields:
            hooks[name] = hook
    return hooks


def define_table(metadata: MetaData, definition: SchemaDefinition) -> Table:
    """Build (or return the already built) table for ``definition``."""

    existing = metadata.tables.get(definition.source)
    if existing is not None:
        return existing

    insert_hooks = _hooks_by_field(definition.autogenerate)
    update_hooks = _hooks_by_field(definition.autoupdate)
    columns: list[Column[Any]] = []
    for spec in definition.field_specs():
        constraints: list[ForeignKey] = []
        if spec.foreign_key is not None:
            constraints.append(
                ForeignKey(
                    spec.foreign_key.target,
                    ondelete=spec.foreign_key.ondelete,
                    onupdate=spec.foreign_key.onupdate,
                )
            )
        default = spec.default
        if spec.name in insert_hooks:
            default = _populate_with(insert_hooks[spec.name])
        onupdate = _populate_with(update_hooks[spec.name]) if spec.name in update_hooks else None
        columns.append(
            Column(
                spec.name,
                spec.type,
                *constraints,
                primary_key=spec.primary_key,
                nullable=spec.nullable,
                default=default,
                onupdate=onupdate,
            )
        )

    log.debug("Defining table %s with columns %s", definition.source, definition.fields)
    return Table(definition.source, metadata, *columns)


def map_schema(
    registry: orm.registry, definition: SchemaDefinition, table: Table | None = None
) -> orm.Mapper[Any]:
    """Imperatively map ``definition.model`` with one relationship per association."""

    if definition.model is None:
        raise SchemaDefinitionError(f"{definition.source!r} has no model class to map")
    table = table if table is not None else define_table(registry.metadata, definition)

    properties: dict[str, Any] = {}
    for association in definition.associations.values():
        related_model = association.related.model
        if related_model is None:
            raise SchemaDefinitionError(
                f"{association.related.source!r} has no model class for "
                f"{definition.source}.{association.name}"
            )
        if association.owner_key not in table.c:
            raise SchemaDefinitionError(
                f"{definition.source!r} has no column {association.owner_key!r} "
                f"for association {association.name!r}"
            )
        options = dict(association.relationship_options)
        options.setdefault("foreign_keys", [table.c[association.owner_key]])
        if association.related is definition:
            options.setdefault("remote_side", [table.c[association.related_key]])
        properties[association.name] = relationship(related_model, **options)

    log.info("Mapping %s onto %s", definition.model.__name__, table.name)
    return registry.map_imperatively(definition.model, table, properties=properties)


def map_schemas(registry: orm.registry, *definitions: SchemaDefinition) -> orm.registry:
    """Define every table first, then map every model and configure the mappers."""

    tables = [define_table(registry.metadata, definition) for definition in definitions]
    for definition, table in zip(definitions, tables, strict=True):
        map_schema(registry, definition, table)
    configure_mappers()
    return registry


def create_all_tables(registry: orm.registry, engine: Engine) -> None:
    """Create all tables."""

    log.info("Creating all tables")
    registry.metadata.create_all(engine)

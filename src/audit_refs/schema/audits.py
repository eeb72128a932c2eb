"""Belongs-to associations and the ``inserted_by``/``updated_by`` audit pair."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from audit_refs.config.errors import SchemaDefinitionError
from audit_refs.config.options import (
    BelongsToOptions,
    SchemaAuditOptions,
    parse_options,
    sql_action,
)

from .definition import BelongsTo, ForeignKeyTarget

if TYPE_CHECKING:
    from .definition import FieldSpec, SchemaDefinition

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResolvedFieldPair:
    """Foreign-key field names produced by :func:`audits`; ``None`` for a disabled role."""

    inserted_by: str | None
    updated_by: str | None

    def enabled(self) -> tuple[str, ...]:
        return tuple(name for name in (self.inserted_by, self.updated_by) if name is not None)


def _related_spec(related: SchemaDefinition, references: str | None) -> FieldSpec:
    if references is None:
        primary_keys = related.primary_key_fields
        if not primary_keys:
            raise SchemaDefinitionError(
                f"{related.source!r} has no primary key; pass references= explicitly"
            )
        references = primary_keys[0]
    spec = related.field_spec(references)
    if spec is None:
        raise SchemaDefinitionError(
            f"{related.source!r} has no field {references!r} to reference"
        )
    return spec


def belongs_to(
    definition: SchemaDefinition,
    name: str,
    related: SchemaDefinition,
    **options: object,
) -> BelongsTo:
    """Declare ``name`` as a belongs-to association of ``definition`` pointing at ``related``.

    Unless ``define_field=False``, a ``<name>_id`` field (or ``foreign_key=``) is
    declared as well, typed like the referenced key. Options the declarator does not
    know are kept in ``relationship_options`` for ``sqlalchemy.orm.relationship``.
    """

    parsed = parse_options(BelongsToOptions, options, context=f"belongs_to({name!r})")
    owner_key = parsed.foreign_key or f"{name}_id"
    related_spec = _related_spec(related, parsed.references)
    related_key = related_spec.name

    definition.ensure_association_available(name)
    if parsed.define_field:
        if owner_key == name:
            raise SchemaDefinitionError(
                f"belongs_to({name!r}) needs a foreign_key other than {name!r}"
            )
        definition.ensure_field_available(owner_key)
        definition.field(
            owner_key,
            parsed.type if parsed.type is not None else related_spec.type,
            nullable=parsed.nullable,
            foreign_key=ForeignKeyTarget(
                table=related.source,
                column=related_key,
                ondelete=sql_action(parsed.on_delete),
                onupdate=sql_action(parsed.on_update),
            ),
        )

    association = BelongsTo(
        name=name,
        owner_key=owner_key,
        related=related,
        related_key=related_key,
        relationship_options=parsed.forwarded,
    )
    definition.add_association(association)
    log.debug(
        "Declared %s.%s -> %s.%s", definition.source, name, related.source, related_key
    )
    return association


def audits(
    definition: SchemaDefinition,
    related: SchemaDefinition,
    **options: object,
) -> ResolvedFieldPair:
    """Declare the ``inserted_by``/``updated_by`` associations pointing at ``related``.

    ``inserted_by`` and ``updated_by`` rename either association or disable it when
    ``False``. ``references`` picks the referenced field. ``autogenerate`` takes a
    ``(module, function, args)`` triple: on insert it fills every audit foreign key,
    on update only the ``updated_by`` one. Remaining options go to :func:`belongs_to`.

    All options and name clashes are checked before anything is declared.
    """

    parsed = parse_options(SchemaAuditOptions, options, context="audits()")
    forwarded = parsed.forwarded
    if parsed.references is not None:
        forwarded["references"] = parsed.references
    belongs_to_options = parse_options(BelongsToOptions, forwarded, context="audits()")

    roles = [role for role in (parsed.inserted_by, parsed.updated_by) if role is not False]
    if len(set(roles)) != len(roles):
        raise SchemaDefinitionError(f"audits() needs distinct role names, got {roles}")
    if roles:
        _related_spec(related, belongs_to_options.references)
    for role in roles:
        definition.ensure_association_available(role)
        owner_key = belongs_to_options.foreign_key or f"{role}_id"
        if belongs_to_options.define_field:
            if owner_key == role:
                raise SchemaDefinitionError(f"audits() needs a foreign_key other than {role!r}")
            definition.ensure_field_available(owner_key)
        elif parsed.autogenerate is not None and definition.field_spec(owner_key) is None:
            raise SchemaDefinitionError(
                f"autogenerate needs field {owner_key!r} on {definition.source!r}"
            )
    if belongs_to_options.foreign_key is not None and len(roles) > 1:
        raise SchemaDefinitionError("audits() cannot share one foreign_key between two roles")

    resolved: dict[str, str | None] = {"inserted_by": None, "updated_by": None}
    for key, role in (("inserted_by", parsed.inserted_by), ("updated_by", parsed.updated_by)):
        if role is False:
            continue
        association = belongs_to(definition, role, related, **forwarded)
        resolved[key] = association.owner_key
    pair = ResolvedFieldPair(**resolved)

    if parsed.autogenerate is not None and pair.enabled():
        definition.register_autogenerate(pair.enabled(), parsed.autogenerate)
        if pair.updated_by is not None:
            definition.register_autoupdate((pair.updated_by,), parsed.autogenerate)
        log.debug(
            "Registered audit hooks on %s via %s.%s",
            definition.source,
            parsed.autogenerate.module,
            parsed.autogenerate.function,
        )
    return pair

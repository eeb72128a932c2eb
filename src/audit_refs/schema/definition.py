"""In-memory description of a model definition: fields, associations and hooks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal, TypeAlias

from sqlalchemy import Integer

from audit_refs.config.errors import SchemaDefinitionError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.types import TypeEngine

    from audit_refs.config.options import Autogenerate

log = logging.getLogger(__name__)

ColumnTypeLike: TypeAlias = "TypeEngine[Any] | type[TypeEngine[Any]]"
HookEntry: TypeAlias = "tuple[tuple[str, ...], Autogenerate]"


@dataclass(frozen=True, slots=True)
class ForeignKeyTarget:
    table: str
    column: str
    ondelete: str | None = None
    onupdate: str | None = None

    @property
    def target(self) -> str:
        return f"{self.table}.{self.column}"


@dataclass(frozen=True, slots=True)
class FieldSpec:
    name: str
    type: ColumnTypeLike
    primary_key: bool = False
    nullable: bool = True
    default: Any = None
    foreign_key: ForeignKeyTarget | None = None


@dataclass(frozen=True, slots=True)
class BelongsTo:
    """A foreign-key association from the owning record to one related record."""

    name: str
    owner_key: str
    related: SchemaDefinition
    related_key: str
    relationship_options: Mapping[str, Any] = field(default_factory=dict)


class SchemaDefinition:
    """Declarative description of one mapped model.

    Fields keep their declaration order. ``autogenerate`` and ``autoupdate`` hold
    ``(field names, hook)`` entries applied on insert and update respectively.
    """

    def __init__(
        self,
        source: str,
        model: type | None = None,
        *,
        primary_key: tuple[str, ColumnTypeLike] | Literal[False] = ("id", Integer),
    ) -> None:
        self.source = source
        self.model = model
        self._fields: dict[str, FieldSpec] = {}
        self._associations: dict[str, BelongsTo] = {}
        self.autogenerate: list[HookEntry] = []
        self.autoupdate: list[HookEntry] = []
        if primary_key is not False:
            name, type_ = primary_key
            self.field(name, type_, primary_key=True, nullable=False)

    def __repr__(self) -> str:
        return f"SchemaDefinition({self.source!r}, fields={self.fields!r})"

    @property
    def fields(self) -> list[str]:
        return list(self._fields)

    @property
    def associations(self) -> Mapping[str, BelongsTo]:
        return dict(self._associations)

    @property
    def primary_key_fields(self) -> list[str]:
        return [spec.name for spec in self._fields.values() if spec.primary_key]

    def field_spec(self, name: str) -> FieldSpec | None:
        return self._fields.get(name)

    def field_specs(self) -> list[FieldSpec]:
        return list(self._fields.values())

    def association(self, name: str) -> BelongsTo | None:
        return self._associations.get(name)

    def field(
        self,
        name: str,
        type_: ColumnTypeLike,
        *,
        primary_key: bool = False,
        nullable: bool = True,
        default: Any = None,
        foreign_key: ForeignKeyTarget | None = None,
    ) -> FieldSpec:
        self.ensure_field_available(name)
        spec = FieldSpec(
            name=name,
            type=type_,
            primary_key=primary_key,
            nullable=nullable,
            default=default,
            foreign_key=foreign_key,
        )
        self._fields[name] = spec
        log.debug("Declared field %s.%s", self.source, name)
        return spec

    def add_association(self, association: BelongsTo) -> None:
        self.ensure_association_available(association.name)
        self._associations[association.name] = association

    def register_autogenerate(self, fields: tuple[str, ...], hook: Autogenerate) -> None:
        self._ensure_known_fields(fields)
        self.autogenerate.append((fields, hook))

    def register_autoupdate(self, fields: tuple[str, ...], hook: Autogenerate) -> None:
        self._ensure_known_fields(fields)
        self.autoupdate.append((fields, hook))

    def ensure_field_available(self, name: str) -> None:
        if name in self._fields:
            raise SchemaDefinitionError(f"field {name!r} already exists on {self.source!r}")
        if name in self._associations:
            raise SchemaDefinitionError(
                f"field {name!r} clashes with an association on {self.source!r}"
            )

    def ensure_association_available(self, name: str) -> None:
        if name in self._associations:
            raise SchemaDefinitionError(
                f"association {name!r} already exists on {self.source!r}"
            )
        if name in self._fields:
            raise SchemaDefinitionError(
                f"association {name!r} clashes with a field on {self.source!r}"
            )

    def _ensure_known_fields(self, fields: tuple[str, ...]) -> None:
        unknown = [name for name in fields if name not in self._fields]
        if unknown:
            raise SchemaDefinitionError(
                f"cannot register hooks for unknown fields on {self.source!r}: {unknown}"
            )

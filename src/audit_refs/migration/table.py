"""Create/alter table blocks executed through Alembic operations."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any, Literal, TypeAlias

from alembic import op
from sqlalchemy import Column, ForeignKey, false, text, true
from sqlalchemy.sql.elements import ClauseElement

from audit_refs.config.errors import MigrationDefinitionError, OptionValidationError
from audit_refs.config.options import (
    ColumnOptions,
    ReferenceOptions,
    parse_options,
    resolve_column_type,
    sql_action,
)
from audit_refs.config.repo import RepoConfig

if TYPE_CHECKING:
    from collections.abc import Iterator

    from alembic.operations import Operations

    from audit_refs.schema.definition import ColumnTypeLike

log = logging.getLogger(__name__)

TableMode: TypeAlias = Literal["create", "alter"]


@dataclass(frozen=True, slots=True)
class Reference:
    """Foreign-key target of a migration column."""

    table: str
    column: str = "id"
    type: ColumnTypeLike | None = None
    on_delete: str | None = None
    on_update: str | None = None
    name: str | None = None
    prefix: str | None = None
    match: str | None = None

    @property
    def target(self) -> str:
        if self.prefix:
            return f"{self.prefix}.{self.table}.{self.column}"
        return f"{self.table}.{self.column}"

    def options(self) -> dict[str, Any]:
        return {
            item.name: getattr(self, item.name) for item in fields(self) if item.name != "table"
        }

    def foreign_key(self) -> ForeignKey:
        return ForeignKey(
            self.target,
            name=self.name,
            ondelete=sql_action(self.on_delete),
            onupdate=sql_action(self.on_update),
            match=self.match.upper() if self.match else None,
        )


def references(table: str, **options: object) -> Reference:
    """Describe a foreign key to ``table`` (``column`` defaults to ``id``)."""

    if not isinstance(table, str) or not table:
        raise OptionValidationError(f"references() needs a table name, got {table!r}")
    parsed = parse_options(ReferenceOptions, options, context=f"references({table!r})")
    return Reference(
        table=table,
        column=parsed.column,
        type=parsed.type,
        on_delete=parsed.on_delete,
        on_update=parsed.on_update,
        name=parsed.name,
        prefix=parsed.prefix,
        match=parsed.match,
    )


@dataclass(frozen=True, slots=True)
class ColumnOperation:
    kind: Literal["add", "remove"]
    name: str
    column: Column[Any] | None = None


def _server_default(value: object) -> Any:
    if value is None or isinstance(value, (str, ClauseElement)):
        return value
    if isinstance(value, bool):
        return true() if value else false()
    if isinstance(value, (int, float)):
        return text(str(value))
    raise OptionValidationError(f"unsupported column default {value!r}")


class TableBuilder:
    """Column operations collected inside a ``create_table``/``alter_table`` block."""

    def __init__(
        self,
        name: str,
        *,
        mode: TableMode = "create",
        prefix: str | None = None,
        config: RepoConfig | None = None,
    ) -> None:
        self.name = name
        self.mode = mode
        self.prefix = prefix
        self.config = config or RepoConfig()
        self._operations: list[ColumnOperation] = []

    def __repr__(self) -> str:
        return f"TableBuilder({self.name!r}, mode={self.mode!r}, columns={self.column_names!r})"

    @property
    def operations(self) -> list[ColumnOperation]:
        return list(self._operations)

    @property
    def columns(self) -> list[Column[Any]]:
        return [item.column for item in self._operations if item.column is not None]

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]

    def column(self, name: str) -> Column[Any] | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def ensure_column_available(self, name: str) -> None:
        if name in self.column_names:
            raise MigrationDefinitionError(f"column {name!r} already added to {self.name!r}")

    def add(
        self, column: str, type_: ColumnTypeLike | Reference | str, **options: object
    ) -> Column[Any]:
        parsed = parse_options(ColumnOptions, options, context=f"add({column!r})")
        self.ensure_column_available(column)

        constraints: list[ForeignKey] = []
        if isinstance(type_, Reference):
            constraints.append(type_.foreign_key())
            column_type = type_.type if type_.type is not None else self.config.column_type()
        else:
            try:
                column_type = resolve_column_type(type_)
            except ValueError as exc:
                raise OptionValidationError(f"add({column!r}): {exc}") from exc
        if parsed.size is not None:
            if not isinstance(column_type, type):
                raise OptionValidationError(f"add({column!r}): size needs a type class")
            column_type = column_type(parsed.size)

        kwargs: dict[str, Any] = {"primary_key": parsed.primary_key, "comment": parsed.comment}
        if parsed.null is not None:
            kwargs["nullable"] = parsed.null
        if parsed.default is not None:
            kwargs["server_default"] = _server_default(parsed.default)

        declared = Column(column, column_type, *constraints, **kwargs)
        self._operations.append(ColumnOperation("add", column, declared))
        log.debug("Added column %s.%s", self.name, column)
        return declared

    def remove(self, column: str) -> None:
        if self.mode != "alter":
            raise MigrationDefinitionError(
                f"cannot remove {column!r} while creating {self.name!r}"
            )
        self._operations.append(ColumnOperation("remove", column))
        log.debug("Removed column %s.%s", self.name, column)

    def execute(self, operations: Operations) -> None:
        if self.mode == "create":
            log.info("Creating table %s (%s)", self.name, ", ".join(self.column_names))
            operations.create_table(self.name, *self.columns, schema=self.prefix)
            return

        log.info("Altering table %s", self.name)
        for item in self._operations:
            if item.column is not None:
                operations.add_column(self.name, item.column, schema=self.prefix)
            else:
                operations.drop_column(self.name, item.name, schema=self.prefix)


@contextmanager
def create_table(
    name: str,
    *,
    operations: Operations | None = None,
    prefix: str | None = None,
    config: RepoConfig | None = None,
) -> Iterator[TableBuilder]:
    """Collect columns for a new table and create it when the block exits cleanly."""

    builder = TableBuilder(name, mode="create", prefix=prefix, config=config)
    yield builder
    builder.execute(operations if operations is not None else op)


@contextmanager
def alter_table(
    name: str,
    *,
    operations: Operations | None = None,
    prefix: str | None = None,
    config: RepoConfig | None = None,
) -> Iterator[TableBuilder]:
    """Collect column changes for an existing table and apply them on a clean exit."""

    builder = TableBuilder(name, mode="alter", prefix=prefix, config=config)
    yield builder
    builder.execute(operations if operations is not None else op)

"""Pydantic models validating the options accepted by the declarators."""

from __future__ import annotations

import importlib
from types import ModuleType
from typing import TYPE_CHECKING, Annotated, Any, Final, Literal, NamedTuple, TypeVar

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    StrictBool,
    ValidationError,
    field_validator,
)
from sqlalchemy import BigInteger, Integer, String, Text, Uuid
from sqlalchemy.types import TypeEngine

from .errors import OptionValidationError

if TYPE_CHECKING:
    from collections.abc import Mapping

COLUMN_TYPES: Final[dict[str, type[TypeEngine[Any]]]] = {
    "bigint": BigInteger,
    "integer": Integer,
    "string": String,
    "text": Text,
    "uuid": Uuid,
}

OnDelete = Literal["nothing", "delete_all", "nilify_all", "restrict"]
OnUpdate = Literal["nothing", "update_all", "nilify_all", "restrict"]

_SQL_ACTIONS: Final[dict[str, str | None]] = {
    "nothing": None,
    "delete_all": "CASCADE",
    "update_all": "CASCADE",
    "nilify_all": "SET NULL",
    "restrict": "RESTRICT",
}


def sql_action(action: str | None) -> str | None:
    """Translate a foreign-key action name into its SQL ``ON DELETE``/``ON UPDATE`` clause."""

    if action is None:
        return None
    return _SQL_ACTIONS[action]


def resolve_column_type(value: object) -> TypeEngine[Any] | type[TypeEngine[Any]]:
    """Return a SQLAlchemy type for a type name, type class or type instance."""

    if isinstance(value, str):
        try:
            return COLUMN_TYPES[value]
        except KeyError:
            known = ", ".join(sorted(COLUMN_TYPES))
            raise ValueError(f"unknown column type {value!r} (expected one of: {known})") from None
    if isinstance(value, TypeEngine):
        return value
    if isinstance(value, type) and issubclass(value, TypeEngine):
        return value
    raise ValueError(f"expected a SQLAlchemy type or type name, got {value!r}")


def _check_identifier(value: str) -> str:
    if not value.isidentifier():
        raise ValueError(f"{value!r} is not a valid identifier")
    return value


def _check_role_name(value: object) -> object:
    if value is False:
        return value
    if isinstance(value, str) and value.isidentifier():
        return value
    raise ValueError(f"expected an identifier or False, got {value!r}")


def _check_optional_column_type(value: object) -> object:
    if value is None:
        return None
    return resolve_column_type(value)


Identifier = Annotated[str, AfterValidator(_check_identifier)]
RoleName = Annotated[str | Literal[False], BeforeValidator(_check_role_name)]
ColumnType = Annotated[Any, AfterValidator(_check_optional_column_type)]


class Autogenerate(NamedTuple):
    """A ``(module, function, args)`` triple invoked to populate a field."""

    module: str
    function: str
    args: tuple[Any, ...] = ()

    def invoke(self) -> Any:
        target = getattr(importlib.import_module(self.module), self.function)
        return target(*self.args)


class _Options(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    @property
    def forwarded(self) -> dict[str, Any]:
        """Options not recognised by this model, passed on untouched."""
        return dict(self.model_extra or {})


class SchemaAuditOptions(_Options):
    inserted_by: RoleName = "inserted_by"
    updated_by: RoleName = "updated_by"
    references: Identifier | None = None
    autogenerate: Autogenerate | None = None

    @field_validator("autogenerate", mode="before")
    @classmethod
    def _module_objects_by_name(cls, value: object) -> object:
        if (
            isinstance(value, (tuple, list))
            and len(value) == 3  # noqa: PLR2004
            and isinstance(value[0], ModuleType)
        ):
            return (value[0].__name__, value[1], value[2])
        return value

    @field_validator("autogenerate")
    @classmethod
    def _function_is_identifier(cls, value: Autogenerate | None) -> Autogenerate | None:
        if value is not None:
            _check_identifier(value.function)
        return value


class MigrationAuditOptions(_Options):
    inserted_by: RoleName = "inserted_by"
    updated_by: RoleName = "updated_by"
    null: StrictBool = False


class BelongsToOptions(_Options):
    foreign_key: Identifier | None = None
    references: Identifier | None = None
    type: ColumnType = None
    define_field: StrictBool = True
    nullable: StrictBool = True
    on_delete: OnDelete | None = None
    on_update: OnUpdate | None = None


class ReferenceOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    column: Identifier = "id"
    type: ColumnType = None
    on_delete: OnDelete | None = None
    on_update: OnUpdate | None = None
    name: str | None = None
    prefix: str | None = None
    match: Literal["full", "partial", "simple"] | None = None


class ColumnOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    null: StrictBool | None = None
    default: Any = None
    primary_key: StrictBool = False
    comment: str | None = None
    size: int | None = None


TModel = TypeVar("TModel", bound=BaseModel)


def parse_options(
    model: type[TModel], options: Mapping[str, object], *, context: str
) -> TModel:
    """Validate ``options`` against ``model`` or raise :class:`OptionValidationError`."""

    try:
        return model.model_validate(dict(options))
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or '<options>'}: {error['msg']}"
            for error in exc.errors()
        )
        raise OptionValidationError(f"Invalid options for {context}: {problems}") from exc

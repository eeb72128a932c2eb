"""Schema-side declarations: belongs-to associations and audit fields."""

from __future__ import annotations

from .audits import ResolvedFieldPair, audits, belongs_to
from .definition import BelongsTo, FieldSpec, ForeignKeyTarget, SchemaDefinition

__all__ = [
    "BelongsTo",
    "FieldSpec",
    "ForeignKeyTarget",
    "ResolvedFieldPair",
    "SchemaDefinition",
    "audits",
    "belongs_to",
]

"""SQLAlchemy adapter realising schema definitions as tables and mappers."""

from __future__ import annotations

from .mappings import create_all_tables, define_table, map_schema, map_schemas

__all__ = [
    "create_all_tables",
    "define_table",
    "map_schema",
    "map_schemas",
]

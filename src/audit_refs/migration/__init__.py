"""Migration-side declarations for Alembic revision scripts."""

from __future__ import annotations

from .audits import audits, remove_audits
from .table import Reference, TableBuilder, alter_table, create_table, references

__all__ = [
    "Reference",
    "TableBuilder",
    "alter_table",
    "audits",
    "create_table",
    "references",
    "remove_audits",
]

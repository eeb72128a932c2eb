from __future__ import annotations

from typing import TYPE_CHECKING

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import inspect

from audit_refs.migration import alter_table, audits, create_table, remove_audits

if TYPE_CHECKING:
    import io

    from sqlalchemy.engine import Engine


def test_create_table_with_audits_on_sqlite(sqlite_engine: Engine) -> None:
    with sqlite_engine.begin() as connection:
        operations = Operations(MigrationContext.configure(connection))

        with create_table("users", operations=operations) as table:
            table.add("id", "bigint", primary_key=True)
            table.add("name", "string", size=120)

        with create_table("posts", operations=operations) as table:
            table.add("id", "bigint", primary_key=True)
            table.add("title", "string", null=False)
            audits(table, "users")

        inspector = inspect(connection)
        columns = {column["name"]: column for column in inspector.get_columns("posts")}
        foreign_keys = inspector.get_foreign_keys("posts")

    assert list(columns) == ["id", "title", "inserted_by_id", "updated_by_id"]
    assert columns["inserted_by_id"]["nullable"] is False
    assert columns["updated_by_id"]["nullable"] is False
    assert sorted(fk["constrained_columns"][0] for fk in foreign_keys) == [
        "inserted_by_id",
        "updated_by_id",
    ]
    assert all(fk["referred_table"] == "users" for fk in foreign_keys)
    assert all(fk["referred_columns"] == ["id"] for fk in foreign_keys)


def test_alter_table_renders_postgresql_ddl(
    offline_operations: tuple[Operations, io.StringIO],
) -> None:
    operations, buffer = offline_operations

    with alter_table("posts", operations=operations) as table:
        audits(table, "users", on_delete="nilify_all", null=True)

    sql = buffer.getvalue()
    assert "ALTER TABLE posts ADD COLUMN inserted_by_id BIGINT" in sql
    assert "ALTER TABLE posts ADD COLUMN updated_by_id BIGINT" in sql
    assert "REFERENCES users (id) ON DELETE SET NULL" in sql


def test_remove_audits_renders_drop_column(
    offline_operations: tuple[Operations, io.StringIO],
) -> None:
    operations, buffer = offline_operations

    with alter_table("posts", operations=operations) as table:
        remove_audits(table, updated_by=False)

    sql = buffer.getvalue()
    assert "ALTER TABLE posts DROP COLUMN inserted_by_id" in sql
    assert "updated_by_id" not in sql

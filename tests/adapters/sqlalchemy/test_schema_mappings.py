from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy import Integer, String, inspect, orm

from audit_refs.adapters.sqlalchemy import create_all_tables, define_table, map_schemas
from audit_refs.config import SchemaDefinitionError
from audit_refs.schema import SchemaDefinition, audits
from tests.support import current_user

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine
    from sqlalchemy.orm import Session, sessionmaker

HOOK = ("tests.support.current_user", "current_user_id", ())


@dataclass
class AuditedModels:
    registry: orm.registry
    user: type[Any]
    post: type[Any]
    users: SchemaDefinition
    posts: SchemaDefinition


@pytest.fixture
def audited(sqlite_engine: Engine) -> Iterator[AuditedModels]:
    class User:
        def __init__(self, name: str) -> None:
            self.name = name

    class Post:
        def __init__(self, title: str) -> None:
            self.title = title

    users = SchemaDefinition("users", User)
    users.field("name", String)
    posts = SchemaDefinition("posts", Post)
    posts.field("title", String)
    audits(posts, users, autogenerate=HOOK)

    registry = orm.registry()
    map_schemas(registry, users, posts)
    create_all_tables(registry, sqlite_engine)
    try:
        yield AuditedModels(registry, User, Post, users, posts)
    finally:
        registry.dispose()


@pytest.fixture
def session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def test_define_table_declares_audit_columns(
    audited: AuditedModels, sqlite_engine: Engine
) -> None:
    inspector = inspect(sqlite_engine)

    columns = [column["name"] for column in inspector.get_columns("posts")]
    foreign_keys = inspector.get_foreign_keys("posts")

    assert columns == ["id", "title", "inserted_by_id", "updated_by_id"]
    assert {tuple(fk["constrained_columns"]) for fk in foreign_keys} == {
        ("inserted_by_id",),
        ("updated_by_id",),
    }
    assert {fk["referred_table"] for fk in foreign_keys} == {"users"}


def test_define_table_is_idempotent(audited: AuditedModels) -> None:
    table = audited.registry.metadata.tables["posts"]

    assert define_table(audited.registry.metadata, audited.posts) is table


def test_insert_populates_both_audit_fields(audited: AuditedModels, session: Session) -> None:
    author = audited.user("ada")
    session.add(author)
    session.commit()

    current_user.set_current_user_id(author.id)
    post = audited.post("hello")
    session.add(post)
    session.commit()

    assert post.inserted_by_id == author.id
    assert post.updated_by_id == author.id
    assert post.inserted_by is author
    assert post.updated_by is author


def test_update_only_refreshes_updated_by(audited: AuditedModels, session: Session) -> None:
    author = audited.user("ada")
    editor = audited.user("grace")
    session.add_all([author, editor])
    session.commit()

    current_user.set_current_user_id(author.id)
    post = audited.post("hello")
    session.add(post)
    session.commit()

    current_user.set_current_user_id(editor.id)
    post.title = "edited"
    session.commit()

    assert post.inserted_by_id == author.id
    assert post.updated_by_id == editor.id


def test_explicit_values_win_over_hooks(audited: AuditedModels, session: Session) -> None:
    author = audited.user("ada")
    ghost = audited.user("ghost")
    session.add_all([author, ghost])
    session.commit()

    current_user.set_current_user_id(author.id)
    post = audited.post("hello")
    post.inserted_by = ghost
    session.add(post)
    session.commit()

    assert post.inserted_by_id == ghost.id
    assert post.updated_by_id == author.id


def test_audits_without_hooks_leave_fields_empty(sqlite_engine: Engine) -> None:
    class Account:
        pass

    class Note:
        pass

    accounts = SchemaDefinition("accounts", Account)
    notes = SchemaDefinition("notes", Note)
    audits(notes, accounts)
    registry = orm.registry()
    try:
        map_schemas(registry, accounts, notes)
        table = registry.metadata.tables["notes"]
        assert table.c.inserted_by_id.default is None
        assert table.c.updated_by_id.onupdate is None
    finally:
        registry.dispose()


def test_self_referencing_audits(
    sqlite_engine: Engine, session_factory: sessionmaker[Session]
) -> None:
    class Member:
        def __init__(self, name: str) -> None:
            self.name = name

    members = SchemaDefinition("members", Member)
    members.field("name", String)
    audits(members, members)
    registry = orm.registry()
    try:
        map_schemas(registry, members)
        create_all_tables(registry, sqlite_engine)
        with session_factory() as session:
            admin = Member("admin")
            member = Member("member")
            member.inserted_by = admin
            session.add_all([admin, member])
            session.commit()

            assert member.inserted_by_id == admin.id
            assert member.updated_by_id is None
    finally:
        registry.dispose()


def test_audits_against_alternate_key(sqlite_engine: Engine) -> None:
    class Operator:
        pass

    class Job:
        pass

    operators = SchemaDefinition("operators", Operator, primary_key=False)
    operators.field("alt_id", Integer, primary_key=True)
    jobs = SchemaDefinition("jobs", Job)
    audits(jobs, operators, references="alt_id")
    registry = orm.registry()
    try:
        map_schemas(registry, operators, jobs)
        table = registry.metadata.tables["jobs"]
        targets = {fk.target_fullname for fk in table.foreign_keys}
        assert targets == {"operators.alt_id"}
    finally:
        registry.dispose()


def test_map_schema_requires_model_class() -> None:
    registry = orm.registry()

    with pytest.raises(SchemaDefinitionError):
        map_schemas(registry, SchemaDefinition("orphans"))

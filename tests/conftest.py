from __future__ import annotations

import io
from typing import TYPE_CHECKING

import pytest
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from tests.support import current_user
from tests.support.operations import RecordingOperations

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=sqlite_engine, future=True)


@pytest.fixture
def recording_operations() -> RecordingOperations:
    return RecordingOperations()


@pytest.fixture
def offline_operations() -> tuple[Operations, io.StringIO]:
    buffer = io.StringIO()
    context = MigrationContext.configure(
        dialect_name="postgresql",
        opts={"as_sql": True, "output_buffer": buffer},
    )
    return Operations(context), buffer


@pytest.fixture(autouse=True)
def reset_current_user() -> Iterator[None]:
    current_user.set_current_user_id(None)
    yield
    current_user.set_current_user_id(None)

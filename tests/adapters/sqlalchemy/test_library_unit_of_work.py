from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, inspect

from papershelf.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyLibraryUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from papershelf.domain.errors import StoreCommitFailure
from tests.helpers.papers import ADDED_AT, make_record

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_unit_of_work_requires_startup() -> None:
    assert not is_started()
    with pytest.raises(StartupError):
        SqlAlchemyLibraryUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b


def test_startup_migrates_to_head(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    tables = set(inspect(sqlite_engine).get_table_names())

    assert {"paper", "categorizer", "paper_categorizer", "schedule_state"} <= tables


def test_committed_work_is_visible_to_the_next_unit(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    record = make_record(added_at=ADDED_AT)

    with SqlAlchemyLibraryUnitOfWork() as uow:
        uow.repositories.papers.put(record)
        uow.commit()

    with SqlAlchemyLibraryUnitOfWork() as uow:
        assert uow.repositories.papers.get(record.id) == record


def test_uncommitted_work_is_discarded(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    record = make_record(added_at=ADDED_AT)

    with SqlAlchemyLibraryUnitOfWork() as uow:
        uow.repositories.papers.put(record)

    with SqlAlchemyLibraryUnitOfWork() as uow:
        assert uow.repositories.papers.get(record.id) is None


def test_failed_statement_surfaces_as_commit_failure(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyLibraryUnitOfWork() as uow, pytest.raises(StoreCommitFailure):
        uow.repositories.papers.put(make_record())


def test_repositories_need_an_open_session(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    uow = SqlAlchemyLibraryUnitOfWork()

    with pytest.raises(StartupError):
        _ = uow.repositories

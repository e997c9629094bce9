from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from papershelf.adapters.sqlalchemy.migrations import upgrade_head
from papershelf.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyLibraryUnitOfWork,
    shutdown,
    startup,
)
from papershelf.config import StorageConfig

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

DATA_DIR = Path(__file__).resolve().parent / "data"


@pytest.fixture(scope="session")
def data_dir() -> Path:
    return DATA_DIR


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyLibraryUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyLibraryUnitOfWork:
        return SqlAlchemyLibraryUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def storage(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> StorageConfig:
    monkeypatch.setenv("PAPERSHELF_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("PAPERSHELF_LIBRARY_DIR", raising=False)
    monkeypatch.delenv("PAPERSHELF_CONFIG", raising=False)
    monkeypatch.delenv("PAPERSHELF_RESCRAPE_INTERVAL_DAYS", raising=False)
    return StorageConfig(data_dir=tmp_path / "data")

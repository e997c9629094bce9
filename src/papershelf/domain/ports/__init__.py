"""Domain port definitions for adapters."""

from __future__ import annotations

from .fetching import HttpGetter, RawResponse, ScrapeRequest
from .files import FileStore, ReferenceReader
from .persistence import (
    CategorizerRepository,
    PaperQuery,
    PaperRepository,
    ScheduleState,
    ScheduleStateRepository,
    SortField,
)
from .unit_of_work import (
    LibraryRepositories,
    LibraryUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "CategorizerRepository",
    "FileStore",
    "HttpGetter",
    "LibraryRepositories",
    "LibraryUnitOfWork",
    "PaperQuery",
    "PaperRepository",
    "RawResponse",
    "ReferenceReader",
    "RepositoryCollection",
    "ScheduleState",
    "ScheduleStateRepository",
    "ScrapeRequest",
    "SortField",
    "UnitOfWork",
]

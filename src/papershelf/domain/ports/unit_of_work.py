"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from papershelf.domain.ports.persistence import (
        CategorizerRepository,
        PaperRepository,
        ScheduleStateRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """All-or-nothing boundary around a repository collection.

    Nothing is persisted unless ``commit`` is called before leaving the
    ``with`` block; an exception inside the block rolls everything back.
    """

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class LibraryRepositories(RepositoryCollection):
    """Repositories behind one library database."""

    papers: PaperRepository
    categorizers: CategorizerRepository
    schedule: ScheduleStateRepository


type LibraryUnitOfWork = UnitOfWork[LibraryRepositories]

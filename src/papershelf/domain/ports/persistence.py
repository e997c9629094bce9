"""Ports for persisting papers, categorizers and scheduler state."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from uuid import UUID

    from papershelf.domain.model import Categorizer, CategorizerKind, PaperRecord


class SortField(StrEnum):
    ADDED_AT = "added_at"
    TITLE = "title"
    YEAR = "year"
    VENUE = "venue"


@dataclass(frozen=True, slots=True)
class PaperQuery:
    """Filters and ordering for ``PaperRepository.query``."""

    search: str | None = None
    flagged: bool | None = None
    tag: str | None = None
    folder: str | None = None
    preprint_only: bool = False
    sort_by: SortField = SortField.ADDED_AT
    descending: bool = True
    limit: int | None = None


@dataclass(frozen=True, slots=True)
class ScheduleState:
    last_run_at: datetime | None = None
    interval_days: float | None = None


@runtime_checkable
class PaperRepository(Protocol):
    def get(self, paper_id: UUID) -> PaperRecord | None: ...

    def query(self, query: PaperQuery | None = None) -> Sequence[PaperRecord]: ...

    def put(self, record: PaperRecord) -> PaperRecord: ...

    def delete(self, paper_id: UUID) -> PaperRecord | None: ...


@runtime_checkable
class CategorizerRepository(Protocol):
    def get(self, kind: CategorizerKind, name: str) -> Categorizer | None: ...

    def by_kind(self, kind: CategorizerKind) -> Sequence[Categorizer]: ...

    def increment(self, kind: CategorizerKind, name: str, delta: int) -> Categorizer: ...

    def delete(self, kind: CategorizerKind, name: str) -> bool: ...

    def prune(self) -> int: ...


@runtime_checkable
class ScheduleStateRepository(Protocol):
    def load(self) -> ScheduleState: ...

    def save(self, state: ScheduleState) -> None: ...

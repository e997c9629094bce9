"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import functools
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import Text, delete, exists, func, insert, or_, select, type_coerce, update
from sqlalchemy.exc import SQLAlchemyError

from papershelf.adapters.sqlalchemy.mappings import (
    SCHEDULE_STATE_ROW_ID,
    categorizer_table,
    paper_categorizer_table,
    paper_table,
    schedule_state_table,
)
from papershelf.domain.errors import StoreCommitFailure
from papershelf.domain.model import (
    PREPRINT_PATTERNS,
    Categorizer,
    CategorizerKind,
    PaperRecord,
    categorizer_id,
)
from papershelf.domain.ports import PaperQuery, ScheduleState, SortField

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from uuid import UUID

    from sqlalchemy import ColumnElement, Row
    from sqlalchemy.orm import Session


def translate_errors[**P, T](func: Callable[P, T]) -> Callable[P, T]:
    """Surface driver and constraint errors as ``StoreCommitFailure``."""

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        try:
            return func(*args, **kwargs)
        except SQLAlchemyError as exc:
            raise StoreCommitFailure(f"{func.__qualname__} failed: {exc}") from exc

    return wrapper


def preprint_filter() -> ColumnElement[bool]:
    venue = paper_table.c.venue
    return or_(
        func.trim(venue) == "",
        *(venue.ilike(f"%{pattern}%") for pattern in PREPRINT_PATTERNS),
    )


_SORT_COLUMNS = {
    SortField.ADDED_AT: paper_table.c.added_at,
    SortField.TITLE: paper_table.c.title,
    SortField.YEAR: paper_table.c.year,
    SortField.VENUE: paper_table.c.venue,
}


class SqlAlchemyPaperRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    @translate_errors
    def get(self, paper_id: UUID) -> PaperRecord | None:
        row = self.session.execute(
            select(paper_table).where(paper_table.c.id == paper_id)
        ).one_or_none()
        if row is None:
            return None
        return self._to_record(row, self._categorizers([paper_id]).get(paper_id, {}))

    @translate_errors
    def query(self, query: PaperQuery | None = None) -> list[PaperRecord]:
        query = query or PaperQuery()
        stmt = select(paper_table)
        if query.search:
            pattern = f"%{query.search}%"
            stmt = stmt.where(
                or_(
                    paper_table.c.title.ilike(pattern),
                    paper_table.c.venue.ilike(pattern),
                    type_coerce(paper_table.c.authors, Text).ilike(pattern),
                )
            )
        if query.flagged is not None:
            stmt = stmt.where(paper_table.c.flagged == query.flagged)
        filters = ((CategorizerKind.TAG, query.tag), (CategorizerKind.FOLDER, query.folder))
        for kind, name in filters:
            if name is None:
                continue
            stmt = stmt.where(
                exists()
                .where(paper_categorizer_table.c.paper_id == paper_table.c.id)
                .where(paper_categorizer_table.c.kind == kind.value)
                .where(paper_categorizer_table.c.name == name)
            )
        if query.preprint_only:
            stmt = stmt.where(preprint_filter())

        column = _SORT_COLUMNS[query.sort_by]
        ordering = column.desc() if query.descending else column.asc()
        stmt = stmt.order_by(ordering, paper_table.c.id)
        if query.limit is not None:
            stmt = stmt.limit(query.limit)

        rows = self.session.execute(stmt).all()
        links = self._categorizers([row.id for row in rows])
        return [self._to_record(row, links.get(row.id, {})) for row in rows]

    @translate_errors
    def put(self, record: PaperRecord) -> PaperRecord:
        if record.added_at is None:
            raise StoreCommitFailure(f"Paper {record.id} has no added_at timestamp")
        values = self._to_values(record)
        present = self.session.execute(
            select(paper_table.c.id).where(paper_table.c.id == record.id)
        ).scalar_one_or_none()
        if present is None:
            self.session.execute(insert(paper_table).values(id=record.id, **values))
        else:
            self.session.execute(
                update(paper_table).where(paper_table.c.id == record.id).values(**values)
            )

        self.session.execute(
            delete(paper_categorizer_table).where(paper_categorizer_table.c.paper_id == record.id)
        )
        links = [
            {"paper_id": record.id, "kind": kind.value, "name": name}
            for kind, names in (
                (CategorizerKind.TAG, record.tags),
                (CategorizerKind.FOLDER, record.folders),
            )
            for name in sorted(names)
        ]
        if links:
            self.session.execute(insert(paper_categorizer_table), links)
        return record

    @translate_errors
    def delete(self, paper_id: UUID) -> PaperRecord | None:
        record = self.get(paper_id)
        if record is None:
            return None
        self.session.execute(
            delete(paper_categorizer_table).where(paper_categorizer_table.c.paper_id == paper_id)
        )
        self.session.execute(delete(paper_table).where(paper_table.c.id == paper_id))
        return record

    def _categorizers(
        self, paper_ids: Sequence[UUID]
    ) -> dict[UUID, dict[CategorizerKind, set[str]]]:
        if not paper_ids:
            return {}
        rows = self.session.execute(
            select(paper_categorizer_table).where(paper_categorizer_table.c.paper_id.in_(paper_ids))
        ).all()
        links: dict[UUID, dict[CategorizerKind, set[str]]] = {}
        for row in rows:
            links.setdefault(row.paper_id, {}).setdefault(CategorizerKind(row.kind), set()).add(
                row.name
            )
        return links

    @staticmethod
    def _to_values(record: PaperRecord) -> dict[str, Any]:
        return {
            "title": record.title,
            "venue": record.venue,
            "year": record.year,
            "authors": list(record.authors),
            "identifiers": dict(record.identifiers),
            "main_path": str(record.main_path) if record.main_path is not None else None,
            "supplementary_paths": [str(path) for path in record.supplementary_paths],
            "flagged": record.flagged,
            "note": record.note,
            "file_hash": record.file_hash,
            "added_at": record.added_at,
        }

    @staticmethod
    def _to_record(row: Row[Any], links: dict[CategorizerKind, set[str]]) -> PaperRecord:
        return PaperRecord(
            id=row.id,
            title=row.title,
            venue=row.venue,
            year=row.year,
            authors=tuple(row.authors),
            identifiers=row.identifiers,
            tags=frozenset(links.get(CategorizerKind.TAG, ())),
            folders=frozenset(links.get(CategorizerKind.FOLDER, ())),
            main_path=Path(row.main_path) if row.main_path else None,
            supplementary_paths=tuple(Path(path) for path in row.supplementary_paths),
            flagged=row.flagged,
            note=row.note,
            file_hash=row.file_hash,
            added_at=row.added_at,
        )


class SqlAlchemyCategorizerRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    @translate_errors
    def get(self, kind: CategorizerKind, name: str) -> Categorizer | None:
        row = self.session.execute(
            select(categorizer_table).where(categorizer_table.c.id == categorizer_id(kind, name))
        ).one_or_none()
        if row is None:
            return None
        return Categorizer(kind=CategorizerKind(row.kind), name=row.name, count=row.count)

    @translate_errors
    def by_kind(self, kind: CategorizerKind) -> list[Categorizer]:
        rows = self.session.execute(
            select(categorizer_table)
            .where(categorizer_table.c.kind == CategorizerKind(kind).value)
            .order_by(categorizer_table.c.name)
        ).all()
        return [
            Categorizer(kind=CategorizerKind(row.kind), name=row.name, count=row.count)
            for row in rows
        ]

    @translate_errors
    def increment(self, kind: CategorizerKind, name: str, delta: int) -> Categorizer:
        kind = CategorizerKind(kind)
        current = self.get(kind, name)
        if current is None:
            count = max(delta, 0)
            self.session.execute(
                insert(categorizer_table).values(
                    id=categorizer_id(kind, name), kind=kind.value, name=name, count=count
                )
            )
        else:
            count = max(current.count + delta, 0)
            self.session.execute(
                update(categorizer_table)
                .where(categorizer_table.c.id == categorizer_id(kind, name))
                .values(count=count)
            )
        return Categorizer(kind=kind, name=name, count=count)

    @translate_errors
    def delete(self, kind: CategorizerKind, name: str) -> bool:
        kind = CategorizerKind(kind)
        self.session.execute(
            delete(paper_categorizer_table)
            .where(paper_categorizer_table.c.kind == kind.value)
            .where(paper_categorizer_table.c.name == name)
        )
        result = self.session.execute(
            delete(categorizer_table).where(categorizer_table.c.id == categorizer_id(kind, name))
        )
        return bool(result.rowcount)

    @translate_errors
    def prune(self) -> int:
        result = self.session.execute(
            delete(categorizer_table).where(categorizer_table.c.count <= 0)
        )
        return int(result.rowcount or 0)


class SqlAlchemyScheduleStateRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    @translate_errors
    def load(self) -> ScheduleState:
        row = self.session.execute(
            select(schedule_state_table).where(schedule_state_table.c.id == SCHEDULE_STATE_ROW_ID)
        ).one_or_none()
        if row is None:
            return ScheduleState()
        return ScheduleState(last_run_at=row.last_run_at, interval_days=row.interval_days)

    @translate_errors
    def save(self, state: ScheduleState) -> None:
        values = {"last_run_at": state.last_run_at, "interval_days": state.interval_days}
        result = self.session.execute(
            update(schedule_state_table)
            .where(schedule_state_table.c.id == SCHEDULE_STATE_ROW_ID)
            .values(**values)
        )
        if not result.rowcount:
            self.session.execute(
                insert(schedule_state_table).values(id=SCHEDULE_STATE_ROW_ID, **values)
            )

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING

from papershelf.domain.model import CategorizerKind, IdentifierKind
from papershelf.domain.ports import PaperQuery, ScheduleState, SortField
from tests.helpers.papers import ADDED_AT, make_preprint, make_record

if TYPE_CHECKING:
    from collections.abc import Callable

    from papershelf.adapters.sqlalchemy.unit_of_work import SqlAlchemyLibraryUnitOfWork
    from papershelf.domain.model import PaperRecord

type UowFactory = Callable[[], SqlAlchemyLibraryUnitOfWork]


def _store(factory: UowFactory, *records: PaperRecord) -> None:
    with factory() as uow:
        for record in records:
            uow.repositories.papers.put(record)
        uow.commit()


def test_paper_round_trip_keeps_every_field(sqlite_unit_of_work: UowFactory) -> None:
    record = make_record(
        venue="NeurIPS",
        identifiers={IdentifierKind.DOI.value: "10.5555/3295222", IdentifierKind.ARXIV.value: "1"},
        tags={"ml", "nlp"},
        folders={"reading"},
        main_path=Path("/lib/attention.pdf"),
        supplementary_paths=(Path("/lib/attention_sup0.zip"),),
        flagged=True,
        note="seminal",
        file_hash="abc123",
        added_at=ADDED_AT,
    )
    _store(sqlite_unit_of_work, record)

    with sqlite_unit_of_work() as uow:
        loaded = uow.repositories.papers.get(record.id)

    assert loaded == record
    assert loaded is not None
    assert loaded.added_at == ADDED_AT


def test_put_replaces_categorizer_links(sqlite_unit_of_work: UowFactory) -> None:
    record = make_record(tags={"ml", "old"}, added_at=ADDED_AT)
    _store(sqlite_unit_of_work, record)
    _store(sqlite_unit_of_work, record.evolve(tags=frozenset({"ml", "new"})))

    with sqlite_unit_of_work() as uow:
        papers = uow.repositories.papers
        loaded = papers.get(record.id)
        assert loaded is not None
        assert loaded.tags == frozenset({"ml", "new"})
        assert papers.query(PaperQuery(tag="old")) == []


def test_query_filters(sqlite_unit_of_work: UowFactory) -> None:
    preprint = make_preprint("Preprint Paper", added_at=ADDED_AT, tags={"ml"})
    published = make_record(
        "Published Paper",
        venue="ICML",
        authors=("Grace Hopper",),
        folders={"reading"},
        flagged=True,
        added_at=ADDED_AT + timedelta(days=1),
    )
    openreview = make_record("Review Paper", venue="OpenReview.net", added_at=ADDED_AT)
    _store(sqlite_unit_of_work, preprint, published, openreview)

    with sqlite_unit_of_work() as uow:
        papers = uow.repositories.papers
        assert {r.id for r in papers.query(PaperQuery(preprint_only=True))} == {
            preprint.id,
            openreview.id,
        }
        assert [r.id for r in papers.query(PaperQuery(tag="ml"))] == [preprint.id]
        assert [r.id for r in papers.query(PaperQuery(folder="reading"))] == [published.id]
        assert [r.id for r in papers.query(PaperQuery(flagged=True))] == [published.id]
        assert [r.id for r in papers.query(PaperQuery(search="hopper"))] == [published.id]
        assert [r.id for r in papers.query(PaperQuery(search="icml"))] == [published.id]
        assert papers.query(PaperQuery(limit=1))[0].id == published.id
        by_title = PaperQuery(sort_by=SortField.TITLE, descending=False)
        titles = [r.title for r in papers.query(by_title)]
        assert titles == sorted(titles)


def test_delete_returns_the_removed_record(sqlite_unit_of_work: UowFactory) -> None:
    record = make_record(tags={"ml"}, added_at=ADDED_AT)
    _store(sqlite_unit_of_work, record)

    with sqlite_unit_of_work() as uow:
        removed = uow.repositories.papers.delete(record.id)
        assert uow.repositories.papers.delete(record.id) is None
        uow.commit()

    assert removed == record
    with sqlite_unit_of_work() as uow:
        assert uow.repositories.papers.get(record.id) is None


def test_categorizer_counts_are_clamped_and_prunable(sqlite_unit_of_work: UowFactory) -> None:
    with sqlite_unit_of_work() as uow:
        categorizers = uow.repositories.categorizers
        categorizers.increment(CategorizerKind.TAG, "ml", 1)
        categorizers.increment(CategorizerKind.TAG, "ml", 1)
        categorizers.increment(CategorizerKind.TAG, "gone", 1)
        categorizers.increment(CategorizerKind.TAG, "gone", -3)
        categorizers.increment(CategorizerKind.FOLDER, "reading", 1)
        uow.commit()

    with sqlite_unit_of_work() as uow:
        categorizers = uow.repositories.categorizers
        tags = categorizers.by_kind(CategorizerKind.TAG)
        assert [(tag.name, tag.count) for tag in tags] == [("gone", 0), ("ml", 2)]
        assert categorizers.prune() == 1
        assert categorizers.get(CategorizerKind.TAG, "gone") is None
        assert categorizers.delete(CategorizerKind.FOLDER, "reading")
        assert not categorizers.delete(CategorizerKind.FOLDER, "reading")
        uow.commit()


def test_schedule_state_is_a_single_row(sqlite_unit_of_work: UowFactory) -> None:
    first = datetime(2024, 1, 1, tzinfo=UTC)
    with sqlite_unit_of_work() as uow:
        schedule = uow.repositories.schedule
        assert schedule.load() == ScheduleState()
        schedule.save(ScheduleState(last_run_at=first, interval_days=7))
        schedule.save(ScheduleState(last_run_at=first + timedelta(days=7), interval_days=3))
        uow.commit()

    with sqlite_unit_of_work() as uow:
        assert uow.repositories.schedule.load() == ScheduleState(
            last_run_at=first + timedelta(days=7), interval_days=3
        )

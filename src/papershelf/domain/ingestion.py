"""Application services for bringing papers into the library.

The coordinator owns the ingest pipeline: read references into drafts,
resolve them against the providers, relocate the backing files and commit
each record in its own unit of work. A failed commit undoes the relocation,
so the library directory never holds files the database does not know about.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from papershelf.domain.errors import FileOperationFailure, PaperShelfError, StoreCommitFailure
from papershelf.domain.model import CategorizerDelta, CategorizerKind
from papershelf.domain.ports import PaperQuery

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Collection, Iterable, Sequence
    from pathlib import Path
    from uuid import UUID

    from papershelf.domain.model import PaperRecord
    from papershelf.domain.ports import (
        CategorizerRepository,
        FileStore,
        LibraryUnitOfWork,
        ReferenceReader,
    )
    from papershelf.domain.resolution import ResolutionOrchestrator

log = getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 4


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class OutcomeStatus(StrEnum):
    COMMITTED = "committed"
    DELETED = "deleted"
    FAILED = "failed"


class FailureStage(StrEnum):
    READ = "read"
    RESOLVE = "resolve"
    RELOCATE = "relocate"
    COMMIT = "commit"
    LOAD = "load"


@dataclass(frozen=True, slots=True)
class ItemOutcome:
    """What happened to one item of a batch."""

    item: str
    status: OutcomeStatus
    paper_id: UUID | None = None
    stage: FailureStage | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is not OutcomeStatus.FAILED

    @classmethod
    def failure(
        cls,
        item: str,
        stage: FailureStage,
        error: BaseException | str,
        *,
        paper_id: UUID | None = None,
    ) -> ItemOutcome:
        return cls(
            item=item,
            status=OutcomeStatus.FAILED,
            paper_id=paper_id,
            stage=stage,
            error=str(error),
        )


@dataclass(slots=True)
class BatchResult:
    """Per-item outcomes of a batch operation, in input order."""

    outcomes: list[ItemOutcome] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.ok)

    @property
    def paper_ids(self) -> list[UUID]:
        return [o.paper_id for o in self.outcomes if o.ok and o.paper_id is not None]

    def failures(self) -> list[ItemOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    def extend(self, other: BatchResult) -> None:
        self.outcomes.extend(other.outcomes)


@dataclass(slots=True)
class _Pending:
    """An item still moving through the pipeline."""

    item: str
    record: PaperRecord
    position: int


def apply_categorizer_deltas(
    repository: CategorizerRepository,
    before: PaperRecord | None,
    after: PaperRecord | None,
) -> None:
    """Adjust tag and folder counts for replacing ``before`` with ``after``."""

    for kind, old, new in (
        (
            CategorizerKind.TAG,
            before.tags if before else frozenset(),
            after.tags if after else frozenset(),
        ),
        (
            CategorizerKind.FOLDER,
            before.folders if before else frozenset(),
            after.folders if after else frozenset(),
        ),
    ):
        delta = CategorizerDelta.between(kind, old, new)
        for name in sorted(delta.added):
            repository.increment(kind, name, 1)
        for name in sorted(delta.removed):
            repository.increment(kind, name, -1)


class IngestionCoordinator:
    def __init__(
        self,
        *,
        reader: ReferenceReader,
        orchestrator: ResolutionOrchestrator,
        files: FileStore,
        unit_of_work_factory: Callable[[], LibraryUnitOfWork],
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._reader = reader
        self._orchestrator = orchestrator
        self._files = files
        self._unit_of_work_factory = unit_of_work_factory
        self._max_concurrency = max_concurrency
        self._clock = clock

    @property
    def orchestrator(self) -> ResolutionOrchestrator:
        return self._orchestrator

    # ------------------------------------------------------------------
    # batch operations

    async def ingest(self, references: Sequence[str]) -> BatchResult:
        """Read, resolve, relocate and commit ``references``."""

        outcomes: list[ItemOutcome | None] = [None] * len(references)
        pending = await self._read_all(references, outcomes)
        pending = await self._resolve_all(pending, outcomes, self._orchestrator.resolve)
        await self._store_all(pending, outcomes)
        return self._finish("ingest", outcomes)

    async def update(self, records: Iterable[PaperRecord]) -> BatchResult:
        """Relocate and commit already resolved records."""

        pending = [
            _Pending(item=str(record.id), record=record, position=position)
            for position, record in enumerate(records)
        ]
        outcomes: list[ItemOutcome | None] = [None] * len(pending)
        await self._store_all(pending, outcomes)
        return self._finish("update", outcomes)

    async def delete(self, paper_ids: Iterable[UUID]) -> BatchResult:
        outcomes: list[ItemOutcome | None] = []
        for paper_id in paper_ids:
            outcomes.append(await self._delete_one(paper_id))
        return self._finish("delete", outcomes)

    async def rescrape(
        self,
        paper_ids: Iterable[UUID],
        excluded: Collection[str] = (),
    ) -> BatchResult:
        async def resolve(record: PaperRecord) -> PaperRecord:
            return await self._orchestrator.resolve(record, excluded)

        return await self._rescrape_stored(paper_ids, resolve, "rescrape")

    async def rescrape_from(self, paper_ids: Iterable[UUID], source: str) -> BatchResult:
        async def resolve(record: PaperRecord) -> PaperRecord:
            return await self._orchestrator.resolve_one(record, source)

        return await self._rescrape_stored(paper_ids, resolve, f"rescrape from {source}")

    async def rescrape_preprints(self) -> BatchResult:
        """Re-resolve every stored record whose venue still looks like a preprint."""

        with self._unit_of_work_factory() as uow:
            records = list(uow.repositories.papers.query(PaperQuery(preprint_only=True)))
        pending = [
            _Pending(item=str(record.id), record=record, position=position)
            for position, record in enumerate(records)
        ]
        outcomes: list[ItemOutcome | None] = [None] * len(pending)
        pending = await self._resolve_all(pending, outcomes, self._orchestrator.resolve)
        await self._store_all(pending, outcomes)
        return self._finish("preprint rescrape", outcomes)

    # ------------------------------------------------------------------
    # single record and categorizer maintenance

    async def remove_supplementary(self, paper_id: UUID, path: Path) -> ItemOutcome:
        item = str(paper_id)
        try:
            with self._unit_of_work_factory() as uow:
                record = uow.repositories.papers.get(paper_id)
                if record is None:
                    return ItemOutcome.failure(item, FailureStage.LOAD, "paper not found")
                if path not in record.supplementary_paths:
                    return ItemOutcome.failure(
                        item, FailureStage.LOAD, f"{path} is not attached", paper_id=paper_id
                    )
                uow.repositories.papers.put(record.without_supplementary(path))
                uow.commit()
        except StoreCommitFailure as exc:
            log.warning("Could not detach %s from paper %s: %s", path, paper_id, exc)
            return ItemOutcome.failure(item, FailureStage.COMMIT, exc, paper_id=paper_id)

        for leftover in await asyncio.to_thread(self._files.remove, (path,)):
            log.warning("Could not delete supplementary file %s", leftover)
        return ItemOutcome(item=item, status=OutcomeStatus.COMMITTED, paper_id=paper_id)

    def delete_categorizer(self, kind: CategorizerKind, name: str) -> int:
        """Remove a tag or folder from every record and drop it; returns records touched."""

        query = (
            PaperQuery(tag=name)
            if kind is CategorizerKind.TAG
            else PaperQuery(folder=name)
        )
        attribute = "tags" if kind is CategorizerKind.TAG else "folders"
        with self._unit_of_work_factory() as uow:
            papers = uow.repositories.papers
            touched = 0
            for record in papers.query(query):
                remaining = getattr(record, attribute) - {name}
                papers.put(record.evolve(**{attribute: remaining}))
                touched += 1
            uow.repositories.categorizers.delete(kind, name)
            uow.commit()
        log.info("Deleted %s %r from %d papers", kind, name, touched)
        return touched

    def prune_categorizers(self) -> int:
        with self._unit_of_work_factory() as uow:
            removed = uow.repositories.categorizers.prune()
            uow.commit()
        log.info("Pruned %d unused categorizers", removed)
        return removed

    def list_papers(self, query: PaperQuery | None = None) -> list[PaperRecord]:
        with self._unit_of_work_factory() as uow:
            return list(uow.repositories.papers.query(query))

    # ------------------------------------------------------------------
    # pipeline stages

    async def _read_all(
        self,
        references: Sequence[str],
        outcomes: list[ItemOutcome | None],
    ) -> list[_Pending]:
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def read(reference: str) -> PaperRecord:
            async with semaphore:
                return await self._reader.read(reference)

        results = await asyncio.gather(
            *(read(reference) for reference in references), return_exceptions=True
        )
        pending: list[_Pending] = []
        for position, (reference, result) in enumerate(zip(references, results, strict=True)):
            if isinstance(result, Exception):
                log.warning("Could not read %s: %s", reference, result)
                outcomes[position] = ItemOutcome.failure(reference, FailureStage.READ, result)
            elif isinstance(result, BaseException):
                raise result
            else:
                pending.append(_Pending(item=reference, record=result, position=position))
        return pending

    async def _resolve_all(
        self,
        pending: list[_Pending],
        outcomes: list[ItemOutcome | None],
        resolve: Callable[[PaperRecord], Awaitable[PaperRecord]],
    ) -> list[_Pending]:
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def run(entry: _Pending) -> PaperRecord:
            async with semaphore:
                return await resolve(entry.record)

        results = await asyncio.gather(*(run(entry) for entry in pending), return_exceptions=True)
        resolved: list[_Pending] = []
        unresolved: list[PaperRecord] = []
        for entry, result in zip(pending, results, strict=True):
            if isinstance(result, Exception):
                log.warning("Could not resolve %s: %s", entry.item, result)
                unresolved.append(entry.record)
                outcomes[entry.position] = ItemOutcome.failure(
                    entry.item, FailureStage.RESOLVE, result, paper_id=entry.record.id
                )
            elif isinstance(result, BaseException):
                raise result
            else:
                resolved.append(_Pending(item=entry.item, record=result, position=entry.position))
        for record in unresolved:
            await self._discard(record)
        return resolved

    async def _store_all(
        self, pending: list[_Pending], outcomes: list[ItemOutcome | None]
    ) -> None:
        # one relocation at a time
        relocated: list[tuple[_Pending, PaperRecord]] = []
        for entry in pending:
            try:
                record = await asyncio.to_thread(self._files.relocate, entry.record)
            except FileOperationFailure as exc:
                log.warning("Could not relocate files of %s: %s", entry.item, exc)
                await self._discard(entry.record)
                outcomes[entry.position] = ItemOutcome.failure(
                    entry.item, FailureStage.RELOCATE, exc, paper_id=entry.record.id
                )
                continue
            relocated.append((entry, record))

        for entry, record in relocated:
            try:
                committed = self._commit(record)
            except StoreCommitFailure as exc:
                log.warning("Could not commit %s, rolling back its files: %s", entry.item, exc)
                await self._compensate(entry.record, record)
                outcomes[entry.position] = ItemOutcome.failure(
                    entry.item, FailureStage.COMMIT, exc, paper_id=record.id
                )
                continue
            outcomes[entry.position] = ItemOutcome(
                item=entry.item, status=OutcomeStatus.COMMITTED, paper_id=committed.id
            )

    def _commit(self, record: PaperRecord) -> PaperRecord:
        with self._unit_of_work_factory() as uow:
            papers = uow.repositories.papers
            previous = papers.get(record.id)
            if record.added_at is None:
                added_at = previous.added_at if previous and previous.added_at else self._clock()
                record = record.evolve(added_at=added_at)
            committed = papers.put(record)
            apply_categorizer_deltas(uow.repositories.categorizers, previous, committed)
            uow.commit()
        return committed

    async def _compensate(self, before: PaperRecord, after: PaperRecord) -> None:
        try:
            await asyncio.to_thread(self._files.rollback, before, after)
        except FileOperationFailure as exc:
            log.error("Could not roll back files of paper %s: %s", after.id, exc)
            return
        await self._discard(before)

    async def _discard(self, record: PaperRecord) -> None:
        await asyncio.to_thread(self._files.discard, record)

    async def _delete_one(self, paper_id: UUID) -> ItemOutcome:
        item = str(paper_id)
        try:
            with self._unit_of_work_factory() as uow:
                record = uow.repositories.papers.delete(paper_id)
                if record is None:
                    return ItemOutcome.failure(item, FailureStage.LOAD, "paper not found")
                apply_categorizer_deltas(uow.repositories.categorizers, record, None)
                uow.commit()
        except StoreCommitFailure as exc:
            log.warning("Could not delete paper %s: %s", paper_id, exc)
            return ItemOutcome.failure(item, FailureStage.COMMIT, exc, paper_id=paper_id)

        for leftover in await asyncio.to_thread(self._files.remove, record.file_paths):
            log.warning("Could not delete file %s of paper %s", leftover, paper_id)
        return ItemOutcome(item=item, status=OutcomeStatus.DELETED, paper_id=paper_id)

    async def _rescrape_stored(
        self,
        paper_ids: Iterable[UUID],
        resolve: Callable[[PaperRecord], Awaitable[PaperRecord]],
        label: str,
    ) -> BatchResult:
        ids = list(paper_ids)
        outcomes: list[ItemOutcome | None] = [None] * len(ids)
        pending: list[_Pending] = []
        with self._unit_of_work_factory() as uow:
            for position, paper_id in enumerate(ids):
                record = uow.repositories.papers.get(paper_id)
                if record is None:
                    outcomes[position] = ItemOutcome.failure(
                        str(paper_id), FailureStage.LOAD, "paper not found"
                    )
                    continue
                pending.append(_Pending(item=str(paper_id), record=record, position=position))
        pending = await self._resolve_all(pending, outcomes, resolve)
        await self._store_all(pending, outcomes)
        return self._finish(label, outcomes)

    def _finish(self, label: str, outcomes: list[ItemOutcome | None]) -> BatchResult:
        missing = [position for position, outcome in enumerate(outcomes) if outcome is None]
        if missing:
            raise PaperShelfError(f"{label}: items {missing} finished without an outcome")
        result = BatchResult(outcomes=[outcome for outcome in outcomes if outcome is not None])
        log.info("%s finished: %d succeeded, %d failed", label, result.succeeded, result.failed)
        return result

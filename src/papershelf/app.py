"""Application wiring and the ``Library`` facade."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from papershelf.adapters.filesystem import LocalFileStore
from papershelf.adapters.http_resilience import HttpxGetter, ResilientClient
from papershelf.adapters.providers import provider_factory
from papershelf.adapters.references import LocalReferenceReader
from papershelf.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyLibraryUnitOfWork,
    is_started,
    startup,
)
from papershelf.config import get_database_config, get_storage_config, load_settings
from papershelf.domain.ingestion import IngestionCoordinator
from papershelf.domain.resolution import ProviderRegistry, ResolutionOrchestrator
from papershelf.domain.scheduler import RescrapeScheduler, SchedulerState, UnitOfWorkScheduleState

if TYPE_CHECKING:
    from collections.abc import Callable, Collection, Iterable, Sequence
    from pathlib import Path
    from types import TracebackType
    from uuid import UUID

    import httpx

    from papershelf.config import LibrarySettings, StorageConfig
    from papershelf.domain.ingestion import BatchResult, ItemOutcome
    from papershelf.domain.model import Categorizer, CategorizerKind, PaperRecord
    from papershelf.domain.ports import HttpGetter, LibraryUnitOfWork, PaperQuery

log = getLogger(__name__)


class Library:
    """The operations a user interface drives."""

    def __init__(
        self,
        *,
        settings: LibrarySettings,
        coordinator: IngestionCoordinator,
        registry: ProviderRegistry,
        scheduler: RescrapeScheduler,
        unit_of_work_factory: Callable[[], LibraryUnitOfWork],
        settings_loader: Callable[[], LibrarySettings] | None = None,
        http: HttpxGetter | None = None,
    ) -> None:
        self._settings = settings
        self._coordinator = coordinator
        self._registry = registry
        self._scheduler = scheduler
        self._unit_of_work_factory = unit_of_work_factory
        self._settings_loader = settings_loader
        self._http = http
        self._scheduler_requested = False

    async def __aenter__(self) -> Library:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    @property
    def settings(self) -> LibrarySettings:
        return self._settings

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def scheduler(self) -> RescrapeScheduler:
        return self._scheduler

    async def ingest(self, references: Sequence[str]) -> BatchResult:
        return await self._coordinator.ingest(references)

    async def rescrape(
        self, paper_ids: Iterable[UUID], excluded: Collection[str] = ()
    ) -> BatchResult:
        return await self._coordinator.rescrape(paper_ids, excluded)

    async def rescrape_from(self, paper_ids: Iterable[UUID], source: str) -> BatchResult:
        return await self._coordinator.rescrape_from(paper_ids, source)

    async def rescrape_preprints(self) -> BatchResult:
        return await self._coordinator.rescrape_preprints()

    async def update(self, records: Iterable[PaperRecord]) -> BatchResult:
        return await self._coordinator.update(records)

    async def delete(self, paper_ids: Iterable[UUID]) -> BatchResult:
        return await self._coordinator.delete(paper_ids)

    def list_papers(self, query: PaperQuery | None = None) -> list[PaperRecord]:
        return self._coordinator.list_papers(query)

    def get_paper(self, paper_id: UUID) -> PaperRecord | None:
        with self._unit_of_work_factory() as uow:
            return uow.repositories.papers.get(paper_id)

    def list_categorizers(self, kind: CategorizerKind) -> list[Categorizer]:
        with self._unit_of_work_factory() as uow:
            return list(uow.repositories.categorizers.by_kind(kind))

    async def remove_supplementary(self, paper_id: UUID, path: Path) -> ItemOutcome:
        return await self._coordinator.remove_supplementary(paper_id, path)

    def delete_categorizer(self, kind: CategorizerKind, name: str) -> int:
        return self._coordinator.delete_categorizer(kind, name)

    def prune_categorizers(self) -> int:
        return self._coordinator.prune_categorizers()

    def arm_scheduler(self, interval_days: float | None = None) -> bool:
        """Start periodic preprint rescrapes; needs a running event loop.

        Returns ``False`` without arming when ``[scheduler] enabled`` is off.
        """

        self._scheduler_requested = True
        if not self._settings.scheduler.enabled:
            log.info("Routine rescrapes are disabled")
            self._scheduler.disarm()
            return False
        self._scheduler.arm(interval_days or self._settings.scheduler.interval_days)
        return True

    def reload_configuration(self, settings: LibrarySettings | None = None) -> LibrarySettings:
        """Re-read settings and rebuild the provider registry.

        On a configuration error the previous providers stay active and the error
        propagates.
        """

        if settings is None:
            if self._settings_loader is None:
                raise RuntimeError("No settings loader configured")
            settings = self._settings_loader()
        self._registry.rebuild(settings.providers)
        previous = self._settings
        self._settings = settings
        if not settings.scheduler.enabled:
            self._scheduler.disarm()
        elif self._scheduler_requested and (
            not previous.scheduler.enabled
            or self._scheduler.state is SchedulerState.IDLE
            or settings.scheduler.interval_days != previous.scheduler.interval_days
        ):
            self._scheduler.arm(settings.scheduler.interval_days)
        log.info("Configuration reloaded")
        return settings

    async def aclose(self) -> None:
        await self._scheduler.aclose()
        if self._http is not None:
            await self._http.aclose()


def build_library(
    *,
    settings: LibrarySettings | None = None,
    storage: StorageConfig | None = None,
    unit_of_work_factory: Callable[[], LibraryUnitOfWork] | None = None,
    http: HttpGetter | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Library:
    """Assemble a ``Library`` from configuration and the default adapters."""

    storage = storage or get_storage_config()

    def settings_loader() -> LibrarySettings:
        return load_settings(storage=storage)

    settings = settings or settings_loader()

    if unit_of_work_factory is None:
        if not is_started():
            startup(database_uri=get_database_config(storage=storage).uri)
        unit_of_work_factory = SqlAlchemyLibraryUnitOfWork

    owned_http: HttpxGetter | None = None
    if http is None:
        client = ResilientClient(settings.http.resilience(storage=storage), transport=transport)
        http = owned_http = HttpxGetter(client)

    registry = ProviderRegistry(provider_factory(http))
    registry.rebuild(settings.providers)

    staging_dir = storage.staging_path()
    coordinator = IngestionCoordinator(
        reader=LocalReferenceReader(http=http, staging_dir=staging_dir),
        orchestrator=ResolutionOrchestrator(registry),
        files=LocalFileStore(
            storage.library_path(),
            operation=settings.ingest.file_operation,
            staging_dir=staging_dir,
        ),
        unit_of_work_factory=unit_of_work_factory,
        max_concurrency=settings.ingest.max_concurrency,
    )
    scheduler = RescrapeScheduler(
        coordinator.rescrape_preprints,
        state_store=UnitOfWorkScheduleState(unit_of_work_factory),
    )
    log.info(
        "Library ready: %s, providers: %s",
        storage.library_path(ensure=False),
        ", ".join(registry.names()) or "<none>",
    )
    return Library(
        settings=settings,
        coordinator=coordinator,
        registry=registry,
        scheduler=scheduler,
        unit_of_work_factory=unit_of_work_factory,
        settings_loader=settings_loader,
        http=owned_http,
    )

"""Periodic re-resolution of preprint-like papers.

One timer task per scheduler. Every delay is derived from the persisted
``last_run_at``, so a process that slept or restarted catches up instead of
drifting, and re-arming only ever replaces the future schedule.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from papershelf.domain.ports import ScheduleState

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from papershelf.domain.ports import LibraryUnitOfWork, ScheduleStateRepository

log = getLogger(__name__)

RETRY_DELAY_SECONDS = 60.0


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class SchedulerState(StrEnum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    RUNNING = "running"


class UnitOfWorkScheduleState:
    """Schedule state store that opens a unit of work per access."""

    def __init__(self, unit_of_work_factory: Callable[[], LibraryUnitOfWork]) -> None:
        self._unit_of_work_factory = unit_of_work_factory

    def load(self) -> ScheduleState:
        with self._unit_of_work_factory() as uow:
            return uow.repositories.schedule.load()

    def save(self, state: ScheduleState) -> None:
        with self._unit_of_work_factory() as uow:
            uow.repositories.schedule.save(state)
            uow.commit()


class RescrapeScheduler:
    def __init__(
        self,
        job: Callable[[], Awaitable[object]],
        *,
        state_store: ScheduleStateRepository,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._job = job
        self._store = state_store
        self._clock = clock
        self._sleep = sleep
        self._timer: asyncio.Task[None] | None = None
        self._run: asyncio.Task[None] | None = None

    @property
    def state(self) -> SchedulerState:
        if self.running:
            return SchedulerState.RUNNING
        if self._timer is not None and not self._timer.done():
            return SchedulerState.SCHEDULED
        return SchedulerState.IDLE

    @property
    def running(self) -> bool:
        return self._run is not None and not self._run.done()

    @property
    def timer(self) -> asyncio.Task[None] | None:
        return self._timer

    def arm(self, interval_days: float) -> None:
        """(Re)install the timer; must be called from a running event loop."""

        if interval_days <= 0:
            raise ValueError("interval_days must be positive")
        loop = asyncio.get_running_loop()
        self.disarm()

        interval = timedelta(days=interval_days)
        state = self._store.load()
        self._store.save(ScheduleState(last_run_at=state.last_run_at, interval_days=interval_days))

        if self._is_due(state.last_run_at, interval):
            if self.running:
                log.debug("Rescrape overdue but a run is already in progress")
            else:
                log.info("Rescrape overdue (last run: %s), catching up", state.last_run_at)
                self._start_run(loop)

        self._timer = loop.create_task(self._tick(interval), name="papershelf-rescrape-timer")
        log.info("Rescrape scheduled every %s days", interval_days)

    def disarm(self) -> None:
        """Cancel the timer; a run in progress is left alone."""

        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def wait_idle(self) -> None:
        if self._run is not None:
            await asyncio.shield(self._run)

    async def aclose(self) -> None:
        timer = self._timer
        self.disarm()
        if timer is not None:
            await asyncio.gather(timer, return_exceptions=True)
        await self.wait_idle()

    def _is_due(self, last_run_at: datetime | None, interval: timedelta) -> bool:
        return last_run_at is None or self._clock() - last_run_at >= interval

    def _seconds_until_due(self, interval: timedelta) -> float:
        last_run_at = self._store.load().last_run_at
        if last_run_at is None:
            return 0.0
        remaining = last_run_at + interval - self._clock()
        return max(remaining.total_seconds(), 0.0)

    def _start_run(self, loop: asyncio.AbstractEventLoop) -> asyncio.Task[None]:
        self._run = loop.create_task(self._execute(), name="papershelf-rescrape-run")
        return self._run

    async def _tick(self, interval: timedelta) -> None:
        loop = asyncio.get_running_loop()
        while True:
            try:
                await self._sleep(self._seconds_until_due(interval))
                if self._run is not None and not self._run.done():
                    # the in-flight run records a fresh last_run_at when it ends
                    await asyncio.shield(self._run)
                    continue
                if not self._is_due(self._store.load().last_run_at, interval):
                    continue
                await asyncio.shield(self._start_run(loop))
                if self._is_due(self._store.load().last_run_at, interval):
                    log.warning("Rescrape run was not recorded, backing off")
                    await self._sleep(RETRY_DELAY_SECONDS)
            except Exception:
                log.exception("Rescrape timer failed, retrying in %s seconds", RETRY_DELAY_SECONDS)
                await self._sleep(RETRY_DELAY_SECONDS)

    async def _execute(self) -> None:
        log.info("Bulk rescrape started")
        try:
            await self._job()
        except Exception:
            log.exception("Bulk rescrape failed")
        else:
            log.info("Bulk rescrape finished")
        finally:
            self._record_run()

    def _record_run(self) -> None:
        try:
            interval_days = self._store.load().interval_days
            self._store.save(ScheduleState(last_run_at=self._clock(), interval_days=interval_days))
        except Exception:
            log.exception("Could not record the rescrape run")

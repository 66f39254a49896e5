import asyncio
import inspect
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Optional

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from profilesync.config import INITIAL_BACKUP_DELAY_MS, validate_backup_interval

BACKUP_JOB_ID = "remote_session_backup"


class BackupState(str, Enum):
    UNINITIALIZED = "uninitialized"
    RESTORING = "restoring"
    IDLE = "idle"
    BACKING_UP = "backing_up"
    STOPPED = "stopped"


async def _notify(callback: Callable[[], Any]) -> None:
    result = callback()
    if inspect.isawaitable(result):
        await result


class BackupScheduler:
    """Runs the initial and recurring backups for one session.

    Stopping only prevents future runs. A backup that is already running is
    left to finish.
    """

    def __init__(
        self,
        backup: Callable[[], Awaitable[bool]],
        interval_ms: int,
        initial_delay_ms: int = INITIAL_BACKUP_DELAY_MS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        scheduler: Optional[AsyncIOScheduler] = None,
        job_id: str = BACKUP_JOB_ID,
    ):
        self.interval_ms = validate_backup_interval(interval_ms)
        self.initial_delay_ms = initial_delay_ms
        self.job_id = job_id
        self.state = BackupState.UNINITIALIZED
        self._backup = backup
        self._sleep = sleep
        self._scheduler = scheduler
        self._owns_scheduler = scheduler is None
        self._job: Optional[Job] = None

    @property
    def stopped(self) -> bool:
        return self.state == BackupState.STOPPED

    @property
    def running(self) -> bool:
        return self._job is not None and not self.stopped

    def mark_restoring(self) -> None:
        if not self.stopped:
            self.state = BackupState.RESTORING

    async def start(
        self,
        session_exists: bool,
        on_saved: Optional[Callable[[], Any]] = None,
    ) -> None:
        if self.stopped:
            logger.warning("Backup scheduler already stopped, not starting")
            return
        self.state = BackupState.IDLE

        if not session_exists:
            logger.info(
                f"No remote session yet, first backup in {self.initial_delay_ms / 1000:.0f}s"
            )
            await self._sleep(self.initial_delay_ms / 1000)
            if self.stopped:
                logger.info("Backup scheduler stopped before the first backup")
                return
            if await self.run_backup() and on_saved is not None:
                await _notify(on_saved)

        if not self.stopped:
            self._arm()

    def _arm(self) -> None:
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler()

        self._job = self._scheduler.add_job(
            self._tick,
            trigger=IntervalTrigger(seconds=self.interval_ms / 1000),
            id=self.job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if not self._scheduler.running:
            self._scheduler.start()
        logger.info(f"Backup scheduler started (interval: {self.interval_ms / 1000:.0f}s)")

    async def _tick(self) -> None:
        if self.stopped:
            return
        await self.run_backup()

    async def run_backup(self) -> bool:
        self.state = BackupState.BACKING_UP
        try:
            return await self._backup()
        except Exception as e:
            logger.error(f"Session backup failed: {e}")
            return False
        finally:
            if self.state == BackupState.BACKING_UP:
                self.state = BackupState.IDLE

    def stop(self) -> None:
        was_stopped = self.stopped
        self.state = BackupState.STOPPED

        job, self._job = self._job, None
        if job is not None:
            try:
                job.remove()
            except JobLookupError:
                pass

        scheduler = self._scheduler
        if self._owns_scheduler and scheduler is not None and scheduler.running:
            scheduler.shutdown(wait=False)

        if not was_stopped:
            logger.info("Backup scheduler stopped")

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, Optional

import aiofiles.os
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from profilesync.archive import SessionArchiver
from profilesync.config import (
    INITIAL_BACKUP_DELAY_MS,
    SessionPaths,
    get_backup_interval_ms,
    resolve_client_id,
)
from profilesync.errors import ArchiveError, ConfigurationError, ExtractionError
from profilesync.paths import is_valid_path, remove_path
from profilesync.scheduler import BACKUP_JOB_ID, BackupScheduler, BackupState
from profilesync.storage.backend import SessionStore
from profilesync.sync import RemoteSessionGateway


class RemoteSessionManager:
    """Keeps a browser profile directory backed up to a remote session store.

    The host calls :meth:`prepare_working_directory` before launching the
    browser, :meth:`on_ready` once the session is authenticated, and
    :meth:`logout` or :meth:`destroy` when it is done.
    """

    def __init__(
        self,
        store: SessionStore,
        backup_interval_ms: Optional[int] = None,
        client_id: Optional[str] = None,
        data_path: Optional[Path | str] = None,
        on_session_saved: Optional[Callable[[], Any]] = None,
        initial_backup_delay_ms: int = INITIAL_BACKUP_DELAY_MS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        if store is None or not isinstance(store, SessionStore):
            raise ConfigurationError(
                "A remote session store implementing session_exists/save/extract/delete is required."
            )

        self.client_id = resolve_client_id(client_id)
        self.backup_interval_ms = get_backup_interval_ms(backup_interval_ms)
        self.paths = SessionPaths.resolve(data_path, self.client_id)
        self.on_session_saved = on_session_saved

        self.gateway = RemoteSessionGateway(store, self.paths.session_name)
        self.archiver = SessionArchiver(
            self.paths.working_dir, self.paths.staging_dir, self.paths.archive_path
        )
        self.scheduler = BackupScheduler(
            self.store_remote_session,
            self.backup_interval_ms,
            initial_delay_ms=initial_backup_delay_ms,
            sleep=sleep,
            scheduler=scheduler,
            job_id=f"{BACKUP_JOB_ID}:{self.paths.session_name}",
        )
        self._backup_lock = asyncio.Lock()

    @property
    def session_name(self) -> str:
        return self.paths.session_name

    @property
    def user_data_dir(self) -> Path:
        return self.paths.working_dir

    @property
    def state(self) -> BackupState:
        return self.scheduler.state

    async def prepare_working_directory(
        self, user_data_dir: Optional[Path | str] = None
    ) -> Path:
        if user_data_dir and Path(user_data_dir).expanduser().resolve() != self.user_data_dir:
            raise ConfigurationError(
                f"Remote sessions manage their own profile directory ({self.user_data_dir}); "
                f"a different user data dir was supplied: {user_data_dir}"
            )

        self.scheduler.mark_restoring()
        await self.extract_remote_session()
        return self.user_data_dir

    async def _session_exists(self) -> bool:
        try:
            return await self.gateway.exists()
        except Exception as e:
            logger.error(f"Could not query remote store for {self.session_name}: {e}")
            return False

    async def _init_working_dir(self, reset: bool = False) -> None:
        if reset:
            await remove_path(self.user_data_dir)
        await aiofiles.os.makedirs(self.user_data_dir, exist_ok=True)

    async def extract_remote_session(self) -> bool:
        if not await self._session_exists():
            logger.info(f"No remote session {self.session_name}, starting with an empty profile")
            await self._init_working_dir()
            return False

        archive = self.paths.archive_path
        await aiofiles.os.makedirs(archive.parent, exist_ok=True)
        try:
            await self.gateway.fetch(archive)
        except Exception as e:
            logger.error(f"Failed to fetch remote session {self.session_name}: {e}")
            await remove_path(archive)
            await self._init_working_dir()
            return False

        if not await is_valid_path(archive):
            logger.warning(f"Archive {archive.name} not found after fetching the remote session")
            await self._init_working_dir()
            return False

        try:
            await self.archiver.extract(archive)
        except ExtractionError as e:
            logger.error(f"Failed to unpack session {self.session_name}: {e}")
            await remove_path(archive)
            await self._init_working_dir(reset=True)
            return False

        logger.info(f"Restored remote session {self.session_name}")
        return True

    async def on_ready(self) -> None:
        session_exists = await self._session_exists()
        await self.scheduler.start(session_exists, on_saved=self.on_session_saved)

    async def store_remote_session(self) -> bool:
        """Run one backup cycle: archive the profile and upload it.

        Returns False when the cycle was skipped or the upload failed.
        Archive build failures raise :class:`ArchiveError`.
        """
        if self._backup_lock.locked():
            logger.warning(f"Backup of {self.session_name} already in progress, skipping")
            return False

        async with self._backup_lock:
            archive = await self.archiver.compress()
            if not await is_valid_path(archive):
                logger.warning(f"Archive {archive.name} was not created")
                return False

            try:
                await self.gateway.save(archive)
            except Exception as e:
                logger.error(f"Failed to upload {archive.name} to remote store: {e}")
                return False

            await remove_path(archive)
            return True

    async def delete_remote_session(self) -> bool:
        return await self.gateway.delete()

    async def logout(self) -> None:
        await self.disconnect()

    async def disconnect(self) -> None:
        self.scheduler.stop()
        # wait for an in-flight cycle so it cannot re-upload after the delete
        async with self._backup_lock:
            try:
                await self.delete_remote_session()
            finally:
                await remove_path(self.user_data_dir)
                await self.archiver.discard_partial()
                await self.archiver.discard_archive()

    async def destroy(self, backup: bool = False) -> None:
        self.scheduler.stop()
        if not backup:
            return
        try:
            await self.store_remote_session()
        except ArchiveError as e:
            logger.error(f"Final backup of {self.session_name} failed: {e}")

import asyncio
import os
import shutil
import zipfile
from collections.abc import Iterable
from pathlib import Path
from typing import Optional

import aiofiles.os
from loguru import logger

from profilesync.config import REQUIRED_ENTRIES, partial_path_for
from profilesync.errors import ArchiveError, ExtractionError
from profilesync.metadata_filter import delete_metadata
from profilesync.paths import is_valid_path, remove_path


def write_zip(source_dir: Path, target: Path) -> int:
    if not source_dir.is_dir():
        raise FileNotFoundError(f"Nothing to archive, {source_dir} does not exist")

    target.parent.mkdir(parents=True, exist_ok=True)
    file_count = 0
    with open(target, "wb") as fh:
        with zipfile.ZipFile(fh, "w", zipfile.ZIP_DEFLATED) as zf:
            for file_path in sorted(source_dir.rglob("*")):
                if file_path.is_symlink():
                    continue
                arcname = file_path.relative_to(source_dir).as_posix()
                zf.write(file_path, arcname)
                if file_path.is_file():
                    file_count += 1
        fh.flush()
        os.fsync(fh.fileno())
    return file_count


def extract_zip(archive: Path, destination: Path) -> int:
    destination.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(archive, "r") as zf:
        bad_member = zf.testzip()
        if bad_member is not None:
            raise zipfile.BadZipFile(f"Corrupt member in archive: {bad_member}")
        zf.extractall(destination)
        return len(zf.namelist())


class SessionArchiver:
    def __init__(
        self,
        working_dir: Path,
        staging_dir: Path,
        archive_path: Path,
        required_entries: Iterable[str] = REQUIRED_ENTRIES,
    ):
        self.working_dir = working_dir
        self.staging_dir = staging_dir
        self.archive_path = archive_path
        self.partial_path = partial_path_for(archive_path)
        self.required_entries = tuple(required_entries)

    async def discard_partial(self) -> bool:
        return await remove_path(self.partial_path)

    async def discard_archive(self) -> bool:
        return await remove_path(self.archive_path)

    async def _stage(self) -> None:
        await remove_path(self.staging_dir)
        try:
            await asyncio.to_thread(
                shutil.copytree,
                self.working_dir,
                self.staging_dir,
                symlinks=True,
                dirs_exist_ok=True,
            )
        except OSError as e:
            # copytree keeps going past unreadable entries; whatever landed is still archived
            logger.warning(f"Incomplete copy of {self.working_dir} into staging: {e}")

    async def compress(self) -> Path:
        """Snapshot the working directory into the final archive.

        The archive is written under a ``.partial`` name and renamed only once
        it is complete, so the final path always holds a whole archive or the
        previous one.
        """
        if await self.discard_partial():
            logger.info(f"Discarded stale partial archive {self.partial_path.name}")

        await self._stage()
        try:
            await delete_metadata(self.staging_dir, self.required_entries)
            try:
                file_count = await asyncio.to_thread(
                    write_zip, self.staging_dir, self.partial_path
                )
                await aiofiles.os.replace(self.partial_path, self.archive_path)
            except Exception as e:
                await self.discard_partial()
                raise ArchiveError(
                    f"Failed to build archive {self.archive_path.name}: {e}"
                ) from e
        finally:
            await remove_path(self.staging_dir)

        logger.info(f"Archived {file_count} files into {self.archive_path.name}")
        return self.archive_path

    async def extract(self, archive_path: Optional[Path] = None) -> int:
        archive = archive_path or self.archive_path
        try:
            entry_count = await asyncio.to_thread(extract_zip, archive, self.working_dir)
        except Exception as e:
            raise ExtractionError(f"Failed to unpack {archive.name}: {e}") from e

        if await is_valid_path(archive):
            await remove_path(archive)
        logger.info(f"Restored {entry_count} entries into {self.working_dir}")
        return entry_count

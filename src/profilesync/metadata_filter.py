from collections.abc import Iterable
from pathlib import Path

import aiofiles.os
from loguru import logger

from profilesync.config import PROFILE_DEFAULT_DIR, REQUIRED_ENTRIES
from profilesync.paths import is_valid_path, remove_path


async def _list_entries(directory: Path) -> list[str]:
    try:
        return await aiofiles.os.listdir(directory)
    except OSError as e:
        logger.debug(f"Nothing to filter in {directory}: {e}")
        return []


async def delete_metadata(
    staging_dir: Path, required_entries: Iterable[str] = REQUIRED_ENTRIES
) -> int:
    """Strip a staged profile down to the entries needed to restore a session.

    Only the staging root and its ``Default`` profile directory are filtered;
    everything below a kept entry is archived as-is.
    """
    required = set(required_entries)
    removed = 0

    for directory in (staging_dir, staging_dir / PROFILE_DEFAULT_DIR):
        if not await is_valid_path(directory):
            continue

        for name in await _list_entries(directory):
            if name in required:
                continue
            if await remove_path(directory / name):
                removed += 1

    if removed:
        logger.debug(f"Removed {removed} disposable entries from {staging_dir}")
    return removed

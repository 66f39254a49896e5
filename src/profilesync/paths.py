import asyncio
import os
import shutil
from pathlib import Path

import aiofiles.os
from loguru import logger


async def is_valid_path(path: Path | str) -> bool:
    try:
        return await aiofiles.os.access(path, os.F_OK)
    except (OSError, ValueError):
        return False


async def remove_path(path: Path) -> bool:
    """Remove a file, symlink or directory tree if it is there.

    Returns True when something was removed. Failures are logged, not raised:
    anything left behind is picked up again by the next cycle.
    """
    try:
        if await aiofiles.os.path.islink(path):
            await aiofiles.os.remove(path)
        elif await aiofiles.os.path.isdir(path):
            await asyncio.to_thread(shutil.rmtree, path)
        elif await is_valid_path(path):
            await aiofiles.os.remove(path)
        else:
            return False
    except OSError as e:
        logger.warning(f"Could not remove {path}: {e}")
        return False
    return True

from pathlib import Path

from loguru import logger

from profilesync.storage.backend import SessionStore


class RemoteSessionGateway:
    """Calls into the remote store for a single session name.

    Store exceptions are not handled here; callers decide whether a failure
    is fatal.
    """

    def __init__(self, store: SessionStore, session_name: str):
        self.store = store
        self.session_name = session_name

    async def exists(self) -> bool:
        return bool(await self.store.session_exists(self.session_name))

    async def save(self, archive_path: Path) -> None:
        await self.store.save(self.session_name, archive_path)
        logger.info(f"Uploaded {archive_path.name} for session {self.session_name}")

    async def fetch(self, destination: Path) -> None:
        await self.store.extract(self.session_name, destination)
        logger.debug(f"Fetched session {self.session_name} to {destination}")

    async def delete(self) -> bool:
        if not await self.exists():
            logger.debug(f"No remote session {self.session_name} to delete")
            return False
        await self.store.delete(self.session_name)
        logger.info(f"Deleted remote session {self.session_name}")
        return True

from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class SessionStore(Protocol):
    async def session_exists(self, session: str) -> bool: ...

    async def save(self, session: str, path: Path) -> None: ...

    async def extract(self, session: str, path: Path) -> None: ...

    async def delete(self, session: str) -> None: ...

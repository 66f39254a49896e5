import tempfile
from pathlib import Path

import pytest
from loguru import logger


class FakeStore:
    """In-memory session store that records every call."""

    def __init__(self):
        self.blobs: dict[str, bytes] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_on: set[str] = set()

    def _record(self, op: str, session: str) -> None:
        self.calls.append((op, session))
        if op in self.fail_on:
            raise RuntimeError(f"store {op} failed")

    async def session_exists(self, session: str) -> bool:
        self._record("session_exists", session)
        return session in self.blobs

    async def save(self, session: str, path: Path) -> None:
        self._record("save", session)
        self.blobs[session] = Path(path).read_bytes()

    async def extract(self, session: str, path: Path) -> None:
        self._record("extract", session)
        Path(path).write_bytes(self.blobs[session])

    async def delete(self, session: str) -> None:
        self._record("delete", session)
        self.blobs.pop(session, None)

    def ops(self, op: str) -> list[str]:
        return [session for name, session in self.calls if name == op]


class FakeClock:
    def __init__(self):
        self.sleeps: list[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)

    @property
    def elapsed_ms(self) -> float:
        return sum(self.sleeps) * 1000


def _create_profile(root: Path) -> Path:
    files = {
        "Default/Local Storage/leveldb/000003.log": b"local-storage-bytes",
        "Default/IndexedDB/https_web.example_0.indexeddb.leveldb/CURRENT": b"MANIFEST-000001\n",
        "Default/Cache/Cache_Data/data_0": b"cache",
        "Default/Service Worker/ScriptCache/index": b"sw",
        "Default/Preferences": b"{}",
        "Crashpad/reports/crash.dmp": b"crash",
        "Local State": b"{}",
        "Last Version": b"120.0",
    }
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    return root


@pytest.fixture
def create_profile():
    return _create_profile


@pytest.fixture
def temp_data_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def fake_clock():
    return FakeClock()



@pytest.fixture
def log_messages():
    messages: list[str] = []
    handler_id = logger.add(
        lambda message: messages.append(message.record["message"]), level="DEBUG"
    )
    yield messages
    logger.remove(handler_id)

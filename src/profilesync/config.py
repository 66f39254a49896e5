import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from profilesync.errors import ConfigurationError

MIN_BACKUP_INTERVAL_MS = 60_000
INITIAL_BACKUP_DELAY_MS = 60_000

DEFAULT_CLIENT_ID = "default"
CLIENT_ID_PATTERN = re.compile(r"[-\w]+", re.ASCII)

DEFAULT_DATA_DIR = ".wwebjs_auth"
PROFILE_DEFAULT_DIR = "Default"
REQUIRED_ENTRIES = ("Default", "IndexedDB", "Local Storage")

DATA_PATH_ENV = "PROFILESYNC_DATA_PATH"
BACKUP_INTERVAL_ENV = "PROFILESYNC_BACKUP_INTERVAL_MS"


def resolve_client_id(client_id: Optional[str]) -> str:
    if not client_id:
        return DEFAULT_CLIENT_ID
    if not CLIENT_ID_PATTERN.fullmatch(client_id):
        raise ConfigurationError(
            f"Invalid client_id {client_id!r}: only letters, digits, '_' and '-' are allowed"
        )
    return client_id


def get_default_data_path() -> Path:
    return Path(os.environ.get(DATA_PATH_ENV) or DEFAULT_DATA_DIR).expanduser().resolve()


def get_backup_interval_ms(interval_ms: Optional[int] = None) -> int:
    if interval_ms is None:
        raw = os.environ.get(BACKUP_INTERVAL_ENV)
        if raw:
            try:
                interval_ms = int(raw)
            except ValueError:
                raise ConfigurationError(
                    f"{BACKUP_INTERVAL_ENV} must be an integer, got {raw!r}"
                ) from None
    return validate_backup_interval(interval_ms)


def validate_backup_interval(interval_ms: Optional[int]) -> int:
    if (
        not isinstance(interval_ms, int)
        or isinstance(interval_ms, bool)
        or interval_ms < MIN_BACKUP_INTERVAL_MS
    ):
        raise ConfigurationError(
            f"Invalid backup interval {interval_ms!r}. Must be >= {MIN_BACKUP_INTERVAL_MS}ms."
        )
    return interval_ms


def get_session_name(client_id: str) -> str:
    return f"RemoteAuth-{client_id}"


@dataclass(frozen=True)
class SessionPaths:
    """Filesystem layout for one session under a data root.

    The archive and its ``.partial`` sibling share a directory so the final
    rename never crosses a filesystem boundary.
    """

    data_path: Path
    session_name: str
    working_dir: Path
    staging_dir: Path
    archive_path: Path

    @property
    def partial_archive_path(self) -> Path:
        return partial_path_for(self.archive_path)

    @classmethod
    def resolve(cls, data_path: Optional[Path | str], client_id: str) -> "SessionPaths":
        root = (
            Path(data_path).expanduser().resolve()
            if data_path
            else get_default_data_path()
        )
        session_name = get_session_name(client_id)
        return cls(
            data_path=root,
            session_name=session_name,
            working_dir=root / session_name,
            staging_dir=root / f"wwebjs_temp_session_{client_id}",
            archive_path=root / f"{session_name}.zip",
        )


def partial_path_for(archive_path: Path) -> Path:
    return archive_path.with_name(f"{archive_path.name}.partial")

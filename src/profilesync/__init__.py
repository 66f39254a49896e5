from profilesync.archive import SessionArchiver
from profilesync.config import SessionPaths
from profilesync.errors import (
    ArchiveError,
    ConfigurationError,
    ExtractionError,
    ProfileSyncError,
)
from profilesync.lifecycle import RemoteSessionManager
from profilesync.scheduler import BackupScheduler, BackupState
from profilesync.storage.backend import SessionStore
from profilesync.sync import RemoteSessionGateway

__all__ = [
    "RemoteSessionManager",
    "RemoteSessionGateway",
    "SessionArchiver",
    "SessionPaths",
    "SessionStore",
    "BackupScheduler",
    "BackupState",
    "ProfileSyncError",
    "ConfigurationError",
    "ArchiveError",
    "ExtractionError",
]

class ProfileSyncError(Exception):
    """Base class for profilesync errors."""


class ConfigurationError(ProfileSyncError, ValueError):
    """Invalid construction or initialization parameters. Never retried."""


class ArchiveError(ProfileSyncError):
    """The session archive could not be built."""


class ExtractionError(ProfileSyncError):
    """A downloaded session archive could not be unpacked."""

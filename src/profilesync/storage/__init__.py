from profilesync.storage.backend import SessionStore

__all__ = ["SessionStore"]

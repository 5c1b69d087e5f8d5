"""Custom CLI exceptions."""


class ITSyncError(Exception):
    """Base exception for itsync CLI errors."""
    pass


class ConfigurationError(ITSyncError):
    """Raised when configuration is invalid or missing."""
    pass


class ConnectionError(ITSyncError):
    """Raised when signing in to IMDb or Trakt fails."""

    def __init__(self, service: str, message: str, hint: str = ""):
        super().__init__(f"{service}: {message}")
        self.service = service
        self.hint = hint


class SyncError(ITSyncError):
    """Raised when a sync run fails or times out."""
    pass

"""Core CLI infrastructure."""

from .context import ItsyncContext
from .decorators import with_imdb, with_trakt
from .exceptions import (
    ITSyncError,
    ConfigurationError,
    ConnectionError,
    SyncError,
)
from .hooks import get_hook_manager, trigger_hook
from .plugin_loader import ItsyncGroup

__all__ = [
    # Context
    "ItsyncContext",
    # Decorators
    "with_imdb",
    "with_trakt",
    # Exceptions
    "ITSyncError",
    "ConfigurationError",
    "ConnectionError",
    "SyncError",
    # Hooks
    "get_hook_manager",
    "trigger_hook",
    # Group
    "ItsyncGroup",
]

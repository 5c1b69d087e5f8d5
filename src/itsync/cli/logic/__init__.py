"""Business logic layer."""

from .runner import run_with_timeout
from .sync_manager import SyncManager

__all__ = [
    "run_with_timeout",
    "SyncManager",
]

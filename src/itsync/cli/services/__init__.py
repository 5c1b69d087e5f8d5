"""Service layer for API wrappers and resource management."""

from .imdb import ImdbService
from .trakt import TraktService

__all__ = [
    "ImdbService",
    "TraktService",
]

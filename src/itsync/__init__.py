"""itsync - keep Trakt lists, watchlist and ratings in step with IMDb."""

__version__ = "0.4.0"

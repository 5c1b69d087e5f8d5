"""IMDb API service wrapper."""

from ...api.imdb import ImdbApi
from ...api.retry import PollPolicy


class ImdbService:
    """
    IMDb client wrapper with context manager support.

    Entering the context signs in with the configured method.
    """

    def __init__(self, api: ImdbApi):
        """
        Initialize IMDb service.

        Args:
            api: ImdbApi instance
        """
        self._api = api

    @classmethod
    def from_config(cls, config):
        """
        Create ImdbService from configuration.

        Args:
            config: Config object

        Returns:
            ImdbService instance
        """
        api = ImdbApi(
            auth=config.get("imdb.auth"),
            email=config.get("imdb.email"),
            password=config.get("imdb.password"),
            cookie_at_main=config.get("imdb.cookie_at_main"),
            cookie_ubid_main=config.get("imdb.cookie_ubid_main"),
            lists=config.get("imdb.lists", []),
            poll_policy=PollPolicy(
                max_attempts=int(config.get("imdb.export_max_attempts", 30)),
                interval=float(config.get("imdb.export_poll_interval", 30)),
            ),
        )
        return cls(api)

    def __enter__(self):
        """Sign in and return the API instance."""
        self._api.authenticate()
        return self._api

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._api.session.close()
        return False

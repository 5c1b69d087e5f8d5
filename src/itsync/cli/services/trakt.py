"""Trakt API service wrapper."""

from typing import Optional

from ...api.trakt import TraktApi
from ...api.trakt_auth import DeviceAuthFlow


class TraktService:
    """
    Trakt client wrapper with context manager support.

    Entering the context runs the device authorization flow and returns a
    TraktApi bound to the resulting session.
    """

    def __init__(self, flow: DeviceAuthFlow, client_id: str):
        self._flow = flow
        self._client_id = client_id
        self._api: Optional[TraktApi] = None

    @classmethod
    def from_config(cls, config):
        """
        Create TraktService from configuration.

        Args:
            config: Config object

        Returns:
            TraktService instance
        """
        flow = DeviceAuthFlow(
            client_id=config.get("trakt.client_id"),
            client_secret=config.get("trakt.client_secret"),
            email=config.get("trakt.email"),
            password=config.get("trakt.password"),
        )
        return cls(flow, config.get("trakt.client_id"))

    def __enter__(self):
        """Authenticate and return the API instance."""
        session = self._flow.authenticate()
        self._api = TraktApi(client_id=self._client_id, session=session, refresh=self._flow.refresh)
        return self._api

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._flow.api.session.close()
        self._flow.browser.session.close()
        if self._api is not None:
            self._api.executor.session.close()
        return False

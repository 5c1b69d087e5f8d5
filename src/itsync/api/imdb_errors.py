"""IMDb client errors."""

from ..fetch import ResourceNotFound


class ImdbApiError(Exception):
    """IMDb API error."""


class ImdbAuthError(ImdbApiError):
    """IMDb rejected the configured credentials or cookies."""


class ImdbCaptchaError(ImdbAuthError):
    """IMDb answered the sign in with a CAPTCHA challenge."""


class ImdbPrivateResourceError(ImdbApiError):
    """The list or ratings page is private and cannot be exported."""

    def __init__(self, url: str):
        super().__init__(f"Resource at {url} is private, cannot proceed")
        self.url = url


class ImdbResourceNotFoundError(ImdbApiError, ResourceNotFound):
    """The list or ratings page does not exist."""

    def __init__(self, resource_id: str, url: str):
        ResourceNotFound.__init__(self, resource_id, f"Resource at {url} is missing, skipping")
        self.url = url


class ImdbExportTimeoutError(ImdbApiError):
    """Exports did not become ready within the attempt budget."""


class ImdbExportFailedError(ImdbApiError):
    """IMDb reported an export as failed."""


class ImdbParseError(ImdbApiError):
    """IMDb export file could not be parsed."""

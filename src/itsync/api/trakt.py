"""Trakt API client for lists, watchlist, ratings and history."""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Callable, Iterable, Optional

import requests

from ..fetch import FetchResult, ResourceNotFound, fetch_all
from ..models import Item, ItemKind, ItemList, group_by_kind, slugify_list_name
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

API_URL = "https://api.trakt.tv"
ACCOUNT_LIMIT_URL = (
    "https://forums.trakt.tv/t/freemium-experience-more-features-for-all-with-usage-limits/41641"
)
HISTORY_PAGE_SIZE = 1000


class TraktApiError(Exception):
    """Trakt API error."""

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        url: Optional[str] = None,
        status: Optional[int] = None,
    ):
        super().__init__(message)
        self.method = method
        self.url = url
        self.status = status


class TraktAuthError(TraktApiError):
    """Trakt device authorization failed."""


class TraktRateLimitError(TraktApiError):
    """Rate limited on every attempt of a request."""


class TraktAccountLimitError(TraktApiError):
    """The Trakt account hit a plan limit, which no retry can fix."""

    def __init__(self, method: str, url: str):
        super().__init__(
            f"Trakt account limit exceeded on {method} {url}. Free accounts are capped "
            f"in the number of lists and list items; remove some lists or upgrade the "
            f"account. More info: {ACCOUNT_LIMIT_URL}",
            method=method,
            url=url,
            status=RequestExecutor.ACCOUNT_LIMIT,
        )


class TraktListNotFoundError(TraktApiError, ResourceNotFound):
    """A user list with the given slug does not exist."""

    def __init__(self, slug: str):
        ResourceNotFound.__init__(self, slug, f"Trakt list with slug {slug} could not be found")
        self.method = None
        self.url = None
        self.status = 404
        self.slug = slug


class RequestExecutor:
    """Send requests and classify responses the same way for every Trakt call.

    Statuses 200, 201, 204 and 404 are handed back to the caller. A 429 is
    retried after the server's ``Retry-After`` delay until the retry policy's
    attempt budget is spent. A 420 means the account limit was hit and is
    never retried. Anything else is a generic API error.
    """

    PASS_THROUGH = frozenset({200, 201, 204, 404})
    RATE_LIMITED = 429
    ACCOUNT_LIMIT = 420

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: int = 30,
    ):
        self.session = session or requests.Session()
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout = timeout

    def send(self, method: str, url: str, **kwargs) -> requests.Response:
        """Send one request, retrying while rate limited.

        Args:
            method: HTTP method
            url: Absolute URL
            **kwargs: Passed through to ``requests.Session.request``

        Returns:
            Response with a pass-through status

        Raises:
            TraktRateLimitError: If every attempt was rate limited
            TraktAccountLimitError: On the account limit status
            TraktApiError: On transport failure or any other status
        """
        max_attempts = self.retry_policy.max_attempts
        for attempt in range(1, max_attempts + 1):
            try:
                response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            except requests.RequestException as e:
                raise TraktApiError(f"{method} {url} failed: {e}", method=method, url=url) from e

            status = response.status_code
            if status in self.PASS_THROUGH:
                return response
            if status == self.ACCOUNT_LIMIT:
                raise TraktAccountLimitError(method, url)
            if status != self.RATE_LIMITED:
                raise TraktApiError(
                    f"Unexpected status {status} for {method} {url}",
                    method=method,
                    url=url,
                    status=status,
                )

            wait = self._retry_after(response, method, url)
            logger.warning(
                f"Rate limit reached on {method} {url} "
                f"(attempt {attempt}/{max_attempts}), retrying in {wait}s"
            )
            if attempt < max_attempts:
                self.retry_policy.wait(wait)

        raise TraktRateLimitError(
            f"Reached max retries ({max_attempts}) for {method} {url}",
            method=method,
            url=url,
            status=self.RATE_LIMITED,
        )

    def _retry_after(self, response: requests.Response, method: str, url: str) -> float:
        header = response.headers.get("Retry-After")
        if not header:
            return self.retry_policy.default_wait
        try:
            return int(header)
        except ValueError:
            raise TraktApiError(
                f"Invalid Retry-After header {header!r} on {method} {url}",
                method=method,
                url=url,
                status=self.RATE_LIMITED,
            )


@dataclass(frozen=True)
class TraktSession:
    """Authenticated Trakt identity, created once per run and swapped on refresh."""
    access_token: str
    username: str
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now(timezone.utc)) >= self.expires_at


@dataclass
class MutationResult:
    """Per-kind counts echoed by a Trakt add/remove call."""
    added: dict = field(default_factory=dict)
    deleted: dict = field(default_factory=dict)
    existing: dict = field(default_factory=dict)
    not_found: dict = field(default_factory=dict)

    @classmethod
    def from_response(cls, payload: dict) -> "MutationResult":
        payload = payload or {}
        return cls(
            added=payload.get("added") or {},
            deleted=payload.get("deleted") or {},
            existing=payload.get("existing") or {},
            not_found=payload.get("not_found") or {},
        )

    @property
    def total_added(self) -> int:
        return sum(self.added.values())

    @property
    def total_deleted(self) -> int:
        return sum(self.deleted.values())

    @property
    def total_not_found(self) -> int:
        return sum(len(entries) for entries in self.not_found.values() if isinstance(entries, list))

    def describe(self) -> str:
        return (
            f"added={self.total_added} deleted={self.total_deleted} "
            f"existing={sum(self.existing.values())} not_found={self.total_not_found}"
        )


class TraktApi:
    """Client for the Trakt API of one authenticated user."""

    def __init__(
        self,
        client_id: str,
        session: TraktSession,
        retry_policy: Optional[RetryPolicy] = None,
        base_url: str = API_URL,
        refresh: Optional[Callable[[TraktSession], TraktSession]] = None,
    ):
        """Initialize Trakt API client.

        Args:
            client_id: Trakt application client id
            session: Authenticated session from the device authorization flow
            retry_policy: Retry policy for rate limited requests
            base_url: Trakt API base URL
            refresh: Exchanges an expired session for a fresh one
        """
        self.client_id = client_id
        self.auth = session
        self.base_url = base_url.rstrip("/")
        self.refresh = refresh
        self._refresh_lock = threading.Lock()
        self.executor = RequestExecutor(retry_policy=retry_policy)
        self.executor.session.headers.update(self._get_headers())

    @property
    def username(self) -> str:
        return self.auth.username

    def _get_headers(self) -> dict:
        return {
            "trakt-api-key": self.client_id,
            "trakt-api-version": "2",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.auth.access_token}",
        }

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        if self.refresh is not None and self.auth.is_expired():
            self._refresh_session()
        return self.executor.send(method, f"{self.base_url}{path}", **kwargs)

    def _refresh_session(self) -> None:
        with self._refresh_lock:
            if not self.auth.is_expired():
                return
            logger.info("Trakt access token expired, refreshing it")
            self.auth = self.refresh(self.auth)
            self.executor.session.headers["Authorization"] = f"Bearer {self.auth.access_token}"

    def _expect(self, response: requests.Response, *statuses: int) -> requests.Response:
        if response.status_code not in statuses:
            request = response.request
            raise TraktApiError(
                f"Unexpected status {response.status_code} for {request.method} {request.url}",
                method=request.method,
                url=request.url,
                status=response.status_code,
            )
        return response

    def _json(self, response: requests.Response):
        try:
            return response.json()
        except ValueError as e:
            raise TraktApiError(f"Invalid JSON from {response.request.url}: {e}") from e

    def _parse_items(self, payload: list) -> list[Item]:
        items = []
        for entry in payload or []:
            try:
                item = Item.from_trakt(entry)
            except ValueError as e:
                raise TraktApiError(str(e)) from e
            if item is not None:
                items.append(item)
        return items

    def _mutate(
        self,
        path: str,
        items: Iterable[Item],
        label: str,
        watched: bool = False,
        slug: Optional[str] = None,
    ) -> MutationResult:
        items = list(items)
        if not items:
            return MutationResult()

        response = self._request("POST", path, json=group_by_kind(items, watched=watched))
        if response.status_code == 404 and slug is not None:
            raise TraktListNotFoundError(slug)
        self._expect(response, 200, 201)
        result = MutationResult.from_response(self._json(response))
        logger.info(f"Synced Trakt {label}: {result.describe()}")
        return result

    # ------------------------------------------------------------ watchlist --
    def watchlist_get(self) -> ItemList:
        """Get the watchlist.

        Returns:
            The watchlist as an ItemList

        Raises:
            TraktApiError: If API request fails
        """
        response = self._expect(self._request("GET", "/sync/watchlist"), 200)
        return ItemList(
            list_id="watchlist",
            name="watchlist",
            items=self._parse_items(self._json(response)),
            is_watchlist=True,
        )

    def watchlist_add(self, items: Iterable[Item]) -> MutationResult:
        return self._mutate("/sync/watchlist", items, "watchlist")

    def watchlist_remove(self, items: Iterable[Item]) -> MutationResult:
        return self._mutate("/sync/watchlist/remove", items, "watchlist")

    # ---------------------------------------------------------------- lists --
    def _list_path(self, slug: Optional[str] = None) -> str:
        path = f"/users/{self.username}/lists"
        if slug is None:
            return path
        if not slug:
            raise TraktApiError("Trakt list slug must not be empty")
        return f"{path}/{slug}"

    def lists_get_all(self) -> list[ItemList]:
        """Get every list owned by the user, without items.

        Returns:
            ItemLists keyed by slug in ``list_id``
        """
        response = self._expect(self._request("GET", self._list_path()), 200)
        lists = []
        for entry in self._json(response) or []:
            slug = (entry.get("ids") or {}).get("slug") or slugify_list_name(entry.get("name", ""))
            lists.append(ItemList(list_id=slug, name=entry.get("name") or slug))
        return lists

    def list_get(self, slug: str) -> ItemList:
        """Get the items of a user list.

        Args:
            slug: List slug

        Returns:
            ItemList with ``list_id`` set to the slug

        Raises:
            TraktListNotFoundError: If no list has this slug
            TraktApiError: If API request fails
        """
        response = self._request("GET", f"{self._list_path(slug)}/items")
        if response.status_code == 404:
            raise TraktListNotFoundError(slug)
        self._expect(response, 200)
        return ItemList(list_id=slug, name=slug, items=self._parse_items(self._json(response)))

    def lists_get(self, slugs: Iterable[str]) -> FetchResult[ItemList]:
        """Get several lists concurrently; missing slugs end up in ``not_found``."""
        return fetch_all(slugs, self.list_get)

    def list_create(self, name: str) -> ItemList:
        """Create a private user list.

        Args:
            name: Display name; Trakt derives the slug from it

        Returns:
            The new, empty list
        """
        stamp = format_datetime(datetime.now(timezone.utc), usegmt=True)
        body = {
            "name": name,
            "description": f"list auto imported from imdb by itsync on {stamp}",
            "privacy": "private",
            "display_numbers": False,
            "allow_comments": True,
            "sort_by": "rank",
            "sort_how": "asc",
        }
        response = self._expect(self._request("POST", self._list_path(), json=body), 200, 201)
        payload = self._json(response) or {}
        slug = (payload.get("ids") or {}).get("slug") or slugify_list_name(name)
        logger.info(f"Created Trakt list {slug}")
        return ItemList(list_id=slug, name=name)

    def list_delete(self, slug: str) -> None:
        """Delete a user list.

        Raises:
            TraktListNotFoundError: If no list has this slug
        """
        response = self._request("DELETE", self._list_path(slug))
        if response.status_code == 404:
            raise TraktListNotFoundError(slug)
        self._expect(response, 200, 204)
        logger.info(f"Deleted Trakt list {slug}")

    def list_add(self, slug: str, items: Iterable[Item]) -> MutationResult:
        return self._mutate(f"{self._list_path(slug)}/items", items, f"list {slug}", slug=slug)

    def list_remove(self, slug: str, items: Iterable[Item]) -> MutationResult:
        return self._mutate(
            f"{self._list_path(slug)}/items/remove", items, f"list {slug}", slug=slug
        )

    # -------------------------------------------------------------- ratings --
    def ratings_get(self) -> list[Item]:
        response = self._expect(self._request("GET", "/sync/ratings"), 200)
        return self._parse_items(self._json(response))

    def ratings_add(self, items: Iterable[Item]) -> MutationResult:
        return self._mutate("/sync/ratings", items, "ratings")

    def ratings_remove(self, items: Iterable[Item]) -> MutationResult:
        return self._mutate("/sync/ratings/remove", items, "ratings")

    # -------------------------------------------------------------- history --
    def history_get(self, kind: ItemKind, item_id: str) -> list[Item]:
        """Get watch history entries for one item.

        Args:
            kind: Item kind, used to pick the history endpoint
            item_id: IMDb id of the item

        Returns:
            History entries, empty when Trakt does not know the item
        """
        path = f"/sync/history/{kind.value}s/{item_id}"
        response = self._request("GET", path, params={"limit": HISTORY_PAGE_SIZE})
        if response.status_code == 404:
            return []
        self._expect(response, 200)
        return self._parse_items(self._json(response))

    def history_add(self, items: Iterable[Item]) -> MutationResult:
        return self._mutate("/sync/history", items, "history", watched=True)

    def history_remove(self, items: Iterable[Item]) -> MutationResult:
        return self._mutate("/sync/history/remove", items, "history")

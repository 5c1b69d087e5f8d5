"""IMDb client: authentication, list discovery and CSV exports.

IMDb has no API for a user's lists or ratings. Data comes out through the
exports feature: an export is requested from the resource page, shows up on
the exports page while IMDb prepares it, and can be downloaded as CSV once
ready. Pages are fetched with ``requests`` and read with the scraping helper.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional
from urllib.parse import urljoin

import requests

from ..fetch import FetchResult, fetch_all
from ..models import ExportJob, ExportStatus, Item, ItemList
from .imdb_csv import parse_export
from .imdb_errors import (
    ImdbApiError,
    ImdbAuthError,
    ImdbCaptchaError,
    ImdbExportFailedError,
    ImdbExportTimeoutError,
    ImdbPrivateResourceError,
    ImdbResourceNotFoundError,
)
from .retry import PollPolicy
from .scrape import Element, Page, ScrapeError

logger = logging.getLogger(__name__)

__all__ = [
    "AUTH_COOKIES",
    "AUTH_CREDENTIALS",
    "AUTH_NONE",
    "ImdbApi",
    "ImdbApiError",
    "ImdbAuthError",
    "ImdbCaptchaError",
    "ImdbExportFailedError",
    "ImdbExportTimeoutError",
    "ImdbExports",
    "ImdbPrivateResourceError",
    "ImdbResourceNotFoundError",
    "ImdbSession",
]

AUTH_CREDENTIALS = "credentials"
AUTH_COOKIES = "cookies"
AUTH_NONE = "none"

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/126.0 Safari/537.36"
)

# Page markers
SIGN_IN_EMAIL = "#ap_email"
SIGN_IN_PASSWORD = "#ap_password"
SIGN_IN_SUCCESS = "#nblogout"
SIGN_IN_ERROR = "#auth-error-message-box"
SIGN_IN_CAPTCHA = "img[alt=captcha]"
LIST_AUTHOR_LINK = "a[data-testid=list-author-link]"
LIST_EDIT_LINK = "a[data-testid=hero-list-subnav-edit-button]"
LIST_TITLE_LINK = "a.ipc-metadata-list-summary-item__t"
LIST_TOTAL = "[data-testid=list-page-mc-total-items]"
LIST_PAGE_TITLE = "h1"
EXPORT_BUTTON = "div[data-testid=hero-list-subnav-export-button] button"
PRIVATE_MARKER = "div[data-testid=list-page-mc-private-list-content]"
ERROR_PAGE_TITLE = "h1[data-testid=error-page-title]"
EXPORT_ROW = "li[data-testid=user-ll-item]"
EXPORT_PROCESSING = "span[data-testid=export-status-button].PROCESSING"
EXPORT_FAILED = "[data-testid=export-status-button].FAILED"
EXPORT_DOWNLOAD = "a[data-testid=export-status-button]"


@dataclass(frozen=True)
class ImdbSession:
    """Identity of the signed-in IMDb user."""
    user_id: str
    username: str
    watchlist_id: str


@dataclass
class ImdbExports:
    """Everything read from IMDb in one export round."""
    lists: FetchResult[ItemList] = field(default_factory=FetchResult)
    watchlist: Optional[ItemList] = None
    ratings: list[Item] = field(default_factory=list)


def _id_from_href(href: str) -> str:
    pieces = href.split("/")
    if len(pieces) < 3 or not pieces[2]:
        raise ImdbApiError(f"Hyperlink href has unexpected format: {href}")
    return pieces[2]


class ImdbApi:
    """Client for IMDb lists, watchlist and ratings."""

    BASE_URL = "https://www.imdb.com"
    SIGN_IN_PATH = "/registration/ap-signin-handler/imdb_us"

    def __init__(
        self,
        auth: str = AUTH_NONE,
        email: Optional[str] = None,
        password: Optional[str] = None,
        cookie_at_main: Optional[str] = None,
        cookie_ubid_main: Optional[str] = None,
        lists: Optional[Iterable[str]] = None,
        poll_policy: Optional[PollPolicy] = None,
        base_url: str = BASE_URL,
        timeout: int = 30,
    ):
        """Initialize IMDb client.

        Args:
            auth: One of ``credentials``, ``cookies`` or ``none``
            email: Account email for credentials auth
            password: Account password for credentials auth
            cookie_at_main: ``at-main`` cookie for cookie auth
            cookie_ubid_main: ``ubid-main`` cookie for cookie auth
            lists: List ids to sync; empty means every list of the user
            poll_policy: Attempt budget and interval for export polling
            base_url: IMDb base URL
            timeout: Per-request timeout in seconds
        """
        if auth not in (AUTH_CREDENTIALS, AUTH_COOKIES, AUTH_NONE):
            raise ValueError(f"Unknown IMDb auth method: {auth}")
        self.auth = auth
        self.email = email
        self.password = password
        self.cookie_at_main = cookie_at_main
        self.cookie_ubid_main = cookie_ubid_main
        self.list_ids = list(lists or [])
        self.list_names: dict[str, str] = {}
        self.inventory_complete = False
        self._discovered = False
        self.poll_policy = poll_policy or PollPolicy()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.identity: Optional[ImdbSession] = None
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT, "Accept-Language": "en-US,en;q=0.9"})

    @property
    def is_authenticated(self) -> bool:
        return self.auth != AUTH_NONE

    def _url(self, path: str) -> str:
        return urljoin(f"{self.base_url}/", path.lstrip("/"))

    def _get(self, url: str, **kwargs) -> requests.Response:
        try:
            return self.session.get(url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise ImdbApiError(f"Failed to fetch {url}: {e}") from e

    def _get_page(self, url: str) -> Page:
        response = self._get(url)
        if response.status_code != 200:
            raise ImdbApiError(f"Unexpected status {response.status_code} for GET {url}")
        return Page(response.text, url)

    # --------------------------------------------------------------- auth --
    def authenticate(self) -> None:
        """Sign in with the configured method.

        Raises:
            ImdbAuthError: If IMDb does not accept the credentials or cookies
            ImdbCaptchaError: If IMDb asks for a CAPTCHA
        """
        if self.auth == AUTH_COOKIES:
            self._authenticate_cookies()
        elif self.auth == AUTH_CREDENTIALS:
            self._authenticate_credentials()
        else:
            logger.info("IMDb auth is disabled, only public lists will be synced")
            return
        logger.info(f"Authenticated with IMDb using {self.auth}")

    def _authenticate_cookies(self) -> None:
        for name, value in (("at-main", self.cookie_at_main), ("ubid-main", self.cookie_ubid_main)):
            self.session.cookies.set(name, value, domain=".imdb.com")
        page = self._get_page(self._url("/"))
        if not page.has(SIGN_IN_SUCCESS):
            raise ImdbAuthError("Failed to authenticate with the provided cookies")

    def _authenticate_credentials(self) -> None:
        page = self._get_page(self._url(self.SIGN_IN_PATH))
        form = self._sign_in_form(page)

        fields = form.form_fields()
        email_input = form.select_one(SIGN_IN_EMAIL)
        password_input = form.select_one(SIGN_IN_PASSWORD)
        fields[email_input.get("name", "email")] = self.email
        fields[password_input.get("name", "password")] = self.password
        action = urljoin(page.url, form.get("action") or page.url)

        try:
            response = self.session.post(action, data=fields, timeout=self.timeout)
        except requests.RequestException as e:
            raise ImdbApiError(f"Failed to submit the sign in form: {e}") from e

        outcome = Page(response.text, response.url)
        if outcome.has(SIGN_IN_ERROR):
            raise ImdbAuthError("Failed to authenticate with the provided credentials")
        if outcome.has(SIGN_IN_CAPTCHA):
            raise ImdbCaptchaError("Failed to authenticate as a CAPTCHA prompt appeared")
        if not outcome.has(SIGN_IN_SUCCESS):
            raise ImdbAuthError("Sign in did not reach a signed-in page")

    def _sign_in_form(self, page: Page) -> Element:
        for form in page.select("form"):
            if form.select_one(SIGN_IN_EMAIL) and form.select_one(SIGN_IN_PASSWORD):
                return form
        raise ImdbAuthError(f"Sign in form not found on {page.url}")

    # ------------------------------------------------------------ hydrate --
    def hydrate(self) -> Optional[ImdbSession]:
        """Discover the user id, username, watchlist id and lists to sync.

        Returns:
            ImdbSession, or None when auth is disabled

        Raises:
            ImdbApiError: If the identity cannot be read from the watchlist page
        """
        if not self.is_authenticated:
            return None

        page = self._get_page(self._url("/list/watchlist"))
        try:
            author = page.require(LIST_AUTHOR_LINK)
            user_id = _id_from_href(page.attribute(LIST_AUTHOR_LINK, "href"))
            watchlist_id = _id_from_href(page.attribute(LIST_EDIT_LINK, "href"))
        except ScrapeError as e:
            raise ImdbApiError(f"Failed to hydrate IMDb client: {e}") from e

        self.identity = ImdbSession(user_id=user_id, username=author.text, watchlist_id=watchlist_id)

        if watchlist_id in self.list_ids:
            logger.warning(
                "Removing the watchlist id from the configured lists; "
                "use the sync.watchlist option instead"
            )
            self.list_ids = [list_id for list_id in self.list_ids if list_id != watchlist_id]

        if not self.list_ids:
            self.list_names = self.discover_lists()
            self.list_ids = list(self.list_names)

        logger.info(
            f"Hydrated IMDb client: user={user_id} watchlist={watchlist_id} "
            f"lists={self.list_ids}"
        )
        return self.identity

    def discover_lists(self) -> dict[str, str]:
        """Scrape the ids and names of every list on the user's profile.

        The profile shows the total number of lists and renders them a page
        at a time. Pages are read until that many lists were seen. Without a
        total on the page the result is kept but ``inventory_complete``
        stays False.

        Returns:
            Mapping of list id to list name, in page order

        Raises:
            ImdbApiError: If fewer lists are found than the profile advertises
        """
        self.inventory_complete = False
        url = self._url("/profile/lists")
        page = self._get_page(url)
        total = self._list_total(page)

        lists: dict[str, str] = {}
        page_number = 1
        while True:
            found = self._list_links(page)
            new = [list_id for list_id in found if list_id not in lists]
            for list_id in new:
                lists[list_id] = found[list_id]
            if total is None or len(lists) >= total or not new:
                break
            page_number += 1
            page = self._get_page(f"{url}?page={page_number}")

        if total is None:
            logger.warning(
                f"IMDb did not show a list count on {url}; "
                f"found {len(lists)} lists, Trakt lists will not be cleaned up"
            )
        elif len(lists) < total:
            raise ImdbApiError(f"Expected {total} IMDb lists on {url}, but found {len(lists)}")
        else:
            self.inventory_complete = True

        self._discovered = True
        logger.debug(f"Discovered {len(lists)} IMDb lists")
        return lists

    def _list_total(self, page: Page) -> Optional[int]:
        marker = page.select_one(LIST_TOTAL)
        if marker is None:
            return None
        match = re.search(r"\d[\d,]*", marker.text)
        if match is None:
            raise ImdbApiError(f"Unexpected list count text on {page.url}: {marker.text!r}")
        return int(match.group().replace(",", ""))

    def _list_links(self, page: Page) -> dict[str, str]:
        lists = {}
        for link in page.select(LIST_TITLE_LINK):
            href = link.get("href") or ""
            if href.startswith("/list/ls"):
                lists.setdefault(_id_from_href(href), link.text)
        return lists

    def all_list_names(self) -> list[str]:
        """Names of every list on the profile, used to spot orphaned Trakt lists.

        Check ``inventory_complete`` afterwards before deleting anything based
        on the result.
        """
        if not self._discovered:
            self.list_names = self.discover_lists()
        return list(self.list_names.values())

    # ------------------------------------------------------------- export --
    def _list_url(self, list_id: str) -> str:
        return self._url(f"/list/{list_id}")

    def _ratings_url(self) -> str:
        return self._url(f"/user/{self._require_identity().user_id}/ratings")

    def _require_identity(self) -> ImdbSession:
        if self.identity is None:
            raise ImdbApiError("IMDb client is not hydrated")
        return self.identity

    def export_request(self, resource_id: str, resource_url: str) -> ExportJob:
        """Ask IMDb to prepare an export of one resource.

        Args:
            resource_id: List id, or user id for ratings
            resource_url: Page of the resource

        Returns:
            ExportJob in the requested state

        Raises:
            ImdbPrivateResourceError: If the resource is private
            ImdbResourceNotFoundError: If the resource does not exist
        """
        response = self._get(resource_url)
        page = Page(response.text, resource_url)
        self._check_exportable(page, resource_id, resource_url, response.status_code)

        try:
            trigger = self.session.post(f"{resource_url.rstrip('/')}/export", timeout=self.timeout)
        except requests.RequestException as e:
            raise ImdbApiError(f"Failed to request export of {resource_id}: {e}") from e
        if trigger.status_code not in (200, 201, 202, 204):
            raise ImdbApiError(
                f"Unexpected status {trigger.status_code} requesting export of {resource_id}"
            )
        logger.info(f"Requested IMDb export of {resource_id}")
        title = page.select_one(LIST_PAGE_TITLE)
        return ExportJob(resource_id, ExportStatus.REQUESTED, name=title.text if title is not None else None)

    def _check_exportable(self, page: Page, resource_id: str, url: str, status: int) -> None:
        if page.has(PRIVATE_MARKER):
            raise ImdbPrivateResourceError(url)
        if page.has(ERROR_PAGE_TITLE) or status == 404:
            raise ImdbResourceNotFoundError(resource_id, url)
        if status != 200:
            raise ImdbApiError(f"Unexpected status {status} for GET {url}")
        if not page.has(EXPORT_BUTTON):
            raise ImdbApiError(f"Export control not found on {url}")

    def exports_get(self, resource_ids: Iterable[str]) -> dict[str, ExportJob]:
        """Read the newest export row of each requested resource.

        Rows are listed newest first; only the first row seen for an id counts.
        """
        wanted = set(resource_ids)
        page = self._get_page(self._url("/exports"))
        jobs: dict[str, ExportJob] = {}
        for row in page.select(EXPORT_ROW):
            link = row.select_one(LIST_TITLE_LINK)
            if link is None:
                continue
            resource_id = self._row_resource_id(link.get("href") or "")
            if resource_id is None or resource_id not in wanted or resource_id in jobs:
                continue
            jobs[resource_id] = self._row_job(row, resource_id, link.text)
        return jobs

    def _row_resource_id(self, href: str) -> Optional[str]:
        if href.startswith("/list/ls"):
            return _id_from_href(href)
        if self.identity and href.startswith(f"/user/{self.identity.user_id}/ratings"):
            return self.identity.user_id
        return None

    def _row_job(self, row: Element, resource_id: str, name: str) -> ExportJob:
        if row.select_one(EXPORT_FAILED) is not None:
            return ExportJob(resource_id, ExportStatus.FAILED, name=name)
        if row.select_one(EXPORT_PROCESSING) is not None:
            return ExportJob(resource_id, ExportStatus.PROCESSING, name=name)
        download = row.select_one(EXPORT_DOWNLOAD)
        if download is not None and download.get("href"):
            return ExportJob(
                resource_id,
                ExportStatus.READY,
                name=name,
                download_url=self._url(download.get("href")),
            )
        return ExportJob(resource_id, ExportStatus.PROCESSING, name=name)

    def wait_exports_ready(self, resource_ids: Iterable[str]) -> dict[str, ExportJob]:
        """Poll the exports page until every requested export is ready.

        Returns:
            Ready export jobs keyed by resource id

        Raises:
            ImdbExportFailedError: If IMDb marks an export as failed
            ImdbExportTimeoutError: If the attempt budget runs out
        """
        resource_ids = list(resource_ids)
        if not resource_ids:
            return {}

        max_attempts = self.poll_policy.max_attempts
        for attempt in range(1, max_attempts + 1):
            jobs = self.exports_get(resource_ids)

            failed = [job.resource_id for job in jobs.values() if job.status is ExportStatus.FAILED]
            if failed:
                raise ImdbExportFailedError(f"IMDb failed to export {failed}")

            pending = [
                resource_id
                for resource_id in resource_ids
                if resource_id not in jobs or jobs[resource_id].status is not ExportStatus.READY
            ]
            if not pending:
                logger.info(f"Exports are ready for download: {resource_ids}")
                return jobs

            logger.info(
                f"Exports {pending} are still processing "
                f"(attempt {attempt}/{max_attempts}), checking again in {self.poll_policy.interval}s"
            )
            if attempt < max_attempts:
                self.poll_policy.wait()

        raise ImdbExportTimeoutError(
            f"Reached max attempts ({max_attempts}) waiting for exports {resource_ids}"
        )

    def download(self, job: ExportJob) -> list[Item]:
        """Download and parse a ready export."""
        response = self._get(job.download_url)
        if response.status_code != 200:
            raise ImdbApiError(
                f"Unexpected status {response.status_code} downloading export of {job.resource_id}"
            )
        items = parse_export(response.content)
        logger.info(f"Downloaded IMDb export of {job.resource_id}: {len(items)} items")
        return items

    # ---------------------------------------------------------- resources --
    def export_all(
        self,
        list_ids: Optional[Iterable[str]] = None,
        watchlist: bool = False,
        ratings: bool = False,
    ) -> ImdbExports:
        """Read lists, and optionally the watchlist and ratings, in one export round.

        Every export is requested first, then the exports page is polled for
        all of them together, then the ready files are downloaded
        concurrently. Missing lists are reported in ``lists.not_found``; a
        missing watchlist or ratings page is fatal.

        Args:
            list_ids: Lists to fetch, defaults to the hydrated selection
            watchlist: Also export the watchlist
            ratings: Also export the ratings

        Returns:
            ImdbExports holding what was asked for. Without auth only the
            public lists are read.
        """
        list_ids = list(dict.fromkeys(self.list_ids if list_ids is None else list_ids))
        if not self.is_authenticated:
            return ImdbExports(lists=fetch_all(list_ids, self._public_list_get))

        identity = self._require_identity()
        targets = {list_id: self._list_url(list_id) for list_id in list_ids}
        required = []
        if watchlist:
            targets[identity.watchlist_id] = self._list_url(identity.watchlist_id)
            required.append(identity.watchlist_id)
        if ratings:
            targets[identity.user_id] = self._ratings_url()
            required.append(identity.user_id)

        requested = fetch_all(targets, lambda resource_id: self.export_request(resource_id, targets[resource_id]))
        for missing in requested.not_found:
            if missing.resource_id in required:
                raise missing

        titles = {job.resource_id: job.name for job in requested.results}
        jobs = self.wait_exports_ready(titles)
        downloaded = dict(
            fetch_all(jobs, lambda resource_id: (resource_id, self.download(jobs[resource_id]))).results
        )

        exports = ImdbExports()
        for list_id in list_ids:
            if list_id not in downloaded:
                continue
            name = self.list_names.get(list_id) or jobs[list_id].name or titles[list_id] or list_id
            exports.lists.results.append(ItemList(list_id=list_id, name=name, items=downloaded[list_id]))
        exports.lists.not_found.extend(requested.not_found)

        if watchlist:
            exports.watchlist = ItemList(
                list_id=identity.watchlist_id,
                name="watchlist",
                items=downloaded[identity.watchlist_id],
                is_watchlist=True,
            )
        if ratings:
            exports.ratings = downloaded[identity.user_id]
        return exports

    def _public_list_get(self, list_id: str) -> ItemList:
        url = self._list_url(list_id)
        response = self._get(url)
        page = Page(response.text, url)
        if page.has(PRIVATE_MARKER):
            raise ImdbPrivateResourceError(url)
        if page.has(ERROR_PAGE_TITLE) or response.status_code == 404:
            raise ImdbResourceNotFoundError(list_id, url)
        if response.status_code != 200:
            raise ImdbApiError(f"Unexpected status {response.status_code} for GET {url}")

        title = page.select_one(LIST_PAGE_TITLE)
        name = title.text if title is not None else list_id
        job = ExportJob(list_id, ExportStatus.READY, name=name, download_url=f"{url}/export")
        return ItemList(list_id=list_id, name=name, items=self.download(job))

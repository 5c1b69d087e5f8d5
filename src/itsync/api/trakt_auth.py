"""Trakt device authorization, driven through the Trakt website.

The device flow normally needs a human to type a code into trakt.tv. Here the
website steps are replayed with a cookie-keeping ``requests.Session``: sign
in, open the activation page, submit the user code and approve the app. Each
page hands out the authenticity token the next form post must carry.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

import requests

from .retry import RetryPolicy
from .scrape import Page, ScrapeError
from .trakt import API_URL, RequestExecutor, TraktApiError, TraktAuthError, TraktSession

logger = logging.getLogger(__name__)

WEB_URL = "https://trakt.tv"

SIGN_IN_TOKEN = "#new_user input[name=authenticity_token]"
ACTIVATE_TOKEN = "#auth-form-wrapper form.form-signin input[name=authenticity_token]"
AUTHORIZE_TOKEN = "#auth-form-wrapper div.form-signin form input[name=authenticity_token]"
USER_AVATAR = "#desktop-user-avatar"
REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"


def _session_from_tokens(payload: dict, username: str) -> TraktSession:
    access_token = payload.get("access_token")
    if not access_token:
        raise TraktAuthError("Token response is missing access_token")

    expires_at = None
    if payload.get("expires_in"):
        created_at = payload.get("created_at") or datetime.now(timezone.utc).timestamp()
        expires_at = datetime.fromtimestamp(created_at + payload["expires_in"], tz=timezone.utc)
    return TraktSession(
        access_token=access_token,
        username=username,
        refresh_token=payload.get("refresh_token"),
        expires_at=expires_at,
    )


class DeviceAuthFlow:
    """Run the device authorization handshake and produce a TraktSession.

    Steps, in order: request device code, browse sign in, submit
    credentials, browse activation, submit activation code, authorize app,
    exchange token. Any step failing ends the flow with TraktAuthError.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        email: str,
        password: str,
        retry_policy: Optional[RetryPolicy] = None,
        api_url: str = API_URL,
        web_url: str = WEB_URL,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.email = email
        self.password = password
        self.api_url = api_url.rstrip("/")
        self.web_url = web_url.rstrip("/")
        self.api = RequestExecutor(retry_policy=retry_policy)
        self.api.session.headers.update({"Content-Type": "application/json"})
        self.browser = RequestExecutor(session=requests.Session(), retry_policy=retry_policy)

    def authenticate(self) -> TraktSession:
        """Authenticate against Trakt.

        Returns:
            TraktSession with the access token and username

        Raises:
            TraktAuthError: If any step of the handshake fails
        """
        codes = self.request_device_code()
        token = self.browse_sign_in()
        self.submit_credentials(token)
        token = self.browse_activate()
        token = self.submit_activation_code(codes["user_code"], token)
        username = self.authorize_app(token)
        session = _session_from_tokens(self.exchange_token(codes["device_code"]), username)
        logger.info(f"Authenticated with Trakt as {username}")
        return session

    def refresh(self, session: TraktSession) -> TraktSession:
        """Exchange the refresh token of an expired session for a new session.

        Raises:
            TraktAuthError: If the session has no refresh token or Trakt rejects it
        """
        if not session.refresh_token:
            raise TraktAuthError("Trakt session has no refresh token")
        tokens = self._api_post(
            "/oauth/token",
            {
                "refresh_token": session.refresh_token,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": REDIRECT_URI,
                "grant_type": "refresh_token",
            },
        )
        logger.debug("Refreshed Trakt access token")
        return _session_from_tokens(tokens, session.username)

    # ------------------------------------------------------------- helpers --
    @staticmethod
    def _send(executor: RequestExecutor, method: str, url: str, **kwargs):
        try:
            return executor.send(method, url, **kwargs)
        except TraktAuthError:
            raise
        except TraktApiError as e:
            raise TraktAuthError(str(e), method=e.method, url=e.url, status=e.status) from e

    def _api_post(self, path: str, body: dict) -> dict:
        url = f"{self.api_url}{path}"
        response = self._send(self.api, "POST", url, json=body)
        if response.status_code != 200:
            raise TraktAuthError(
                f"Unexpected status {response.status_code} for POST {url}",
                method="POST",
                url=url,
                status=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise TraktAuthError(f"Invalid JSON from {url}: {e}") from e

    def _browse(self, method: str, path: str, data: Optional[dict] = None) -> Page:
        url = f"{self.web_url}{path}"
        response = self._send(self.browser, method, url, data=data)
        if response.status_code != 200:
            raise TraktAuthError(
                f"Unexpected status {response.status_code} for {method} {url}",
                method=method,
                url=url,
                status=response.status_code,
            )
        return Page(response.text, url)

    def _scrape_token(self, page: Page, selector: str, step: str) -> str:
        try:
            return page.attribute(selector, "value")
        except ScrapeError as e:
            raise TraktAuthError(f"Failed to {step}: {e}") from e

    # --------------------------------------------------------------- steps --
    def request_device_code(self) -> dict:
        payload = self._api_post("/oauth/device/code", {"client_id": self.client_id})
        if not payload.get("device_code") or not payload.get("user_code"):
            raise TraktAuthError("Device code response is missing device_code or user_code")
        logger.debug("Received Trakt device code")
        return payload

    def browse_sign_in(self) -> str:
        page = self._browse("GET", "/auth/signin")
        return self._scrape_token(page, SIGN_IN_TOKEN, "browse to the sign in page")

    def submit_credentials(self, authenticity_token: str) -> None:
        self._browse(
            "POST",
            "/auth/signin",
            data={
                "authenticity_token": authenticity_token,
                "user[login]": self.email,
                "user[password]": self.password,
                "user[remember_me]": "1",
            },
        )
        logger.debug("Submitted Trakt sign in form")

    def browse_activate(self) -> str:
        page = self._browse("GET", "/activate")
        return self._scrape_token(page, ACTIVATE_TOKEN, "browse to the device activation page")

    def submit_activation_code(self, user_code: str, authenticity_token: str) -> str:
        page = self._browse(
            "POST",
            "/activate",
            data={
                "authenticity_token": authenticity_token,
                "code": user_code,
                "commit": "Continue",
            },
        )
        return self._scrape_token(page, AUTHORIZE_TOKEN, "submit the device activation form")

    def authorize_app(self, authenticity_token: str) -> str:
        """Approve the app and return the signed-in username."""
        page = self._browse(
            "POST",
            "/activate/authorize",
            data={"authenticity_token": authenticity_token, "commit": "Yes"},
        )
        try:
            href = page.attribute(USER_AVATAR, "href")
        except ScrapeError as e:
            raise TraktAuthError(f"Failed to authorize the Trakt app: {e}") from e

        pieces = href.strip("/").split("/")
        if len(pieces) < 2 or pieces[0] != "users" or not pieces[1]:
            raise TraktAuthError(f"Unexpected user profile link: {href}")
        return pieces[1]

    def exchange_token(self, device_code: str) -> dict:
        return self._api_post(
            "/oauth/device/token",
            {
                "code": device_code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
        )

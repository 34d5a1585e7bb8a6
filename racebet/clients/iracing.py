"""iRacing OAuth2 and data API client."""

import base64
import logging
from datetime import datetime
from typing import Any, Callable
from urllib.parse import urlencode

import requests

from racebet.clients.base import BaseApiClient
from racebet.clients.token_cache import TokenCache
from racebet.constants import IRACING_DATA_BASE_URL, IRACING_OAUTH_BASE_URL
from racebet.errors import AuthorizationError, UpstreamUnavailableError
from racebet.models.base import utcnow
from racebet.models.results import AuthTokens, IRacingProfile, RaceResults

logger = logging.getLogger(__name__)


class IRacingClient(BaseApiClient):
    """Client for the iRacing OAuth2 endpoints and the ``/data`` API.

    Tokens are kept in a :class:`TokenCache` and refreshed once the cached
    access token is past its (margin-adjusted) expiry. The clock is
    injected so refresh-on-expiry can be tested without real timers.

    Example:
        >>> client = IRacingClient("id", "secret", "https://app/callback")
        >>> client.exchange_code_for_tokens(code)
        >>> profile = client.get_profile()
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        refresh_token: str | None = None,
        clock: Callable[[], datetime] = utcnow,
        oauth_base_url: str = IRACING_OAUTH_BASE_URL,
        data_base_url: str = IRACING_DATA_BASE_URL,
        delay: float = 0.5,
    ) -> None:
        """Initialize IRacingClient.

        Args:
            client_id: OAuth2 client id.
            client_secret: OAuth2 client secret.
            redirect_uri: Redirect URI registered for the client.
            refresh_token: Optional long-lived refresh token so that the
                settlement job can call the data API without a user sign-in.
            clock: Returns the current naive UTC time.
            oauth_base_url: Base URL of the OAuth2 endpoints.
            data_base_url: Base URL of the data API.
            delay: Minimum delay between requests in seconds.
        """
        super().__init__(delay=delay)
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.oauth_base_url = oauth_base_url.rstrip("/")
        self.data_base_url = data_base_url.rstrip("/")
        self._clock = clock
        self._tokens: TokenCache | None = None
        if refresh_token:
            # アクセストークン未取得: 初回呼び出しでリフレッシュさせる
            self._tokens = TokenCache(
                access_token="", refresh_token=refresh_token, expires_at=datetime.min
            )

    @property
    def tokens(self) -> TokenCache | None:
        return self._tokens

    # ---- OAuth2 ------------------------------------------------------

    def get_authorization_url(self, state: str | None = None) -> str:
        """Return the URL the browser is sent to for iRacing sign-in."""
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "scope": "iracing.auth",
        }
        if state:
            params["state"] = state
        return f"{self.oauth_base_url}/authorize?{urlencode(params)}"

    def exchange_code_for_tokens(self, code: str) -> AuthTokens:
        """Exchange an authorization code for tokens and cache them.

        Raises:
            AuthorizationError: If iRacing rejects the code.
            UpstreamUnavailableError: If the token endpoint cannot be reached.
        """
        return self._request_tokens(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
            }
        )

    def refresh_access_token(self) -> AuthTokens:
        """Obtain a new access token with the cached refresh token.

        Raises:
            AuthorizationError: If no refresh token is cached or it is rejected.
            UpstreamUnavailableError: If the token endpoint cannot be reached.
        """
        if self._tokens is None or not self._tokens.refresh_token:
            raise AuthorizationError("No refresh token available")

        return self._request_tokens(
            {"grant_type": "refresh_token", "refresh_token": self._tokens.refresh_token}
        )

    def _request_tokens(self, form: dict) -> AuthTokens:
        credentials = f"{self.client_id}:{self.client_secret}".encode("utf-8")
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Authorization": f"Basic {base64.b64encode(credentials).decode('ascii')}",
        }
        try:
            data = self.post_form(f"{self.oauth_base_url}/token", data=form, headers=headers)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status in (400, 401, 403):
                raise AuthorizationError(f"iRacing rejected {form['grant_type']} grant") from e
            raise UpstreamUnavailableError(f"iRacing token endpoint failed: {e}") from e
        except requests.RequestException as e:
            raise UpstreamUnavailableError(f"iRacing token endpoint unreachable: {e}") from e

        tokens = AuthTokens.from_api(data)
        if tokens.refresh_token is None and self._tokens is not None:
            # リフレッシュ応答に refresh_token が無い場合は既存のものを保持
            tokens = AuthTokens(
                access_token=tokens.access_token,
                refresh_token=self._tokens.refresh_token,
                expires_in=tokens.expires_in,
                token_type=tokens.token_type,
            )
        self._tokens = TokenCache.from_tokens(tokens, now=self._clock())
        return tokens

    def _ensure_valid_token(self) -> str:
        if self._tokens is None:
            raise AuthorizationError("No access token available")

        if self._tokens.is_expired(self._clock()):
            logger.info("iRacing access token expired, refreshing")
            return self.refresh_access_token().access_token

        return self._tokens.access_token

    # ---- data API ----------------------------------------------------

    def _get_data(self, url: str, params: dict | None = None) -> Any:
        """GET an authenticated endpoint, following the data API's link indirection.

        Raises:
            AuthorizationError: Without a usable token.
            requests.HTTPError: On an error status.
            UpstreamUnavailableError: On connection failures.
        """
        token = self._ensure_valid_token()
        try:
            payload = self.get_json(url, params=params, headers={"Authorization": f"Bearer {token}"})
            if isinstance(payload, dict) and set(payload) <= {"link", "expires"} and "link" in payload:
                payload = self.get_json(payload["link"])
        except requests.HTTPError:
            raise
        except requests.RequestException as e:
            raise UpstreamUnavailableError(f"iRacing API unreachable: {e}") from e
        return payload

    def get_profile(self) -> IRacingProfile:
        """Return the profile of the member the cached token belongs to."""
        try:
            data = self._get_data(f"{self.oauth_base_url}/iracing/profile")
        except requests.HTTPError as e:
            raise UpstreamUnavailableError(f"Error fetching iRacing profile: {e}") from e
        return IRacingProfile.from_api(data)

    def get_user_races(self, cust_id: int) -> dict:
        """Return the member's recent races as reported by iRacing."""
        try:
            return self._get_data(
                f"{self.data_base_url}/member/recent_races", params={"cust_id": cust_id}
            )
        except requests.HTTPError as e:
            raise UpstreamUnavailableError(f"Error fetching user races: {e}") from e

    def get_race_results(self, subsession_id: int) -> RaceResults | None:
        """Return the results of a subsession, or None while they are not available.

        Raises:
            UpstreamUnavailableError: If the API fails for another reason.
        """
        try:
            data = self._get_data(
                f"{self.data_base_url}/results/get",
                params={"subsession_id": subsession_id},
            )
        except AuthorizationError as e:
            logger.warning("Cannot fetch results for subsession %s: %s", subsession_id, e)
            return None
        except requests.HTTPError as e:
            if e.response is not None and e.response.status_code == 404:
                return None
            raise UpstreamUnavailableError(f"Error fetching race results: {e}") from e

        if not data:
            return None
        return RaceResults.from_api(data)

    def get_active_series(self) -> list[dict]:
        """Return the series currently running on iRacing."""
        try:
            data = self._get_data(f"{self.data_base_url}/series/active")
        except requests.HTTPError as e:
            raise UpstreamUnavailableError(f"Error fetching active series: {e}") from e
        return list(data or [])

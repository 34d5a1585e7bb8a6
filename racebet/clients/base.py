"""Base HTTP client for the external race-data API."""

import time

import requests


class BaseApiClient:
    """Base class for JSON API clients.

    Provides a shared ``requests.Session``, a minimum delay between
    consecutive requests and retry with backoff on throttling responses.

    Attributes:
        DEFAULT_USER_AGENT: User-Agent string sent with every request.
        RETRYABLE_STATUS_CODES: HTTP statuses retried with backoff.
        BACKOFF_DELAYS: Seconds to wait before each retry.
        delay: Minimum delay in seconds between consecutive requests.
        timeout: Per-request timeout in seconds.
    """

    DEFAULT_USER_AGENT = "racebet/0.1 (+https://github.com/racebet)"
    RETRYABLE_STATUS_CODES = (429, 502, 503)
    BACKOFF_DELAYS = (5, 10, 30)

    # グローバルレートリミッタ: 全インスタンス間で共有
    _global_last_request_time: float | None = None

    def __init__(self, delay: float = 0.5, timeout: float = 10.0) -> None:
        """Initialize BaseApiClient.

        Args:
            delay: Delay in seconds between consecutive HTTP requests.
            timeout: Per-request timeout in seconds.
        """
        self.delay = delay
        self.timeout = timeout
        self.session = requests.Session()

    def request(self, method: str, url: str, **kwargs) -> requests.Response:
        """Send a request, retrying throttled responses with backoff.

        Args:
            method: HTTP method.
            url: Absolute URL.
            **kwargs: Passed through to ``requests.Session.request``.

        Returns:
            The successful response.

        Raises:
            requests.HTTPError: On a non-retryable error status, or when
                retries are exhausted.
            requests.RequestException: On connection errors.
        """
        headers = {"User-Agent": self.DEFAULT_USER_AGENT, "Accept": "application/json"}
        headers.update(kwargs.pop("headers", None) or {})
        max_retries = len(self.BACKOFF_DELAYS)

        for attempt in range(max_retries + 1):
            self._apply_delay()
            try:
                response = self.session.request(
                    method, url, headers=headers, timeout=self.timeout, **kwargs
                )
                response.raise_for_status()
                return response
            except requests.HTTPError as e:
                status = e.response.status_code if e.response is not None else None
                if status in self.RETRYABLE_STATUS_CODES and attempt < max_retries:
                    time.sleep(self.BACKOFF_DELAYS[attempt])
                else:
                    raise
            finally:
                BaseApiClient._global_last_request_time = time.time()

        raise requests.HTTPError("Max retries exceeded")

    def get_json(self, url: str, params: dict | None = None, headers: dict | None = None) -> dict:
        """GET ``url`` and return the decoded JSON body."""
        return self.request("GET", url, params=params, headers=headers).json()

    def post_form(self, url: str, data: dict, headers: dict | None = None) -> dict:
        """POST form-encoded ``data`` and return the decoded JSON body."""
        return self.request("POST", url, data=data, headers=headers).json()

    def _apply_delay(self) -> None:
        """Sleep until ``delay`` seconds have passed since the last request of any instance."""
        if BaseApiClient._global_last_request_time is None:
            return

        elapsed = time.time() - BaseApiClient._global_last_request_time
        if elapsed < self.delay:
            time.sleep(self.delay - elapsed)

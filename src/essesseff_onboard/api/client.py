"""Rate-limited client for the essesseff platform API.

The API allows 3 requests per 10 seconds per key. Rather than tracking a
sliding window, the client waits a fixed delay before every call, which stays
under the budget for strictly sequential use. HTTP 429 is retried after a
longer backoff; every other error status is surfaced immediately.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from essesseff_onboard.config import OnboardSettings
from essesseff_onboard.errors import ApiError, RateLimitExhaustedError

logger = logging.getLogger(__name__)

USER_AGENT = "essesseff-onboarding-utility/1.0"

DEFAULT_CALL_DELAY_SECONDS = 4.0
DEFAULT_RATE_LIMIT_BACKOFF_SECONDS = 10.0


class EssesseffClient:
    """Small wrapper around a requests session for the calls the onboarding flow needs."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        call_delay_seconds: float = DEFAULT_CALL_DELAY_SECONDS,
        rate_limit_backoff_seconds: float = DEFAULT_RATE_LIMIT_BACKOFF_SECONDS,
        max_rate_limit_retries: int | None = None,
        timeout_seconds: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("essesseff API key is required")
        if not base_url:
            raise ValueError("essesseff API base URL is required")

        self._base_url = base_url.rstrip("/")
        self._call_delay = call_delay_seconds
        self._backoff = rate_limit_backoff_seconds
        self._max_retries = max_rate_limit_retries
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "X-API-Key": api_key,
                "User-Agent": USER_AGENT,
                "Accept": "application/json",
            }
        )
        logger.debug(
            "essesseff client ready",
            extra={"base_url": self._base_url, "api_key_prefix": api_key[:4] + "..."},
        )

    @classmethod
    def from_settings(
        cls, settings: OnboardSettings, *, session: requests.Session | None = None
    ) -> EssesseffClient:
        return cls(
            api_key=settings.api_key,
            base_url=settings.api_base_url,
            call_delay_seconds=settings.rate_limit_delay_seconds,
            rate_limit_backoff_seconds=settings.rate_limit_backoff_seconds,
            max_rate_limit_retries=settings.max_rate_limit_retries,
            session=session,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def url_for(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        *,
        params: dict[str, str] | None = None,
    ) -> str:
        """Send a request and return the response body as text.

        Raises:
            ApiError: On any HTTP status >= 400 other than 429.
            RateLimitExhaustedError: Only if a retry ceiling is configured.
        """

        return self._send(method, path, body=body, params=params).text

    def download(self, path: str) -> bytes:
        """GET a path and return the raw response bytes."""

        return self._send("GET", path).content

    def exists(self, path: str) -> bool:
        """Probe a resource: 404 means absent, any other success means present.

        Raises:
            ApiError: On any HTTP status >= 400 other than 404 and 429.
        """

        response = self._send("GET", path, allow_not_found=True)
        if response.status_code == 404:
            logger.debug("Resource does not exist", extra={"path": path})
            return False
        logger.debug("Resource exists", extra={"path": path, "status": response.status_code})
        return True

    def _send(
        self,
        method: str,
        path: str,
        *,
        body: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        allow_not_found: bool = False,
    ) -> requests.Response:
        method = method.upper()
        url = self.url_for(path)
        attempt = 0

        while True:
            attempt += 1
            time.sleep(self._call_delay)

            logger.debug(
                "API request", extra={"method": method, "url": url, "attempt": attempt}
            )
            response = self._session.request(
                method,
                url,
                params=params,
                json=body,
                timeout=self._timeout,
                allow_redirects=True,
            )
            status = response.status_code
            logger.debug("API response", extra={"method": method, "url": url, "status": status})

            if status == 429:
                # The retry about to happen would be retry number `attempt`.
                if self._max_retries is not None and attempt > self._max_retries:
                    raise RateLimitExhaustedError(method=method, path=path, attempts=attempt)
                logger.warning(
                    "Rate limit exceeded, waiting %s seconds before retry...",
                    self._backoff,
                    extra={"method": method, "path": path},
                )
                time.sleep(self._backoff)
                continue

            if allow_not_found and status == 404:
                return response

            if status >= 400:
                logger.debug(
                    "API error body", extra={"status": status, "body": response.text}
                )
                raise ApiError(method=method, path=path, status_code=status, body=response.text)

            return response

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> EssesseffClient:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

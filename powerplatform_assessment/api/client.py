"""
Admin API client with pagination, throttling, retry, and safety enforcement.
One client per session; bearer tokens are resolved per API host so a single
Power Platform session can reach BAP, Power Apps, Flow and Dataverse.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional
from urllib.parse import urlsplit

import httpx

from ..auth.authenticator import AuthenticationError
from ..config import (
    RESOURCE_SCOPES,
    MAX_RETRIES,
    INITIAL_BACKOFF_SECONDS,
    MAX_BACKOFF_SECONDS,
    BACKOFF_MULTIPLIER,
    MAX_PAGES_PER_ENDPOINT,
    REQUEST_TIMEOUT_SECONDS,
    CONNECT_TIMEOUT_SECONDS,
)
from ..safety.guardian import SafetyGuardian

logger = logging.getLogger("powerplatform_assessment.api")

# Continuation keys used by the different admin APIs
NEXT_LINK_KEYS = ("@odata.nextLink", "nextLink")


class ConnectivityError(Exception):
    """Raised when a data source cannot be reached or authenticated to."""
    pass


class ApiError(ConnectivityError):
    """Raised when an admin API returns a non-recoverable status."""
    def __init__(self, status_code: int, message: str, url: str):
        self.status_code = status_code
        self.url = url
        super().__init__(f"API error {status_code} for {url}: {message}")


def raise_if_not_found(data: dict, url: str) -> None:
    """Turn the 404 empty-page marker into an ApiError."""
    if data.get("_not_found"):
        raise ApiError(404, "Endpoint not found", url)


def scope_for_url(url: str) -> str:
    """Map a request URL to the token scope of its API host."""
    host = urlsplit(url).netloc.lower()
    if host in RESOURCE_SCOPES:
        return RESOURCE_SCOPES[host]
    # Dataverse instances (*.crm.dynamics.com and regional variants)
    return f"https://{host}/.default"


class AdminApiClient:
    """
    Synchronous admin API client.
    Features:
      - Safety-validated requests (read-only enforcement)
      - Per-host bearer tokens from a token provider
      - Automatic pagination over @odata.nextLink / nextLink
      - Exponential backoff on 429/503/504 and transport errors
    """

    def __init__(
        self,
        token_provider: Callable[[str], str],
        guardian: SafetyGuardian,
        name: str = "admin",
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.name = name
        self.token_provider = token_provider
        self.guardian = guardian
        self._sleep = sleep
        self._request_count = 0
        self._throttle_count = 0
        self._client = httpx.Client(
            timeout=httpx.Timeout(REQUEST_TIMEOUT_SECONDS, connect=CONNECT_TIMEOUT_SECONDS),
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def close(self):
        self._client.close()

    def get(self, url: str, params: Optional[dict] = None) -> dict:
        """Execute a single GET request with retry/throttle handling."""
        self.guardian.validate_request("GET", url)
        return self._execute_with_retry("GET", url, params=params)

    def post(self, url: str, json_body: Optional[dict] = None, params: Optional[dict] = None) -> dict:
        """Execute a read-only POST query (validated against the safe list)."""
        self.guardian.validate_request("POST", url)
        return self._execute_with_retry("POST", url, params=params, json_body=json_body)

    def get_all_pages(
        self,
        url: str,
        params: Optional[dict] = None,
        max_pages: int = MAX_PAGES_PER_ENDPOINT,
        missing_ok: bool = True,
    ) -> list[dict]:
        """
        Fetch all pages of a paginated endpoint into a list.

        A 404 is an empty listing unless missing_ok is False, in which case a
        missing first page raises ApiError: a source listing that cannot be
        found is unreachable, not empty.
        """
        items: list[dict] = []
        next_url: Optional[str] = url
        pages = 0

        while next_url and pages < max_pages:
            data = self.get(next_url, params=params)
            if pages == 0 and not missing_ok:
                raise_if_not_found(data, url)
            items.extend(data.get("value", []))

            next_url = None
            for key in NEXT_LINK_KEYS:
                if data.get(key):
                    next_url = data[key]
                    break
            params = None  # nextLink contains all params
            pages += 1

        if next_url:
            logger.warning(
                f"Pagination safety cap reached ({max_pages} pages) for endpoint: {url}"
            )
        return items

    def _execute_with_retry(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
    ) -> dict:
        """Execute request with exponential backoff on throttling."""
        backoff = INITIAL_BACKOFF_SECONDS

        for attempt in range(MAX_RETRIES + 1):
            try:
                response = self._execute_raw(method, url, params=params, json_body=json_body)
                self._request_count += 1
            except (httpx.TimeoutException, httpx.TransportError) as e:
                logger.warning(
                    f"[{self.name}] {type(e).__name__} on {url}, attempt {attempt + 1}/{MAX_RETRIES + 1}"
                )
                if attempt == MAX_RETRIES:
                    raise ConnectivityError(f"Could not reach {url}: {e}") from e
                self._sleep(backoff)
                backoff = min(backoff * BACKOFF_MULTIPLIER, MAX_BACKOFF_SECONDS)
                continue

            if response.status_code == 200:
                if not response.content or not response.content.strip():
                    return {"value": []}
                try:
                    return response.json()
                except ValueError as e:
                    raise ApiError(200, f"Response is not JSON: {e}", url) from e

            if response.status_code == 204:
                return {}

            if response.status_code == 404:
                logger.debug(f"404 Not Found: {url}")
                return {"value": [], "_not_found": True}

            if response.status_code in (429, 503, 504):
                self._throttle_count += 1
                if attempt == MAX_RETRIES:
                    break
                try:
                    retry_after = float(response.headers.get("Retry-After", backoff))
                except ValueError:
                    retry_after = backoff
                wait_time = max(retry_after, backoff)
                logger.warning(
                    f"[{self.name}] Throttled ({response.status_code}) on {url}. "
                    f"Retry {attempt + 1}/{MAX_RETRIES} in {wait_time:.1f}s"
                )
                self._sleep(wait_time)
                backoff = min(backoff * BACKOFF_MULTIPLIER, MAX_BACKOFF_SECONDS)
                continue

            raise ApiError(response.status_code, _error_message(response), url)

        raise ApiError(response.status_code, f"Throttling persisted after {MAX_RETRIES} retries", url)

    def _execute_raw(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
    ) -> httpx.Response:
        """Execute raw HTTP request with the bearer token for the URL's host."""
        scope = scope_for_url(url)
        try:
            token = self.token_provider(scope)
        except AuthenticationError as e:
            raise ConnectivityError(f"No token for {scope}: {e}") from e

        headers = {"Authorization": f"Bearer {token}"}
        if method == "GET":
            return self._client.get(url, params=params, headers=headers)
        return self._client.post(url, json=json_body, params=params, headers=headers)

    def get_stats(self) -> dict:
        """Return client statistics."""
        return {
            "total_requests": self._request_count,
            "throttle_events": self._throttle_count,
        }


def _error_message(response: httpx.Response) -> str:
    """Extract the error message from an admin API error body."""
    try:
        body: Any = response.json() if response.content else {}
    except ValueError:
        return response.text[:200]
    error = body.get("error", {}) if isinstance(body, dict) else {}
    if isinstance(error, dict):
        return error.get("message") or error.get("code") or response.text[:200]
    return str(error)[:200]

"""HTTP transport for the GavaConnect API.

Wraps a ``requests.Session`` with bearer authentication, response caching,
client-side rate limiting, retries and the mapping of HTTP failures onto the
SDK exception hierarchy.

Usage:
    http = HttpClient(config, cache, rate_limiter, retry_handler)
    data = http.get("/verify-pin", {"pin": "P051234567A"})
    data = http.post("/file-nil-return", body={...})
"""

import copy
import json
import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any
from urllib.parse import urlencode

import requests

from kra_connect.cache import CacheManager
from kra_connect.config import KraConfig
from kra_connect.exceptions import (
    ApiError,
    AuthenticationError,
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
)
from kra_connect.rate_limiter import RateLimiter
from kra_connect.retry import RetryHandler

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER = 60.0


class HttpClient:
    """Low-level JSON client. Every call returns the decoded response object."""

    def __init__(
        self,
        config: KraConfig,
        cache: CacheManager,
        rate_limiter: RateLimiter,
        retry_handler: RetryHandler,
        session: requests.Session | None = None,
    ) -> None:
        config.validate()
        self.config = config
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.retry_handler = retry_handler
        self.base_url = config.base_url.rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update(self._build_headers())

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def get(
        self,
        endpoint: str,
        params: dict[str, str] | None = None,
        use_cache: bool = True,
    ) -> dict[str, Any]:
        """GET *endpoint*, serving from and filling the cache when enabled."""
        url = self.build_url(endpoint)
        cache_key = self.cache_key(endpoint, params)
        caching = use_cache and self.config.enable_cache

        if caching:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("Cache hit for %s", cache_key)
                return copy.deepcopy(cached)

        data = self._execute("GET", url, endpoint, params=params)

        if caching:
            self.cache.set(cache_key, copy.deepcopy(data), ttl=self.config.cache_ttl)
        return data

    def post(self, endpoint: str, body: dict[str, Any] | None = None) -> dict[str, Any]:
        return self._execute("POST", self.build_url(endpoint), endpoint, body=body)

    def put(self, endpoint: str, body: dict[str, Any] | None = None) -> dict[str, Any]:
        return self._execute("PUT", self.build_url(endpoint), endpoint, body=body)

    def delete(self, endpoint: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        return self._execute("DELETE", self.build_url(endpoint), endpoint, params=params)

    def build_url(self, endpoint: str) -> str:
        path = endpoint if endpoint.startswith("/") else f"/{endpoint}"
        return f"{self.base_url}{path}"

    def cache_key(self, endpoint: str, params: dict[str, str] | None = None) -> str:
        """Key under which a GET response is cached: ``GET:<url>[?sorted query]``."""
        url = self.build_url(endpoint)
        if params:
            url = f"{url}?{urlencode(sorted(params.items()))}"
        return f"GET:{url}"

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _execute(
        self,
        method: str,
        url: str,
        endpoint: str,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        def attempt() -> dict[str, Any]:
            if self.config.enable_rate_limit:
                self.rate_limiter.wait_and_acquire()
            logger.debug("%s %s", method, url)
            response = self._send(method, url, endpoint, params, body)
            return self._parse_response(response, endpoint)

        return self.retry_handler.execute(attempt, operation_name=f"{method} {endpoint}")

    def _send(
        self,
        method: str,
        url: str,
        endpoint: str,
        params: dict[str, str] | None,
        body: dict[str, Any] | None,
    ) -> requests.Response:
        try:
            return self._session.request(
                method,
                url,
                params=params,
                data=json.dumps(body) if body is not None else None,
                timeout=self.config.timeout,
            )
        except requests.exceptions.Timeout as exc:
            raise RequestTimeoutError(
                f"Request timed out after {self.config.timeout:g}s while contacting '{url}'",
                endpoint,
                self.config.timeout,
            ) from exc
        except requests.exceptions.ConnectionError as exc:
            raise NetworkError(
                f"Unable to reach the KRA API at '{self.base_url}'",
                endpoint,
                cause=exc,
            ) from exc

    def _build_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type":  "application/json",
            "Accept":        "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
            "User-Agent":    self.config.user_agent,
        }
        if self.config.custom_headers:
            headers.update(self.config.custom_headers)
        return headers

    def _parse_response(self, response: requests.Response, endpoint: str) -> dict[str, Any]:
        status = response.status_code

        if status == 401:
            raise AuthenticationError(
                "Invalid API key or authentication failed. Check that your key is valid.",
                401,
                endpoint,
            )
        if status == 403:
            raise AuthenticationError("Access forbidden", 403, endpoint)
        if status == 408:
            raise RequestTimeoutError("Request timed out", endpoint, self.config.timeout)
        if status == 429:
            retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            raise RateLimitError(
                "Rate limit exceeded",
                retry_after=retry_after,
                details={"endpoint": endpoint, "retry_after_seconds": retry_after},
            )
        if status >= 400:
            fallback = "Client error" if status < 500 else "Server error"
            raise ApiError(
                _extract_error_message(response.text) or fallback,
                status,
                endpoint,
                response_body=response.text,
            )

        if not response.content:
            return {}

        try:
            decoded = response.json()
        except ValueError as exc:
            raise ApiError(
                "Failed to parse response JSON",
                status,
                endpoint,
                response_body=response.text[:200],
                details={"parse_error": str(exc)},
            ) from exc

        if isinstance(decoded, dict):
            return decoded
        return {"data": decoded}


def _extract_error_message(body: str) -> str | None:
    try:
        decoded = json.loads(body)
    except ValueError:
        return None
    if isinstance(decoded, dict):
        for key in ("message", "error", "detail"):
            if decoded.get(key):
                return str(decoded[key])
    return None


def _parse_retry_after(value: str | None) -> float:
    """Seconds to wait from a Retry-After header (delta-seconds or HTTP date)."""
    if not value:
        return DEFAULT_RETRY_AFTER
    try:
        return max(0.0, float(int(value)))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return DEFAULT_RETRY_AFTER
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())

"""
Storefront API client.

Thin async transport over the storefront REST API. Each call performs
exactly one HTTP exchange; retry and fallback policy belong to the
component that owns the call (see ``catalog.OfferCatalogClient``).

Example usage:
    ```python
    from storefront_offers import StorefrontClient

    async with StorefrontClient(base_url="http://localhost:5000") as client:
        envelope = await client.offers.list()
        cart = await client.cart.get(session)
    ```
"""
from __future__ import annotations

import logging
import math
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional

import httpx

from .auth import Session
from .config import StorefrontSettings
from .logging import log_request, log_response
from .models.errors import (
    APIError,
    AuthenticationError,
    MalformedResponseError,
    NetworkError,
    RateLimitError,
)
from .resources.cart import CartResource
from .resources.offers import OffersResource

logger = logging.getLogger(__name__)

USER_AGENT = "storefront-offers-python/0.1.0"


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Seconds to wait from a ``Retry-After`` header.

    Accepts delta-seconds (integer or decimal) and HTTP-dates. Returns
    ``None`` for a missing or unparseable header.
    """
    if not value:
        return None
    value = value.strip()
    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        return max(0.0, seconds) if math.isfinite(seconds) else None
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


class StorefrontClient:
    """
    Storefront API client.

    Provides access to the resources the offer workflow consumes:
    - offers: list, get and claim promotional offers
    - cart: read the authoritative cart

    Args:
        base_url: Storefront API origin
        timeout: Request timeout in seconds (default: 30)
        transport: Optional httpx transport (tests inject ``httpx.MockTransport``)
    """

    DEFAULT_BASE_URL = "http://localhost:5000"
    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

        self.offers = OffersResource(self)
        self.cart = CartResource(self)

    @classmethod
    def from_settings(
        cls,
        settings: StorefrontSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "StorefrontClient":
        return cls(
            base_url=settings.api_base_url,
            timeout=settings.timeout_seconds,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": USER_AGENT,
                },
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
        session: Optional[Session] = None,
    ) -> Any:
        """Make one HTTP request and decode the JSON body.

        Raises:
            AuthenticationError: On 401
            RateLimitError: On 429
            APIError: On any other status >= 400
            NetworkError: When no response was received
            MalformedResponseError: When a 2xx body is not JSON
        """
        client = await self._get_client()

        headers: dict[str, str] = {}
        if session is not None:
            headers["Authorization"] = f"Bearer {session.token}"

        log_request(logger, method, path, headers=headers, body=json)
        started = time.perf_counter()
        try:
            response = await client.request(
                method=method,
                url=path,
                params=params,
                json=json,
                headers=headers,
            )
        except httpx.RequestError as e:
            logger.warning(f"HTTP {method} {path} failed: {type(e).__name__}: {e}")
            raise NetworkError(f"network: {type(e).__name__}") from e
        duration_ms = (time.perf_counter() - started) * 1000

        try:
            body = response.json()
        except ValueError:
            body = None

        log_response(logger, response.status_code, body=body, duration_ms=duration_ms)

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                "Rate limit exceeded",
                retry_after=parse_retry_after(retry_after),
            )

        if response.status_code == 401:
            message = body.get("message") if isinstance(body, dict) else None
            raise AuthenticationError(message or "Authentication required")

        if response.status_code >= 400:
            raise APIError.from_response(response.status_code, body)

        if body is None and response.content:
            raise MalformedResponseError(
                f"Response from {method} {path} is not valid JSON",
                status_code=response.status_code,
            )

        return body

    async def health(self) -> Any:
        """Check API health status."""
        return await self._request("GET", "/api/health")

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "StorefrontClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

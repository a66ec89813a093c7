"""Base resource class for the storefront API."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from ..auth import Session
    from ..client import StorefrontClient


class AsyncBaseResource:
    """Base class for async API resources.

    Attributes:
        _client: The client instance
    """

    def __init__(self, client: "StorefrontClient") -> None:
        self._client = client

    async def _get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        session: Optional["Session"] = None,
    ) -> Any:
        """Make a GET request.

        Args:
            path: API endpoint path
            params: Query parameters
            session: Session whose bearer token authenticates the call

        Returns:
            Decoded response body
        """
        return await self._client._request("GET", path, params=params, session=session)

    async def _post(
        self,
        path: str,
        data: Optional[Dict[str, Any]] = None,
        session: Optional["Session"] = None,
    ) -> Any:
        """Make a POST request.

        Args:
            path: API endpoint path
            data: Request body
            session: Session whose bearer token authenticates the call

        Returns:
            Decoded response body
        """
        return await self._client._request("POST", path, json=data, session=session)


__all__ = ["AsyncBaseResource"]

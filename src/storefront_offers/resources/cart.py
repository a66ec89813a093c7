"""Cart resource for the storefront API."""
from __future__ import annotations

from typing import TYPE_CHECKING

from ..models.cart import CartView
from ..models.errors import MalformedResponseError
from .base import AsyncBaseResource

if TYPE_CHECKING:
    from ..auth import Session


class CartResource(AsyncBaseResource):
    """Read access to the authoritative cart."""

    async def get(self, session: "Session") -> CartView:
        """GET ``/api/cart``; envelope ``{"success": true, "data": <cart>}``.

        Raises:
            MalformedResponseError: If the envelope carries no cart
        """
        response = await self._get("/api/cart", session=session)
        data = response.get("data") if isinstance(response, dict) else None
        if not isinstance(data, dict):
            raise MalformedResponseError("No cart in response")
        return CartView.model_validate(data)

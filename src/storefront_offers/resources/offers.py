"""Offers resource for the storefront API."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..models.errors import MalformedResponseError
from ..models.offer import Offer
from .base import AsyncBaseResource

if TYPE_CHECKING:
    from ..auth import Session


class OffersResource(AsyncBaseResource):
    """Promotional offer endpoints.

    ``list`` and ``claim`` return the raw envelope: the catalog parses offers
    one record at a time and the coordinator classifies claim bodies itself.
    """

    async def list(self) -> Any:
        """GET ``/api/offers``; envelope ``{"data": {"offers": [...]}}``."""
        return await self._get("/api/offers")

    async def get(self, offer_id: str) -> Offer:
        """Get one offer by id.

        Raises:
            MalformedResponseError: If the envelope has no offer
        """
        response = await self._get(f"/api/offers/{offer_id}")
        data = response.get("data") if isinstance(response, dict) else None
        if not isinstance(data, dict) or not isinstance(data.get("offer"), dict):
            raise MalformedResponseError(f"No offer in response for {offer_id}")
        return Offer.model_validate(data["offer"])

    async def claim(
        self,
        offer_id: str,
        session: "Session",
        create_order: bool = False,
    ) -> Any:
        """POST ``/api/offers/claim`` with ``{offerId, createOrder}``."""
        return await self._post(
            "/api/offers/claim",
            {"offerId": offer_id, "createOrder": create_order},
            session=session,
        )

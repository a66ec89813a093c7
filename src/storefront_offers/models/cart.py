"""Cart view models for the storefront offers client."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import Field, model_validator

from .base import StorefrontModel
from .offer import DiscountKind


class AppliedDiscount(StorefrontModel):
    """Discount annotation the server attached to a cart line."""

    offer_id: str = Field(alias="offerId")
    kind: DiscountKind = Field(default=DiscountKind.PERCENTAGE, alias="discountType")
    value: float = Field(default=0, ge=0)


class CartItem(StorefrontModel):
    """One line of the cart."""

    item_id: Optional[str] = Field(default=None, alias="_id")
    product_id: str = Field(alias="productId")
    name: Optional[str] = None
    price: Optional[float] = None
    quantity: int = Field(ge=1)
    applied_discount: Optional[AppliedDiscount] = Field(default=None, alias="appliedDiscount")

    @model_validator(mode="before")
    @classmethod
    def _unpack_product(cls, data: Any) -> Any:
        # GET /api/cart populates ``product`` with the product document.
        if not isinstance(data, dict) or "product" not in data:
            return data
        data = dict(data)
        product = data.pop("product")
        if isinstance(product, dict):
            data.setdefault("productId", product.get("_id") or product.get("id"))
            data.setdefault("name", product.get("name"))
            data.setdefault("price", product.get("price"))
        else:
            data.setdefault("productId", product)
        return data


class CartView(StorefrontModel):
    """Client-held projection of the server's authoritative cart."""

    cart_id: Optional[str] = Field(default=None, alias="_id")
    items: list[CartItem] = Field(default_factory=list)
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @classmethod
    def empty(cls) -> "CartView":
        return cls(items=[])

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def product_ids(self) -> list[str]:
        return [item.product_id for item in self.items]

    def discounted_items(self, offer_id: Optional[str] = None) -> list[CartItem]:
        """Lines carrying a discount annotation, optionally for one offer."""
        return [
            item
            for item in self.items
            if item.applied_discount is not None
            and (offer_id is None or item.applied_discount.offer_id == offer_id)
        ]

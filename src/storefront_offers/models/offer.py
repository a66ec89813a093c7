"""Offer models for the storefront offers client."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_validator, model_validator

from .base import StorefrontModel


class DiscountKind(str, Enum):
    """How the discount magnitude is applied."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"


# Legacy offer documents carry older field names; the newer one wins when both are set.
_LEGACY_FIELDS = (
    ("discountValue", "discount"),
    ("applicableProducts", "productIds"),
    ("startDate", "validFrom"),
    ("endDate", "validUntil"),
)


def _reference_id(value: Any) -> Any:
    """Collapse a populated document reference to its id."""
    if isinstance(value, dict):
        return value.get("_id") or value.get("id")
    return value


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ClaimRecord(StorefrontModel):
    """A durable (user, claimedAt) pair embedded in an offer."""

    user_id: str = Field(alias="user")
    claimed_at: Optional[datetime] = Field(default=None, alias="claimedAt")

    @field_validator("user_id", mode="before")
    @classmethod
    def _collapse_user(cls, v: Any) -> Any:
        return _reference_id(v)

    @field_validator("claimed_at")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)


class Offer(StorefrontModel):
    """A time-bounded, possibly product-scoped discount a user may claim once."""

    offer_id: str = Field(alias="_id", min_length=1)
    title: str = Field(min_length=1)
    description: str = ""
    code: Optional[str] = None
    discount_value: float = Field(alias="discountValue", ge=0)
    discount_kind: DiscountKind = Field(default=DiscountKind.PERCENTAGE, alias="discountType")
    applicable_products: list[str] = Field(default_factory=list, alias="applicableProducts")
    start_date: Optional[datetime] = Field(default=None, alias="startDate")
    end_date: datetime = Field(alias="endDate")
    is_active: bool = Field(default=True, alias="isActive")
    image: Optional[str] = None
    usage_limit: Optional[int] = Field(default=None, alias="usageLimit")
    used_count: int = Field(default=0, alias="usedCount")
    claimed_by: list[ClaimRecord] = Field(default_factory=list, alias="claimedBy")
    placeholder: bool = False

    @model_validator(mode="before")
    @classmethod
    def _fold_legacy_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "_id" not in data and "id" in data:
            data["_id"] = data["id"]
        for current, legacy in _LEGACY_FIELDS:
            if not data.get(current) and data.get(legacy):
                data[current] = data[legacy]
        return data

    @field_validator("offer_id", mode="before")
    @classmethod
    def _stringify_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @field_validator("applicable_products", mode="before")
    @classmethod
    def _collapse_products(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, list):
            return [_reference_id(item) for item in v]
        return v

    @field_validator("start_date", "end_date")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)

    @property
    def applies_to_all_products(self) -> bool:
        return not self.applicable_products

    def is_claimable(self, now: Optional[datetime] = None) -> bool:
        """An offer is claimable only while active and inside its window."""
        now = _as_utc(now) or datetime.now(timezone.utc)
        if not self.is_active:
            return False
        if self.start_date is not None and now < self.start_date:
            return False
        return now <= self.end_date

    def is_claimed_by(self, user_id: str) -> bool:
        """Whether the server's copy of this offer already records a claim by ``user_id``."""
        return any(record.user_id == user_id for record in self.claimed_by)

"""Storefront API resources."""
from .base import AsyncBaseResource
from .cart import CartResource
from .offers import OffersResource

__all__ = [
    "AsyncBaseResource",
    "CartResource",
    "OffersResource",
]

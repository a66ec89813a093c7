"""Storefront offers models."""
from .base import StorefrontModel
from .offer import ClaimRecord, DiscountKind, Offer
from .cart import AppliedDiscount, CartItem, CartView
from .claim import (
    AlreadyClaimed,
    ClaimAttemptState,
    ClaimOutcome,
    Failed,
    Succeeded,
    Unauthenticated,
)
from .errors import (
    APIError,
    AuthenticationError,
    DuplicateClaimError,
    MalformedResponseError,
    NetworkError,
    OperationCancelled,
    RateLimitError,
    StorefrontError,
)

__all__ = [
    "StorefrontModel",
    "Offer",
    "ClaimRecord",
    "DiscountKind",
    "CartView",
    "CartItem",
    "AppliedDiscount",
    "ClaimAttemptState",
    "ClaimOutcome",
    "Succeeded",
    "AlreadyClaimed",
    "Unauthenticated",
    "Failed",
    "StorefrontError",
    "APIError",
    "AuthenticationError",
    "RateLimitError",
    "NetworkError",
    "MalformedResponseError",
    "OperationCancelled",
    "DuplicateClaimError",
]

"""
Storefront Offers

Async client for the storefront's promotional offers: resilient catalog
fetch, per-offer claim coordination and cart synchronisation.
"""

from .auth import FileSessionStore, MemorySessionStore, Session, SessionStore
from .cancellation import CancellationToken, ViewScope
from .catalog import FeedSource, OfferCatalogClient, OfferFeed, placeholder_offers
from .client import StorefrontClient
from .config import StorefrontSettings, get_settings
from .coordinator import ClaimCoordinator
from .ledger import ClaimLedger, InMemoryClaimLedger
from .models.cart import AppliedDiscount, CartItem, CartView
from .models.claim import (
    AlreadyClaimed,
    ClaimAttemptState,
    ClaimOutcome,
    Failed,
    Succeeded,
    Unauthenticated,
)
from .models.errors import (
    APIError,
    AuthenticationError,
    DuplicateClaimError,
    MalformedResponseError,
    NetworkError,
    OperationCancelled,
    RateLimitError,
    StorefrontError,
)
from .models.offer import ClaimRecord, DiscountKind, Offer
from .retry import RetryConfig
from .synchronizer import CartSynchronizer
from .views import Notice, NoticeLevel, OffersPage

__version__ = "0.1.0"

__all__ = [
    # Client
    "StorefrontClient",
    "StorefrontSettings",
    "get_settings",
    # Workflow
    "OfferCatalogClient",
    "OfferFeed",
    "FeedSource",
    "placeholder_offers",
    "ClaimCoordinator",
    "CartSynchronizer",
    "ClaimLedger",
    "InMemoryClaimLedger",
    "OffersPage",
    "Notice",
    "NoticeLevel",
    "RetryConfig",
    # Sessions and cancellation
    "Session",
    "SessionStore",
    "FileSessionStore",
    "MemorySessionStore",
    "CancellationToken",
    "ViewScope",
    # Models
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
    # Errors
    "StorefrontError",
    "APIError",
    "AuthenticationError",
    "RateLimitError",
    "NetworkError",
    "MalformedResponseError",
    "OperationCancelled",
    "DuplicateClaimError",
]

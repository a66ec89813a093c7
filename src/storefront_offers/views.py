"""
Offers page view-model.

Presentation-free stand-in for the page that lists offers and hosts the
claim buttons. It owns page-local state (offers, badges, notices, redirect)
and is the only place that checks ``mounted`` before writing that state.
The cart view is shared and lives in the ``CartSynchronizer``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .auth import SessionStore
from .cancellation import ViewScope
from .catalog import FeedSource, OfferCatalogClient
from .client import StorefrontClient
from .config import StorefrontSettings
from .coordinator import ClaimCoordinator
from .models.cart import CartView
from .models.claim import AlreadyClaimed, ClaimOutcome, Failed, Succeeded, Unauthenticated
from .models.errors import OperationCancelled
from .models.offer import Offer
from .synchronizer import CartSynchronizer

logger = logging.getLogger(__name__)

CLAIMED_BADGE = "Claimed"


class NoticeLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    """A toast-equivalent message for the user."""

    level: NoticeLevel
    title: str
    message: str


class OffersPage:
    """View-model for the offers listing.

    Args:
        catalog: Offer catalog client
        coordinator: Claim coordinator shared by every view in the tab
        synchronizer: Cart synchronizer shared by every view in the tab
        sessions: Persisted session storage
    """

    def __init__(
        self,
        catalog: OfferCatalogClient,
        coordinator: ClaimCoordinator,
        synchronizer: CartSynchronizer,
        sessions: SessionStore,
    ) -> None:
        self._catalog = catalog
        self._coordinator = coordinator
        self._synchronizer = synchronizer
        self._sessions = sessions
        self.scope = ViewScope()

        self.offers: List[Offer] = []
        self.feed_source: Optional[FeedSource] = None
        self.loading = False
        self.badges: Dict[str, str] = {}
        self.notices: List[Notice] = []
        self.redirect: Optional[str] = None

    @classmethod
    def create(
        cls,
        client: StorefrontClient,
        settings: StorefrontSettings,
        sessions: SessionStore,
    ) -> "OffersPage":
        """Wire a page with its own catalog, coordinator and synchronizer."""
        synchronizer = CartSynchronizer.from_settings(client, settings)
        coordinator = ClaimCoordinator(client, synchronizer, login_path=settings.login_path)
        catalog = OfferCatalogClient.from_settings(client, settings)
        return cls(catalog, coordinator, synchronizer, sessions)

    @property
    def coordinator(self) -> ClaimCoordinator:
        return self._coordinator

    @property
    def mounted(self) -> bool:
        return self.scope.mounted

    @property
    def cart(self) -> Optional[CartView]:
        return self._synchronizer.view

    async def mount(self) -> None:
        """Mount the page and load offers bound to its lifetime."""
        self.scope.mount()
        self.loading = True
        try:
            feed = await self._catalog.fetch_offers(self.scope.token)
            offers = list(feed)
        except OperationCancelled:
            logger.debug("Offers page unmounted before the catalog answered")
            return

        if not self.mounted:
            return

        self.loading = False
        self.offers = offers
        self.feed_source = feed.source
        session = self._sessions.current()
        for offer in offers:
            if self._coordinator.is_claimed(offer.offer_id) or (
                session is not None and offer.is_claimed_by(session.user_id)
            ):
                self.badges[offer.offer_id] = CLAIMED_BADGE

        if feed.source is FeedSource.PLACEHOLDER:
            self._notify(
                NoticeLevel.WARNING,
                "Showing sample offers",
                "Live offers are busy right now. These are examples.",
            )
        elif feed.error is not None:
            self._notify(NoticeLevel.INFO, "No offers", "No offers are available right now.")

    def unmount(self) -> None:
        """Tear the page down. Pending claims keep running."""
        self.scope.unmount()
        self.loading = False

    def find(self, offer_id: str) -> Optional[Offer]:
        return next((o for o in self.offers if o.offer_id == offer_id), None)

    async def claim(self, offer_id: str) -> Optional[ClaimOutcome]:
        """Handle a click on the claim button of ``offer_id``."""
        offer = self.find(offer_id)
        if offer is None:
            logger.warning(f"Claim clicked for unknown offer {offer_id}")
            return None

        joining = self._coordinator.is_claiming(offer_id)
        session = self._sessions.current()
        outcome = await self._coordinator.claim(offer, session)

        # Signed out (or switched user) while the claim was pending.
        if joining or not self.mounted or self._sessions.current() != session:
            return outcome

        if isinstance(outcome, Succeeded):
            self.badges[offer_id] = CLAIMED_BADGE
            self._notify(
                NoticeLevel.SUCCESS,
                "Offer Claimed Successfully!",
                f'"{offer.title}" added {outcome.applied_product_count} product(s) '
                f"to your cart with {offer.discount_value:g}"
                f"{'%' if offer.discount_kind == 'percentage' else ''} off.",
            )
        elif isinstance(outcome, AlreadyClaimed):
            self.badges[offer_id] = CLAIMED_BADGE
            self._notify(
                NoticeLevel.INFO,
                "Already Claimed",
                "You have already claimed this offer. Check your cart for the discounted items!",
            )
        elif isinstance(outcome, Unauthenticated):
            self.redirect = outcome.redirect_to
            self._notify(NoticeLevel.ERROR, "Authentication Required", "Please log in to claim offers")
        elif isinstance(outcome, Failed):
            self._notify(NoticeLevel.ERROR, "Error", outcome.reason)
        return outcome

    def logout(self) -> None:
        """Forget the session, its claim state and the cart view."""
        self._sessions.clear()
        self._synchronizer.clear()
        self._coordinator.reset()
        self.badges.clear()
        self.redirect = None

    def _notify(self, level: NoticeLevel, title: str, message: str) -> None:
        self.notices.append(Notice(level=level, title=title, message=message))

    @property
    def errors(self) -> List[Notice]:
        return [n for n in self.notices if n.level is NoticeLevel.ERROR]

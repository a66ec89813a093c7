"""
Cart synchronisation after a claim.

The claim endpoint writes the discounted lines into the cart, but the
client's ``CartView`` is a cache. After a successful or already-claimed
outcome the synchronizer replaces the cache with server truth:

- If the claim response carried the post-claim cart, that snapshot is
  applied directly and nothing else is read.
- Otherwise it waits a short grace interval (the server may not have
  finished applying the discount when it answered) and re-reads the cart.

Every reconciliation is a full replace, so concurrent reconciliations for
different offers commute: whichever read lands last wins. A refresh that
started before ``clear()`` (logout) never writes the view.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from .auth import Session
from .config import StorefrontSettings
from .models.cart import CartView
from .models.errors import StorefrontError

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]

DEFAULT_GRACE_SECONDS = 0.1


class CartSynchronizer:
    """Owns the client-side ``CartView`` and its invalidation points.

    Args:
        client: ``StorefrontClient`` used for cart reads
        grace_seconds: Wait before re-reading the cart after a claim
        sleep: Awaitable sleep, injectable so tests can record the wait
    """

    def __init__(
        self,
        client: Any,
        grace_seconds: float = DEFAULT_GRACE_SECONDS,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._client = client
        self._grace_seconds = grace_seconds
        self._sleep = sleep
        self._view: Optional[CartView] = None
        self._generation = 0
        self.reconcile_count = 0

    @classmethod
    def from_settings(
        cls,
        client: Any,
        settings: StorefrontSettings,
        sleep: SleepFn = asyncio.sleep,
    ) -> "CartSynchronizer":
        return cls(client, grace_seconds=settings.reconcile_grace_seconds, sleep=sleep)

    @property
    def view(self) -> Optional[CartView]:
        """The current cart projection; ``None`` before the first read."""
        return self._view

    @property
    def generation(self) -> int:
        """Bumped by every ``clear()``; results started under an older value are dropped."""
        return self._generation

    async def load(self, session: Session) -> Optional[CartView]:
        """Read the cart for a freshly mounted cart-consuming view."""
        await self._read(session, self._generation)
        return self._view

    async def reconcile(
        self,
        session: Session,
        snapshot: Optional[CartView] = None,
        generation: Optional[int] = None,
    ) -> bool:
        """Replace the local cart with server truth.

        Args:
            session: Session for the authenticated cart read
            snapshot: Post-claim cart returned by the claim endpoint, if any
            generation: ``generation`` observed when the claim started;
                defaults to the current one

        Returns:
            True if the view was replaced; False if the read failed or the
            view was cleared in the meantime
        """
        self.reconcile_count += 1
        if generation is None:
            generation = self._generation

        if snapshot is not None:
            if self._stale(generation):
                return False
            logger.debug("Applying cart snapshot from claim response")
            self._view = snapshot
            return True

        await self._sleep(self._grace_seconds)
        if self._stale(generation):
            return False
        return await self._read(session, generation)

    def clear(self) -> None:
        """Destroy the cart view (logout)."""
        self._view = None
        self._generation += 1

    def _stale(self, generation: int) -> bool:
        if generation != self._generation:
            logger.debug("Cart view was cleared; dropping cart refresh")
            return True
        return False

    async def _read(self, session: Session, generation: int) -> bool:
        try:
            cart = await self._client.cart.get(session)
        except (StorefrontError, ValidationError) as e:
            logger.warning(f"Cart refresh failed, keeping previous cart view: {e}")
            return False
        if self._stale(generation):
            return False
        self._view = cart
        logger.debug(f"Cart view replaced: {len(cart.items)} line(s)")
        return True

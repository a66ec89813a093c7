"""
Claim coordination.

``ClaimCoordinator.claim`` turns a user's click into exactly one request to
the claim endpoint and classifies the answer into a terminal outcome.

Per-offer mutual exclusion is local to one coordinator (one tab): a second
``claim`` for an offer that is already in flight awaits the same request
instead of issuing another. This only suppresses double clicks. The
at-most-once rule itself is enforced by the server's claim ledger, which
also has to cope with two tabs racing past their own coordinators.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Set

from pydantic import ValidationError

from .auth import Session
from .models.cart import CartView
from .models.claim import (
    GENERIC_FAILURE_MESSAGE,
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
    NetworkError,
    StorefrontError,
)
from .models.offer import Offer
from .synchronizer import CartSynchronizer

logger = logging.getLogger(__name__)

ALREADY_CLAIMED_MARKER = "already claimed"
NETWORK_FAILURE_REASON = "network"
PLACEHOLDER_FAILURE_REASON = "This offer is not available right now. Please try again later."


def is_already_claimed_message(message: Optional[str]) -> bool:
    return bool(message) and ALREADY_CLAIMED_MARKER in message.lower()


class ClaimCoordinator:
    """Serialises claim attempts per offer and classifies their outcome.

    Args:
        client: ``StorefrontClient`` used for the claim request
        synchronizer: Cart synchronizer refreshed after claimed outcomes
        login_path: Redirect target carried by ``Unauthenticated``
    """

    def __init__(
        self,
        client: Any,
        synchronizer: CartSynchronizer,
        login_path: str = "/login",
    ) -> None:
        self._client = client
        self._synchronizer = synchronizer
        self._login_path = login_path
        self._in_flight: Dict[str, asyncio.Task] = {}
        self._states: Dict[str, ClaimAttemptState] = {}
        self._claimed: Set[str] = set()
        self._background: Set[asyncio.Task] = set()
        self._epoch = 0

    def state(self, offer_id: str) -> ClaimAttemptState:
        return self._states.get(offer_id, ClaimAttemptState.IDLE)

    def is_claiming(self, offer_id: str) -> bool:
        return offer_id in self._in_flight

    def is_claimed(self, offer_id: str) -> bool:
        """Whether this session has seen a claimed outcome for the offer."""
        return offer_id in self._claimed

    async def claim(self, offer: Offer, session: Optional[Session]) -> ClaimOutcome:
        """Claim ``offer`` for the user behind ``session``.

        A call made while the same offer is already being claimed issues no
        request and resolves to the in-flight attempt's outcome. The claim
        itself is shielded: cancelling the caller does not abandon a
        half-submitted claim.
        """
        offer_id = offer.offer_id

        in_flight = self._in_flight.get(offer_id)
        if in_flight is not None:
            logger.debug(f"Claim for offer {offer_id} already in progress; joining it")
            return await asyncio.shield(in_flight)

        if session is None or not session.is_valid():
            logger.info(f"Claim for offer {offer_id} needs sign-in")
            return Unauthenticated(redirect_to=self._login_path)

        if offer.placeholder:
            logger.warning(f"Refusing to claim placeholder offer {offer_id}")
            return Failed(PLACEHOLDER_FAILURE_REASON)

        task = asyncio.create_task(
            self._run_claim(offer, session, self._epoch, self._synchronizer.generation)
        )
        self._in_flight[offer_id] = task
        self._set_state(offer_id, ClaimAttemptState.CLAIMING)
        return await asyncio.shield(task)

    def reset(self) -> None:
        """Forget per-session claim state (logout).

        Claims still in flight keep running, but their outcome no longer
        marks the offer as claimed. Their cart refresh is dropped too once
        the synchronizer has been cleared.
        """
        self._epoch += 1
        self._claimed.clear()
        for offer_id in list(self._states):
            if offer_id not in self._in_flight:
                del self._states[offer_id]
        logger.debug("Claim state reset")

    async def drain(self) -> None:
        """Wait for every outstanding claim and cart reconciliation."""
        while self._in_flight or self._background:
            await asyncio.gather(
                *self._in_flight.values(),
                *self._background,
                return_exceptions=True,
            )

    async def _run_claim(
        self,
        offer: Offer,
        session: Session,
        epoch: int,
        generation: int,
    ) -> ClaimOutcome:
        offer_id = offer.offer_id
        try:
            outcome, snapshot = await self._submit(offer, session)
            self._set_state(offer_id, outcome.state)
            if outcome.claimed and epoch == self._epoch:
                self._claimed.add(offer_id)
            if outcome.refreshes_cart:
                self._schedule_reconcile(offer_id, session, snapshot, generation)
            else:
                self._set_state(offer_id, ClaimAttemptState.IDLE)
            return outcome
        except BaseException:
            self._set_state(offer_id, ClaimAttemptState.IDLE)
            raise
        finally:
            self._in_flight.pop(offer_id, None)

    async def _submit(
        self,
        offer: Offer,
        session: Session,
    ) -> tuple[ClaimOutcome, Optional[CartView]]:
        offer_id = offer.offer_id
        try:
            body = await self._client.offers.claim(offer_id, session)
        except AuthenticationError:
            logger.info(f"Claim for offer {offer_id} rejected: session not accepted")
            return Unauthenticated(redirect_to=self._login_path), None
        except APIError as e:
            if 400 <= e.status_code < 500 and is_already_claimed_message(e.server_message):
                logger.info(f"Offer {offer_id} already claimed by user {session.user_id}")
                return AlreadyClaimed(), None
            reason = e.server_message or GENERIC_FAILURE_MESSAGE
            logger.error(f"Claim for offer {offer_id} failed with HTTP {e.status_code}: {reason}")
            return Failed(reason), None
        except NetworkError as e:
            logger.error(f"Claim for offer {offer_id} failed: {e}")
            return Failed(NETWORK_FAILURE_REASON), None
        except StorefrontError as e:
            logger.error(f"Claim for offer {offer_id} failed: {e}")
            return Failed(GENERIC_FAILURE_MESSAGE), None

        if not isinstance(body, dict) or body.get("success") is not True:
            message = body.get("message") if isinstance(body, dict) else None
            logger.error(f"Claim for offer {offer_id} not accepted: {message or 'no success flag'}")
            return Failed(message or GENERIC_FAILURE_MESSAGE), None

        data = body.get("data") if isinstance(body.get("data"), dict) else {}
        added = data.get("addedProducts")
        if isinstance(added, list) and added:
            count = len(added)
        else:
            count = len(offer.applicable_products)

        logger.info(f"Offer {offer_id} claimed by user {session.user_id} ({count} product(s))")
        return Succeeded(applied_product_count=count), self._cart_snapshot(data)

    def _cart_snapshot(self, data: Dict[str, Any]) -> Optional[CartView]:
        cart = data.get("cart")
        if not isinstance(cart, dict):
            return None
        try:
            return CartView.model_validate(cart)
        except ValidationError as e:
            logger.warning(f"Ignoring unparseable cart in claim response: {e.error_count()} error(s)")
            return None

    def _schedule_reconcile(
        self,
        offer_id: str,
        session: Session,
        snapshot: Optional[CartView],
        generation: int,
    ) -> None:
        task = asyncio.create_task(self._reconcile(offer_id, session, snapshot, generation))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _reconcile(
        self,
        offer_id: str,
        session: Session,
        snapshot: Optional[CartView],
        generation: int,
    ) -> None:
        try:
            await self._synchronizer.reconcile(session, snapshot, generation)
        finally:
            if offer_id not in self._in_flight:
                self._set_state(offer_id, ClaimAttemptState.IDLE)

    def _set_state(self, offer_id: str, state: ClaimAttemptState) -> None:
        previous = self._states.get(offer_id, ClaimAttemptState.IDLE)
        self._states[offer_id] = state
        logger.debug(f"Offer {offer_id}: {previous.value} -> {state.value}")

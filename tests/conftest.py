"""
Pytest configuration and fixtures for storefront offers tests.

``FakeStorefront`` answers the storefront REST API through
``httpx.MockTransport``. Claims go through an ``InMemoryClaimLedger`` and
write discounted lines into a per-user cart, so the client code under test
talks real httpx to something that behaves like the backend.
"""
from __future__ import annotations

import asyncio
import inspect
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
import pytest

from storefront_offers import (
    CartSynchronizer,
    ClaimCoordinator,
    InMemoryClaimLedger,
    MemorySessionStore,
    Offer,
    OfferCatalogClient,
    OffersPage,
    Session,
    StorefrontClient,
)
from storefront_offers.models.errors import DuplicateClaimError
from storefront_offers.retry import RetryConfig

BASE_URL = "http://storefront.test"
USER_ID = "user-1"
TOKEN = "tok_user_1_abcdef123456"
OTHER_USER_ID = "user-2"
OTHER_TOKEN = "tok_user_2_abcdef123456"

ScriptItem = Union[httpx.Response, Exception, Callable[[httpx.Request], Any]]


def offer_document(
    offer_id: str,
    title: str = "Weekly Deal",
    discount: float = 15,
    products: Optional[List[str]] = None,
    **overrides: Any,
) -> Dict[str, Any]:
    """An offer as the backend serialises it."""
    now = datetime.now(timezone.utc)
    doc = {
        "_id": offer_id,
        "title": title,
        "description": f"{title} description",
        "discountValue": discount,
        "discountType": "percentage",
        "applicableProducts": products if products is not None else ["p1", "p2"],
        "startDate": (now - timedelta(days=1)).isoformat(),
        "endDate": (now + timedelta(days=6)).isoformat(),
        "isActive": True,
        "claimedBy": [],
    }
    doc.update(overrides)
    return doc


class FakeStorefront:
    """In-process stand-in for the storefront backend."""

    def __init__(self, ledger: Optional[InMemoryClaimLedger] = None) -> None:
        self.ledger = ledger or InMemoryClaimLedger()
        self.offers: Dict[str, Dict[str, Any]] = {}
        self.carts: Dict[str, List[Dict[str, Any]]] = {}
        self.tokens: Dict[str, str] = {TOKEN: USER_ID, OTHER_TOKEN: OTHER_USER_ID}
        self.requests: List[httpx.Request] = []
        self.return_cart_on_claim = False
        self._scripts: Dict[tuple, List[ScriptItem]] = {}
        self._gates: Dict[tuple, asyncio.Event] = {}

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def add_offer(self, offer_id: str, **kwargs: Any) -> Dict[str, Any]:
        doc = offer_document(offer_id, **kwargs)
        self.offers[offer_id] = doc
        return doc

    def queue(self, method: str, path: str, *items: ScriptItem) -> None:
        """Answer the next requests to ``method path`` with ``items``, in order."""
        self._scripts.setdefault((method, path), []).extend(items)

    def hold(self, method: str, path: str, offer_id: Optional[str] = None) -> asyncio.Event:
        """Park matching requests until the returned event is set."""
        gate = asyncio.Event()
        self._gates[(method, path, offer_id)] = gate
        return gate

    def count(self, method: str, path: str) -> int:
        return sum(1 for r in self.requests if r.method == method and r.url.path == path)

    def claim_requests(self, offer_id: Optional[str] = None) -> List[httpx.Request]:
        claims = [r for r in self.requests if r.url.path == "/api/offers/claim"]
        if offer_id is None:
            return claims
        return [r for r in claims if _json(r).get("offerId") == offer_id]

    def cart_for(self, user_id: str) -> List[Dict[str, Any]]:
        return self.carts.setdefault(user_id, [])

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        method, path = request.method, request.url.path
        body = _json(request) if method == "POST" else {}

        gate = self._gates.get((method, path, body.get("offerId"))) or self._gates.get(
            (method, path, None)
        )
        if gate is not None:
            await gate.wait()

        script = self._scripts.get((method, path))
        if script:
            item = script.pop(0)
            if isinstance(item, Exception):
                raise item
            if callable(item):
                result = item(request)
                if inspect.isawaitable(result):
                    result = await result
                return result
            return item

        if method == "GET" and path == "/api/offers":
            return httpx.Response(
                200, json={"success": True, "data": {"offers": list(self.offers.values())}}
            )
        if method == "GET" and path.startswith("/api/offers/"):
            offer = self.offers.get(path.rsplit("/", 1)[-1])
            if offer is None:
                return httpx.Response(404, json={"success": False, "message": "Offer not found"})
            return httpx.Response(200, json={"success": True, "data": {"offer": offer}})
        if method == "POST" and path == "/api/offers/claim":
            return await self._claim(request, body)
        if method == "GET" and path == "/api/cart":
            user_id = self._user(request)
            if user_id is None:
                return _unauthorized()
            return httpx.Response(200, json={"success": True, "data": self._cart_doc(user_id)})
        return httpx.Response(404, json={"success": False, "message": "Not found"})

    async def _claim(self, request: httpx.Request, body: Dict[str, Any]) -> httpx.Response:
        user_id = self._user(request)
        if user_id is None:
            return _unauthorized()

        offer = self.offers.get(body.get("offerId"))
        if offer is None:
            return httpx.Response(404, json={"success": False, "message": "Offer not found"})

        try:
            record = await self.ledger.record_claim(offer["_id"], user_id)
        except DuplicateClaimError as e:
            return httpx.Response(400, json={"success": False, "message": e.message})

        offer["claimedBy"].append({"user": user_id, "claimedAt": record.claimed_at.isoformat()})
        cart = self.cart_for(user_id)
        for product_id in offer["applicableProducts"]:
            cart.append({
                "_id": f"line-{len(cart) + 1}",
                "product": {"_id": product_id, "name": f"Product {product_id}", "price": 10.0},
                "quantity": 1,
                "appliedDiscount": {
                    "offerId": offer["_id"],
                    "discountType": offer["discountType"],
                    "value": offer["discountValue"],
                },
            })

        data: Dict[str, Any] = {"addedProducts": list(offer["applicableProducts"])}
        if self.return_cart_on_claim:
            data["cart"] = self._cart_doc(user_id)
        return httpx.Response(
            200, json={"success": True, "message": "Offer claimed successfully", "data": data}
        )

    def _user(self, request: httpx.Request) -> Optional[str]:
        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            return None
        return self.tokens.get(header[len("Bearer "):])

    def _cart_doc(self, user_id: str) -> Dict[str, Any]:
        return {"_id": f"cart-{user_id}", "user": user_id, "items": list(self.cart_for(user_id))}


def _json(request: httpx.Request) -> Dict[str, Any]:
    try:
        return json.loads(request.content or b"{}")
    except ValueError:
        return {}


def _unauthorized() -> httpx.Response:
    return httpx.Response(401, json={"success": False, "message": "Not authorized, no token"})


class SleepRecorder:
    """Injectable sleep that records each delay instead of waiting it out."""

    def __init__(self, on_sleep: Optional[Callable[[float], None]] = None) -> None:
        self.delays: List[float] = []
        self.on_sleep = on_sleep

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self.on_sleep is not None:
            self.on_sleep(delay)
        await asyncio.sleep(0)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the loop until ``predicate`` holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.001)


@pytest.fixture
def fake_server():
    """Fake storefront backend with one 15% offer on two products."""
    server = FakeStorefront()
    server.add_offer("offer-1", title="Fresh Produce", discount=15, products=["p1", "p2"])
    server.add_offer("offer-2", title="Beverage Special", discount=20, products=["p3"])
    return server


@pytest.fixture
async def client(fake_server):
    """Storefront client wired to the fake backend."""
    async with StorefrontClient(base_url=BASE_URL, transport=fake_server.transport) as c:
        yield c


@pytest.fixture
def session():
    return Session(user_id=USER_ID, token=TOKEN)


@pytest.fixture
def sessions(session):
    return MemorySessionStore(session)


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def synchronizer(client, sleeper):
    return CartSynchronizer(client, grace_seconds=0.1, sleep=sleeper)


@pytest.fixture
async def coordinator(client, synchronizer):
    """Coordinator whose outstanding claims are drained on teardown."""
    c = ClaimCoordinator(client, synchronizer)
    yield c
    await c.drain()


@pytest.fixture
def catalog(client, sleeper):
    return OfferCatalogClient(client, retry=RetryConfig(max_attempts=3, base_delay=1.0), sleep=sleeper)


@pytest.fixture
def page(catalog, coordinator, synchronizer, sessions):
    return OffersPage(catalog, coordinator, synchronizer, sessions)


@pytest.fixture
def offer(fake_server):
    return Offer.model_validate(fake_server.offers["offer-1"])


@pytest.fixture
def other_offer(fake_server):
    return Offer.model_validate(fake_server.offers["offer-2"])

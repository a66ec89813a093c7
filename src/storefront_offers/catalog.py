"""
Offer catalog fetch.

``OfferCatalogClient.fetch_offers`` issues one GET per attempt, bound to the
consuming view's cancellation token. Rate limiting (429) is retried with
exponential backoff and, once the budget is spent, degrades to a small
hardcoded placeholder list. Any other failure yields an empty feed carrying
a non-fatal error. Offers are validated lazily, one record at a time, and a
bad record is skipped rather than failing the whole feed.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Iterator, Optional

from pydantic import ValidationError

from .cancellation import CancellationToken, run_cancellable
from .config import StorefrontSettings
from .models.errors import (
    MalformedResponseError,
    OperationCancelled,
    RateLimitError,
    StorefrontError,
)
from .models.offer import DiscountKind, Offer
from .retry import RetryConfig, RetryStats

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class FeedSource(str, Enum):
    """Where the offers in a feed came from."""

    LIVE = "live"
    PLACEHOLDER = "placeholder"
    EMPTY = "empty"


class OfferFeed(Iterator[Offer]):
    """Single-shot, lazily validated sequence of offers.

    Iterating twice yields nothing the second time; call
    ``fetch_offers()`` again for a fresh feed.
    """

    def __init__(
        self,
        records: Iterable[Any],
        source: FeedSource,
        error: Optional[StorefrontError] = None,
    ) -> None:
        self._records = iter(records)
        self.source = source
        self.error = error
        self.skipped = 0

    @classmethod
    def empty(cls, error: Optional[StorefrontError] = None) -> "OfferFeed":
        return cls((), FeedSource.EMPTY, error=error)

    @property
    def degraded(self) -> bool:
        return self.source is not FeedSource.LIVE

    def __iter__(self) -> "OfferFeed":
        return self

    def __next__(self) -> Offer:
        for record in self._records:
            if isinstance(record, Offer):
                return record
            try:
                return Offer.model_validate(record)
            except ValidationError as e:
                self.skipped += 1
                record_id = record.get("_id") if isinstance(record, dict) else None
                logger.warning(
                    f"Skipping malformed offer record {record_id!r}: "
                    f"{e.error_count()} validation error(s)"
                )
        raise StopIteration


def placeholder_offers(now: Optional[datetime] = None) -> list[Offer]:
    """Non-authoritative offers shown while the catalog is rate limited.

    Built fresh on every call; never cache or persist these.
    """
    now = now or datetime.now(timezone.utc)
    week_end = now + timedelta(days=7)
    samples = [
        ("placeholder-produce", "Fresh Produce Bundle",
         "Get 30% off on all fresh vegetables and fruits", 30, ["1", "7"]),
        ("placeholder-beverage", "Beverage Special",
         "Buy 2 Get 1 Free on all imported drinks", 33, ["2", "6"]),
        ("placeholder-weekend", "Weekend Combo",
         "Special weekend prices on family meal packages", 25, ["4", "8"]),
    ]
    return [
        Offer(
            offer_id=offer_id,
            title=title,
            description=description,
            discount_value=discount,
            discount_kind=DiscountKind.PERCENTAGE,
            applicable_products=products,
            start_date=now,
            end_date=week_end,
            is_active=True,
            placeholder=True,
        )
        for offer_id, title, description, discount, products in samples
    ]


def _extract_records(envelope: Any) -> Optional[list[Any]]:
    if not isinstance(envelope, dict):
        return None
    data = envelope.get("data")
    if not isinstance(data, dict):
        return None
    offers = data.get("offers")
    if offers is None:
        return []
    if not isinstance(offers, list):
        return None
    return offers


class OfferCatalogClient:
    """Fetches the list of currently active offers.

    Args:
        client: ``StorefrontClient`` used for the GET
        retry: Backoff schedule for 429 responses
        sleep: Awaitable sleep, injectable so tests can record delays
    """

    def __init__(
        self,
        client: Any,
        retry: Optional[RetryConfig] = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._client = client
        self._retry = retry or RetryConfig()
        self._sleep = sleep
        self.last_stats: Optional[RetryStats] = None

    @classmethod
    def from_settings(
        cls,
        client: Any,
        settings: StorefrontSettings,
        sleep: SleepFn = asyncio.sleep,
    ) -> "OfferCatalogClient":
        retry = RetryConfig(
            max_attempts=settings.catalog_max_attempts,
            base_delay=settings.catalog_backoff_base_seconds,
        )
        return cls(client, retry=retry, sleep=sleep)

    async def fetch_offers(self, token: Optional[CancellationToken] = None) -> OfferFeed:
        """Fetch the active offers.

        Args:
            token: Cancellation token scoped to the consuming view

        Returns:
            A live feed, a placeholder feed after repeated rate limiting,
            or an empty feed with ``error`` set

        Raises:
            OperationCancelled: If the token fired while the fetch was pending
        """
        stats = RetryStats()
        self.last_stats = stats

        for attempt in range(self._retry.max_attempts):
            if token is not None:
                token.raise_if_cancelled()
            stats.attempts += 1

            try:
                envelope = await run_cancellable(self._client.offers.list(), token)
            except OperationCancelled:
                logger.debug("Offer catalog fetch cancelled")
                raise
            except RateLimitError as e:
                stats.last_exception = e
                delay = self._retry.calculate_delay(attempt)
                stats.delays.append(delay)
                logger.warning(
                    f"Offer catalog rate limited (attempt {attempt + 1}/"
                    f"{self._retry.max_attempts}); waiting {delay:.2f}s"
                )
                await run_cancellable(self._sleep(delay), token)
                continue
            except StorefrontError as e:
                logger.warning(f"Offer catalog unavailable: {e}")
                return OfferFeed.empty(error=e)

            records = _extract_records(envelope)
            if records is None:
                error = MalformedResponseError("Offer list response has no data.offers array")
                logger.warning(f"Offer catalog unavailable: {error}")
                return OfferFeed.empty(error=error)

            logger.debug(f"Fetched {len(records)} offer record(s)")
            return OfferFeed(records, FeedSource.LIVE)

        stats.exhausted = True
        logger.warning(
            f"Offer catalog still rate limited after {stats.attempts} attempt(s); "
            f"showing placeholder offers"
        )
        return OfferFeed(placeholder_offers(), FeedSource.PLACEHOLDER, error=stats.last_exception)

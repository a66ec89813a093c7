"""
Claim ledger contract.

The ledger is the server-side, durable record of which user claimed which
offer and is the only authority on the at-most-once rule: one ClaimRecord
per (offer, user). Client-side guards in ``ClaimCoordinator`` only suppress
double clicks inside one tab; two tabs or devices race straight past them,
so any ledger implementation must serialise claims per (offer, user) itself.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from .models.errors import DuplicateClaimError
from .models.offer import ClaimRecord

logger = logging.getLogger(__name__)


class ClaimLedger(ABC):
    """Abstract interface for the durable claim record."""

    @abstractmethod
    async def record_claim(self, offer_id: str, user_id: str) -> ClaimRecord:
        """Record a claim.

        Raises:
            DuplicateClaimError: If (offer_id, user_id) already has a record
        """

    @abstractmethod
    async def has_claimed(self, offer_id: str, user_id: str) -> bool:
        """Whether (offer_id, user_id) already has a record."""

    @abstractmethod
    async def get(self, offer_id: str, user_id: str) -> Optional[ClaimRecord]:
        """The record for (offer_id, user_id), if any."""


class InMemoryClaimLedger(ClaimLedger):
    """
    In-memory claim ledger for development and testing.

    Note: Uniqueness holds only within one process. A production ledger
    needs a unique constraint on (offer_id, user_id) in its store.
    """

    def __init__(self) -> None:
        self._records: Dict[Tuple[str, str], ClaimRecord] = {}
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}

    def _lock_for(self, key: Tuple[str, str]) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def record_claim(self, offer_id: str, user_id: str) -> ClaimRecord:
        key = (offer_id, user_id)
        async with self._lock_for(key):
            if key in self._records:
                logger.info(f"Duplicate claim rejected: offer={offer_id} user={user_id}")
                raise DuplicateClaimError(offer_id, user_id)
            # Suspends while holding the lock; writers for other keys proceed.
            await asyncio.sleep(0)
            record = ClaimRecord(user_id=user_id, claimed_at=datetime.now(timezone.utc))
            self._records[key] = record
            return record

    async def has_claimed(self, offer_id: str, user_id: str) -> bool:
        return (offer_id, user_id) in self._records

    async def get(self, offer_id: str, user_id: str) -> Optional[ClaimRecord]:
        return self._records.get((offer_id, user_id))

    def count(self, offer_id: Optional[str] = None) -> int:
        """Number of records, optionally for one offer."""
        if offer_id is None:
            return len(self._records)
        return sum(1 for o, _ in self._records if o == offer_id)

"""
Cancellation tokens and view lifetimes.

A ``CancellationToken`` is threaded through every cancellable await. Code
that resumes after a suspension point checks the token before it mutates
shared state, so a torn-down view never sees a late result.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from .models.errors import OperationCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """One-way cancellation signal.

    Once cancelled, a token stays cancelled; create a new one per view
    lifetime.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled(f"Operation cancelled: {self._reason}")

    async def wait(self) -> None:
        await self._event.wait()


async def run_cancellable(
    awaitable: Awaitable[T],
    token: Optional[CancellationToken],
) -> T:
    """Await ``awaitable`` unless ``token`` fires first.

    When the token fires the awaitable is cancelled and its result, even one
    that raced in at the same moment, is discarded.

    Raises:
        OperationCancelled: If the token was or became cancelled
    """
    if token is None:
        return await awaitable

    if token.cancelled:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        token.raise_if_cancelled()

    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(token.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        waiter.cancel()
        raise

    if not token.cancelled:
        waiter.cancel()
        return task.result()

    if not task.done():
        task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception as exc:
        logger.debug(f"Discarding result of cancelled operation: {type(exc).__name__}: {exc}")
    raise OperationCancelled(f"Operation cancelled: {token.reason}")


class ViewScope:
    """Lifetime of one consuming view.

    ``token`` cancels the view's own fetches on teardown. ``mounted`` is the
    flag that completion handlers of non-cancellable work (claims, cart
    reconciliation) check before touching view state.
    """

    def __init__(self) -> None:
        self._token = CancellationToken()
        self._mounted = False

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def mounted(self) -> bool:
        return self._mounted

    def mount(self) -> None:
        if self._token.cancelled:
            self._token = CancellationToken()
        self._mounted = True

    def unmount(self) -> None:
        self._mounted = False
        self._token.cancel("view unmounted")

"""Claim attempt state and outcomes."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class ClaimAttemptState(str, Enum):
    """Per-offer, per-session claim state. Never persisted."""

    IDLE = "idle"
    CLAIMING = "claiming"
    SUCCEEDED = "succeeded"
    ALREADY_CLAIMED = "already_claimed"
    FAILED = "failed"


GENERIC_FAILURE_MESSAGE = "Failed to claim offer. Please try again."


@dataclass(frozen=True)
class Succeeded:
    """The server recorded a fresh claim."""

    applied_product_count: int

    state = ClaimAttemptState.SUCCEEDED
    claimed = True
    refreshes_cart = True


@dataclass(frozen=True)
class AlreadyClaimed:
    """The server already holds a claim for this user; the discount is in place."""

    state = ClaimAttemptState.ALREADY_CLAIMED
    claimed = True
    refreshes_cart = True


@dataclass(frozen=True)
class Unauthenticated:
    """No usable session. The caller should send the user to ``redirect_to``."""

    redirect_to: str = "/login"

    state = ClaimAttemptState.IDLE
    claimed = False
    refreshes_cart = False


@dataclass(frozen=True)
class Failed:
    """Any other terminal failure; ``reason`` is shown to the user."""

    reason: str = GENERIC_FAILURE_MESSAGE

    state = ClaimAttemptState.FAILED
    claimed = False
    refreshes_cart = False


ClaimOutcome = Union[Succeeded, AlreadyClaimed, Unauthenticated, Failed]

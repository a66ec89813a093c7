"""
Backoff schedule for the rate-limited offer catalog.

The catalog fetch owns its own retry loop (it must re-check a cancellation
token between attempts and degrade to placeholder data when the budget is
spent), so this module only supplies the schedule and the bookkeeping.

Usage:
    config = RetryConfig(max_attempts=3, base_delay=1.0)
    config.calculate_delay(0)  # 1.0
    config.calculate_delay(2)  # 4.0
"""
from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Optional

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0
DEFAULT_MAX_DELAY = 60.0
DEFAULT_EXPONENTIAL_BASE = 2.0


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior.

    Attributes:
        max_attempts: Total number of requests allowed (including the first)
        base_delay: Delay after the first failed attempt, in seconds
        max_delay: Cap on any single delay, in seconds
        exponential_base: Base for exponential backoff calculation
        jitter: Maximum jitter factor (0.0-1.0) added to delays
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay: float = DEFAULT_BASE_DELAY
    max_delay: float = DEFAULT_MAX_DELAY
    exponential_base: float = DEFAULT_EXPONENTIAL_BASE
    jitter: float = 0.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if not 0.0 <= self.jitter <= 1.0:
            raise ValueError("jitter must be between 0.0 and 1.0")

    def calculate_delay(self, attempt: int) -> float:
        """Delay in seconds after the given 0-based attempt: ``base * exp_base ** attempt``."""
        delay = self.base_delay * (self.exponential_base ** attempt)
        delay = min(delay, self.max_delay)

        if self.jitter > 0:
            jitter_range = delay * self.jitter
            delay = delay + random.uniform(-jitter_range, jitter_range)

        return max(0.0, delay)


@dataclass
class RetryStats:
    """Statistics about one retry loop.

    Attributes:
        attempts: Requests actually issued
        delays: Each backoff delay slept, in order
        exhausted: Whether the loop ran out of attempts
        last_exception: The last retryable error seen
    """

    attempts: int = 0
    delays: list[float] = field(default_factory=list)
    exhausted: bool = False
    last_exception: Optional[BaseException] = None

    @property
    def total_delay(self) -> float:
        return sum(self.delays)

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

from ..contracts import AutomationResult


def linear_backoff(base_delay: float) -> Callable[[int], float]:
    """Return a backoff function growing by ``base_delay`` per attempt."""

    def _delay(attempt: int) -> float:
        return base_delay * attempt

    return _delay


def retry_transient(result: AutomationResult) -> bool:
    """Retry rate limits and server errors classified as temporary."""
    if result.success or result.status_code is None:
        return False
    if result.status_code == 429:
        return True
    return result.status_code >= 500 and bool(result.is_temporary)


@dataclass
class RetryPolicy:
    """Bounded retry settings for one call site."""

    max_attempts: int
    backoff: Callable[[int], float]
    should_retry: Callable[[AutomationResult], bool] = retry_transient
    max_retry_after: float = 10.0

    def can_retry(self, attempt: int) -> bool:
        return attempt < self.max_attempts

    def delay_for(self, attempt: int, retry_after: Optional[float] = None) -> float:
        """Seconds to wait after ``attempt``, honoring a server hint when given."""
        if retry_after is not None:
            return min(retry_after, self.max_retry_after)
        return self.backoff(attempt)

    async def wait(self, attempt: int, retry_after: Optional[float] = None) -> None:
        await asyncio.sleep(self.delay_for(attempt, retry_after))

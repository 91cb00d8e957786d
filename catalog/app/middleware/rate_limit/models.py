"""Rate limiting data models.

Per-bucket counters and the outcome of counting one request.
"""

import time
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""
    allowed: bool
    limit: int
    remaining: int
    reset_time: int
    retry_after: Optional[int] = None

    def headers(self) -> dict[str, str]:
        """Return the ``X-RateLimit-*`` headers describing this result."""
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_time),
        }


@dataclass
class RateLimitEntry:
    """Request counter for one bucket in the current fixed window."""
    requests: int = 0
    window_start: float = field(default_factory=time.time)

"""Runtime safety layer: per-category rate limiting."""

from mcphub.runtime.errors import RateLimitError, RuntimeSafetyError
from mcphub.runtime.rate_limit import (
    BROWSER_CATEGORY,
    BROWSER_RATE_LIMIT,
    RateLimitConfig,
    RateLimiter,
    RateLimitStatus,
    create_browser_rate_limiter,
)

__all__ = [
    "BROWSER_CATEGORY",
    "BROWSER_RATE_LIMIT",
    "RateLimitConfig",
    "RateLimitError",
    "RateLimitStatus",
    "RateLimiter",
    "RuntimeSafetyError",
    "create_browser_rate_limiter",
]

"""Keyed request rate limiting.

Learn: Every limiter in the app talks to a RateLimitStore, never to a
module-level dict. The app picks a backend at startup and keeps it on
app.state.rate_limit_store:

- InMemoryRateLimitStore: one process, no coordination (dev, tests)
- RedisRateLimitStore: shared across every server instance
"""

from catalog.ratelimit.store import (
    InMemoryRateLimitStore,
    RateLimitResult,
    RateLimitStore,
    RedisRateLimitStore,
)

__all__ = [
    "InMemoryRateLimitStore",
    "RateLimitResult",
    "RateLimitStore",
    "RedisRateLimitStore",
]

"""Rate limit stores — fixed window that resets on first use after expiry.

Learn: This is NOT a true sliding window. Each key maps to
(count, reset_at):

    absent, or now > reset_at  → (1, now + window), allow
    count < max                → count + 1, allow
    otherwise                  → deny

Records are created lazily and removed by sweep() once their window
has passed. A key swept just before a request reads it is simply
"absent, start fresh".
"""

import abc
import time
from dataclasses import dataclass
from typing import Callable, Optional

import redis.asyncio as aioredis


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    count: int
    reset_at: float  # epoch seconds (store clock)

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)

    def retry_after(self, now: float) -> int:
        return max(1, int(round(self.reset_at - now)))


class RateLimitStore(abc.ABC):
    """Keyed counter store shared by the middleware and route limiters."""

    @abc.abstractmethod
    async def check(self, key: str, max_requests: int, window_seconds: float) -> RateLimitResult:
        """Count one request against `key` and say whether it is allowed."""

    @abc.abstractmethod
    async def sweep(self) -> int:
        """Drop expired records. Returns how many were removed."""

    def now(self) -> float:
        return time.time()

    async def close(self) -> None:
        return None


@dataclass
class _Record:
    count: int
    reset_at: float


class InMemoryRateLimitStore(RateLimitStore):
    """Process-local store.

    check() has no await between reading and writing a record, so on a
    single event loop two concurrent requests can never both see
    count < max for the same slot.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._records: dict[str, _Record] = {}
        self._clock = clock or time.time

    def now(self) -> float:
        return self._clock()

    def __len__(self) -> int:
        return len(self._records)

    async def check(self, key: str, max_requests: int, window_seconds: float) -> RateLimitResult:
        now = self._clock()
        record = self._records.get(key)

        if record is None or now > record.reset_at:
            record = _Record(count=1, reset_at=now + window_seconds)
            self._records[key] = record
            return RateLimitResult(True, max_requests, record.count, record.reset_at)

        if record.count < max_requests:
            record.count += 1
            return RateLimitResult(True, max_requests, record.count, record.reset_at)

        return RateLimitResult(False, max_requests, record.count, record.reset_at)

    async def sweep(self) -> int:
        now = self._clock()
        expired = [k for k, r in self._records.items() if now > r.reset_at]
        for key in expired:
            self._records.pop(key, None)
        return len(expired)


class RedisRateLimitStore(RateLimitStore):
    """Shared store: INCR the key, start its TTL on the first hit.

    Redis expires the key when the window ends, so sweep() has nothing
    to do. A request that would exceed the limit is still counted
    (INCR is unconditional) but the reported count is capped at max.
    """

    def __init__(self, redis: aioredis.Redis, prefix: str = "catalog:rl:"):
        self.redis = redis
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str) -> "RedisRateLimitStore":
        return cls(aioredis.from_url(url, encoding="utf-8", decode_responses=True))

    async def check(self, key: str, max_requests: int, window_seconds: float) -> RateLimitResult:
        redis_key = f"{self.prefix}{key}"
        window_ms = int(window_seconds * 1000)

        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.incr(redis_key)
            pipe.pttl(redis_key)
            count, ttl_ms = await pipe.execute()

        if count == 1 or ttl_ms < 0:
            await self.redis.pexpire(redis_key, window_ms)
            ttl_ms = window_ms

        reset_at = self.now() + ttl_ms / 1000
        allowed = count <= max_requests
        return RateLimitResult(allowed, max_requests, min(count, max_requests), reset_at)

    async def sweep(self) -> int:
        return 0

    async def close(self) -> None:
        await self.redis.aclose()

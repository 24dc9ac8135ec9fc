# luckydraw/rate_limit.py
import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict

from .tokens import now_ms

logger = logging.getLogger(__name__)


@dataclass
class Bucket:
    count: int
    reset_at: int


@dataclass
class RateLimitResult:
    allowed: bool
    retry_after_seconds: int = 0


class RateLimiter:
    """In-memory fixed-window counter keyed by ``action:client``.

    A bucket is replaced, not merged, once its window has passed. Buckets
    are never freed; key cardinality is expected to stay small.
    """

    def __init__(self, clock: Callable[[], int] = now_ms):
        self._clock = clock
        self._buckets: Dict[str, Bucket] = {}

    def check(self, key: str, limit: int, window_ms: int) -> RateLimitResult:
        now = self._clock()
        bucket = self._buckets.get(key)

        if bucket is None or now > bucket.reset_at:
            self._buckets[key] = Bucket(count=1, reset_at=now + window_ms)
            return RateLimitResult(allowed=True)

        if bucket.count < limit:
            bucket.count += 1
            return RateLimitResult(allowed=True)

        retry_after = max(1, math.ceil((bucket.reset_at - now) / 1000))
        logger.warning(f"Rate limit hit for {key}, retry after {retry_after}s")
        return RateLimitResult(allowed=False, retry_after_seconds=retry_after)

    def reset(self) -> None:
        self._buckets.clear()

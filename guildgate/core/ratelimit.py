"""Fixed-window request limiter keyed by client address."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Callable


@dataclass
class RateLimitRecord:
    count: int
    window_reset_at: float  # clock seconds


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: int  # whole seconds until the window resets; 0 when allowed


class FixedWindowRateLimiter:
    """Counts requests per key in windows opened by the key's first request.

    Records are mutated in place and dropped lazily once their window has
    passed. Not thread-safe: meant to be driven from the event loop only.
    """

    def __init__(self, max_requests: int, window_ms: int, clock: Callable[[], float] = time.time):
        self.max_requests = max_requests
        self.window_s = window_ms / 1000
        self._clock = clock
        self._records: dict[str, RateLimitRecord] = {}
        self._next_sweep = 0.0

    def hit(self, key: str) -> RateLimitDecision:
        """Register one request from ``key`` and decide whether it may proceed."""
        now = self._clock()
        self._sweep(now)

        record = self._records.get(key)
        if record is None or now >= record.window_reset_at:
            record = RateLimitRecord(count=1, window_reset_at=now + self.window_s)
            self._records[key] = record
            return self._decision(record, allowed=True, now=now)

        if record.count >= self.max_requests:
            return self._decision(record, allowed=False, now=now)

        record.count += 1
        return self._decision(record, allowed=True, now=now)

    def get(self, key: str) -> RateLimitRecord | None:
        return self._records.get(key)

    def __len__(self) -> int:
        return len(self._records)

    def _decision(self, record: RateLimitRecord, allowed: bool, now: float) -> RateLimitDecision:
        return RateLimitDecision(
            allowed=allowed,
            limit=self.max_requests,
            remaining=max(self.max_requests - record.count, 0),
            reset_at=record.window_reset_at,
            retry_after=0 if allowed else max(math.ceil(record.window_reset_at - now), 1),
        )

    def _sweep(self, now: float) -> None:
        """Drop expired records, at most once per window."""
        if now < self._next_sweep:
            return
        expired = [key for key, r in self._records.items() if now >= r.window_reset_at]
        for key in expired:
            del self._records[key]
        self._next_sweep = now + self.window_s

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Dict, Tuple

from app.core.config import get_settings


@dataclass
class Bucket:
    tokens: float
    last_ts: float


class InMemoryRateLimiter:
    """
    Token bucket:
      capacity tokens; refill rate tokens/sec.

    Keyed by (subject, route_key). Process-local; a multi-worker deployment
    gets one bucket per worker.
    """
    def __init__(self, capacity: int, refill_per_sec: float):
        self.capacity = float(capacity)
        self.refill_per_sec = float(refill_per_sec)
        self._buckets: Dict[Tuple[str, str], Bucket] = {}
        self._lock = threading.Lock()

    def allow(self, subject: str, route_key: str, cost: float = 1.0) -> bool:
        now = time.time()
        k = (subject, route_key)
        with self._lock:
            b = self._buckets.get(k)
            if b is None:
                b = Bucket(tokens=self.capacity, last_ts=now)
                self._buckets[k] = b

            # refill
            elapsed = max(0.0, now - b.last_ts)
            b.tokens = min(self.capacity, b.tokens + elapsed * self.refill_per_sec)
            b.last_ts = now

            if b.tokens >= cost:
                b.tokens -= cost
                return True
            return False

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()


def _otp_limiter() -> InMemoryRateLimiter:
    per_minute = get_settings().otp_send_per_minute
    return InMemoryRateLimiter(capacity=per_minute, refill_per_sec=per_minute / 60.0)


# OTP sends: otp_send_per_minute per email per purpose
OTP_SEND_LIMITER = _otp_limiter()

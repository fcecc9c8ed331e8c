# In-memory fixed-window limits per client IP; counters reset on restart

import logging
import math
import time
from dataclasses import dataclass
from typing import Dict, Tuple

from fastapi import HTTPException, Request, status

from storefront import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitConfig:
    name: str
    max_requests: int
    window_seconds: int
    message: str = "Too many requests, please try again later."


STRICT = RateLimitConfig("strict", 5, 60, "Too many attempts. Please wait a moment before trying again.")
MODERATE = RateLimitConfig("moderate", 100, 60, "Too many requests. Please slow down.")
RELAXED = RateLimitConfig("relaxed", 1000, 60, "Rate limit exceeded.")
ADMIN = RateLimitConfig("admin", 200, 60, "Admin rate limit exceeded.")


class RateLimitExceeded(HTTPException):
    def __init__(self, limit: RateLimitConfig, retry_after: int, reset_at: float):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=limit.message,
            headers={
                "Retry-After": str(retry_after),
                "X-RateLimit-Limit": str(limit.max_requests),
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(int(reset_at * 1000)),
            },
        )
        self.retry_after = retry_after


# (preset name, client id) -> [count, window reset time]
_store: Dict[Tuple[str, str], list] = {}


def reset():
    _store.clear()


def client_id(request: Request) -> str:
    cf_ip = request.headers.get("CF-Connecting-IP")
    if cf_ip:
        return cf_ip
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def hit(limit: RateLimitConfig, key: str, now: float = None) -> None:
    """Count one request for ``key``; raise RateLimitExceeded past the limit."""
    now = time.time() if now is None else now
    entry = _store.get((limit.name, key))
    if entry is None or now > entry[1]:
        _store[(limit.name, key)] = [1, now + limit.window_seconds]
        return
    entry[0] += 1
    if entry[0] > limit.max_requests:
        retry_after = math.ceil(entry[1] - now)
        logger.warning("Rate limit %s exceeded for %s", limit.name, key)
        raise RateLimitExceeded(limit, retry_after, entry[1])


class RateLimiter:
    """Dependency applying ``limit`` to the calling client."""

    def __init__(self, limit: RateLimitConfig):
        self.limit = limit

    def __call__(self, request: Request) -> None:
        if not config.RATE_LIMIT_ENABLED:
            return
        hit(self.limit, client_id(request))

"""
Security dependencies for the API: API key check and per-client rate limiting.
"""

import logging
import secrets
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader

from qrshield.config import settings

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name=settings.api_token_header, auto_error=False)


def _client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def verify_api_token(
    request: Request,
    api_key: Optional[str] = Depends(api_key_header),
):
    """
    Verify the API token header.

    With no token configured (development), every request passes.
    Otherwise the header must carry exactly the configured token.
    """
    if not settings.api_token:
        if settings.is_production:
            logger.warning("API token not configured in production mode!")
        return None

    if not api_key:
        logger.warning(f"Missing API key from {_client_host(request)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing API key. Provide {settings.api_token_header} header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not secrets.compare_digest(api_key.encode(), settings.api_token.encode()):
        logger.warning(f"Invalid API key attempt from {_client_host(request)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return api_key


# ============== RATE LIMITING ==============


@dataclass
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int = 0


# Full sweep of idle clients every this many checks
SWEEP_INTERVAL = 1000


class RateLimiter:
    """
    Sliding-window in-memory rate limiter.

    Each key keeps the timestamps of its requests inside the current window.
    Keys with no hits left in the window are dropped. Per process only:
    every worker counts separately.
    """

    def __init__(self):
        self._hits: Dict[str, Deque[float]] = {}
        self._checks = 0

    def _live_hits(self, key: str, now: float, window: int) -> Deque[float]:
        hits = self._hits.get(key)
        if hits is None:
            return deque()
        while hits and now - hits[0] >= window:
            hits.popleft()
        if not hits:
            del self._hits[key]
        return hits

    def sweep(self, window: int, now: Optional[float] = None):
        """Forget every key whose hits have all left the window."""
        now = time.time() if now is None else now
        for key in list(self._hits):
            self._live_hits(key, now, window)

    def check(self, key: str, limit: int, window: int) -> RateLimitDecision:
        """Record the request if it fits in the window, otherwise refuse it."""
        now = time.time()
        self._checks += 1
        if self._checks % SWEEP_INTERVAL == 0:
            self.sweep(window, now)

        hits = self._live_hits(key, now, window)
        if len(hits) >= limit:
            retry_after = max(0, int(window - (now - hits[0])))
            return RateLimitDecision(allowed=False, remaining=0, retry_after=retry_after)

        hits.append(now)
        self._hits[key] = hits
        return RateLimitDecision(allowed=True, remaining=limit - len(hits))

    @property
    def tracked_keys(self) -> int:
        return len(self._hits)

    def reset(self):
        self._hits.clear()
        self._checks = 0


rate_limiter = RateLimiter()


def rate_limit_key(request: Request) -> str:
    """One bucket per client IP. Header values are never trusted for bucketing."""
    return "ip:" + _client_host(request)


async def check_rate_limit(request: Request):
    if not settings.rate_limit_requests:
        return

    key = rate_limit_key(request)
    decision = rate_limiter.check(
        key,
        limit=settings.rate_limit_requests,
        window=settings.rate_limit_window,
    )

    request.state.rate_limit_remaining = decision.remaining
    request.state.rate_limit_limit = settings.rate_limit_requests

    if not decision.allowed:
        logger.warning(f"Rate limit exceeded for {key}")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Rate limit exceeded. Try again in {decision.retry_after} seconds.",
            headers={
                "Retry-After": str(decision.retry_after),
                "X-RateLimit-Limit": str(settings.rate_limit_requests),
                "X-RateLimit-Remaining": "0",
            },
        )

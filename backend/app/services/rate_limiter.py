"""
Rate Limiter Service

In-memory rate limiting of batch submissions with a sliding window.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta

from fastapi import HTTPException, Request, status

from app.config import settings

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    In-memory rate limiter using sliding window algorithm.

    Tracks requests per client IP address and enforces rate limits.
    """

    def __init__(self, max_requests: int, window_seconds: int):
        """
        Initialize rate limiter.

        Args:
            max_requests: Maximum number of requests allowed in time window
            window_seconds: Time window in seconds
        """
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.requests = defaultdict(list)  # IP -> list of timestamps

    def check_rate_limit(self, ip: str) -> None:
        """
        Check if IP has exceeded rate limit.

        Args:
            ip: Client IP address

        Raises:
            HTTPException: 429 if rate limit exceeded
        """
        now = datetime.now()
        cutoff = now - timedelta(seconds=self.window_seconds)

        self.requests[ip] = [
            req_time for req_time in self.requests[ip] if req_time > cutoff
        ]

        if len(self.requests[ip]) >= self.max_requests:
            logger.warning(
                f"Rate limit exceeded for IP {ip}: "
                f"{len(self.requests[ip])} batch submissions in window"
            )
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=(
                    f"Rate limit exceeded. Max {self.max_requests} batch submissions "
                    f"per {self.window_seconds} seconds."
                ),
            )

        self.requests[ip].append(now)
        logger.debug(
            f"Rate limit check passed: {ip} has "
            f"{len(self.requests[ip])} requests in window"
        )

    def reset(self) -> None:
        self.requests.clear()


batch_rate_limiter = RateLimiter(
    max_requests=settings.BATCH_RATE_LIMIT_REQUESTS,
    window_seconds=settings.BATCH_RATE_LIMIT_WINDOW,
)


async def check_batch_rate_limit(request: Request) -> None:
    """
    FastAPI dependency to check the batch submission rate limit.

    Raises:
        HTTPException: 429 if rate limit exceeded
    """
    client_ip = request.client.host if request.client else "unknown"
    batch_rate_limiter.check_rate_limit(client_ip)

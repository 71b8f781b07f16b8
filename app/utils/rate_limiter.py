"""
Rate limiting for API endpoints
"""
import time
from collections import defaultdict, deque
from typing import Deque, Dict
import logging

from fastapi import Request

from app.exceptions import AssessmentError, Unauthorized
from app.utils.security import resolve_identity

logger = logging.getLogger(__name__)


class RateLimitExceeded(AssessmentError):
    error = "rate_limit_exceeded"
    status_code = 429
    retryable = True

    def __init__(self, message: str, retry_after: int):
        super().__init__(message)
        self.retry_after = retry_after


class RateLimiter:
    """
    In-memory sliding-window rate limiter, per process
    """

    def __init__(self, requests_per_minute: int = 60, requests_per_hour: int = 1000):
        self.requests_per_minute = requests_per_minute
        self.requests_per_hour = requests_per_hour

        # {client_id: deque[timestamp]} covering the last hour
        self.history: Dict[str, Deque[float]] = defaultdict(deque)

    def _get_client_id(self, request: Request) -> str:
        """Authenticated user id when the bearer token is valid, else client IP"""
        auth_header = request.headers.get("authorization", "")
        if auth_header.startswith("Bearer "):
            try:
                return f"user:{resolve_identity(auth_header[7:]).user_id}"
            except Unauthorized:
                pass

        client_ip = request.client.host if request.client else "unknown"
        return f"ip:{client_ip}"

    def _cleanup_old_entries(self, cutoff: float) -> None:
        """Drop timestamps older than the hour window and forget idle clients"""
        for client_id in list(self.history.keys()):
            timestamps = self.history[client_id]
            while timestamps and timestamps[0] <= cutoff:
                timestamps.popleft()

            # Remove empty entries
            if not timestamps:
                del self.history[client_id]

    def check_rate_limit(self, request: Request) -> None:
        """
        Record the request and enforce both windows

        Raises:
            RateLimitExceeded: minute or hour budget used up
        """
        client_id = self._get_client_id(request)
        now = time.time()

        self._cleanup_old_entries(now - 3600)
        timestamps = self.history[client_id]

        minute_requests = sum(1 for ts in timestamps if ts > now - 60)
        if minute_requests >= self.requests_per_minute:
            logger.warning(f"Rate limit exceeded (minute): {client_id}")
            raise RateLimitExceeded(
                f"Too many requests. Limit: {self.requests_per_minute} requests per minute",
                retry_after=60
            )

        if len(timestamps) >= self.requests_per_hour:
            logger.warning(f"Rate limit exceeded (hour): {client_id}")
            raise RateLimitExceeded(
                f"Too many requests. Limit: {self.requests_per_hour} requests per hour",
                retry_after=3600
            )

        timestamps.append(now)

    def reset(self) -> None:
        self.history.clear()


# Global instance
from app.config import settings
rate_limiter = RateLimiter(
    requests_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=settings.RATE_LIMIT_PER_HOUR
)

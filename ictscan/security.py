"""
Security middleware and request validation for the API

Provides:
- Rate limiting
- Security headers
- Input validation (symbols, queries, bar counts)
"""

import re
import time
from collections import defaultdict
from typing import Dict, Tuple, Optional, List
from fastapi import Request, HTTPException, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import logging

logger = logging.getLogger(__name__)

SYMBOL_PATTERN = re.compile(r'^[A-Z0-9][A-Z0-9.\-=^/]{0,14}$')
MAX_QUERY_LENGTH = 200
MAX_BARS = 5000
MAX_SYMBOLS = 500


class RateLimiter:
    """Simple in-memory rate limiter"""

    def __init__(self, requests_per_minute: int = 60, requests_per_hour: int = 1000):
        self.requests_per_minute = requests_per_minute
        self.requests_per_hour = requests_per_hour
        self.minute_requests: Dict[str, List[float]] = defaultdict(list)
        self.hour_requests: Dict[str, List[float]] = defaultdict(list)

    def _prune(self, client_id: str, now: float):
        """Drop request timestamps outside the minute/hour windows"""
        self.minute_requests[client_id] = [
            t for t in self.minute_requests[client_id] if now - t < 60
        ]
        self.hour_requests[client_id] = [
            t for t in self.hour_requests[client_id] if now - t < 3600
        ]

    def check_rate_limit(self, client_id: str) -> Tuple[bool, Optional[str]]:
        """
        Check and record one request for a client.

        Returns:
            (allowed, error_message) tuple
        """
        now = time.time()
        self._prune(client_id, now)

        if len(self.minute_requests[client_id]) >= self.requests_per_minute:
            return False, f"Rate limit exceeded: {self.requests_per_minute} requests per minute"

        if len(self.hour_requests[client_id]) >= self.requests_per_hour:
            return False, f"Rate limit exceeded: {self.requests_per_hour} requests per hour"

        self.minute_requests[client_id].append(now)
        self.hour_requests[client_id].append(now)

        return True, None

    def get_stats(self, client_id: str) -> Dict:
        """Get rate limit statistics for a client"""
        self._prune(client_id, time.time())
        minute_count = len(self.minute_requests[client_id])
        hour_count = len(self.hour_requests[client_id])

        return {
            "requests_this_minute": minute_count,
            "requests_this_hour": hour_count,
            "limit_per_minute": self.requests_per_minute,
            "limit_per_hour": self.requests_per_hour,
            "remaining_minute": max(0, self.requests_per_minute - minute_count),
            "remaining_hour": max(0, self.requests_per_hour - hour_count),
        }


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses"""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # HSTS only over HTTPS
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        # JSON-only API
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limiting middleware"""

    def __init__(self, app, rate_limiter: RateLimiter):
        super().__init__(app)
        self.rate_limiter = rate_limiter

    def _get_client_id(self, request: Request) -> str:
        """Get unique client identifier"""
        # Behind a proxy the real IP is in the forwarding headers
        client_ip = request.headers.get("X-Forwarded-For", "").split(",")[0].strip()

        if not client_ip:
            client_ip = request.headers.get("X-Real-IP", "")

        if not client_ip and request.client:
            client_ip = request.client.host

        return client_ip or "unknown"

    async def dispatch(self, request: Request, call_next):
        # Skip rate limiting for health check
        if request.url.path == "/health":
            return await call_next(request)

        client_id = self._get_client_id(request)
        allowed, error_msg = self.rate_limiter.check_rate_limit(client_id)

        if not allowed:
            logger.warning(f"Rate limit exceeded for {client_id}: {error_msg}")
            # Exceptions raised in middleware bypass FastAPI's handlers
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": error_msg}
            )

        response = await call_next(request)

        stats = self.rate_limiter.get_stats(client_id)
        response.headers["X-RateLimit-Limit-Minute"] = str(stats["limit_per_minute"])
        response.headers["X-RateLimit-Remaining-Minute"] = str(stats["remaining_minute"])
        response.headers["X-RateLimit-Limit-Hour"] = str(stats["limit_per_hour"])
        response.headers["X-RateLimit-Remaining-Hour"] = str(stats["remaining_hour"])

        return response


def validate_symbol(symbol: str) -> str:
    """
    Validate and normalize a ticker symbol.

    Returns:
        Upper-cased symbol, raises HTTPException otherwise
    """
    normalized = (symbol or "").strip().upper()

    if not SYMBOL_PATTERN.match(normalized):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid symbol: {symbol!r}"
        )

    return normalized


def validate_query(query: Optional[str]) -> Optional[str]:
    """
    Validate scanner query text.

    Returns:
        The query, raises HTTPException if it is too long
    """
    if query is not None and len(query) > MAX_QUERY_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Query too long: {len(query)} characters (max {MAX_QUERY_LENGTH})"
        )

    return query


def validate_bar_count(count: int, label: str = "bars") -> bool:
    """
    Validate the number of bars in one request series.

    Returns:
        True if valid, raises HTTPException otherwise
    """
    if count > MAX_BARS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Too many {label}: {count}. Must be at most {MAX_BARS}"
        )

    return True


def validate_symbol_count(count: int) -> bool:
    """
    Validate the number of symbols in one scan request.

    Returns:
        True if valid, raises HTTPException otherwise
    """
    if count == 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="At least one symbol is required"
        )

    if count > MAX_SYMBOLS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Too many symbols: {count}. Must be at most {MAX_SYMBOLS}"
        )

    return True

"""
Rate limiting utilities backed by Redis.

Fixed window per client IP:
- Key pattern: "ratelimit:{scope}:{ip}"
- INCR on every request, EXPIRE set when the window opens
"""
import logging
from typing import Optional

from fastapi import HTTPException, Request, status
from redis.exceptions import RedisError

from pricetalk.config import get_settings
from pricetalk.database.connections import get_redis_client

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


def get_client_ip(request: Request) -> str:
    """Extract client IP from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def check_rate_limit(
    ip: str,
    scope: str = "api",
    limit: Optional[int] = None,
    window_seconds: Optional[int] = None,
) -> bool:
    """
    Check if a request should be rate limited.

    Args:
        ip: Client IP address
        scope: Limit bucket (e.g. "api")
        limit: Max requests allowed (defaults to config value)
        window_seconds: Time window in seconds (defaults to config value)

    Returns:
        True if request is allowed, False if rate limited
    """
    settings = get_settings()
    limit = limit or settings.rate_limit_requests
    window_seconds = window_seconds or settings.rate_limit_window_seconds

    key = f"ratelimit:{scope}:{ip}"
    try:
        redis = await get_redis_client()
        current = await redis.incr(key)
        if current == 1:
            await redis.expire(key, window_seconds)
    except RedisError as e:
        # Redis outage must not take the API down
        logger.warning("Rate limit check skipped for %s: %s", scope, e)
        return True

    return current <= limit


async def get_rate_limit_status(ip: str, scope: str = "api") -> dict:
    """
    Get current rate limit status for debugging/monitoring.

    Returns:
        Dict with used, remaining, limit and reset_in seconds
    """
    settings = get_settings()
    redis = await get_redis_client()
    key = f"ratelimit:{scope}:{ip}"

    used = int(await redis.get(key) or 0)
    ttl = await redis.ttl(key)

    return {
        "used": used,
        "remaining": max(0, settings.rate_limit_requests - used),
        "limit": settings.rate_limit_requests,
        "reset_in": ttl if ttl and ttl > 0 else None,
    }


async def enforce_rate_limit(request: Request) -> None:
    """
    Router dependency applying the global /api rate limit.

    Raises:
        HTTPException 429: When the client exceeded its window
    """
    settings = get_settings()
    if not settings.rate_limit_enabled:
        return

    if not await check_rate_limit(get_client_ip(request), "api"):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=RATE_LIMIT_MESSAGE,
        )

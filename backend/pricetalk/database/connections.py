"""
Shared MongoDB and Redis clients.

Both clients are created lazily on first use and live for the whole
process; the lifespan closes them on shutdown.
"""
import logging
from typing import Awaitable, Callable, Optional

from motor.motor_asyncio import AsyncIOMotorClient
from redis.asyncio import Redis

from pricetalk.config import get_settings
from pricetalk.database.query_logging import QueryLogger

logger = logging.getLogger(__name__)

_mongo_client: Optional[AsyncIOMotorClient] = None
_redis_client: Optional[Redis] = None


async def get_mongo_client() -> AsyncIOMotorClient:
    """Get or create the Mongo client, with command logging attached."""
    global _mongo_client
    if _mongo_client is None:
        settings = get_settings()
        _mongo_client = AsyncIOMotorClient(
            settings.mongo_uri,
            appname="pricetalk",
            serverSelectionTimeoutMS=settings.mongo_timeout_ms,
            event_listeners=[QueryLogger(settings.slow_query_ms)],
        )
        logger.info("MongoDB client created")
    return _mongo_client


async def get_redis_client() -> Redis:
    """Get or create the Redis client (string responses)."""
    global _redis_client
    if _redis_client is None:
        settings = get_settings()
        _redis_client = Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            socket_timeout=settings.redis_timeout_seconds,
            decode_responses=True,
        )
        logger.info("Redis client created for %s:%s", settings.redis_host, settings.redis_port)
    return _redis_client


async def ping_mongo() -> None:
    client = await get_mongo_client()
    await client.admin.command("ping")


async def ping_redis() -> None:
    redis = await get_redis_client()
    await redis.ping()


# Readiness probes, keyed by the name reported in /health/ready
DEPENDENCY_PINGS: dict[str, Callable[[], Awaitable[None]]] = {
    "mongodb": ping_mongo,
    "redis": ping_redis,
}


async def close_connections() -> None:
    """Close both clients and forget them."""
    global _mongo_client, _redis_client

    if _mongo_client is not None:
        _mongo_client.close()
        _mongo_client = None

    if _redis_client is not None:
        await _redis_client.close()
        _redis_client = None

"""
PriceTalk Backend - FastAPI Application

Trading journal, demo FX trading, macro bias, learning, community and
subscription billing behind one REST API plus a WebSocket relay.
"""
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pricetalk.config import get_settings
from pricetalk.core.error_handlers import register_error_handlers
from pricetalk.core.logging import configure_logging
from pricetalk.database.connections import close_connections, get_mongo_client
from pricetalk.database.registry import create_indexes, sync_registry
from pricetalk.routers import (
    auth,
    community,
    demo,
    forum,
    health,
    learning,
    macro,
    payments,
    risk,
    stripe,
    trading,
    users,
    ws,
)
from pricetalk.services.realtime import manager, run_mock_feed, run_redis_fanout

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
    - Configure logging
    - Sync database registry and create indexes
    - Start the mock feed and Redis fan-out tasks

    Shutdown:
    - Cancel background tasks
    - Close all database connections
    """
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Starting up PriceTalk Backend (%s)...", settings.environment)

    try:
        client = await get_mongo_client()
        await sync_registry(client)
        await create_indexes(client)
        logger.info("Database registry synced and indexes created")
    except Exception as e:
        logger.warning("Database initialization warning: %s", e)

    tasks = []
    if settings.mock_feed_enabled:
        tasks.append(asyncio.create_task(run_mock_feed(manager)))
    if settings.ws_redis_fanout:
        tasks.append(asyncio.create_task(run_redis_fanout(manager)))

    yield

    logger.info("Shutting down PriceTalk Backend...")
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    await close_connections()
    logger.info("Database connections closed")


app = FastAPI(
    title="PriceTalk API",
    description="""
## PriceTalk Trading Education API

### Features
- **Authentication**: JWT bearer tokens
- **Trading journal**: Log trades and review performance analytics
- **Demo trading**: Simulated FX account with margin and P&L
- **Macro bias**: Currency heat scores and pair signals
- **Learning**: Paths and modules with XP rewards
- **Community**: Challenges, chat rooms and a forum
- **Risk**: Limits, exposure metrics and an emergency stop
- **Payments**: Stripe subscriptions

### Authentication
Protected endpoints expect a header:
```
Authorization: Bearer <token>
```

Obtain a token via `POST /api/auth/login`.

### WebSocket
Connect to `/ws` and send `{"type": "auth", "payload": {"token": "..."}}`.
    """,
    version="1.0.0",
    lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(trading.router)
app.include_router(demo.router)
app.include_router(macro.router)
app.include_router(learning.router)
app.include_router(community.router)
app.include_router(forum.router)
app.include_router(risk.router)
app.include_router(payments.router)
app.include_router(stripe.router)
app.include_router(ws.router)


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "PriceTalk API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("pricetalk.main:app", host="0.0.0.0", port=8000)

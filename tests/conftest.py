"""
Global test fixtures for PriceTalk.

This module provides shared fixtures for all tests including:
- Test environment (set before the application is imported)
- Mock MongoDB (mongomock-motor)
- Mock Redis (fakeredis)
- FastAPI test clients wired to the mock database
"""

import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

# Settings are cached on first use, so the environment must be ready first
os.environ.update({
    "ENVIRONMENT": "test",
    "JWT_SECRET_KEY": "test-secret-key",
    "BCRYPT_ROUNDS": "4",
    "RATE_LIMIT_ENABLED": "false",
    "MOCK_FEED_ENABLED": "false",
    "WS_REDIS_FANOUT": "false",
    "STRIPE_SECRET_KEY": "sk_test_dummy",
    "STRIPE_WEBHOOK_SECRET": "whsec_test",
    "STRIPE_BASIC_PRICE_ID": "price_basic",
    "STRIPE_PREMIUM_PRICE_ID": "price_premium",
})

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))


# =============================================================================
# MongoDB Fixtures (mongomock-motor)
# =============================================================================

@pytest.fixture
def mock_async_mongo_client():
    """
    Create an async mock MongoDB client using mongomock-motor.

    The client is in-memory and behaves like motor for the operations
    the services use.
    """
    try:
        from mongomock_motor import AsyncMongoMockClient
    except ImportError:
        pytest.skip("mongomock-motor not installed")

    client = AsyncMongoMockClient()
    yield client
    client.close()


@pytest_asyncio.fixture
async def indexed_mongo_client(mock_async_mongo_client):
    """Mock client with the application's indexes in place."""
    from pricetalk.database.registry import create_indexes

    await create_indexes(mock_async_mongo_client)
    yield mock_async_mongo_client


@pytest.fixture
def use_mock_mongo(mock_async_mongo_client):
    """
    Point the application's shared Mongo client at the mock.

    Every router builds its service from get_mongo_client(), which returns
    the module-level client once it is set.
    """
    import pricetalk.database.connections as conn_module

    previous = conn_module._mongo_client
    conn_module._mongo_client = mock_async_mongo_client
    yield mock_async_mongo_client
    conn_module._mongo_client = previous


# =============================================================================
# Redis Fixtures (fakeredis)
# =============================================================================

@pytest_asyncio.fixture
async def mock_async_redis():
    """
    Create an async mock Redis client using fakeredis.
    """
    try:
        import fakeredis
    except ImportError:
        pytest.skip("fakeredis not installed")

    redis_client = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield redis_client
    await redis_client.flushall()
    await redis_client.aclose()


# =============================================================================
# User Fixtures
# =============================================================================

@pytest.fixture
def test_user_data() -> dict:
    """Basic test user data for registration."""
    return {
        "email": "trader@example.com",
        "username": "trader",
        "password": "SecurePassword123!",
    }


@pytest.fixture
def other_user_data() -> dict:
    """A second user, for ownership checks."""
    return {
        "email": "other@example.com",
        "username": "othertrader",
        "password": "OtherPassword123!",
    }


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================

@pytest.fixture
def app():
    """
    The FastAPI app for testing.

    Note: Use together with use_mock_mongo so requests hit the mock database.
    """
    from pricetalk.main import app

    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app, use_mock_mongo) -> Generator:
    """
    Create a TestClient for the FastAPI app backed by the mock database.

    Entering the client runs the lifespan (registry sync and indexes).
    """
    import pricetalk.database.connections as conn_module

    with TestClient(app) as c:
        # Lifespan shutdown drops the shared client; keep it for assertions
        yield c
    conn_module._mongo_client = use_mock_mongo


# =============================================================================
# Utility Fixtures
# =============================================================================

@pytest.fixture
def assert_datetime_recent():
    """
    Fixture providing a helper to assert an ISO datetime is recent.

    Usage:
        def test_something(assert_datetime_recent):
            assert_datetime_recent(response["created_at"], max_age_seconds=60)
    """
    def _assert_recent(datetime_str: str, max_age_seconds: int = 60):
        if datetime_str.endswith("Z"):
            datetime_str = datetime_str.replace("Z", "+00:00")

        dt = datetime.fromisoformat(datetime_str)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        age = (datetime.now(timezone.utc) - dt).total_seconds()

        assert age < max_age_seconds, f"Datetime {datetime_str} is {age}s old"
        assert age > -1, f"Datetime {datetime_str} is in the future"

    return _assert_recent

"""
Tests for database connections, registry and document helpers.

These tests cover:
- MongoDB and Redis connection lifecycle
- Registry sync and index creation
- Document serialization helpers
- Driver-level query logging
"""

import logging
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from pricetalk.database.documents import parse_object_id, serialize, since
from pricetalk.database.query_logging import QueryLogger, reply_row_count
from pricetalk.database.registry import ALL_DB_MANIFESTS, create_indexes, sync_registry


class TestMongoDBConnection:
    """Tests for MongoDB connection handling."""

    @pytest.mark.asyncio
    async def test_get_mongo_client_creates_connection_with_query_logger(self):
        with patch("pricetalk.database.connections.AsyncIOMotorClient") as mock_client, \
             patch("pricetalk.database.connections._mongo_client", None), \
             patch("pricetalk.database.connections.get_settings") as mock_settings:

            mock_settings.return_value.mongo_uri = "mongodb://test:27017"
            mock_settings.return_value.mongo_timeout_ms = 2000
            mock_settings.return_value.slow_query_ms = 50

            from pricetalk.database.connections import get_mongo_client

            client = await get_mongo_client()
            again = await get_mongo_client()

        mock_client.assert_called_once()
        args, kwargs = mock_client.call_args
        assert args == ("mongodb://test:27017",)
        assert kwargs["serverSelectionTimeoutMS"] == 2000
        [listener] = kwargs["event_listeners"]
        assert isinstance(listener, QueryLogger)
        assert listener.slow_query_ms == 50
        assert client is again is mock_client.return_value

    @pytest.mark.asyncio
    async def test_close_connections_cleans_up(self):
        import pricetalk.database.connections as conn_module

        mock_mongo = MagicMock()
        mock_redis = AsyncMock()
        with patch.object(conn_module, "_mongo_client", mock_mongo), \
             patch.object(conn_module, "_redis_client", mock_redis):

            await conn_module.close_connections()

            assert conn_module._mongo_client is None
            assert conn_module._redis_client is None

        mock_mongo.close.assert_called_once()
        mock_redis.close.assert_awaited_once()


class TestRedisConnection:
    """Tests for Redis connection handling."""

    @pytest.mark.asyncio
    async def test_get_redis_client_creates_connection(self):
        with patch("pricetalk.database.connections.Redis") as mock_redis_cls, \
             patch("pricetalk.database.connections._redis_client", None), \
             patch("pricetalk.database.connections.get_settings") as mock_settings:

            mock_settings.return_value.redis_host = "localhost"
            mock_settings.return_value.redis_port = 6379
            mock_settings.return_value.redis_timeout_seconds = 1.5

            from pricetalk.database.connections import get_redis_client

            client = await get_redis_client()

        mock_redis_cls.assert_called_once_with(
            host="localhost",
            port=6379,
            socket_timeout=1.5,
            decode_responses=True,
        )
        assert client is mock_redis_cls.return_value

    @pytest.mark.asyncio
    async def test_redis_ping_succeeds(self, mock_async_redis):
        assert await mock_async_redis.ping() is True


class TestDatabaseRegistry:
    """Tests for database registry synchronization."""

    @pytest.mark.asyncio
    async def test_registry_lists_every_database(self, mock_async_mongo_client):
        await sync_registry(mock_async_mongo_client)

        registry = mock_async_mongo_client["system_db"]["db_registry"]
        entries = await registry.find({}).to_list(length=None)

        assert {e["_id"] for e in entries} == {m["db_name"] for m in ALL_DB_MANIFESTS}
        auth = next(e for e in entries if e["_id"] == "auth_db")
        assert auth["collections"] == ["users", "_metadata"]
        assert auth["schema_version"] == "1.0"

    @pytest.mark.asyncio
    async def test_registry_sync_is_idempotent(self, mock_async_mongo_client):
        await sync_registry(mock_async_mongo_client)
        first = await mock_async_mongo_client["system_db"]["db_registry"].find_one({"_id": "trading_db"})

        await sync_registry(mock_async_mongo_client)

        registry = mock_async_mongo_client["system_db"]["db_registry"]
        assert await registry.count_documents({}) == len(ALL_DB_MANIFESTS)
        second = await registry.find_one({"_id": "trading_db"})
        assert second["created_at"] == first["created_at"]

    @pytest.mark.asyncio
    async def test_each_database_gets_metadata(self, mock_async_mongo_client):
        await sync_registry(mock_async_mongo_client)

        for manifest in ALL_DB_MANIFESTS:
            meta = await mock_async_mongo_client[manifest["db_name"]]["_metadata"].find_one(
                {"_id": "db_metadata"}
            )
            assert meta["db_name"] == manifest["db_name"]


class TestIndexCreation:
    """Tests for index creation on collections."""

    @pytest.mark.asyncio
    async def test_users_email_and_username_are_unique(self, mock_async_mongo_client):
        await create_indexes(mock_async_mongo_client)
        users = mock_async_mongo_client["auth_db"]["users"]
        await users.insert_one({"email": "a@example.com", "username": "a"})

        with pytest.raises(DuplicateKeyError):
            await users.insert_one({"email": "a@example.com", "username": "b"})
        with pytest.raises(DuplicateKeyError):
            await users.insert_one({"email": "b@example.com", "username": "a"})

    @pytest.mark.asyncio
    async def test_one_demo_account_per_user(self, mock_async_mongo_client):
        await create_indexes(mock_async_mongo_client)
        accounts = mock_async_mongo_client["trading_db"]["demo_accounts"]
        await accounts.insert_one({"user_id": "u1"})

        with pytest.raises(DuplicateKeyError):
            await accounts.insert_one({"user_id": "u1"})

    @pytest.mark.asyncio
    async def test_one_row_per_stripe_subscription(self, mock_async_mongo_client):
        await create_indexes(mock_async_mongo_client)
        subscriptions = mock_async_mongo_client["billing_db"]["subscriptions"]
        await subscriptions.insert_one({"user_id": "u1", "stripe_subscription_id": "sub_1"})

        with pytest.raises(DuplicateKeyError):
            await subscriptions.insert_one({"user_id": "u1", "stripe_subscription_id": "sub_1"})

    @pytest.mark.asyncio
    async def test_progress_index_covers_user_and_module(self, mock_async_mongo_client):
        await create_indexes(mock_async_mongo_client)

        indexes = await mock_async_mongo_client["learning_db"]["user_progress"].index_information()

        assert any(
            idx["key"] == [("user_id", 1), ("module_id", 1)] and idx.get("unique")
            for idx in indexes.values()
        )


class TestDocumentHelpers:
    """Tests for serialize and friends."""

    def test_serialize_maps_id_and_makes_datetimes_aware(self):
        oid = ObjectId()
        ref = ObjectId()
        doc = {
            "_id": oid,
            "owner": ref,
            "created_at": datetime(2024, 5, 1, 12, 0),
            "nested": {"at": datetime(2024, 5, 2), "ids": [ref]},
            "secret": "x",
        }

        out = serialize(doc, exclude=("secret",))

        assert out["id"] == str(oid)
        assert "_id" not in out and "secret" not in out
        assert out["owner"] == str(ref)
        assert out["created_at"].tzinfo is timezone.utc
        assert out["nested"]["ids"] == [str(ref)]
        assert out["nested"]["at"].tzinfo is timezone.utc

    def test_serialize_none(self):
        assert serialize(None) is None

    @pytest.mark.parametrize("value", ["nope", "", None, 12])
    def test_parse_object_id_rejects_malformed(self, value):
        assert parse_object_id(value) is None

    def test_parse_object_id_accepts_strings_and_ids(self):
        oid = ObjectId()
        assert parse_object_id(str(oid)) == oid
        assert parse_object_id(oid) is oid

    def test_since_is_naive_utc(self):
        bound = since(timedelta(hours=1))

        assert bound.tzinfo is None
        expected = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(hours=1)
        assert abs((bound - expected).total_seconds()) < 5


class TestQueryLogging:
    """Tests for the command listener."""

    @pytest.mark.parametrize("reply,count", [
        ({"cursor": {"firstBatch": [{}, {}]}}, 2),
        ({"cursor": {"nextBatch": [{}]}}, 1),
        ({"n": 3, "ok": 1}, 3),
        ({"value": None}, 0),
        ({"value": {"_id": 1}}, 1),
        ({"ok": 1}, None),
    ])
    def test_reply_row_count(self, reply, count):
        assert reply_row_count(reply) == count

    def event(self, name: str, micros: int):
        return SimpleNamespace(
            command_name=name,
            database_name="trading_db",
            duration_micros=micros,
            reply={"n": 1},
        )

    def test_slow_commands_log_a_warning(self, caplog):
        listener = QueryLogger(slow_query_ms=100)

        with caplog.at_level(logging.DEBUG, logger="pricetalk.database.query_logging"):
            listener.succeeded(self.event("update", 250_000))
            listener.succeeded(self.event("find", 1_000))
            listener.succeeded(self.event("ping", 900_000))

        records = [(r.levelno, r.getMessage()) for r in caplog.records]
        assert records[0][0] == logging.WARNING
        assert "update on trading_db" in records[0][1]
        assert records[1][0] == logging.DEBUG
        assert len(records) == 2

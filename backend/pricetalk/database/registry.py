"""
Database registry management.
Ensures all databases and collections are registered on startup.
"""
import logging
from datetime import datetime, timezone

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING

from pricetalk.database.databases import (
    auth_db,
    billing_db,
    community_db,
    learning_db,
    macro_db,
    system_db,
    trading_db,
)

logger = logging.getLogger(__name__)

# All database manifests
ALL_DB_MANIFESTS = [
    auth_db.DB_MANIFEST,
    trading_db.DB_MANIFEST,
    macro_db.DB_MANIFEST,
    learning_db.DB_MANIFEST,
    community_db.DB_MANIFEST,
    billing_db.DB_MANIFEST,
    system_db.DB_MANIFEST,
]


async def sync_registry(client: AsyncIOMotorClient) -> None:
    """
    Synchronize the database registry on application startup.
    Ensures all databases are registered in system_db.db_registry.
    """
    sys_db = client[system_db.DB_NAME]
    registry_collection = sys_db[system_db.Collections.DB_REGISTRY]
    now = datetime.now(timezone.utc)

    for manifest in ALL_DB_MANIFESTS:
        db_name = manifest["db_name"]

        await registry_collection.update_one(
            {"_id": db_name},
            {
                "$set": {
                    "purpose": manifest["purpose"],
                    "collections": manifest["collections"],
                    "access_level": manifest["access_level"],
                    "schema_version": system_db.SCHEMA_VERSION,
                    "updated_at": now,
                },
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
        )

        # Every database carries its own _metadata document
        await client[db_name]["_metadata"].update_one(
            {"_id": "db_metadata"},
            {
                "$set": {"db_name": db_name, "last_updated_at": now},
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
        )

    logger.info("Registry synced for %d databases", len(ALL_DB_MANIFESTS))


async def create_indexes(client: AsyncIOMotorClient) -> None:
    """Create necessary indexes for all databases."""

    # Auth DB
    users = client[auth_db.DB_NAME][auth_db.Collections.USERS]
    await users.create_index("email", unique=True)
    await users.create_index("username", unique=True)

    # Trading DB
    trading = client[trading_db.DB_NAME]
    await trading[trading_db.Collections.TRADES].create_index(
        [("user_id", ASCENDING), ("entry_time", DESCENDING)]
    )
    await trading[trading_db.Collections.DEMO_ACCOUNTS].create_index("user_id", unique=True)
    await trading[trading_db.Collections.DEMO_TRADES].create_index(
        [("user_id", ASCENDING), ("created_at", DESCENDING)]
    )
    await trading[trading_db.Collections.RISK_SETTINGS].create_index("user_id", unique=True)
    await trading[trading_db.Collections.TRADE_BLOCKERS].create_index(
        [("user_id", ASCENDING), ("triggered_at", DESCENDING)]
    )

    # Macro DB
    await client[macro_db.DB_NAME][macro_db.Collections.MACRO_BIAS].create_index(
        [("currency", ASCENDING), ("timestamp", DESCENDING)]
    )

    # Learning DB
    learning = client[learning_db.DB_NAME]
    await learning[learning_db.Collections.MODULES].create_index(
        [("path_id", ASCENDING), ("order_index", ASCENDING)]
    )
    await learning[learning_db.Collections.PROGRESS].create_index(
        [("user_id", ASCENDING), ("module_id", ASCENDING)], unique=True
    )

    # Community DB
    community = client[community_db.DB_NAME]
    await community[community_db.Collections.CHALLENGE_PARTICIPANTS].create_index(
        [("challenge_id", ASCENDING), ("user_id", ASCENDING)], unique=True
    )
    await community[community_db.Collections.CHAT_MESSAGES].create_index(
        [("room", ASCENDING), ("timestamp", DESCENDING)]
    )
    await community[community_db.Collections.FORUM_POSTS].create_index(
        [("is_pinned", DESCENDING), ("created_at", DESCENDING)]
    )
    await community[community_db.Collections.FORUM_REPLIES].create_index("post_id")

    # Billing DB
    billing = client[billing_db.DB_NAME]
    await billing[billing_db.Collections.SUBSCRIPTIONS].create_index(
        [("user_id", ASCENDING), ("created_at", DESCENDING)]
    )
    # One row per Stripe subscription; rows without an id yet are exempt
    await billing[billing_db.Collections.SUBSCRIPTIONS].create_index(
        "stripe_subscription_id",
        unique=True,
        partialFilterExpression={"stripe_subscription_id": {"$type": "string"}},
    )
    await billing[billing_db.Collections.PAYMENT_SESSIONS].create_index("session_id", unique=True)

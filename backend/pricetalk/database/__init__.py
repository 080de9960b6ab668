"""
Database module - MongoDB and Redis connections and database definitions.
"""
from pricetalk.database.connections import (
    DEPENDENCY_PINGS,
    close_connections,
    get_mongo_client,
    get_redis_client,
)
from pricetalk.database.databases import (
    auth_db,
    billing_db,
    community_db,
    learning_db,
    macro_db,
    system_db,
    trading_db,
)

__all__ = [
    "get_mongo_client",
    "get_redis_client",
    "close_connections",
    "auth_db",
    "trading_db",
    "macro_db",
    "learning_db",
    "community_db",
    "billing_db",
    "system_db",
]

"""
Database definitions and collection constants.
"""
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
    "auth_db",
    "trading_db",
    "macro_db",
    "learning_db",
    "community_db",
    "billing_db",
    "system_db",
]

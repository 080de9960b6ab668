"""
System database: registry of every PriceTalk database and its collections.
"""

DB_NAME = "system_db"

# Bumped whenever a manifest changes shape
SCHEMA_VERSION = "1.0"


class Collections:
    """Collection names in system_db."""
    DB_REGISTRY = "db_registry"
    METADATA = "_metadata"


DB_MANIFEST = {
    "db_name": DB_NAME,
    "purpose": "Registry of domain databases, their collections and access levels",
    "collections": [Collections.DB_REGISTRY, Collections.METADATA],
    "access_level": "system",
}

"""
Auth database configuration.
Stores user identity, credentials and profile data.
"""

DB_NAME = "auth_db"


class Collections:
    """Collection names in auth_db."""
    USERS = "users"
    METADATA = "_metadata"


# Manifest for registry
DB_MANIFEST = {
    "db_name": DB_NAME,
    "purpose": "User authentication, identity and profiles",
    "collections": [Collections.USERS, Collections.METADATA],
    "access_level": "restricted",
}

"""
Learning database configuration.
"""

DB_NAME = "learning_db"


class Collections:
    """Collection names in learning_db."""
    PATHS = "learning_paths"
    MODULES = "learning_modules"
    PROGRESS = "user_progress"
    METADATA = "_metadata"


DB_MANIFEST = {
    "db_name": DB_NAME,
    "purpose": "Learning paths, modules and per-user progress",
    "collections": [
        Collections.PATHS,
        Collections.MODULES,
        Collections.PROGRESS,
        Collections.METADATA,
    ],
    "access_level": "standard",
}

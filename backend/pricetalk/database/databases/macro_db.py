"""
Macro database configuration.
Time series of per-currency macro bias (heat) scores.
"""

DB_NAME = "macro_db"


class Collections:
    """Collection names in macro_db."""
    MACRO_BIAS = "macro_bias"
    METADATA = "_metadata"


DB_MANIFEST = {
    "db_name": DB_NAME,
    "purpose": "Currency heat scores and their factor breakdown",
    "collections": [Collections.MACRO_BIAS, Collections.METADATA],
    "access_level": "public",
}

"""
Billing database configuration.
Mirrors Stripe subscriptions and checkout sessions.
"""

DB_NAME = "billing_db"


class Collections:
    """Collection names in billing_db."""
    SUBSCRIPTIONS = "subscriptions"
    PAYMENT_SESSIONS = "payment_sessions"
    METADATA = "_metadata"


DB_MANIFEST = {
    "db_name": DB_NAME,
    "purpose": "Subscription lifecycle and payment sessions",
    "collections": [
        Collections.SUBSCRIPTIONS,
        Collections.PAYMENT_SESSIONS,
        Collections.METADATA,
    ],
    "access_level": "restricted",
}

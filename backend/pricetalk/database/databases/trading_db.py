"""
Trading database configuration.
Stores the trade journal, demo accounts/trades and risk controls.
"""

DB_NAME = "trading_db"


class Collections:
    """Collection names in trading_db."""
    TRADES = "trades"
    DEMO_ACCOUNTS = "demo_accounts"
    DEMO_TRADES = "demo_trades"
    RISK_SETTINGS = "risk_settings"
    TRADE_BLOCKERS = "trade_blockers"
    METADATA = "_metadata"


# Manifest for registry
DB_MANIFEST = {
    "db_name": DB_NAME,
    "purpose": "Trade journal, simulated trading and risk management",
    "collections": [
        Collections.TRADES,
        Collections.DEMO_ACCOUNTS,
        Collections.DEMO_TRADES,
        Collections.RISK_SETTINGS,
        Collections.TRADE_BLOCKERS,
        Collections.METADATA,
    ],
    "access_level": "standard",
}

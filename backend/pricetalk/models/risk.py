"""
Risk management models.
"""
from enum import Enum


class BlockerSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


DEFAULT_RISK_SETTINGS = {
    "max_risk_per_trade": 2.0,
    "max_daily_loss": 5.0,
    "max_weekly_loss": 10.0,
    "max_monthly_loss": 20.0,
    "max_open_trades": 5,
    "max_correlation_exposure": 15.0,
    "trading_enabled": True,
    "auto_close_enabled": False,
    "emergency_stop_enabled": True,
}

# Used when the user has no demo account to measure risk against
REFERENCE_BALANCE = 10000.0

"""
Risk management schemas.
"""
from pydantic import BaseModel, Field, StrictBool


class RiskSettings(BaseModel):
    """Complete set of user risk limits."""
    max_risk_per_trade: float = Field(..., ge=0.1, le=10)
    max_daily_loss: float = Field(..., ge=1, le=50)
    max_weekly_loss: float = Field(..., ge=1, le=50)
    max_monthly_loss: float = Field(..., ge=1, le=50)
    max_open_trades: int = Field(..., ge=1, le=20, strict=True)
    max_correlation_exposure: float = Field(..., ge=5, le=50)
    trading_enabled: StrictBool
    auto_close_enabled: StrictBool
    emergency_stop_enabled: StrictBool


class RiskMetrics(BaseModel):
    current_risk: float
    daily_pnl: float
    weekly_pnl: float
    monthly_pnl: float
    open_trades_count: int
    portfolio_heat: float
    max_drawdown: float
    risk_score: float
    reference_balance: float

"""
Trade journal request/response schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from pricetalk.models.trade import TradeSide, TradeStatus


class TradeCreate(BaseModel):
    """Log a new trade."""
    model_config = ConfigDict(use_enum_values=True)

    instrument: str = Field(..., min_length=1, max_length=20, description="Symbol, e.g. EURUSD")
    side: TradeSide
    entry_price: float = Field(..., gt=0)
    quantity: float = Field(..., gt=0)
    stop_loss: Optional[float] = Field(None, gt=0)
    take_profit: Optional[float] = Field(None, gt=0)
    entry_time: Optional[datetime] = Field(None, description="Defaults to now")
    strategy_tags: list[str] = Field(default_factory=list)
    emotions: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=5000)


class TradeUpdate(BaseModel):
    """Partial update of a journal trade."""
    model_config = ConfigDict(use_enum_values=True)

    exit_price: Optional[float] = Field(None, gt=0)
    exit_time: Optional[datetime] = None
    stop_loss: Optional[float] = Field(None, gt=0)
    take_profit: Optional[float] = Field(None, gt=0)
    strategy_tags: Optional[list[str]] = None
    emotions: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=5000)
    status: Optional[TradeStatus] = None


class TradeResponse(BaseModel):
    id: str
    user_id: str
    instrument: str
    side: str
    entry_price: float
    exit_price: Optional[float] = None
    quantity: float
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    entry_time: datetime
    exit_time: Optional[datetime] = None
    pnl: Optional[float] = None
    status: str
    strategy_tags: list[str] = []
    emotions: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TradeAnalytics(BaseModel):
    total_trades: int
    winning_trades: int
    losing_trades: int
    open_trades: int
    win_rate: float
    total_pnl: float
    avg_pnl: float
    best_trade: float
    worst_trade: float
    timeframe: str

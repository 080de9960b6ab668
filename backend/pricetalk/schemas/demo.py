"""
Demo account and demo trade schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from pricetalk.models.demo import OrderType
from pricetalk.models.trade import TradeSide


class DemoAccountCreate(BaseModel):
    initial_balance: Optional[float] = Field(None, gt=0, le=10_000_000)


class DemoTradeCreate(BaseModel):
    """Order ticket for the simulated account."""
    model_config = ConfigDict(use_enum_values=True)

    instrument: str = Field(..., min_length=1, max_length=20)
    side: TradeSide
    volume: float = Field(..., gt=0, description="Lots")
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    order_type: OrderType = OrderType.MARKET
    limit_price: Optional[float] = Field(None, gt=0)


class DemoAccountResponse(BaseModel):
    id: str
    user_id: str
    initial_balance: float
    balance: float
    equity: float
    margin_used: float
    free_margin: float
    margin_level: float
    total_pnl: float
    trade_count: int = 0
    win_rate: float = 0
    daily_pnl: float = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DemoTradeResponse(BaseModel):
    id: str
    user_id: str
    instrument: str
    side: str
    volume: float
    order_type: str
    limit_price: Optional[float] = None
    open_price: float
    current_price: float
    exit_price: Optional[float] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    margin: float
    swap: float = 0
    commission: float = 0
    pnl: float = 0
    status: str
    created_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None


class CloseTradeResult(BaseModel):
    exit_price: float
    pnl: float

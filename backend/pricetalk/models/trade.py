"""
Trade journal model for trading database.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TradeSide(str, Enum):
    """Trade direction."""
    BUY = "buy"
    SELL = "sell"


class TradeStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    CANCELLED = "cancelled"


def realized_pnl(side: str, entry_price: float, exit_price: float, quantity: float) -> float:
    """P&L of a journal trade closed at exit_price."""
    if side == TradeSide.BUY.value:
        return (exit_price - entry_price) * quantity
    return (entry_price - exit_price) * quantity


class Trade(BaseModel):
    """
    Journal entry for MongoDB trading_db.trades collection.
    """
    id: Optional[str] = Field(None, alias="_id", description="MongoDB ObjectId as string")
    user_id: str = Field(..., description="Owner user ID")
    instrument: str = Field(..., description="Traded symbol, e.g. EURUSD")
    side: TradeSide
    entry_price: float = Field(..., gt=0)
    exit_price: Optional[float] = None
    quantity: float = Field(..., gt=0)
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    entry_time: datetime
    exit_time: Optional[datetime] = None
    pnl: Optional[float] = None
    status: TradeStatus = TradeStatus.OPEN
    strategy_tags: list[str] = Field(default_factory=list)
    emotions: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

"""
Trade journal service: manual trade logging and analytics.
"""
from datetime import timedelta
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from pricetalk.database.databases import trading_db
from pricetalk.database.documents import (
    parse_object_id,
    serialize,
    serialize_many,
    since,
    utcnow,
)
from pricetalk.models.trade import TradeStatus, realized_pnl
from pricetalk.schemas.common import Page, Pagination
from pricetalk.schemas.trading import TradeCreate, TradeUpdate

# Analytics windows; "all" applies no lower bound
TIMEFRAMES = {
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
    "all": None,
}


class JournalService:
    """Service for the user's trade journal."""

    def __init__(self, db: AsyncIOMotorDatabase):
        """Initialize with trading database."""
        self.db = db
        self.trades = db[trading_db.Collections.TRADES]

    # ==================== Trade CRUD ====================

    async def create_trade(self, user_id: str, request: TradeCreate) -> dict:
        """Log a new open trade."""
        now = utcnow()
        trade_doc = {
            "user_id": user_id,
            "instrument": request.instrument.upper(),
            "side": request.side,
            "entry_price": request.entry_price,
            "exit_price": None,
            "quantity": request.quantity,
            "stop_loss": request.stop_loss,
            "take_profit": request.take_profit,
            "entry_time": request.entry_time or now,
            "exit_time": None,
            "pnl": None,
            "status": TradeStatus.OPEN.value,
            "strategy_tags": request.strategy_tags,
            "emotions": request.emotions,
            "notes": request.notes,
            "created_at": now,
            "updated_at": now,
        }
        result = await self.trades.insert_one(trade_doc)
        trade_doc["_id"] = result.inserted_id
        return serialize(trade_doc)

    async def list_trades(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
        instrument: Optional[str] = None,
    ) -> Page[dict]:
        """List the user's trades, newest entry first."""
        query: dict = {"user_id": user_id}
        if status:
            query["status"] = status
        if instrument:
            query["instrument"] = instrument.upper()

        total = await self.trades.count_documents(query)
        cursor = (
            self.trades.find(query)
            .sort("entry_time", DESCENDING)
            .skip((page - 1) * limit)
            .limit(limit)
        )
        docs = await cursor.to_list(length=limit)
        return Page(items=serialize_many(docs), pagination=Pagination.build(page, limit, total))

    async def get_trade(self, trade_id: str, user_id: str) -> Optional[dict]:
        """Get a trade by ID (must belong to user)."""
        oid = parse_object_id(trade_id)
        if oid is None:
            return None
        return serialize(await self.trades.find_one({"_id": oid, "user_id": user_id}))

    async def update_trade(
        self, trade_id: str, user_id: str, request: TradeUpdate
    ) -> Optional[dict]:
        """
        Partially update a trade, recomputing P&L when it is closed with an exit price.

        Raises:
            ValueError: If the update carries no fields
        """
        changes = request.model_dump(exclude_unset=True)
        if not changes:
            raise ValueError("No fields to update")

        oid = parse_object_id(trade_id)
        if oid is None:
            return None
        current = await self.trades.find_one({"_id": oid, "user_id": user_id})
        if not current:
            return None

        status = changes.get("status", current.get("status"))
        exit_price = changes.get("exit_price")
        if status == TradeStatus.CLOSED.value and exit_price is not None:
            changes["pnl"] = realized_pnl(
                current["side"], current["entry_price"], exit_price, current["quantity"]
            )
            changes.setdefault("exit_time", utcnow())

        changes["updated_at"] = utcnow()
        updated = await self.trades.find_one_and_update(
            {"_id": oid, "user_id": user_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        return serialize(updated)

    async def delete_trade(self, trade_id: str, user_id: str) -> bool:
        """Delete a trade. Returns False when it does not exist."""
        oid = parse_object_id(trade_id)
        if oid is None:
            return False
        result = await self.trades.delete_one({"_id": oid, "user_id": user_id})
        return result.deleted_count > 0

    # ==================== Analytics ====================

    async def get_summary(self, user_id: str, timeframe: str = "30d") -> dict:
        """
        Summarize journal performance over a timeframe.

        Args:
            user_id: Owner of the trades
            timeframe: One of 7d, 30d, 90d or all

        Returns:
            Dict with counts, win rate and P&L figures
        """
        query: dict = {"user_id": user_id}
        window = TIMEFRAMES.get(timeframe, TIMEFRAMES["30d"])
        if window is not None:
            query["entry_time"] = {"$gte": since(window)}

        trades = await self.trades.find(query, {"status": 1, "pnl": 1}).to_list(length=None)

        closed_pnls = [
            t["pnl"] for t in trades
            if t.get("status") == TradeStatus.CLOSED.value and t.get("pnl") is not None
        ]
        winning = sum(1 for pnl in closed_pnls if pnl > 0)
        losing = sum(1 for pnl in closed_pnls if pnl < 0)
        decided = winning + losing

        return {
            "total_trades": len(trades),
            "winning_trades": winning,
            "losing_trades": losing,
            "open_trades": sum(1 for t in trades if t.get("status") == TradeStatus.OPEN.value),
            "win_rate": round(winning / decided * 100, 2) if decided else 0.0,
            "total_pnl": float(sum(closed_pnls)),
            "avg_pnl": float(sum(closed_pnls) / len(closed_pnls)) if closed_pnls else 0.0,
            "best_trade": float(max(closed_pnls)) if closed_pnls else 0.0,
            "worst_trade": float(min(closed_pnls)) if closed_pnls else 0.0,
            "timeframe": timeframe,
        }

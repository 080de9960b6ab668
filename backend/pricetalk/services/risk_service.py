"""
Risk management service: limits, exposure metrics and trade blockers.
"""
import logging
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
    start_of_day,
    utcnow,
)
from pricetalk.models.risk import DEFAULT_RISK_SETTINGS, REFERENCE_BALANCE, BlockerSeverity
from pricetalk.models.trade import TradeStatus
from pricetalk.schemas.risk import RiskSettings

logger = logging.getLogger(__name__)

EMERGENCY_STOP_REASON = "Emergency stop activated - all trades closed and trading disabled"


def risk_score(portfolio_heat: float, daily_pnl: float, balance: float, open_trades: int) -> float:
    """Composite 0-100 score of how stretched the account is."""
    score = (
        portfolio_heat * 0.4
        + abs(daily_pnl) / balance * 100 * 0.3
        + open_trades * 5 * 0.3
    )
    return min(100.0, max(0.0, score))


class RiskService:
    """Service for per-user risk controls."""

    def __init__(self, db: AsyncIOMotorDatabase):
        """Initialize with trading database."""
        self.db = db
        self.settings = db[trading_db.Collections.RISK_SETTINGS]
        self.blockers = db[trading_db.Collections.TRADE_BLOCKERS]
        self.trades = db[trading_db.Collections.TRADES]
        self.demo_accounts = db[trading_db.Collections.DEMO_ACCOUNTS]

    # ==================== Settings ====================

    async def get_settings(self, user_id: str) -> dict:
        """Stored limits, or the defaults when the user never saved any."""
        doc = await self.settings.find_one({"user_id": user_id})
        if not doc:
            return dict(DEFAULT_RISK_SETTINGS)
        return {key: doc.get(key, default) for key, default in DEFAULT_RISK_SETTINGS.items()}

    async def update_settings(self, user_id: str, request: RiskSettings) -> dict:
        now = utcnow()
        await self.settings.update_one(
            {"user_id": user_id},
            {
                "$set": {**request.model_dump(), "updated_at": now},
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
        )
        return request.model_dump()

    # ==================== Metrics ====================

    async def get_metrics(self, user_id: str) -> dict:
        """
        Exposure and P&L of the journal relative to the reference balance.

        The reference balance is the demo account balance when the user
        has one, otherwise a fixed 10,000.
        """
        account = await self.demo_accounts.find_one({"user_id": user_id}, {"balance": 1})
        balance = account["balance"] if account and account.get("balance") else REFERENCE_BALANCE

        trades = await self.trades.find(
            {"user_id": user_id},
            {"status": 1, "pnl": 1, "quantity": 1, "entry_price": 1, "created_at": 1},
        ).to_list(length=None)

        open_trades = [t for t in trades if t.get("status") == TradeStatus.OPEN.value]
        exposure = sum(t["quantity"] * t["entry_price"] for t in open_trades)

        def closed_pnl_since(bound) -> float:
            return float(sum(
                t.get("pnl") or 0.0
                for t in trades
                if t.get("status") == TradeStatus.CLOSED.value
                and t.get("created_at") is not None
                and t["created_at"].replace(tzinfo=None) >= bound
            ))

        daily = closed_pnl_since(start_of_day())
        weekly = closed_pnl_since(since(timedelta(days=7)))
        monthly = closed_pnl_since(since(timedelta(days=30)))

        heat = exposure / balance * 100
        monthly_pct = monthly / balance * 100
        return {
            "current_risk": heat,
            "daily_pnl": daily / balance * 100,
            "weekly_pnl": weekly / balance * 100,
            "monthly_pnl": monthly_pct,
            "open_trades_count": len(open_trades),
            "portfolio_heat": heat,
            "max_drawdown": min(0.0, monthly_pct),
            "risk_score": risk_score(heat, daily, balance, len(open_trades)),
            "reference_balance": balance,
        }

    # ==================== Blockers ====================

    async def list_blockers(self, user_id: str) -> list[dict]:
        docs = await self.blockers.find({"user_id": user_id}).sort(
            "triggered_at", DESCENDING
        ).to_list(length=None)
        return serialize_many(docs)

    async def resolve_blocker(self, blocker_id: str, user_id: str) -> Optional[dict]:
        oid = parse_object_id(blocker_id)
        if oid is None:
            return None
        doc = await self.blockers.find_one_and_update(
            {"_id": oid, "user_id": user_id},
            {"$set": {"is_active": False, "resolved_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return serialize(doc)

    async def emergency_stop(self, user_id: str) -> dict:
        """
        Flatten every open journal trade, disable trading and raise a critical blocker.

        Returns:
            Dict with the number of trades closed and the blocker created
        """
        now = utcnow()
        open_trades = await self.trades.find(
            {"user_id": user_id, "status": TradeStatus.OPEN.value}, {"entry_price": 1}
        ).to_list(length=None)
        for trade in open_trades:
            await self.trades.update_one(
                {"_id": trade["_id"], "status": TradeStatus.OPEN.value},
                {"$set": {
                    "status": TradeStatus.CLOSED.value,
                    "exit_price": trade["entry_price"],
                    "exit_time": now,
                    "pnl": 0.0,
                    "updated_at": now,
                }},
            )

        await self.settings.update_one(
            {"user_id": user_id},
            {
                "$set": {"trading_enabled": False, "updated_at": now},
                "$setOnInsert": {
                    **{k: v for k, v in DEFAULT_RISK_SETTINGS.items() if k != "trading_enabled"},
                    "created_at": now,
                },
            },
            upsert=True,
        )

        blocker = {
            "user_id": user_id,
            "reason": EMERGENCY_STOP_REASON,
            "severity": BlockerSeverity.CRITICAL.value,
            "is_active": True,
            "triggered_at": now,
            "resolved_at": None,
        }
        result = await self.blockers.insert_one(blocker)
        blocker["_id"] = result.inserted_id

        logger.warning("Emergency stop for user %s closed %d trades", user_id, len(open_trades))
        return {"closed_trades": len(open_trades), "blocker": serialize(blocker)}

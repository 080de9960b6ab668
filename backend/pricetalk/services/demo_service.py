"""
Demo trading service: a simulated FX margin account per user.

Balance mutations are single conditional updates so that concurrent
requests can never overdraw free margin or credit a close twice.
"""
import logging
import random
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from pricetalk.config import get_settings
from pricetalk.database.databases import trading_db
from pricetalk.database.documents import (
    parse_object_id,
    serialize,
    serialize_many,
    start_of_day,
    utcnow,
)
from pricetalk.models.demo import DemoTradeStatus
from pricetalk.models.risk import DEFAULT_RISK_SETTINGS
from pricetalk.schemas.common import Page, Pagination
from pricetalk.schemas.demo import DemoTradeCreate
from pricetalk.services import pricing

logger = logging.getLogger(__name__)


class DemoService:
    """Service for demo accounts and simulated trades."""

    def __init__(self, db: AsyncIOMotorDatabase, rng: Optional[random.Random] = None):
        """Initialize with trading database and an optional price randomizer."""
        self.db = db
        self.accounts = db[trading_db.Collections.DEMO_ACCOUNTS]
        self.trades = db[trading_db.Collections.DEMO_TRADES]
        self.risk_settings = db[trading_db.Collections.RISK_SETTINGS]
        self.rng = rng
        self.settings = get_settings()

    # ==================== Account ====================

    async def get_account(self, user_id: str) -> Optional[dict]:
        """Account with closed-trade statistics, or None if the user has none."""
        account = await self.accounts.find_one({"user_id": user_id})
        if not account:
            return None

        closed = await self.trades.find(
            {"user_id": user_id, "status": DemoTradeStatus.CLOSED.value},
            {"pnl": 1, "closed_at": 1},
        ).to_list(length=None)

        today = start_of_day()
        winners = sum(1 for t in closed if (t.get("pnl") or 0) > 0)
        daily_pnl = sum(
            t.get("pnl") or 0.0
            for t in closed
            if t.get("closed_at") is not None and t["closed_at"].replace(tzinfo=None) >= today
        )

        data = serialize(account)
        data["trade_count"] = len(closed)
        data["win_rate"] = winners / len(closed) * 100 if closed else 0.0
        data["daily_pnl"] = float(daily_pnl)
        return data

    async def create_account(self, user_id: str, initial_balance: Optional[float] = None) -> dict:
        """
        Open a demo account.

        Raises:
            ValueError: If the user already has one
        """
        balance = initial_balance or self.settings.demo_default_balance
        if await self.accounts.find_one({"user_id": user_id}):
            raise ValueError("Demo account already exists")

        now = utcnow()
        account = {
            "user_id": user_id,
            "initial_balance": balance,
            "balance": balance,
            "equity": balance,
            "margin_used": 0.0,
            "free_margin": balance,
            "margin_level": 0.0,
            "total_pnl": 0.0,
            "created_at": now,
            "updated_at": now,
        }
        try:
            result = await self.accounts.insert_one(account)
        except DuplicateKeyError:
            raise ValueError("Demo account already exists")

        account["_id"] = result.inserted_id
        logger.info("Demo account opened for user %s with %.2f", user_id, balance)

        data = serialize(account)
        data.update({"trade_count": 0, "win_rate": 0.0, "daily_pnl": 0.0})
        return data

    async def reset_account(self, user_id: str) -> bool:
        """
        Flatten open trades at their open price and restore the initial balance.

        Returns:
            False when the user has no demo account
        """
        account = await self.accounts.find_one({"user_id": user_id})
        if not account:
            return False

        now = utcnow()
        open_trades = await self.trades.find(
            {"user_id": user_id, "status": DemoTradeStatus.OPEN.value},
            {"open_price": 1},
        ).to_list(length=None)
        for trade in open_trades:
            await self.trades.update_one(
                {"_id": trade["_id"], "status": DemoTradeStatus.OPEN.value},
                {"$set": {
                    "status": DemoTradeStatus.CLOSED.value,
                    "exit_price": trade["open_price"],
                    "current_price": trade["open_price"],
                    "pnl": 0.0,
                    "closed_at": now,
                }},
            )

        initial = account.get("initial_balance", self.settings.demo_default_balance)
        await self.accounts.update_one(
            {"_id": account["_id"]},
            {"$set": {
                "balance": initial,
                "equity": initial,
                "margin_used": 0.0,
                "free_margin": initial,
                "margin_level": 0.0,
                "total_pnl": 0.0,
                "updated_at": now,
            }},
        )
        logger.info("Demo account reset for user %s (%d trades flattened)", user_id, len(open_trades))
        return True

    # ==================== Trades ====================

    async def list_trades(self, user_id: str, page: int = 1, limit: int = 20) -> Page[dict]:
        """List the user's demo trades, newest first."""
        query = {"user_id": user_id}
        total = await self.trades.count_documents(query)
        cursor = (
            self.trades.find(query)
            .sort("created_at", DESCENDING)
            .skip((page - 1) * limit)
            .limit(limit)
        )
        docs = await cursor.to_list(length=limit)
        return Page(items=serialize_many(docs), pagination=Pagination.build(page, limit, total))

    async def place_trade(self, user_id: str, request: DemoTradeCreate) -> Optional[dict]:
        """
        Open a simulated position, reserving its margin.

        Returns:
            The created trade, or None if the user has no demo account

        Raises:
            ValueError: If risk settings block trading or margin is insufficient
        """
        account = await self.accounts.find_one({"user_id": user_id}, {"_id": 1})
        if not account:
            return None

        await self._check_risk_limits(user_id)

        instrument = request.instrument.upper()
        price = pricing.open_price(instrument, request.side, self.rng)
        margin = pricing.required_margin(request.volume, price)

        # Reserve margin only if enough is free
        reserved = await self.accounts.find_one_and_update(
            {"_id": account["_id"], "free_margin": {"$gte": margin}},
            {
                "$inc": {"margin_used": margin, "free_margin": -margin},
                "$set": {"updated_at": utcnow()},
            },
            return_document=ReturnDocument.AFTER,
        )
        if reserved is None:
            raise ValueError("Insufficient margin")

        now = utcnow()
        trade = {
            "user_id": user_id,
            "instrument": instrument,
            "side": request.side,
            "volume": request.volume,
            "order_type": request.order_type,
            "limit_price": request.limit_price,
            "open_price": price,
            "current_price": price,
            "exit_price": None,
            "stop_loss": request.stop_loss,
            "take_profit": request.take_profit,
            "margin": margin,
            "swap": 0.0,
            "commission": 0.0,
            "pnl": 0.0,
            "status": DemoTradeStatus.OPEN.value,
            "created_at": now,
            "closed_at": None,
        }
        try:
            result = await self.trades.insert_one(trade)
        except PyMongoError:
            await self._adjust_account(account["_id"], margin_delta=-margin)
            logger.exception("Demo trade insert failed, released %.2f margin", margin)
            raise

        await self._refresh_margin_level(reserved)
        trade["_id"] = result.inserted_id
        logger.info(
            "Demo %s %s %.2f lots @ %.5f for user %s",
            request.side, instrument, request.volume, price, user_id,
        )
        return serialize(trade)

    async def close_trade(self, trade_id: str, user_id: str) -> Optional[dict]:
        """
        Close an open position at the current price and settle it.

        Returns:
            Dict with exit_price and pnl, or None if the trade is not an open trade of the user
        """
        oid = parse_object_id(trade_id)
        if oid is None:
            return None

        trade = await self.trades.find_one(
            {"_id": oid, "user_id": user_id, "status": DemoTradeStatus.OPEN.value}
        )
        if not trade:
            return None

        exit_price = pricing.close_price(trade["instrument"], trade["side"], self.rng)
        pnl = pricing.position_pnl(
            trade["instrument"],
            trade["side"],
            trade["volume"],
            trade["open_price"],
            exit_price,
            commission=trade.get("commission", 0.0),
            swap=trade.get("swap", 0.0),
        )

        # Claim the trade; a concurrent close loses here
        claimed = await self.trades.find_one_and_update(
            {"_id": oid, "status": DemoTradeStatus.OPEN.value},
            {"$set": {
                "status": DemoTradeStatus.CLOSED.value,
                "exit_price": exit_price,
                "current_price": exit_price,
                "pnl": pnl,
                "closed_at": utcnow(),
            }},
        )
        if claimed is None:
            return None

        released = pricing.required_margin(trade["volume"], trade["open_price"])
        try:
            account = await self._adjust_account(
                {"user_id": user_id}, margin_delta=-released, pnl=pnl
            )
        except PyMongoError:
            await self.trades.update_one(
                {"_id": oid},
                {"$set": {
                    "status": DemoTradeStatus.OPEN.value,
                    "exit_price": None,
                    "current_price": trade["open_price"],
                    "pnl": 0.0,
                    "closed_at": None,
                }},
            )
            logger.exception("Settlement of demo trade %s failed, trade reopened", trade_id)
            raise

        if account is not None:
            await self._refresh_margin_level(account)

        logger.info("Closed demo trade %s @ %.5f pnl=%.2f", trade_id, exit_price, pnl)
        return {"exit_price": exit_price, "pnl": pnl}

    # ==================== Helpers ====================

    async def _check_risk_limits(self, user_id: str) -> None:
        stored = await self.risk_settings.find_one({"user_id": user_id}) or {}
        limits = {**DEFAULT_RISK_SETTINGS, **stored}

        if not limits["trading_enabled"]:
            raise ValueError("Trading is disabled by risk settings")

        open_count = await self.trades.count_documents(
            {"user_id": user_id, "status": DemoTradeStatus.OPEN.value}
        )
        if open_count >= limits["max_open_trades"]:
            raise ValueError("Maximum open trades reached")

    async def _adjust_account(self, selector, margin_delta: float = 0.0, pnl: float = 0.0):
        """Apply a margin/P&L delta atomically and return the updated account."""
        if not isinstance(selector, dict):
            selector = {"_id": selector}
        return await self.accounts.find_one_and_update(
            selector,
            {
                "$inc": {
                    "balance": pnl,
                    "equity": pnl,
                    "total_pnl": pnl,
                    "margin_used": margin_delta,
                    "free_margin": -margin_delta,
                },
                "$set": {"updated_at": utcnow()},
            },
            return_document=ReturnDocument.AFTER,
        )

    async def _refresh_margin_level(self, account: dict) -> None:
        level = pricing.margin_level(account["equity"], account["margin_used"])
        await self.accounts.update_one(
            {"_id": account["_id"]},
            {"$set": {"margin_level": level}},
        )

"""
User profile and statistics service.
"""
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient

from pricetalk.database.databases import auth_db, community_db, learning_db, trading_db
from pricetalk.database.documents import parse_object_id, utcnow
from pricetalk.models.learning import ProgressStatus
from pricetalk.models.trade import TradeStatus
from pricetalk.models.user import UserProfile
from pricetalk.schemas.user import ProfileUpdate


class UserService:
    """Profile reads/writes plus cross-domain statistics for one user."""

    def __init__(self, client: AsyncIOMotorClient):
        self.users = client[auth_db.DB_NAME][auth_db.Collections.USERS]
        self.trades = client[trading_db.DB_NAME][trading_db.Collections.TRADES]
        self.progress = client[learning_db.DB_NAME][learning_db.Collections.PROGRESS]
        self.participants = client[community_db.DB_NAME][
            community_db.Collections.CHALLENGE_PARTICIPANTS
        ]

    # ==================== Profile ====================

    async def get_profile(self, user_id: str) -> Optional[dict]:
        """Return the user's identity fields and profile, or None."""
        user_doc = await self.users.find_one({"_id": parse_object_id(user_id)})
        if not user_doc:
            return None

        profile = UserProfile(**(user_doc.get("profile") or {})).model_dump()
        return {
            "id": str(user_doc["_id"]),
            "email": user_doc["email"],
            "username": user_doc["username"],
            "subscription_tier": user_doc.get("subscription_tier", "free"),
            "xp": user_doc.get("xp", 0),
            "level": user_doc.get("level", 1),
            "profile": profile,
        }

    async def update_profile(self, user_id: str, update: ProfileUpdate) -> Optional[dict]:
        """
        Apply a partial profile update.

        Raises:
            ValueError: If the update carries no fields
        """
        fields = update.model_dump(exclude_unset=True, mode="json")
        if not fields:
            raise ValueError("No fields to update")

        changes = {f"profile.{key}": value for key, value in fields.items()}
        changes["updated_at"] = utcnow()

        result = await self.users.update_one(
            {"_id": parse_object_id(user_id)},
            {"$set": changes},
        )
        if result.matched_count == 0:
            return None
        return await self.get_profile(user_id)

    # ==================== Statistics ====================

    async def get_stats(self, user_id: str) -> dict:
        """Trading, learning and challenge statistics for the user."""
        trades = await self.trades.find(
            {"user_id": user_id}, {"status": 1, "pnl": 1}
        ).to_list(length=None)
        closed_pnls = [
            t.get("pnl") or 0.0 for t in trades if t.get("status") == TradeStatus.CLOSED.value
        ]
        winning = sum(1 for pnl in closed_pnls if pnl > 0)
        losing = sum(1 for pnl in closed_pnls if pnl < 0)
        total_trades = len(trades)
        win_rate = winning / total_trades * 100 if total_trades else 0.0

        progress = await self.progress.find(
            {"user_id": user_id}, {"status": 1}
        ).to_list(length=None)
        completed_modules = sum(
            1 for p in progress if p.get("status") == ProgressStatus.COMPLETED.value
        )

        participations = await self.participants.find(
            {"user_id": user_id}, {"status": 1, "rank": 1}
        ).to_list(length=None)
        ranks = [p["rank"] for p in participations if p.get("rank") is not None]

        return {
            "trading": {
                "total_trades": total_trades,
                "winning_trades": winning,
                "losing_trades": losing,
                "win_rate": round(win_rate, 2),
                "total_pnl": float(sum(closed_pnls)),
                "avg_pnl": float(sum(closed_pnls) / len(closed_pnls)) if closed_pnls else 0.0,
            },
            "learning": {
                "total_modules": len(progress),
                "completed_modules": completed_modules,
                "completion_rate": round(completed_modules / len(progress) * 100) if progress else 0,
            },
            "challenges": {
                "total_challenges": len(participations),
                "completed_challenges": sum(
                    1 for p in participations if p.get("status") == "completed"
                ),
                "avg_rank": round(sum(ranks) / len(ranks)) if ranks else None,
            },
        }

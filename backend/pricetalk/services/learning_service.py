"""
Learning service: paths, modules and per-user progress with XP rewards.
"""
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from pricetalk.database.databases import auth_db, learning_db
from pricetalk.database.documents import parse_object_id, serialize, utcnow
from pricetalk.models.learning import ProgressStatus
from pricetalk.models.user import level_for_xp
from pricetalk.schemas.learning import ProgressUpdate

logger = logging.getLogger(__name__)

COMPLETED = ProgressStatus.COMPLETED.value


class LearningService:
    """Service for learning content and progress tracking."""

    def __init__(self, client: AsyncIOMotorClient):
        db = client[learning_db.DB_NAME]
        self.paths = db[learning_db.Collections.PATHS]
        self.modules = db[learning_db.Collections.MODULES]
        self.progress = db[learning_db.Collections.PROGRESS]
        self.users = client[auth_db.DB_NAME][auth_db.Collections.USERS]

    # ==================== Content ====================

    async def list_paths(self, user_id: str, user_level: int) -> list[dict]:
        """Paths unlocked at the user's level with module and completion counts."""
        paths = await self.paths.find(
            {"level_requirement": {"$lte": user_level}}
        ).sort([("level_requirement", ASCENDING), ("created_at", ASCENDING)]).to_list(length=None)

        completed_ids = {
            p["module_id"]
            for p in await self.progress.find(
                {"user_id": user_id, "status": COMPLETED}, {"module_id": 1}
            ).to_list(length=None)
        }

        results = []
        for path in paths:
            path_id = str(path["_id"])
            module_ids = [
                str(m["_id"])
                for m in await self.modules.find({"path_id": path_id}, {"_id": 1}).to_list(length=None)
            ]
            data = serialize(path)
            data["module_count"] = len(module_ids)
            data["completed_modules"] = sum(1 for m in module_ids if m in completed_ids)
            results.append(data)
        return results

    async def list_modules(self, user_id: str, path_id: str) -> list[dict]:
        """Modules of a path in order, each with the user's progress."""
        modules = await self.modules.find({"path_id": path_id}).sort(
            "order_index", ASCENDING
        ).to_list(length=None)

        progress_by_module = {
            p["module_id"]: p
            for p in await self.progress.find(
                {"user_id": user_id, "module_id": {"$in": [str(m["_id"]) for m in modules]}}
            ).to_list(length=None)
        }

        results = []
        for module in modules:
            data = serialize(module)
            progress = serialize(progress_by_module.get(data["id"])) or {}
            data["user_status"] = progress.get("status")
            data["score"] = progress.get("score")
            data["attempts"] = progress.get("attempts")
            data["completed_at"] = progress.get("completed_at")
            results.append(data)
        return results

    async def list_progress(self, user_id: str) -> list[dict]:
        """User's progress rows, most recently updated first."""
        rows = await self.progress.find({"user_id": user_id}).sort(
            "updated_at", DESCENDING
        ).to_list(length=None)

        results = []
        for row in rows:
            module = await self.modules.find_one({"_id": parse_object_id(row["module_id"])})
            path = None
            if module:
                path = await self.paths.find_one({"_id": parse_object_id(module["path_id"])})
            data = serialize(row)
            data["module_title"] = module["title"] if module else None
            data["xp_reward"] = module.get("xp_reward", 0) if module else 0
            data["path_title"] = path["title"] if path else None
            results.append(data)
        return results

    # ==================== Progress ====================

    async def update_progress(
        self, user_id: str, module_id: str, request: ProgressUpdate
    ) -> Optional[dict]:
        """
        Record progress on a module, awarding XP on the first completion.

        Returns:
            The progress row, or None if the module does not exist
        """
        module = await self.modules.find_one({"_id": parse_object_id(module_id)})
        if not module:
            return None

        key = {"user_id": user_id, "module_id": module_id}
        now = utcnow()

        existing = await self.progress.find_one(key, {"status": 1})
        if existing and existing.get("status") == COMPLETED:
            return await self._touch_completed(key, request.score, now)

        changes = {"status": request.status, "updated_at": now}
        if request.score is not None:
            changes["score"] = request.score
        if request.status == COMPLETED:
            changes["completed_at"] = now

        try:
            result = await self.progress.update_one(
                {**key, "status": {"$ne": COMPLETED}},
                {
                    "$set": changes,
                    "$inc": {"attempts": 1},
                    "$setOnInsert": {"created_at": now},
                },
                upsert=True,
            )
        except DuplicateKeyError:
            # Completed concurrently; keep the completed row
            return await self._touch_completed(key, request.score, now)

        transitioned = result.modified_count > 0 or result.upserted_id is not None
        if request.status == COMPLETED and transitioned:
            await self._award_xp(user_id, module.get("xp_reward", 0))

        return serialize(await self.progress.find_one(key))

    async def _touch_completed(self, key: dict, score: Optional[float], now) -> dict:
        changes = {"updated_at": now}
        if score is not None:
            changes["score"] = score
        doc = await self.progress.find_one_and_update(
            key,
            {"$set": changes, "$inc": {"attempts": 1}},
            return_document=ReturnDocument.AFTER,
        )
        return serialize(doc)

    async def _award_xp(self, user_id: str, xp_reward: int) -> None:
        if not xp_reward:
            return
        user = await self.users.find_one_and_update(
            {"_id": parse_object_id(user_id)},
            {"$inc": {"xp": xp_reward}},
            return_document=ReturnDocument.AFTER,
        )
        if user is None:
            return
        await self.users.update_one(
            {"_id": user["_id"]},
            {"$set": {"level": level_for_xp(user["xp"]), "updated_at": utcnow()}},
        )
        logger.info("Awarded %d XP to user %s (total %d)", xp_reward, user_id, user["xp"])

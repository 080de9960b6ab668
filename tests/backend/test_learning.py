"""
Tests for learning paths, modules and progress with XP rewards.
"""

from datetime import datetime, timezone

import pytest
import pytest_asyncio

from pricetalk.database.databases import auth_db, learning_db
from pricetalk.models.user import level_for_xp
from pricetalk.schemas.learning import ProgressUpdate
from pricetalk.services.learning_service import LearningService


async def seed_content(client) -> dict:
    """Two paths (levels 1 and 3) and two modules on the first path."""
    db = client[learning_db.DB_NAME]
    now = datetime.now(timezone.utc)
    basics = await db[learning_db.Collections.PATHS].insert_one(
        {"title": "FX Basics", "level_requirement": 1, "created_at": now}
    )
    advanced = await db[learning_db.Collections.PATHS].insert_one(
        {"title": "Order Flow", "level_requirement": 3, "created_at": now}
    )
    path_id = str(basics.inserted_id)
    first = await db[learning_db.Collections.MODULES].insert_one(
        {"path_id": path_id, "title": "What is a pip", "order_index": 1, "xp_reward": 600}
    )
    second = await db[learning_db.Collections.MODULES].insert_one(
        {"path_id": path_id, "title": "Leverage", "order_index": 2, "xp_reward": 500}
    )
    return {
        "path_id": path_id,
        "advanced_path_id": str(advanced.inserted_id),
        "first_module": str(first.inserted_id),
        "second_module": str(second.inserted_id),
    }


@pytest_asyncio.fixture
async def learner(indexed_mongo_client):
    """A stored user and the seeded content."""
    result = await indexed_mongo_client[auth_db.DB_NAME][auth_db.Collections.USERS].insert_one({
        "email": "learner@example.com",
        "username": "learner",
        "xp": 0,
        "level": 1,
    })
    content = await seed_content(indexed_mongo_client)
    return {"user_id": str(result.inserted_id), **content}


async def stored_user(client, user_id: str) -> dict:
    from bson import ObjectId
    return await client[auth_db.DB_NAME][auth_db.Collections.USERS].find_one(
        {"_id": ObjectId(user_id)}
    )


class TestLevels:
    """Tests for level_for_xp."""

    @pytest.mark.parametrize("xp,level", [(0, 1), (999, 1), (1000, 2), (2500, 3)])
    def test_level_for_xp(self, xp, level):
        assert level_for_xp(xp) == level


class TestLearningService:
    """Tests for LearningService progress tracking."""

    @pytest.mark.asyncio
    async def test_paths_are_gated_by_level(self, indexed_mongo_client, learner):
        service = LearningService(indexed_mongo_client)

        paths = await service.list_paths(learner["user_id"], user_level=1)

        assert [p["title"] for p in paths] == ["FX Basics"]
        assert paths[0]["module_count"] == 2
        assert paths[0]["completed_modules"] == 0

        assert len(await service.list_paths(learner["user_id"], user_level=3)) == 2

    @pytest.mark.asyncio
    async def test_completion_awards_xp_once(self, indexed_mongo_client, learner):
        service = LearningService(indexed_mongo_client)
        user_id, module_id = learner["user_id"], learner["first_module"]
        completed = ProgressUpdate(status="completed", score=90)

        first = await service.update_progress(user_id, module_id, completed)
        second = await service.update_progress(user_id, module_id, completed)

        assert first["status"] == "completed"
        assert second["attempts"] == 2
        user = await stored_user(indexed_mongo_client, user_id)
        assert user["xp"] == 600
        assert user["level"] == 1

    @pytest.mark.asyncio
    async def test_completed_module_never_regresses(self, indexed_mongo_client, learner):
        service = LearningService(indexed_mongo_client)
        user_id, module_id = learner["user_id"], learner["first_module"]
        await service.update_progress(user_id, module_id, ProgressUpdate(status="completed"))

        row = await service.update_progress(
            user_id, module_id, ProgressUpdate(status="in_progress", score=40)
        )

        assert row["status"] == "completed"
        assert row["score"] == 40

    @pytest.mark.asyncio
    async def test_in_progress_then_completed_awards_xp(self, indexed_mongo_client, learner):
        service = LearningService(indexed_mongo_client)
        user_id = learner["user_id"]
        await service.update_progress(
            user_id, learner["first_module"], ProgressUpdate(status="in_progress")
        )
        await service.update_progress(
            user_id, learner["first_module"], ProgressUpdate(status="completed")
        )
        await service.update_progress(
            user_id, learner["second_module"], ProgressUpdate(status="completed")
        )

        user = await stored_user(indexed_mongo_client, user_id)
        assert user["xp"] == 1100
        assert user["level"] == 2

        modules = await service.list_modules(user_id, learner["path_id"])
        assert [m["title"] for m in modules] == ["What is a pip", "Leverage"]
        assert [m["user_status"] for m in modules] == ["completed", "completed"]

        progress = await service.list_progress(user_id)
        assert {p["path_title"] for p in progress} == {"FX Basics"}

    @pytest.mark.asyncio
    async def test_unknown_module_returns_none(self, indexed_mongo_client, learner):
        service = LearningService(indexed_mongo_client)

        result = await service.update_progress(
            learner["user_id"], "507f1f77bcf86cd799439099", ProgressUpdate(status="completed")
        )

        assert result is None


class TestLearningRoutes:
    """Tests for /api/learning."""

    def test_progress_route_awards_xp(self, client, auth_headers, use_mock_mongo):
        content = client.portal.call(seed_content, use_mock_mongo)

        response = client.post(
            f"/api/learning/modules/{content['first_module']}/progress",
            json={"status": "completed", "score": 100},
            headers=auth_headers,
        )

        assert response.status_code == 200
        me = client.get("/api/auth/me", headers=auth_headers).json()["data"]
        assert me["xp"] == 600

        paths = client.get("/api/learning/paths", headers=auth_headers).json()["data"]
        assert paths[0]["completed_modules"] == 1

    def test_unknown_module_returns_404(self, client, auth_headers, assert_error_response):
        response = client.post(
            "/api/learning/modules/507f1f77bcf86cd799439099/progress",
            json={"status": "in_progress"},
            headers=auth_headers,
        )

        assert_error_response(response, 404, "Module not found")

    def test_score_out_of_range_is_rejected(self, client, auth_headers, assert_error_response):
        response = client.post(
            "/api/learning/modules/507f1f77bcf86cd799439099/progress",
            json={"status": "completed", "score": 120},
            headers=auth_headers,
        )

        assert_error_response(response, 400, "Validation error")

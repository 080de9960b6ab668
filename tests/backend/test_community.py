"""
Tests for community challenges, room chat and the forum.
"""

from datetime import datetime, timedelta, timezone

import pytest

from pricetalk.database.databases import community_db
from pricetalk.services.community_service import _rank_sort_key


async def seed_challenge(client, status: str = "active", max_participants=None) -> str:
    challenges = client[community_db.DB_NAME][community_db.Collections.CHALLENGES]
    now = datetime.now(timezone.utc)
    result = await challenges.insert_one({
        "title": "Weekly pips race",
        "description": "Most pips wins",
        "status": status,
        "max_participants": max_participants,
        "start_date": now - timedelta(days=1),
        "end_date": now + timedelta(days=6),
    })
    return str(result.inserted_id)


class TestLeaderboardOrder:
    """Ranked rows first by rank, then by score; unranked rows last."""

    def test_rank_sort_key(self):
        rows = [
            {"rank": None, "final_score": 10},
            {"rank": 2, "final_score": 50},
            {"rank": 1, "final_score": 20},
            {"rank": None, "final_score": None},
            {"rank": None, "final_score": 30},
        ]

        rows.sort(key=_rank_sort_key)

        assert [(r["rank"], r["final_score"]) for r in rows] == [
            (1, 20), (2, 50), (None, 30), (None, 10), (None, None),
        ]


class TestChallenges:
    """Tests for /api/community/challenges."""

    def test_join_active_challenge(self, client, auth_headers, use_mock_mongo):
        challenge_id = client.portal.call(seed_challenge, use_mock_mongo)

        response = client.post(
            f"/api/community/challenges/{challenge_id}/join", headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["data"]["challenge_id"] == challenge_id

        listing = client.get("/api/community/challenges", headers=auth_headers).json()["data"]
        assert listing[0]["participant_count"] == 1

        board = client.get(
            f"/api/community/challenges/{challenge_id}/leaderboard", headers=auth_headers
        ).json()["data"]
        assert board[0]["username"] == "trader"

    def test_join_twice_returns_400(self, client, auth_headers, use_mock_mongo, assert_error_response):
        challenge_id = client.portal.call(seed_challenge, use_mock_mongo)
        client.post(f"/api/community/challenges/{challenge_id}/join", headers=auth_headers)

        response = client.post(
            f"/api/community/challenges/{challenge_id}/join", headers=auth_headers
        )

        assert_error_response(response, 400, "Already joined")

    def test_full_challenge_returns_400(
        self, client, auth_headers, other_auth_headers, use_mock_mongo, assert_error_response
    ):
        challenge_id = client.portal.call(seed_challenge, use_mock_mongo, "active", 1)
        client.post(f"/api/community/challenges/{challenge_id}/join", headers=auth_headers)

        response = client.post(
            f"/api/community/challenges/{challenge_id}/join", headers=other_auth_headers
        )

        assert_error_response(response, 400, "Challenge is full")

    def test_upcoming_challenge_cannot_be_joined(
        self, client, auth_headers, use_mock_mongo, assert_error_response
    ):
        challenge_id = client.portal.call(seed_challenge, use_mock_mongo, "upcoming")

        response = client.post(
            f"/api/community/challenges/{challenge_id}/join", headers=auth_headers
        )

        assert_error_response(response, 404, "not active")

    def test_completed_challenges_are_not_listed(self, client, auth_headers, use_mock_mongo):
        client.portal.call(seed_challenge, use_mock_mongo, "completed")

        listing = client.get("/api/community/challenges", headers=auth_headers).json()["data"]

        assert listing == []


class TestChat:
    """Tests for /api/community/chat/{room}."""

    def test_post_and_read_messages_in_order(self, client, auth_headers):
        for content in ("first", "  second  "):
            response = client.post(
                "/api/community/chat/general", json={"content": content}, headers=auth_headers
            )
            assert response.status_code == 201

        history = client.get("/api/community/chat/general", headers=auth_headers).json()["data"]

        assert [m["content"] for m in history] == ["first", "second"]
        assert history[0]["username"] == "trader"
        assert history[0]["level"] == 1

    def test_rooms_are_separate(self, client, auth_headers):
        client.post("/api/community/chat/general", json={"content": "hi"}, headers=auth_headers)

        other = client.get("/api/community/chat/eurusd", headers=auth_headers).json()["data"]

        assert other == []

    @pytest.mark.parametrize("body,error", [
        ({}, "required"),
        ({"content": "   "}, "required"),
        ({"content": "x" * 501}, "too long"),
    ])
    def test_invalid_messages_return_400(
        self, client, auth_headers, assert_error_response, body, error
    ):
        response = client.post("/api/community/chat/general", json=body, headers=auth_headers)

        assert_error_response(response, 400, error)


class TestForum:
    """Tests for /api/forum."""

    def create_post(self, client, headers, **overrides) -> dict:
        body = {
            "title": "How do you size positions?",
            "content": "Looking for a rule of thumb for lot sizing.",
            "category": "risk",
            "tags": ["sizing"],
        }
        body.update(overrides)
        response = client.post("/api/forum/posts", json=body, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    def test_post_reply_and_view(self, client, auth_headers, other_auth_headers):
        post = self.create_post(client, auth_headers)

        reply = client.post(
            f"/api/forum/posts/{post['id']}/replies",
            json={"content": "Risk 1% per trade."},
            headers=other_auth_headers,
        )
        assert reply.status_code == 201

        detail = client.get(f"/api/forum/posts/{post['id']}", headers=auth_headers).json()["data"]
        assert detail["post"]["view_count"] == 1
        assert detail["post"]["reply_count"] == 1
        assert detail["post"]["username"] == "trader"
        assert [r["username"] for r in detail["replies"]] == ["othertrader"]

    def test_votes(self, client, auth_headers, assert_error_response):
        post = self.create_post(client, auth_headers)

        client.post(f"/api/forum/posts/{post['id']}/vote", json={"type": "up"}, headers=auth_headers)
        response = client.post(
            f"/api/forum/posts/{post['id']}/vote", json={"type": "down"}, headers=auth_headers
        )
        assert response.json()["data"] == {"upvotes": 1, "downvotes": 1}

        assert_error_response(
            client.post(
                f"/api/forum/posts/{post['id']}/vote", json={"type": "sideways"},
                headers=auth_headers,
            ),
            400, "Invalid vote type",
        )

    def test_search_and_category_filter(self, client, auth_headers):
        self.create_post(client, auth_headers)
        self.create_post(
            client, auth_headers,
            title="Best sessions for GBP (London?)",
            content="When is GBPUSD most active?",
            category="sessions",
        )

        found = client.get("/api/forum/posts?search=(london", headers=auth_headers).json()
        by_category = client.get("/api/forum/posts?category=risk", headers=auth_headers).json()

        assert [p["category"] for p in found["data"]] == ["sessions"]
        assert by_category["pagination"]["total"] == 1

        categories = client.get("/api/forum/categories", headers=auth_headers).json()["data"]
        assert {c["category"]: c["post_count"] for c in categories} == {"risk": 1, "sessions": 1}

    def test_missing_post_returns_404(self, client, auth_headers, assert_error_response):
        assert_error_response(
            client.get("/api/forum/posts/507f1f77bcf86cd799439099", headers=auth_headers),
            404, "Post not found",
        )
        assert_error_response(
            client.post(
                "/api/forum/posts/507f1f77bcf86cd799439099/replies",
                json={"content": "hello"}, headers=auth_headers,
            ),
            404, "Post not found",
        )

"""
Community service: trading challenges and room chat.
"""
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError

from pricetalk.database.databases import auth_db, community_db
from pricetalk.database.documents import parse_object_id, serialize, serialize_many, utcnow
from pricetalk.models.community import MAX_CHAT_MESSAGE_LENGTH, ChallengeStatus

logger = logging.getLogger(__name__)

ALREADY_JOINED_MESSAGE = "Already joined this challenge"


async def attach_authors(users: AsyncIOMotorCollection, rows: list[dict]) -> list[dict]:
    """Add `username` and `level` of each row's `user_id` author."""
    ids = {parse_object_id(r["user_id"]) for r in rows if r.get("user_id")}
    ids.discard(None)
    authors = {
        str(u["_id"]): u
        for u in await users.find(
            {"_id": {"$in": list(ids)}}, {"username": 1, "level": 1}
        ).to_list(length=None)
    }
    for row in rows:
        author = authors.get(row.get("user_id"), {})
        row["username"] = author.get("username")
        row["level"] = author.get("level", 1) if author else None
    return rows


def _rank_sort_key(row: dict):
    # rank ascending then final_score descending, nulls last for both
    rank = row.get("rank")
    score = row.get("final_score")
    return (
        rank is None,
        rank if rank is not None else 0,
        score is None,
        -(score if score is not None else 0),
    )


class CommunityService:
    """Service for challenges and chat rooms."""

    def __init__(self, client: AsyncIOMotorClient):
        db = client[community_db.DB_NAME]
        self.challenges = db[community_db.Collections.CHALLENGES]
        self.participants = db[community_db.Collections.CHALLENGE_PARTICIPANTS]
        self.messages = db[community_db.Collections.CHAT_MESSAGES]
        self.users = client[auth_db.DB_NAME][auth_db.Collections.USERS]

    # ==================== Challenges ====================

    async def list_challenges(self) -> list[dict]:
        """Upcoming and active challenges, latest start first."""
        docs = await self.challenges.find(
            {"status": {"$in": [ChallengeStatus.UPCOMING.value, ChallengeStatus.ACTIVE.value]}}
        ).sort("start_date", DESCENDING).to_list(length=None)

        results = []
        for doc in docs:
            data = serialize(doc)
            data["participant_count"] = await self.participants.count_documents(
                {"challenge_id": data["id"]}
            )
            results.append(data)
        return results

    async def join_challenge(self, challenge_id: str, user_id: str) -> Optional[dict]:
        """
        Enter the user into an active challenge.

        Returns:
            The participant row, or None if the challenge is missing or not active

        Raises:
            ValueError: If already joined or the challenge is full
        """
        if await self.participants.find_one({"challenge_id": challenge_id, "user_id": user_id}):
            raise ValueError(ALREADY_JOINED_MESSAGE)

        challenge = await self.challenges.find_one(
            {"_id": parse_object_id(challenge_id), "status": ChallengeStatus.ACTIVE.value}
        )
        if not challenge:
            return None

        limit = challenge.get("max_participants")
        if limit:
            count = await self.participants.count_documents({"challenge_id": challenge_id})
            if count >= limit:
                raise ValueError("Challenge is full")

        participant = {
            "challenge_id": challenge_id,
            "user_id": user_id,
            "status": "active",
            "rank": None,
            "final_score": None,
            "joined_at": utcnow(),
        }
        try:
            result = await self.participants.insert_one(participant)
        except DuplicateKeyError:
            raise ValueError(ALREADY_JOINED_MESSAGE)

        participant["_id"] = result.inserted_id
        logger.info("User %s joined challenge %s", user_id, challenge_id)
        return serialize(participant)

    async def leaderboard(self, challenge_id: str) -> list[dict]:
        rows = serialize_many(
            await self.participants.find({"challenge_id": challenge_id}).to_list(length=None)
        )
        rows.sort(key=_rank_sort_key)
        return await attach_authors(self.users, rows)

    # ==================== Chat ====================

    async def recent_messages(self, room: str, limit: int = 50) -> list[dict]:
        """Latest messages of a room in chronological order."""
        docs = await self.messages.find({"room": room}).sort(
            "timestamp", DESCENDING
        ).limit(limit).to_list(length=limit)
        docs.reverse()
        return await attach_authors(self.users, serialize_many(docs))

    async def post_message(self, room: str, user_id: str, content: Optional[str]) -> dict:
        """
        Store a chat message.

        Raises:
            ValueError: If the content is empty or too long
        """
        if not content or not content.strip():
            raise ValueError("Message content is required")
        if len(content) > MAX_CHAT_MESSAGE_LENGTH:
            raise ValueError(f"Message too long (max {MAX_CHAT_MESSAGE_LENGTH} characters)")

        message = {
            "user_id": user_id,
            "room": room,
            "content": content.strip(),
            "timestamp": utcnow(),
        }
        result = await self.messages.insert_one(message)
        message["_id"] = result.inserted_id

        rows = await attach_authors(self.users, [serialize(message)])
        return rows[0]

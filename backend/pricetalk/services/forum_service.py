"""
Forum service: posts, replies and votes.
"""
import re
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from pricetalk.database.databases import auth_db, community_db
from pricetalk.database.documents import parse_object_id, serialize, serialize_many, utcnow
from pricetalk.models.community import VoteType
from pricetalk.schemas.common import Page, Pagination
from pricetalk.schemas.forum import PostCreate, ReplyCreate
from pricetalk.services.community_service import attach_authors


class ForumService:
    """Service for forum posts and replies."""

    def __init__(self, client: AsyncIOMotorClient):
        db = client[community_db.DB_NAME]
        self.posts = db[community_db.Collections.FORUM_POSTS]
        self.replies = db[community_db.Collections.FORUM_REPLIES]
        self.users = client[auth_db.DB_NAME][auth_db.Collections.USERS]

    # ==================== Posts ====================

    async def list_posts(
        self,
        page: int = 1,
        limit: int = 20,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Page[dict]:
        """Pinned posts first, then newest."""
        query: dict = {}
        if category:
            query["category"] = category
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [{"title": pattern}, {"content": pattern}]

        total = await self.posts.count_documents(query)
        cursor = (
            self.posts.find(query)
            .sort([("is_pinned", DESCENDING), ("created_at", DESCENDING)])
            .skip((page - 1) * limit)
            .limit(limit)
        )
        posts = await attach_authors(self.users, serialize_many(await cursor.to_list(length=limit)))
        return Page(items=posts, pagination=Pagination.build(page, limit, total))

    async def create_post(self, user_id: str, request: PostCreate) -> dict:
        now = utcnow()
        post = {
            "user_id": user_id,
            "title": request.title,
            "content": request.content,
            "category": request.category,
            "tags": request.tags,
            "is_pinned": False,
            "view_count": 0,
            "reply_count": 0,
            "upvotes": 0,
            "downvotes": 0,
            "created_at": now,
            "updated_at": now,
        }
        result = await self.posts.insert_one(post)
        post["_id"] = result.inserted_id
        return serialize(post)

    async def get_post(self, post_id: str) -> Optional[dict]:
        """
        Fetch a post with its replies, counting the view.

        Returns:
            Dict with post and replies, or None if the post does not exist
        """
        oid = parse_object_id(post_id)
        if oid is None:
            return None

        post = await self.posts.find_one_and_update(
            {"_id": oid},
            {"$inc": {"view_count": 1}},
            return_document=ReturnDocument.AFTER,
        )
        if post is None:
            return None

        replies = await self.replies.find({"post_id": post_id}).sort(
            "created_at", ASCENDING
        ).to_list(length=None)

        [post_data] = await attach_authors(self.users, [serialize(post)])
        return {
            "post": post_data,
            "replies": await attach_authors(self.users, serialize_many(replies)),
        }

    # ==================== Replies & votes ====================

    async def add_reply(self, post_id: str, user_id: str, request: ReplyCreate) -> Optional[dict]:
        """Reply to a post; None when the post does not exist."""
        oid = parse_object_id(post_id)
        if oid is None or not await self.posts.find_one({"_id": oid}, {"_id": 1}):
            return None

        now = utcnow()
        reply = {
            "post_id": post_id,
            "user_id": user_id,
            "content": request.content,
            "parent_reply_id": request.parent_reply_id,
            "created_at": now,
            "updated_at": now,
        }
        result = await self.replies.insert_one(reply)
        await self.posts.update_one({"_id": oid}, {"$inc": {"reply_count": 1}})

        reply["_id"] = result.inserted_id
        return serialize(reply)

    async def vote(self, post_id: str, vote_type: Optional[str]) -> Optional[dict]:
        """
        Up- or down-vote a post.

        Raises:
            ValueError: If the vote type is not up/down
        """
        if vote_type not in (VoteType.UP.value, VoteType.DOWN.value):
            raise ValueError("Invalid vote type")

        oid = parse_object_id(post_id)
        if oid is None:
            return None

        field = "upvotes" if vote_type == VoteType.UP.value else "downvotes"
        post = await self.posts.find_one_and_update(
            {"_id": oid},
            {"$inc": {field: 1}},
            return_document=ReturnDocument.AFTER,
        )
        if post is None:
            return None
        return {"upvotes": post.get("upvotes", 0), "downvotes": post.get("downvotes", 0)}

    async def categories(self) -> list[dict]:
        """Categories with their post counts, busiest first."""
        counts: dict[str, int] = {}
        for post in await self.posts.find({}, {"category": 1}).to_list(length=None):
            counts[post["category"]] = counts.get(post["category"], 0) + 1
        return [
            {"category": name, "post_count": count}
            for name, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        ]

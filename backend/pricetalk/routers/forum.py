"""
Forum router: posts, replies, votes and categories.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from pricetalk.core.rate_limit import enforce_rate_limit
from pricetalk.database.connections import get_mongo_client
from pricetalk.dependencies.auth import CurrentUser
from pricetalk.schemas.common import ApiResponse
from pricetalk.schemas.forum import PostCreate, ReplyCreate, VoteRequest
from pricetalk.services.forum_service import ForumService

router = APIRouter(
    prefix="/api/forum",
    tags=["Forum"],
    dependencies=[Depends(enforce_rate_limit)],
)

POST_NOT_FOUND = "Post not found"


async def get_forum_service() -> ForumService:
    """Dependency to get ForumService instance."""
    return ForumService(await get_mongo_client())


@router.get("/posts", response_model=ApiResponse[list[dict]], summary="List posts")
async def list_posts(
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    forum: ForumService = Depends(get_forum_service),
):
    """
    List posts, pinned first then newest.

    - **search**: Case-insensitive match on title or content
    """
    result = await forum.list_posts(page=page, limit=limit, category=category, search=search)
    return ApiResponse(data=result.items, pagination=result.pagination)


@router.post(
    "/posts",
    response_model=ApiResponse[dict],
    status_code=status.HTTP_201_CREATED,
    summary="Create post",
)
async def create_post(
    body: PostCreate,
    current_user: CurrentUser,
    forum: ForumService = Depends(get_forum_service),
):
    post = await forum.create_post(current_user.id, body)
    return ApiResponse(data=post, message="Post created successfully")


@router.get("/posts/{post_id}", response_model=ApiResponse[dict], summary="Get post")
async def get_post(
    post_id: str,
    current_user: CurrentUser,
    forum: ForumService = Depends(get_forum_service),
):
    """Post with its replies; counts as a view."""
    result = await forum.get_post(post_id)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=POST_NOT_FOUND)
    return ApiResponse(data=result)


@router.post(
    "/posts/{post_id}/replies",
    response_model=ApiResponse[dict],
    status_code=status.HTTP_201_CREATED,
    summary="Reply to post",
)
async def add_reply(
    post_id: str,
    body: ReplyCreate,
    current_user: CurrentUser,
    forum: ForumService = Depends(get_forum_service),
):
    reply = await forum.add_reply(post_id, current_user.id, body)
    if reply is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=POST_NOT_FOUND)
    return ApiResponse(data=reply, message="Reply created successfully")


@router.post("/posts/{post_id}/vote", response_model=ApiResponse[dict], summary="Vote on post")
async def vote(
    post_id: str,
    body: VoteRequest,
    current_user: CurrentUser,
    forum: ForumService = Depends(get_forum_service),
):
    try:
        result = await forum.vote(post_id, body.type)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=POST_NOT_FOUND)
    return ApiResponse(data=result, message="Vote recorded successfully")


@router.get("/categories", response_model=ApiResponse[list[dict]], summary="List categories")
async def categories(
    current_user: CurrentUser,
    forum: ForumService = Depends(get_forum_service),
):
    return ApiResponse(data=await forum.categories())

"""
Community router: challenges and room chat.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status

from pricetalk.core.rate_limit import enforce_rate_limit
from pricetalk.database.connections import get_mongo_client
from pricetalk.dependencies.auth import CurrentUser
from pricetalk.schemas.common import ApiResponse
from pricetalk.schemas.community import ChatMessageCreate
from pricetalk.services.community_service import CommunityService
from pricetalk.services.realtime import frame, manager

router = APIRouter(
    prefix="/api/community",
    tags=["Community"],
    dependencies=[Depends(enforce_rate_limit)],
)


async def get_community_service() -> CommunityService:
    """Dependency to get CommunityService instance."""
    return CommunityService(await get_mongo_client())


# ==================== Challenges ====================


@router.get("/challenges", response_model=ApiResponse[list[dict]], summary="List challenges")
async def list_challenges(
    current_user: CurrentUser,
    community: CommunityService = Depends(get_community_service),
):
    """Upcoming and active challenges with participant counts."""
    return ApiResponse(data=await community.list_challenges())


@router.post(
    "/challenges/{challenge_id}/join",
    response_model=ApiResponse[dict],
    summary="Join challenge",
)
async def join_challenge(
    challenge_id: str,
    current_user: CurrentUser,
    community: CommunityService = Depends(get_community_service),
):
    try:
        participant = await community.join_challenge(challenge_id, current_user.id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if participant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Challenge not found or not active",
        )
    return ApiResponse(data=participant, message="Successfully joined challenge")


@router.get(
    "/challenges/{challenge_id}/leaderboard",
    response_model=ApiResponse[list[dict]],
    summary="Challenge leaderboard",
)
async def leaderboard(
    challenge_id: str,
    current_user: CurrentUser,
    community: CommunityService = Depends(get_community_service),
):
    return ApiResponse(data=await community.leaderboard(challenge_id))


# ==================== Chat ====================


@router.get("/chat/{room}", response_model=ApiResponse[list[dict]], summary="Chat history")
async def chat_history(
    room: str,
    current_user: CurrentUser,
    limit: int = Query(50, ge=1, le=100),
    community: CommunityService = Depends(get_community_service),
):
    """Latest messages of a room, oldest first."""
    return ApiResponse(data=await community.recent_messages(room, limit))


@router.post(
    "/chat/{room}",
    response_model=ApiResponse[dict],
    status_code=status.HTTP_201_CREATED,
    summary="Post chat message",
)
async def post_message(
    room: str,
    body: ChatMessageCreate,
    current_user: CurrentUser,
    community: CommunityService = Depends(get_community_service),
):
    """Store a message and relay it to the room's WebSocket subscribers."""
    try:
        message = await community.post_message(room, current_user.id, body.content)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    await manager.broadcast(room, frame("chat_message", message, room=room))
    return ApiResponse(data=message)

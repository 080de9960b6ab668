"""
Users router for profile management and statistics.
"""
from fastapi import APIRouter, Depends, HTTPException, status

from pricetalk.core.rate_limit import enforce_rate_limit
from pricetalk.database.connections import get_mongo_client
from pricetalk.dependencies.auth import CurrentUser
from pricetalk.routers.auth import get_auth_service
from pricetalk.schemas.common import ApiResponse
from pricetalk.schemas.user import ChangePasswordRequest, ProfileResponse, ProfileUpdate, UserStats
from pricetalk.services.auth_service import AuthService
from pricetalk.services.user_service import UserService

router = APIRouter(
    prefix="/api/users",
    tags=["Users"],
    dependencies=[Depends(enforce_rate_limit)],
)


async def get_user_service() -> UserService:
    """Dependency to get UserService instance."""
    return UserService(await get_mongo_client())


@router.get(
    "/profile",
    response_model=ApiResponse[ProfileResponse],
    summary="Get profile",
)
async def get_profile(
    current_user: CurrentUser,
    user_service: UserService = Depends(get_user_service),
):
    profile = await user_service.get_profile(current_user.id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return ApiResponse(data=profile)


@router.put(
    "/profile",
    response_model=ApiResponse[ProfileResponse],
    summary="Update profile",
)
async def update_profile(
    body: ProfileUpdate,
    current_user: CurrentUser,
    user_service: UserService = Depends(get_user_service),
):
    """
    Update profile fields. Only the fields sent are changed.
    """
    try:
        profile = await user_service.update_profile(current_user.id, body)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return ApiResponse(data=profile, message="Profile updated successfully")


@router.get(
    "/stats",
    response_model=ApiResponse[UserStats],
    summary="Get user statistics",
)
async def get_stats(
    current_user: CurrentUser,
    user_service: UserService = Depends(get_user_service),
):
    """Trading, learning and challenge statistics for the current user."""
    return ApiResponse(data=await user_service.get_stats(current_user.id))


@router.post(
    "/change-password",
    response_model=ApiResponse[None],
    summary="Change password",
)
async def change_password(
    body: ChangePasswordRequest,
    current_user: CurrentUser,
    auth_service: AuthService = Depends(get_auth_service),
):
    try:
        await auth_service.change_password(
            current_user.id, body.current_password, body.new_password
        )
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ApiResponse(message="Password changed successfully")

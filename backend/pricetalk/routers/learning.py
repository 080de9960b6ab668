"""
Learning router: paths, modules and progress.
"""
from fastapi import APIRouter, Depends, HTTPException, status

from pricetalk.core.rate_limit import enforce_rate_limit
from pricetalk.database.connections import get_mongo_client
from pricetalk.dependencies.auth import CurrentUser
from pricetalk.schemas.common import ApiResponse
from pricetalk.schemas.learning import ProgressUpdate
from pricetalk.services.learning_service import LearningService

router = APIRouter(
    prefix="/api/learning",
    tags=["Learning"],
    dependencies=[Depends(enforce_rate_limit)],
)


async def get_learning_service() -> LearningService:
    """Dependency to get LearningService instance."""
    return LearningService(await get_mongo_client())


@router.get("/paths", response_model=ApiResponse[list[dict]], summary="List learning paths")
async def list_paths(
    current_user: CurrentUser,
    learning: LearningService = Depends(get_learning_service),
):
    """Paths unlocked at the current user's level."""
    return ApiResponse(data=await learning.list_paths(current_user.id, current_user.level))


@router.get(
    "/paths/{path_id}/modules",
    response_model=ApiResponse[list[dict]],
    summary="List modules of a path",
)
async def list_modules(
    path_id: str,
    current_user: CurrentUser,
    learning: LearningService = Depends(get_learning_service),
):
    return ApiResponse(data=await learning.list_modules(current_user.id, path_id))


@router.get("/progress", response_model=ApiResponse[list[dict]], summary="Get progress")
async def list_progress(
    current_user: CurrentUser,
    learning: LearningService = Depends(get_learning_service),
):
    return ApiResponse(data=await learning.list_progress(current_user.id))


@router.post(
    "/modules/{module_id}/progress",
    response_model=ApiResponse[dict],
    summary="Update module progress",
)
async def update_progress(
    module_id: str,
    body: ProgressUpdate,
    current_user: CurrentUser,
    learning: LearningService = Depends(get_learning_service),
):
    """
    Record progress on a module.

    The first completion awards the module's XP. A completed module stays
    completed; later calls may only update the score.
    """
    progress = await learning.update_progress(current_user.id, module_id, body)
    if progress is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Module not found")
    return ApiResponse(data=progress, message="Progress updated successfully")

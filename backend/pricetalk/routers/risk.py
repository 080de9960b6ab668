"""
Risk router: limits, metrics, blockers and the emergency stop.
"""
from fastapi import APIRouter, Depends, HTTPException, status

from pricetalk.core.rate_limit import enforce_rate_limit
from pricetalk.database.connections import get_mongo_client
from pricetalk.database.databases import trading_db
from pricetalk.dependencies.auth import CurrentUser
from pricetalk.schemas.common import ApiResponse
from pricetalk.schemas.risk import RiskMetrics, RiskSettings
from pricetalk.services.risk_service import RiskService

router = APIRouter(
    prefix="/api/risk",
    tags=["Risk"],
    dependencies=[Depends(enforce_rate_limit)],
)


async def get_risk_service() -> RiskService:
    """Dependency to get RiskService instance."""
    client = await get_mongo_client()
    return RiskService(client[trading_db.DB_NAME])


@router.get("/settings", response_model=ApiResponse[RiskSettings], summary="Get risk settings")
async def get_settings(
    current_user: CurrentUser,
    risk: RiskService = Depends(get_risk_service),
):
    """Stored settings, or the defaults when none were saved."""
    return ApiResponse(data=await risk.get_settings(current_user.id))


@router.put("/settings", response_model=ApiResponse[RiskSettings], summary="Update risk settings")
async def update_settings(
    body: RiskSettings,
    current_user: CurrentUser,
    risk: RiskService = Depends(get_risk_service),
):
    return ApiResponse(
        data=await risk.update_settings(current_user.id, body),
        message="Risk settings updated successfully",
    )


@router.get("/metrics", response_model=ApiResponse[RiskMetrics], summary="Get risk metrics")
async def get_metrics(
    current_user: CurrentUser,
    risk: RiskService = Depends(get_risk_service),
):
    """Exposure and P&L of open and recent journal trades."""
    return ApiResponse(data=await risk.get_metrics(current_user.id))


@router.get("/blockers", response_model=ApiResponse[list[dict]], summary="List trade blockers")
async def list_blockers(
    current_user: CurrentUser,
    risk: RiskService = Depends(get_risk_service),
):
    return ApiResponse(data=await risk.list_blockers(current_user.id))


@router.post(
    "/blockers/{blocker_id}/resolve",
    response_model=ApiResponse[dict],
    summary="Resolve trade blocker",
)
async def resolve_blocker(
    blocker_id: str,
    current_user: CurrentUser,
    risk: RiskService = Depends(get_risk_service),
):
    blocker = await risk.resolve_blocker(blocker_id, current_user.id)
    if blocker is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blocker not found")
    return ApiResponse(data=blocker, message="Blocker resolved successfully")


@router.post("/emergency-stop", response_model=ApiResponse[dict], summary="Emergency stop")
async def emergency_stop(
    current_user: CurrentUser,
    risk: RiskService = Depends(get_risk_service),
):
    """
    Close every open journal trade at entry, disable trading and raise a
    critical blocker.
    """
    return ApiResponse(
        data=await risk.emergency_stop(current_user.id),
        message="Emergency stop executed successfully",
    )

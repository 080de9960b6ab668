"""
Macro router: currency heat scores and pair analysis.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from pricetalk.core.rate_limit import enforce_rate_limit
from pricetalk.database.connections import get_mongo_client
from pricetalk.database.databases import macro_db
from pricetalk.dependencies.auth import CurrentUser
from pricetalk.schemas.common import ApiResponse
from pricetalk.schemas.macro import MacroBiasResponse, PairAnalysis
from pricetalk.services.macro_service import MacroService
from pricetalk.services.realtime import MACRO_ROOM, frame, manager

router = APIRouter(
    prefix="/api/macro",
    tags=["Macro"],
    dependencies=[Depends(enforce_rate_limit)],
)


async def get_macro_service() -> MacroService:
    """Dependency to get MacroService instance."""
    client = await get_mongo_client()
    return MacroService(client[macro_db.DB_NAME])


@router.get(
    "/bias",
    response_model=ApiResponse[list[MacroBiasResponse]],
    summary="Current macro bias",
)
async def current_bias(
    current_user: CurrentUser,
    macro: MacroService = Depends(get_macro_service),
):
    """Bias rows recorded within the last hour, newest first."""
    return ApiResponse(data=await macro.current_bias())


@router.get(
    "/bias/history",
    response_model=ApiResponse[list[MacroBiasResponse]],
    summary="Macro bias history",
)
async def bias_history(
    current_user: CurrentUser,
    currency: Optional[str] = Query(None, min_length=3, max_length=3),
    timeframe: str = Query("24h", description="24h, 7d or 30d; anything else means 24h"),
    macro: MacroService = Depends(get_macro_service),
):
    return ApiResponse(data=await macro.bias_history(currency, timeframe))


@router.post(
    "/bias/mock",
    response_model=ApiResponse[list[MacroBiasResponse]],
    summary="Generate mock macro bias",
)
async def generate_mock_bias(
    current_user: CurrentUser,
    macro: MacroService = Depends(get_macro_service),
):
    """
    Generate one mock reading per tracked currency and push each to the
    `macro` WebSocket room.
    """
    rows = await macro.generate_mock_bias()
    for row in rows:
        await manager.broadcast(MACRO_ROOM, frame("macro_update", {
            "currency": row["currency"],
            "heat_score": row["heat_score"],
            "timestamp": row["timestamp"].isoformat(),
        }))
    return ApiResponse(data=rows, message="Mock macro data generated successfully")


@router.get(
    "/bias/analysis/{pair}",
    response_model=ApiResponse[PairAnalysis],
    summary="Analyze currency pair",
)
async def analyze_pair(
    pair: str,
    current_user: CurrentUser,
    macro: MacroService = Depends(get_macro_service),
):
    """
    Compare base and quote heat scores of a pair such as EURUSD.
    """
    try:
        analysis = await macro.analyze_pair(pair)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if analysis is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Insufficient data for currency pair analysis",
        )
    return ApiResponse(data=analysis)

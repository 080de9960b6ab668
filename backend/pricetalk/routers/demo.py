"""
Demo trading router: simulated margin account and positions.
"""
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from pricetalk.core.rate_limit import enforce_rate_limit
from pricetalk.database.connections import get_mongo_client
from pricetalk.database.databases import trading_db
from pricetalk.dependencies.auth import CurrentUser
from pricetalk.schemas.common import ApiResponse
from pricetalk.schemas.demo import (
    CloseTradeResult,
    DemoAccountCreate,
    DemoAccountResponse,
    DemoTradeCreate,
    DemoTradeResponse,
)
from pricetalk.services.demo_service import DemoService

router = APIRouter(
    prefix="/api/demo",
    tags=["Demo Trading"],
    dependencies=[Depends(enforce_rate_limit)],
)

ACCOUNT_NOT_FOUND = "Demo account not found"


async def get_demo_service() -> DemoService:
    """Dependency to get DemoService instance."""
    client = await get_mongo_client()
    return DemoService(client[trading_db.DB_NAME])


# ==================== Account ====================


@router.get(
    "/account",
    response_model=ApiResponse[DemoAccountResponse],
    summary="Get demo account",
)
async def get_account(
    current_user: CurrentUser,
    demo: DemoService = Depends(get_demo_service),
):
    account = await demo.get_account(current_user.id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ACCOUNT_NOT_FOUND)
    return ApiResponse(data=account)


@router.post(
    "/account",
    response_model=ApiResponse[DemoAccountResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create demo account",
)
async def create_account(
    current_user: CurrentUser,
    body: Optional[DemoAccountCreate] = Body(None),
    demo: DemoService = Depends(get_demo_service),
):
    """
    Open a simulated account.

    - **initial_balance**: Starting balance (default 10000)
    """
    try:
        account = await demo.create_account(
            current_user.id, body.initial_balance if body else None
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return ApiResponse(data=account, message="Demo account created successfully")


@router.post(
    "/account/reset",
    response_model=ApiResponse[None],
    summary="Reset demo account",
)
async def reset_account(
    current_user: CurrentUser,
    demo: DemoService = Depends(get_demo_service),
):
    """Close every open position flat and restore the initial balance."""
    if not await demo.reset_account(current_user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ACCOUNT_NOT_FOUND)
    return ApiResponse(message="Demo account reset successfully")


# ==================== Trades ====================


@router.get(
    "/trades",
    response_model=ApiResponse[list[DemoTradeResponse]],
    summary="List demo trades",
)
async def list_trades(
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    demo: DemoService = Depends(get_demo_service),
):
    result = await demo.list_trades(current_user.id, page=page, limit=limit)
    return ApiResponse(data=result.items, pagination=result.pagination)


@router.post(
    "/trades",
    response_model=ApiResponse[DemoTradeResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Place demo trade",
)
async def place_trade(
    body: DemoTradeCreate,
    current_user: CurrentUser,
    demo: DemoService = Depends(get_demo_service),
):
    """
    Open a position at the current mock price.

    Buys fill at market + spread, sells at market. The required margin
    must be available as free margin.
    """
    try:
        trade = await demo.place_trade(current_user.id, body)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if trade is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ACCOUNT_NOT_FOUND)
    return ApiResponse(data=trade, message="Trade placed successfully")


@router.post(
    "/trades/{trade_id}/close",
    response_model=ApiResponse[CloseTradeResult],
    summary="Close demo trade",
)
async def close_trade(
    trade_id: str,
    current_user: CurrentUser,
    demo: DemoService = Depends(get_demo_service),
):
    result = await demo.close_trade(trade_id, current_user.id)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Trade not found or already closed",
        )
    return ApiResponse(data=result, message="Trade closed successfully")

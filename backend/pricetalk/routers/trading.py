"""
Trading journal router: logged trades and performance analytics.
"""
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from pricetalk.core.rate_limit import enforce_rate_limit
from pricetalk.database.connections import get_mongo_client
from pricetalk.database.databases import trading_db
from pricetalk.dependencies.auth import CurrentUser
from pricetalk.models.trade import TradeStatus
from pricetalk.schemas.common import ApiResponse
from pricetalk.schemas.trading import TradeAnalytics, TradeCreate, TradeResponse, TradeUpdate
from pricetalk.services.journal_service import JournalService

router = APIRouter(
    prefix="/api/trading",
    tags=["Trading Journal"],
    dependencies=[Depends(enforce_rate_limit)],
)

TRADE_NOT_FOUND = "Trade not found"


async def get_journal_service() -> JournalService:
    """Dependency to get JournalService instance."""
    client = await get_mongo_client()
    return JournalService(client[trading_db.DB_NAME])


# ==================== Trades ====================


@router.post(
    "/trades",
    response_model=ApiResponse[TradeResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Log a trade",
)
async def create_trade(
    body: TradeCreate,
    current_user: CurrentUser,
    journal: JournalService = Depends(get_journal_service),
):
    """
    Log a new trade in the journal.

    - **instrument**: Symbol, e.g. EURUSD
    - **side**: buy or sell
    - **entry_price** / **quantity**: Must be positive
    - **entry_time**: Defaults to now
    """
    trade = await journal.create_trade(current_user.id, body)
    return ApiResponse(data=trade, message="Trade created successfully")


@router.get(
    "/trades",
    response_model=ApiResponse[list[TradeResponse]],
    summary="List trades",
)
async def list_trades(
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    trade_status: Optional[TradeStatus] = Query(None, alias="status"),
    instrument: Optional[str] = Query(None),
    journal: JournalService = Depends(get_journal_service),
):
    """List journal trades, newest entry first."""
    result = await journal.list_trades(
        current_user.id,
        page=page,
        limit=limit,
        status=trade_status.value if trade_status else None,
        instrument=instrument,
    )
    return ApiResponse(data=result.items, pagination=result.pagination)


@router.get(
    "/trades/{trade_id}",
    response_model=ApiResponse[TradeResponse],
    summary="Get trade",
)
async def get_trade(
    trade_id: str,
    current_user: CurrentUser,
    journal: JournalService = Depends(get_journal_service),
):
    trade = await journal.get_trade(trade_id, current_user.id)
    if not trade:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=TRADE_NOT_FOUND)
    return ApiResponse(data=trade)


@router.put(
    "/trades/{trade_id}",
    response_model=ApiResponse[TradeResponse],
    summary="Update trade",
)
async def update_trade(
    trade_id: str,
    body: TradeUpdate,
    current_user: CurrentUser,
    journal: JournalService = Depends(get_journal_service),
):
    """
    Update a trade. Closing it with an exit price recomputes its P&L.
    """
    try:
        trade = await journal.update_trade(trade_id, current_user.id, body)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not trade:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=TRADE_NOT_FOUND)
    return ApiResponse(data=trade, message="Trade updated successfully")


@router.delete(
    "/trades/{trade_id}",
    response_model=ApiResponse[None],
    summary="Delete trade",
)
async def delete_trade(
    trade_id: str,
    current_user: CurrentUser,
    journal: JournalService = Depends(get_journal_service),
):
    if not await journal.delete_trade(trade_id, current_user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=TRADE_NOT_FOUND)
    return ApiResponse(message="Trade deleted successfully")


# ==================== Analytics ====================


@router.get(
    "/analytics/summary",
    response_model=ApiResponse[TradeAnalytics],
    summary="Performance summary",
)
async def analytics_summary(
    current_user: CurrentUser,
    timeframe: Literal["7d", "30d", "90d", "all"] = Query("30d"),
    journal: JournalService = Depends(get_journal_service),
):
    """Win rate and P&L over the selected timeframe."""
    return ApiResponse(data=await journal.get_summary(current_user.id, timeframe))

"""
Stripe router: checkout for arbitrary prices and subscription management.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from pricetalk.core.rate_limit import enforce_rate_limit
from pricetalk.dependencies.auth import CurrentUser
from pricetalk.routers.payments import get_billing_service, process_webhook
from pricetalk.schemas.billing import CheckoutSessionRequest, CheckoutSessionResponse
from pricetalk.schemas.common import ApiResponse
from pricetalk.services.billing_service import BillingService

router = APIRouter(
    prefix="/api/stripe",
    tags=["Stripe"],
    dependencies=[Depends(enforce_rate_limit)],
)


@router.post(
    "/create-checkout-session",
    response_model=ApiResponse[CheckoutSessionResponse],
    summary="Create checkout session",
)
async def create_checkout_session(
    body: CheckoutSessionRequest,
    current_user: CurrentUser,
    billing: BillingService = Depends(get_billing_service),
):
    """Checkout for a Stripe price id, reusing the user's Stripe customer."""
    result = await billing.create_checkout_session(
        current_user.model_dump(),
        body.price_id,
        str(body.success_url),
        str(body.cancel_url),
    )
    return ApiResponse(data=result)


@router.get(
    "/subscription",
    response_model=ApiResponse[Optional[dict]],
    summary="Latest subscription",
)
async def get_subscription(
    current_user: CurrentUser,
    billing: BillingService = Depends(get_billing_service),
):
    return ApiResponse(data=await billing.latest_subscription(current_user.id))


@router.post(
    "/cancel-subscription",
    response_model=ApiResponse[dict],
    summary="Cancel subscription",
)
async def cancel_subscription(
    current_user: CurrentUser,
    billing: BillingService = Depends(get_billing_service),
):
    subscription = await billing.cancel_subscription(current_user.id)
    if subscription is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No active subscription found",
        )
    return ApiResponse(data=subscription, message="Subscription will be cancelled at period end")


@router.post("/webhook", summary="Stripe webhook")
async def webhook(
    request: Request,
    billing: BillingService = Depends(get_billing_service),
):
    return await process_webhook(request, billing)

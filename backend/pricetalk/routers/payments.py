"""
Payments router: plans and subscription checkout.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from pricetalk.core.rate_limit import enforce_rate_limit
from pricetalk.database.connections import get_mongo_client
from pricetalk.dependencies.auth import CurrentUser
from pricetalk.schemas.billing import (
    CreateSubscriptionRequest,
    SessionSuccessRequest,
    SubscriptionCheckout,
    SubscriptionStatusResponse,
    SubscriptionSuccess,
)
from pricetalk.schemas.common import ApiResponse
from pricetalk.services.billing_service import BillingService, WebhookVerificationError
from pricetalk.services.stripe_gateway import StripeGateway, get_stripe_gateway

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/payments",
    tags=["Payments"],
    dependencies=[Depends(enforce_rate_limit)],
)


async def get_billing_service(
    gateway: StripeGateway = Depends(get_stripe_gateway),
) -> BillingService:
    """Dependency to get BillingService instance."""
    return BillingService(await get_mongo_client(), gateway)


async def process_webhook(request: Request, billing: BillingService) -> dict:
    """
    Shared Stripe webhook handling for both webhook routes.

    Raises:
        HTTPException 400: On a bad payload or signature
        HTTPException 500: If handling fails, so Stripe retries the delivery
    """
    payload = await request.body()
    try:
        return await billing.handle_webhook(payload, request.headers.get("stripe-signature"))
    except WebhookVerificationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Webhook Error: {e}",
        )
    except Exception:
        logger.exception("Webhook handler failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook handler failed",
        )


@router.get("/plans", response_model=ApiResponse[list[dict]], summary="List plans")
async def list_plans():
    """Subscription plans with prices and features."""
    return ApiResponse(data=BillingService.list_plans())


@router.get(
    "/subscription",
    response_model=ApiResponse[SubscriptionStatusResponse],
    summary="Current subscription",
)
async def get_subscription(
    current_user: CurrentUser,
    billing: BillingService = Depends(get_billing_service),
):
    return ApiResponse(data=await billing.subscription_status(current_user.id))


@router.post(
    "/create-subscription",
    response_model=ApiResponse[SubscriptionCheckout],
    summary="Start subscription checkout",
)
async def create_subscription(
    body: CreateSubscriptionRequest,
    current_user: CurrentUser,
    billing: BillingService = Depends(get_billing_service),
):
    """
    Create a Stripe checkout session for a plan.

    - **plan**: basic or premium
    - **success_url** / **cancel_url**: Where Stripe sends the user back
    """
    result = await billing.create_subscription_checkout(
        current_user.model_dump(),
        body.plan,
        str(body.success_url),
        str(body.cancel_url),
    )
    return ApiResponse(data=result)


@router.post(
    "/subscription-success",
    response_model=ApiResponse[SubscriptionSuccess],
    summary="Confirm paid checkout",
)
async def subscription_success(
    body: SessionSuccessRequest,
    current_user: CurrentUser,
    billing: BillingService = Depends(get_billing_service),
):
    result = await billing.complete_checkout(current_user.id, body.session_id)
    return ApiResponse(data=result, message="Subscription processed")


@router.post(
    "/cancel-subscription",
    response_model=ApiResponse[dict],
    summary="Cancel subscription",
)
async def cancel_subscription(
    current_user: CurrentUser,
    billing: BillingService = Depends(get_billing_service),
):
    """Cancel at the end of the current billing period."""
    subscription = await billing.cancel_subscription(current_user.id)
    if subscription is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No active subscription found",
        )
    return ApiResponse(data=subscription, message="Subscription cancelled successfully")


@router.post("/webhook", summary="Stripe webhook")
async def webhook(
    request: Request,
    billing: BillingService = Depends(get_billing_service),
):
    """Stripe event receiver; authenticated by signature, not token."""
    return await process_webhook(request, billing)

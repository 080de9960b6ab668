"""
Payments and Stripe schemas.
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import AnyHttpUrl, BaseModel, Field


class CreateSubscriptionRequest(BaseModel):
    plan: Literal["basic", "premium"]
    success_url: AnyHttpUrl
    cancel_url: AnyHttpUrl


class SessionSuccessRequest(BaseModel):
    session_id: str = Field(..., min_length=1)


class CheckoutSessionRequest(BaseModel):
    price_id: str = Field(..., min_length=1)
    success_url: AnyHttpUrl
    cancel_url: AnyHttpUrl


class CheckoutSessionResponse(BaseModel):
    session_id: str
    url: Optional[str] = None


class SubscriptionCheckout(BaseModel):
    session_id: str
    checkout_url: Optional[str] = None


class SubscriptionSuccess(BaseModel):
    payment_status: Optional[str] = None
    subscription_id: Optional[str] = None


class SubscriptionStatusResponse(BaseModel):
    has_subscription: bool
    plan: str
    status: str
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

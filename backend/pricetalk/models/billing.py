"""
Billing models: subscription plans and Stripe lifecycle states.
"""
from enum import Enum

from pydantic import BaseModel


class SubscriptionStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    PAST_DUE = "past_due"


class PaymentSessionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class Plan(BaseModel):
    id: str
    name: str
    description: str
    price: float
    currency: str = "USD"
    interval: str = "month"
    features: list[str]

    @property
    def amount_cents(self) -> int:
        return int(round(self.price * 100))


PLANS: dict[str, Plan] = {
    "basic": Plan(
        id="basic",
        name="Basic Plan",
        description="Essential tools for serious retail traders",
        price=29.00,
        features=[
            "Unlimited trading journal",
            "Real-time macro bias data",
            "Heatman currency strength widget",
            "Advanced learning paths",
            "Trading challenges",
            "Priority email support",
            "Mobile app access",
        ],
    ),
    "premium": Plan(
        id="premium",
        name="Premium Plan",
        description="Complete trading suite for professional traders",
        price=79.00,
        features=[
            "Everything in Basic",
            "Unlimited historical data",
            "Advanced analytics & insights",
            "Custom indicators",
            "1-on-1 coaching sessions (2/month)",
            "Private Discord community",
            "API access",
            "Priority chat support",
            "Early access to new features",
        ],
    ),
}


def normalize_status(status: str) -> str:
    """Stripe spells it 'canceled'; stored records use 'cancelled'."""
    return SubscriptionStatus.CANCELLED.value if status == "canceled" else status

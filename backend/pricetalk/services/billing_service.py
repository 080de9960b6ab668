"""
Billing service: plans, Stripe checkout and subscription lifecycle.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import DESCENDING, ReturnDocument

from pricetalk.config import get_settings
from pricetalk.database.databases import auth_db, billing_db
from pricetalk.database.documents import parse_object_id, serialize, utcnow
from pricetalk.models.billing import (
    PLANS,
    PaymentSessionStatus,
    SubscriptionStatus,
    normalize_status,
)
from pricetalk.models.user import SubscriptionTier
from pricetalk.services.stripe_gateway import WEBHOOK_ERRORS, StripeGateway

logger = logging.getLogger(__name__)

SUBSCRIPTION_PERIOD = timedelta(days=30)


class WebhookVerificationError(ValueError):
    """Webhook payload or signature rejected."""


def _timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def subscription_period(subscription: Any) -> tuple[Optional[datetime], Optional[datetime]]:
    """Billing period of a Stripe subscription; newer API versions keep it on the items."""
    start = subscription.get("current_period_start")
    end = subscription.get("current_period_end")
    if start is None:
        items = (subscription.get("items") or {}).get("data") or []
        if items:
            start = items[0].get("current_period_start")
            end = items[0].get("current_period_end")
    return _timestamp(start), _timestamp(end)


def subscription_price_id(subscription: Any) -> Optional[str]:
    items = (subscription.get("items") or {}).get("data") or []
    if not items:
        return None
    return (items[0].get("price") or {}).get("id")


class BillingService:
    """Service for plans, payment sessions and subscriptions."""

    def __init__(self, client: AsyncIOMotorClient, gateway: StripeGateway):
        db = client[billing_db.DB_NAME]
        self.subscriptions = db[billing_db.Collections.SUBSCRIPTIONS]
        self.sessions = db[billing_db.Collections.PAYMENT_SESSIONS]
        self.users = client[auth_db.DB_NAME][auth_db.Collections.USERS]
        self.gateway = gateway
        self.settings = get_settings()

    # ==================== Plans & status ====================

    @staticmethod
    def list_plans() -> list[dict]:
        return [plan.model_dump() for plan in PLANS.values()]

    def plan_for_price(self, price_id: Optional[str]) -> str:
        """Map a Stripe price id onto a plan name, defaulting to basic."""
        if price_id == self.settings.stripe_premium_price_id:
            return SubscriptionTier.PREMIUM.value
        return SubscriptionTier.BASIC.value

    async def latest_subscription(self, user_id: str) -> Optional[dict]:
        doc = await self.subscriptions.find_one(
            {"user_id": user_id}, sort=[("created_at", DESCENDING)]
        )
        return serialize(doc)

    async def active_subscription(self, user_id: str) -> Optional[dict]:
        return await self.subscriptions.find_one(
            {"user_id": user_id, "status": SubscriptionStatus.ACTIVE.value},
            sort=[("created_at", DESCENDING)],
        )

    async def subscription_status(self, user_id: str) -> dict:
        """Summary of the user's current active subscription."""
        doc = serialize(await self.active_subscription(user_id))
        if doc is None:
            return {"has_subscription": False, "plan": "free", "status": "inactive"}
        return {
            "has_subscription": True,
            "plan": doc.get("plan_type"),
            "status": doc.get("status"),
            "current_period_start": doc.get("current_period_start"),
            "current_period_end": doc.get("current_period_end"),
            "cancelled_at": doc.get("cancelled_at"),
        }

    # ==================== Checkout ====================

    async def create_subscription_checkout(
        self, user: dict, plan_name: str, success_url: str, cancel_url: str
    ) -> dict:
        """
        Start a subscription checkout for one of the built-in plans.

        Raises:
            ValueError: If the plan is unknown
        """
        plan = PLANS.get(plan_name)
        if plan is None:
            raise ValueError("Invalid plan")

        metadata = {"user_id": user["id"], "plan": plan.id}
        session = await self.gateway.create_checkout_session(
            customer_email=user["email"],
            payment_method_types=["card"],
            mode="subscription",
            line_items=[{
                "price_data": {
                    "currency": plan.currency.lower(),
                    "product_data": {
                        "name": plan.name,
                        "description": f"PriceTalk {plan.name} - Monthly Subscription",
                    },
                    "unit_amount": plan.amount_cents,
                    "recurring": {"interval": plan.interval},
                },
                "quantity": 1,
            }],
            success_url=f"{success_url}?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=cancel_url,
            metadata=metadata,
            subscription_data={"metadata": metadata},
        )

        now = utcnow()
        await self.sessions.insert_one({
            "user_id": user["id"],
            "session_id": session["id"],
            "plan_type": plan.id,
            "amount": plan.amount_cents,
            "status": PaymentSessionStatus.PENDING.value,
            "stripe_payment_intent_id": None,
            "created_at": now,
            "updated_at": now,
        })
        return {"session_id": session["id"], "checkout_url": session.get("url")}

    async def complete_checkout(self, user_id: str, session_id: str) -> dict:
        """
        Activate the subscription bought in a checkout session once it is paid.

        Returns:
            Dict with the session's payment_status and subscription id
        """
        session = await self.gateway.retrieve_checkout_session(session_id)
        metadata = session.get("metadata") or {}
        paid_user = metadata.get("user_id")
        plan = metadata.get("plan")
        subscription_id = session.get("subscription")

        if session.get("payment_status") == "paid" and paid_user == user_id and plan:
            now = utcnow()
            await self.sessions.update_one(
                {"session_id": session_id},
                {"$set": {
                    "status": PaymentSessionStatus.COMPLETED.value,
                    "stripe_payment_intent_id": session.get("payment_intent"),
                    "updated_at": now,
                }},
            )
            # The webhook may have stored this subscription already; replays
            # of the success URL must not reactivate or duplicate it
            selector = (
                {"stripe_subscription_id": subscription_id}
                if subscription_id
                else {"checkout_session_id": session_id}
            )
            on_insert = {
                "stripe_subscription_id": subscription_id,
                "checkout_session_id": session_id,
                "status": SubscriptionStatus.ACTIVE.value,
                "current_period_start": now,
                "current_period_end": now + SUBSCRIPTION_PERIOD,
                "cancelled_at": None,
                "created_at": now,
            }
            stored = await self.subscriptions.find_one_and_update(
                selector,
                {
                    "$set": {"user_id": paid_user, "plan_type": plan, "updated_at": now},
                    "$setOnInsert": {k: v for k, v in on_insert.items() if k not in selector},
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
            if stored["status"] == SubscriptionStatus.ACTIVE.value:
                await self._set_user_tier(
                    paid_user, plan, SubscriptionStatus.ACTIVE.value, start_date=now
                )
            logger.info(
                "Checkout %s confirmed for user %s (%s)", session_id, paid_user, stored["status"]
            )

        return {"payment_status": session.get("payment_status"), "subscription_id": subscription_id}

    async def create_checkout_session(
        self, user: dict, price_id: str, success_url: str, cancel_url: str
    ) -> dict:
        """Checkout for an arbitrary Stripe price, tied to the user's Stripe customer."""
        customer_id = user.get("stripe_customer_id")
        if customer_id:
            customer = await self.gateway.retrieve_customer(customer_id)
        else:
            customer = await self.gateway.create_customer(
                email=user["email"], metadata={"user_id": user["id"]}
            )
            await self.users.update_one(
                {"_id": parse_object_id(user["id"])},
                {"$set": {"stripe_customer_id": customer["id"], "updated_at": utcnow()}},
            )

        session = await self.gateway.create_checkout_session(
            customer=customer["id"],
            payment_method_types=["card"],
            line_items=[{"price": price_id, "quantity": 1}],
            mode="subscription",
            success_url=success_url,
            cancel_url=cancel_url,
            metadata={"user_id": user["id"]},
        )
        return {"session_id": session["id"], "url": session.get("url")}

    async def cancel_subscription(self, user_id: str) -> Optional[dict]:
        """
        Cancel the active subscription at the end of its period.

        Returns:
            The updated subscription, or None if there is no active one
        """
        subscription = await self.active_subscription(user_id)
        if subscription is None:
            return None

        if subscription.get("stripe_subscription_id"):
            await self.gateway.cancel_at_period_end(subscription["stripe_subscription_id"])

        now = utcnow()
        await self.subscriptions.update_one(
            {"_id": subscription["_id"]},
            {"$set": {
                "status": SubscriptionStatus.CANCELLED.value,
                "cancelled_at": now,
                "updated_at": now,
            }},
        )
        subscription.update(status=SubscriptionStatus.CANCELLED.value, cancelled_at=now)
        return serialize(subscription)

    # ==================== Webhooks ====================

    async def handle_webhook(self, payload: bytes, signature: Optional[str]) -> dict:
        """
        Verify and dispatch a Stripe webhook event.

        Raises:
            WebhookVerificationError: On a bad payload or signature
        """
        if not signature:
            raise WebhookVerificationError("Missing stripe-signature header")
        try:
            event = self.gateway.construct_event(payload, signature)
        except WEBHOOK_ERRORS as e:
            logger.warning("Webhook signature verification failed: %s", e)
            raise WebhookVerificationError(str(e))

        event_type = event["type"]
        obj = event["data"]["object"]

        if event_type == "checkout.session.completed":
            await self._on_checkout_completed(obj)
        elif event_type in ("customer.subscription.updated", "customer.subscription.deleted"):
            await self._on_subscription_changed(obj)
        elif event_type == "invoice.payment_succeeded":
            logger.info("Payment succeeded for invoice %s", obj.get("id"))
        elif event_type == "invoice.payment_failed":
            logger.warning("Payment failed for invoice %s", obj.get("id"))
        else:
            logger.info("Unhandled Stripe event type %s", event_type)

        return {"received": True}

    async def _on_checkout_completed(self, session: Any) -> None:
        metadata = session.get("metadata") or {}
        user_id = metadata.get("user_id")
        subscription_id = session.get("subscription")
        if not user_id or not subscription_id:
            return

        subscription = await self.gateway.retrieve_subscription(subscription_id)
        plan = metadata.get("plan") or self.plan_for_price(subscription_price_id(subscription))
        status = normalize_status(subscription.get("status", SubscriptionStatus.ACTIVE.value))
        start, end = subscription_period(subscription)

        now = utcnow()
        await self.subscriptions.update_one(
            {"stripe_subscription_id": subscription_id},
            {
                "$set": {
                    "user_id": user_id,
                    "plan_type": plan,
                    "status": status,
                    "current_period_start": start,
                    "current_period_end": end,
                    "updated_at": now,
                },
                "$setOnInsert": {"cancelled_at": None, "created_at": now},
            },
            upsert=True,
        )
        await self._set_user_tier(user_id, plan, status, start_date=now)
        logger.info("Checkout completed: user %s on %s (%s)", user_id, plan, status)

    async def _on_subscription_changed(self, subscription: Any) -> None:
        status = normalize_status(subscription.get("status"))
        start, end = subscription_period(subscription)
        now = utcnow()

        changes = {
            "status": status,
            "current_period_start": start,
            "current_period_end": end,
            "updated_at": now,
        }
        if status == SubscriptionStatus.CANCELLED.value:
            changes["cancelled_at"] = now

        stored = await self.subscriptions.find_one_and_update(
            {"stripe_subscription_id": subscription["id"]},
            {"$set": changes},
        )

        metadata = subscription.get("metadata") or {}
        user_id = metadata.get("user_id") or (stored or {}).get("user_id")
        plan = (
            metadata.get("plan")
            or (stored or {}).get("plan_type")
            or self.plan_for_price(subscription_price_id(subscription))
        )

        if user_id:
            await self._set_user_tier(user_id, plan, status)
        elif subscription.get("customer"):
            tier = plan if status == SubscriptionStatus.ACTIVE.value else SubscriptionTier.FREE.value
            await self.users.update_one(
                {"stripe_customer_id": subscription["customer"]},
                {"$set": {"subscription_tier": tier, "subscription_status": status, "updated_at": now}},
            )
        logger.info("Subscription %s is now %s", subscription["id"], status)

    async def _set_user_tier(
        self, user_id: str, plan: str, status: str, start_date: Optional[datetime] = None
    ) -> None:
        tier = plan if status == SubscriptionStatus.ACTIVE.value else SubscriptionTier.FREE.value
        changes = {"subscription_tier": tier, "subscription_status": status, "updated_at": utcnow()}
        if start_date is not None and status == SubscriptionStatus.ACTIVE.value:
            changes["subscription_start_date"] = start_date
        await self.users.update_one({"_id": parse_object_id(user_id)}, {"$set": changes})

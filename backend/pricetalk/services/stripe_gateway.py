"""
Thin async wrapper around the Stripe SDK.

The SDK is synchronous, so every call runs in a worker thread. Routes get
the gateway through a dependency so tests can substitute a fake.
"""
import asyncio
import logging
from functools import lru_cache
from typing import Any, Optional

import stripe

from pricetalk.config import get_settings

logger = logging.getLogger(__name__)

# Errors raised for a bad webhook payload or signature
WEBHOOK_ERRORS = (ValueError, stripe.error.SignatureVerificationError)


class StripeGateway:
    """Stripe operations used by the billing service."""

    def __init__(self, api_key: str, webhook_secret: str):
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    async def _call(self, fn, *args, **kwargs):
        return await asyncio.to_thread(fn, *args, api_key=self.api_key, **kwargs)

    # ==================== Checkout ====================

    async def create_checkout_session(self, **params: Any):
        session = await self._call(stripe.checkout.Session.create, **params)
        logger.info("Created Stripe checkout session %s", session["id"])
        return session

    async def retrieve_checkout_session(self, session_id: str):
        return await self._call(stripe.checkout.Session.retrieve, session_id)

    # ==================== Customers ====================

    async def create_customer(self, email: str, metadata: Optional[dict] = None):
        return await self._call(stripe.Customer.create, email=email, metadata=metadata or {})

    async def retrieve_customer(self, customer_id: str):
        return await self._call(stripe.Customer.retrieve, customer_id)

    # ==================== Subscriptions ====================

    async def retrieve_subscription(self, subscription_id: str):
        return await self._call(stripe.Subscription.retrieve, subscription_id)

    async def cancel_at_period_end(self, subscription_id: str):
        logger.info("Requesting cancellation of subscription %s", subscription_id)
        return await self._call(
            stripe.Subscription.modify, subscription_id, cancel_at_period_end=True
        )

    # ==================== Webhooks ====================

    def construct_event(self, payload: bytes, signature: Optional[str]):
        """
        Verify a webhook delivery and parse its event.

        Raises:
            ValueError: If the payload is not valid JSON
            stripe.error.SignatureVerificationError: If the signature does not match
        """
        return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)


@lru_cache
def get_stripe_gateway() -> StripeGateway:
    """Get cached gateway configured from settings."""
    settings = get_settings()
    return StripeGateway(settings.stripe_secret_key, settings.stripe_webhook_secret)

"""
Backend-specific test fixtures and configuration.

These fixtures extend the global fixtures with helpers for authenticated
requests, seeded documents and a fake Stripe gateway.
"""

import sys
from pathlib import Path
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "backend"))


# =============================================================================
# Auth Helpers
# =============================================================================

def register(client: TestClient, user_data: dict) -> dict:
    """
    Register a user through the API.

    Returns:
        The response data: {"user": {...}, "token": "..."}
    """
    response = client.post("/api/auth/register", json=user_data)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register_user(client):
    """Factory registering extra users: register_user(data) -> (user, headers)."""
    def _register(user_data: dict) -> tuple[dict, dict]:
        result = register(client, user_data)
        return result["user"], bearer(result["token"])
    return _register


@pytest.fixture
def registered_user(client, test_user_data) -> dict:
    """A registered user with its token."""
    return register(client, test_user_data)


@pytest.fixture
def auth_headers(registered_user) -> dict:
    """Authorization header of the registered user."""
    return bearer(registered_user["token"])


@pytest.fixture
def other_auth_headers(client, other_user_data) -> dict:
    """Authorization header of a second, unrelated user."""
    return bearer(register(client, other_user_data)["token"])


# =============================================================================
# Stripe Gateway Fake
# =============================================================================

class FakeStripeGateway:
    """
    In-memory stand-in for StripeGateway.

    Configure the objects Stripe would return, then inspect `calls`.
    """

    def __init__(self):
        self.calls: list[tuple[str, dict]] = []
        self.checkout_session: dict[str, Any] = {
            "id": "cs_test_123",
            "url": "https://checkout.stripe.com/c/pay/cs_test_123",
        }
        self.retrieved_session: dict[str, Any] = {}
        self.subscription: dict[str, Any] = {}
        self.event: Optional[dict] = None
        self.event_error: Optional[Exception] = None
        self.subscription_error: Optional[Exception] = None

    async def create_checkout_session(self, **params):
        self.calls.append(("create_checkout_session", params))
        return self.checkout_session

    async def retrieve_checkout_session(self, session_id: str):
        self.calls.append(("retrieve_checkout_session", {"session_id": session_id}))
        return self.retrieved_session

    async def create_customer(self, email: str, metadata: Optional[dict] = None):
        self.calls.append(("create_customer", {"email": email, "metadata": metadata}))
        return {"id": "cus_test_123", "email": email}

    async def retrieve_customer(self, customer_id: str):
        self.calls.append(("retrieve_customer", {"customer_id": customer_id}))
        return {"id": customer_id}

    async def retrieve_subscription(self, subscription_id: str):
        self.calls.append(("retrieve_subscription", {"subscription_id": subscription_id}))
        if self.subscription_error is not None:
            raise self.subscription_error
        return self.subscription

    async def cancel_at_period_end(self, subscription_id: str):
        self.calls.append(("cancel_at_period_end", {"subscription_id": subscription_id}))
        return {"id": subscription_id, "cancel_at_period_end": True}

    def construct_event(self, payload: bytes, signature: Optional[str]):
        self.calls.append(("construct_event", {"signature": signature}))
        if self.event_error is not None:
            raise self.event_error
        return self.event

    def called(self, name: str) -> list[dict]:
        return [params for call, params in self.calls if call == name]


@pytest.fixture
def fake_stripe(app) -> FakeStripeGateway:
    """Replace the Stripe gateway dependency with a fake."""
    from pricetalk.services.stripe_gateway import get_stripe_gateway

    gateway = FakeStripeGateway()
    app.dependency_overrides[get_stripe_gateway] = lambda: gateway
    return gateway


# =============================================================================
# Response Assertion Helpers
# =============================================================================

@pytest.fixture
def assert_error_response():
    """Helper to assert the error envelope."""
    def _assert(response, status_code: int, error_contains: Optional[str] = None):
        assert response.status_code == status_code, response.text
        data = response.json()
        assert data["success"] is False
        if error_contains:
            assert error_contains.lower() in data["error"].lower()
    return _assert

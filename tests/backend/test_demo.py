"""
Tests for the demo trading engine.

These tests cover:
- Mock pricing and margin arithmetic
- Account lifecycle (create, reset)
- Placing and closing trades against free margin
- Risk settings that block new trades
"""

import random

import pytest
import pytest_asyncio
from bson import ObjectId

from pricetalk.database.databases import trading_db
from pricetalk.schemas.demo import DemoTradeCreate
from pricetalk.services import pricing
from pricetalk.services.demo_service import DemoService

USER_ID = "507f1f77bcf86cd799439011"


# =============================================================================
# Pricing Tests
# =============================================================================

class TestPricing:
    """Tests for pricing helpers (settings: leverage 100, contract 100k, $10/pip)."""

    def test_market_price_stays_within_jitter(self):
        rng = random.Random(7)
        for _ in range(50):
            price = pricing.market_price("EURUSD", rng)
            assert abs(price - pricing.BASE_PRICES["EURUSD"]) <= pricing.PRICE_JITTER

    def test_unknown_instrument_uses_defaults(self):
        assert abs(pricing.market_price("XAUXAG", random.Random(1)) - 1.0) <= pricing.PRICE_JITTER
        assert pricing.spread("XAUXAG") == pricing.DEFAULT_SPREAD

    def test_buy_fills_at_ask_and_sell_at_bid(self):
        buy = pricing.open_price("EURUSD", "buy", random.Random(3))
        sell = pricing.open_price("EURUSD", "sell", random.Random(3))

        assert buy - sell == pytest.approx(pricing.SPREADS["EURUSD"])

    def test_required_margin(self):
        assert pricing.required_margin(1.0, 1.1) == pytest.approx(1100.0)

    def test_pip_size_for_jpy_pairs(self):
        assert pricing.pip_size("USDJPY") == 0.01
        assert pricing.pip_size("EURUSD") == 0.0001

    def test_position_pnl_in_pips(self):
        pnl = pricing.position_pnl("EURUSD", "buy", 0.5, 1.1000, 1.1020)

        assert pnl == pytest.approx(100.0)

    def test_position_pnl_short_and_costs(self):
        pnl = pricing.position_pnl("USDJPY", "sell", 1.0, 150.00, 149.50, commission=5, swap=2)

        assert pnl == pytest.approx(500.0 - 7)

    def test_margin_level(self):
        assert pricing.margin_level(10000, 1000) == pytest.approx(1000.0)
        assert pricing.margin_level(10000, 0) == 0.0


# =============================================================================
# DemoService Tests
# =============================================================================

@pytest_asyncio.fixture
async def demo(indexed_mongo_client):
    """DemoService on the mock database with a seeded price source."""
    return DemoService(indexed_mongo_client[trading_db.DB_NAME], rng=random.Random(42))


@pytest_asyncio.fixture
async def demo_account(demo):
    return await demo.create_account(USER_ID)


def ticket(**overrides) -> DemoTradeCreate:
    data = {"instrument": "EURUSD", "side": "buy", "volume": 1.0}
    data.update(overrides)
    return DemoTradeCreate(**data)


class TestDemoAccount:
    """Tests for account creation and reset."""

    @pytest.mark.asyncio
    async def test_create_account_with_default_balance(self, demo, demo_account):
        assert demo_account["balance"] == 10000.0
        assert demo_account["free_margin"] == 10000.0
        assert demo_account["margin_used"] == 0.0
        assert demo_account["trade_count"] == 0

    @pytest.mark.asyncio
    async def test_second_account_is_rejected(self, demo, demo_account):
        with pytest.raises(ValueError, match="already exists"):
            await demo.create_account(USER_ID)

    @pytest.mark.asyncio
    async def test_get_account_without_one_returns_none(self, demo):
        assert await demo.get_account(USER_ID) is None

    @pytest.mark.asyncio
    async def test_reset_restores_initial_balance_and_flattens(self, demo):
        await demo.create_account(USER_ID, 25000.0)
        trade = await demo.place_trade(USER_ID, ticket())
        await demo.close_trade(trade["id"], USER_ID)
        open_trade = await demo.place_trade(USER_ID, ticket(side="sell"))

        assert await demo.reset_account(USER_ID) is True

        account = await demo.get_account(USER_ID)
        assert account["balance"] == 25000.0
        assert account["free_margin"] == 25000.0
        assert account["margin_used"] == 0.0
        assert account["total_pnl"] == 0.0
        flattened = await demo.trades.find_one({"_id": ObjectId(open_trade["id"])})
        assert flattened["status"] == "closed"
        assert flattened["pnl"] == 0.0
        assert flattened["exit_price"] == open_trade["open_price"]

    @pytest.mark.asyncio
    async def test_reset_without_account_returns_false(self, demo):
        assert await demo.reset_account(USER_ID) is False


class TestDemoTrades:
    """Tests for placing and closing positions."""

    @pytest.mark.asyncio
    async def test_place_trade_reserves_margin(self, demo, demo_account):
        trade = await demo.place_trade(USER_ID, ticket(volume=2.0))

        assert trade["status"] == "open"
        assert trade["margin"] == pytest.approx(pricing.required_margin(2.0, trade["open_price"]))

        account = await demo.get_account(USER_ID)
        assert account["margin_used"] == pytest.approx(trade["margin"])
        assert account["free_margin"] == pytest.approx(10000.0 - trade["margin"])
        assert account["margin_level"] == pytest.approx(10000.0 / trade["margin"] * 100)

    @pytest.mark.asyncio
    async def test_place_trade_without_account_returns_none(self, demo):
        assert await demo.place_trade(USER_ID, ticket()) is None

    @pytest.mark.asyncio
    async def test_insufficient_margin_is_rejected_and_nothing_changes(self, demo, demo_account):
        # 10 lots of EURUSD need ~10,900 margin on a 10,000 account
        with pytest.raises(ValueError, match="Insufficient margin"):
            await demo.place_trade(USER_ID, ticket(volume=10.0))

        account = await demo.get_account(USER_ID)
        assert account["free_margin"] == 10000.0
        assert await demo.trades.count_documents({"user_id": USER_ID}) == 0

    @pytest.mark.asyncio
    async def test_close_trade_settles_pnl_and_releases_margin(self, demo, demo_account):
        trade = await demo.place_trade(USER_ID, ticket())

        result = await demo.close_trade(trade["id"], USER_ID)

        expected = pricing.position_pnl(
            "EURUSD", "buy", 1.0, trade["open_price"], result["exit_price"]
        )
        assert result["pnl"] == pytest.approx(expected)

        account = await demo.get_account(USER_ID)
        assert account["balance"] == pytest.approx(10000.0 + result["pnl"])
        assert account["equity"] == pytest.approx(10000.0 + result["pnl"])
        assert account["total_pnl"] == pytest.approx(result["pnl"])
        assert account["margin_used"] == pytest.approx(0.0, abs=1e-6)
        # Free margin only gets the released margin back
        assert account["free_margin"] == pytest.approx(10000.0)
        assert account["trade_count"] == 1

    @pytest.mark.asyncio
    async def test_close_twice_only_settles_once(self, demo, demo_account):
        trade = await demo.place_trade(USER_ID, ticket())

        first = await demo.close_trade(trade["id"], USER_ID)
        second = await demo.close_trade(trade["id"], USER_ID)

        assert first is not None
        assert second is None
        account = await demo.get_account(USER_ID)
        assert account["total_pnl"] == pytest.approx(first["pnl"])

    @pytest.mark.asyncio
    async def test_close_other_users_trade_returns_none(self, demo, demo_account):
        trade = await demo.place_trade(USER_ID, ticket())

        assert await demo.close_trade(trade["id"], "507f1f77bcf86cd799439099") is None
        assert await demo.close_trade("garbage", USER_ID) is None

    @pytest.mark.asyncio
    async def test_default_risk_settings_cap_open_trades_at_five(self, demo, demo_account):
        for _ in range(5):
            await demo.place_trade(USER_ID, ticket(volume=0.1))

        with pytest.raises(ValueError, match="Maximum open trades"):
            await demo.place_trade(USER_ID, ticket(volume=0.1))

    @pytest.mark.asyncio
    async def test_disabled_trading_blocks_new_trades(self, demo, demo_account):
        await demo.risk_settings.insert_one({"user_id": USER_ID, "trading_enabled": False})

        with pytest.raises(ValueError, match="Trading is disabled"):
            await demo.place_trade(USER_ID, ticket())


# =============================================================================
# Demo Router Tests
# =============================================================================

class TestDemoRoutes:
    """Tests for /api/demo."""

    def test_account_not_found_before_creation(self, client, auth_headers, assert_error_response):
        response = client.get("/api/demo/account", headers=auth_headers)

        assert_error_response(response, 404, "Demo account not found")

    def test_create_account_without_body(self, client, auth_headers):
        response = client.post("/api/demo/account", headers=auth_headers)

        assert response.status_code == 201
        assert response.json()["data"]["balance"] == 10000.0

    def test_create_account_with_custom_balance(self, client, auth_headers):
        response = client.post(
            "/api/demo/account", json={"initial_balance": 50000}, headers=auth_headers
        )

        assert response.json()["data"]["initial_balance"] == 50000.0

    def test_trade_flow(self, client, auth_headers):
        client.post("/api/demo/account", headers=auth_headers)

        placed = client.post("/api/demo/trades", json={
            "instrument": "GBPUSD", "side": "sell", "volume": 0.5,
        }, headers=auth_headers)
        assert placed.status_code == 201
        trade = placed.json()["data"]
        assert trade["order_type"] == "market"

        closed = client.post(f"/api/demo/trades/{trade['id']}/close", headers=auth_headers)
        assert closed.status_code == 200
        assert set(closed.json()["data"]) == {"exit_price", "pnl"}

        again = client.post(f"/api/demo/trades/{trade['id']}/close", headers=auth_headers)
        assert again.status_code == 404

        listing = client.get("/api/demo/trades", headers=auth_headers).json()
        assert listing["pagination"]["total"] == 1
        assert listing["data"][0]["status"] == "closed"

    def test_insufficient_margin_returns_400(self, client, auth_headers, assert_error_response):
        client.post("/api/demo/account", headers=auth_headers)

        response = client.post("/api/demo/trades", json={
            "instrument": "EURUSD", "side": "buy", "volume": 50,
        }, headers=auth_headers)

        assert_error_response(response, 400, "Insufficient margin")

    def test_place_trade_without_account_returns_404(self, client, auth_headers):
        response = client.post("/api/demo/trades", json={
            "instrument": "EURUSD", "side": "buy", "volume": 1,
        }, headers=auth_headers)

        assert response.status_code == 404

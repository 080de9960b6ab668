"""
Macro bias service: currency heat scores and pair signals.
"""
import logging
import random
from datetime import timedelta
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING

from pricetalk.database.databases import macro_db
from pricetalk.database.documents import serialize, serialize_many, since, utcnow
from pricetalk.models.macro import (
    CURRENCIES,
    FACTOR_WEIGHTS,
    HEAT_SCORE_MAX,
    HEAT_SCORE_MIN,
    Signal,
)

logger = logging.getLogger(__name__)

# Freshness window for "current" bias rows
CURRENT_WINDOW = timedelta(hours=1)

HISTORY_TIMEFRAMES = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}

# Ranges the mock generator draws each factor from
MOCK_FACTOR_RANGES = {
    "cot": (30, 70),
    "retail_sentiment": (20, 80),
    "price_momentum": (25, 75),
    "macro_surprise": (35, 65),
}


def normalize_factor(value: float) -> float:
    """Map a 0-100 factor reading onto the -5..5 heat scale."""
    return (value - 50) / 50 * 5


def calculate_heat_score(
    cot: float,
    retail_sentiment: float,
    price_momentum: float,
    macro_surprise: float,
) -> float:
    """
    Weighted heat score of a currency, clamped to [-5, 5].

    Args:
        cot: Commitment of traders reading (0-100)
        retail_sentiment: Retail positioning reading (0-100)
        price_momentum: Momentum reading (0-100)
        macro_surprise: Economic surprise reading (0-100)
    """
    score = (
        normalize_factor(cot) * FACTOR_WEIGHTS["cot"]
        + normalize_factor(retail_sentiment) * FACTOR_WEIGHTS["retail_sentiment"]
        + normalize_factor(price_momentum) * FACTOR_WEIGHTS["price_momentum"]
        + normalize_factor(macro_surprise) * FACTOR_WEIGHTS["macro_surprise"]
    )
    return max(HEAT_SCORE_MIN, min(HEAT_SCORE_MAX, score))


def pair_signal(pair_bias: float) -> Signal:
    """Signal for a pair bias; thresholds are strict inequalities."""
    if pair_bias > 2:
        return Signal.STRONG_BUY
    if pair_bias > 0.5:
        return Signal.BUY
    if pair_bias < -2:
        return Signal.STRONG_SELL
    if pair_bias < -0.5:
        return Signal.SELL
    return Signal.NEUTRAL


def split_pair(pair: str) -> tuple[str, str]:
    """
    Split a six letter pair into (base, quote).

    Raises:
        ValueError: If the pair is not six letters
    """
    if len(pair) != 6 or not pair.isalpha():
        raise ValueError("Invalid currency pair")
    pair = pair.upper()
    return pair[:3], pair[3:]


class MacroService:
    """Service for macro bias rows and pair analysis."""

    def __init__(self, db: AsyncIOMotorDatabase, rng: Optional[random.Random] = None):
        self.db = db
        self.bias = db[macro_db.Collections.MACRO_BIAS]
        self.rng = rng or random.Random()

    async def current_bias(self) -> list[dict]:
        """Rows from the last hour, newest first."""
        cursor = self.bias.find({"timestamp": {"$gte": since(CURRENT_WINDOW)}}).sort(
            "timestamp", DESCENDING
        )
        return serialize_many(await cursor.to_list(length=None))

    async def bias_history(self, currency: Optional[str] = None, timeframe: str = "24h") -> list[dict]:
        window = HISTORY_TIMEFRAMES.get(timeframe, HISTORY_TIMEFRAMES["24h"])
        query: dict = {"timestamp": {"$gte": since(window)}}
        if currency:
            query["currency"] = currency.upper()
        cursor = self.bias.find(query).sort("timestamp", DESCENDING)
        return serialize_many(await cursor.to_list(length=None))

    async def generate_mock_bias(self) -> list[dict]:
        """Insert one randomly generated bias row per tracked currency."""
        rows = []
        for currency in CURRENCIES:
            readings = {
                name: self.rng.uniform(low, high)
                for name, (low, high) in MOCK_FACTOR_RANGES.items()
            }
            heat = calculate_heat_score(**readings)
            doc = {
                "currency": currency,
                "heat_score": heat,
                "cot_score": readings["cot"],
                "retail_sentiment_score": readings["retail_sentiment"],
                "price_momentum_score": readings["price_momentum"],
                "macro_surprise_score": readings["macro_surprise"],
                "factors": {**readings, "weights": dict(FACTOR_WEIGHTS)},
                "timestamp": utcnow(),
            }
            result = await self.bias.insert_one(doc)
            doc["_id"] = result.inserted_id
            rows.append(serialize(doc))

        logger.info("Generated mock macro bias for %d currencies", len(rows))
        return rows

    async def latest_for(self, currency: str) -> Optional[dict]:
        """Most recent row of a currency within the current window."""
        doc = await self.bias.find_one(
            {"currency": currency, "timestamp": {"$gte": since(CURRENT_WINDOW)}},
            sort=[("timestamp", DESCENDING)],
        )
        return serialize(doc)

    async def analyze_pair(self, pair: str) -> Optional[dict]:
        """
        Compare the heat of a pair's two currencies.

        Returns:
            Analysis dict, or None if either currency lacks recent data

        Raises:
            ValueError: If the pair is malformed
        """
        base, quote = split_pair(pair)
        base_row = await self.latest_for(base)
        quote_row = await self.latest_for(quote)
        if base_row is None or quote_row is None:
            return None

        pair_bias = base_row["heat_score"] - quote_row["heat_score"]
        return {
            "pair": base + quote,
            "base_currency": base,
            "quote_currency": quote,
            "base_bias": base_row["heat_score"],
            "quote_bias": quote_row["heat_score"],
            "pair_bias": pair_bias,
            "signal": pair_signal(pair_bias).value,
            "confidence": abs(pair_bias) / 10 * 100,
            "analysis": {"base": base_row, "quote": quote_row},
        }

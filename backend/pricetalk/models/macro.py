"""
Macro bias model constants.
"""
from enum import Enum

CURRENCIES = ["USD", "EUR", "GBP", "JPY", "AUD", "CAD", "CHF", "NZD"]

# Factor weights of the heat score
FACTOR_WEIGHTS = {
    "cot": 0.25,
    "retail_sentiment": 0.15,
    "price_momentum": 0.30,
    "macro_surprise": 0.30,
}

HEAT_SCORE_MIN = -5.0
HEAT_SCORE_MAX = 5.0


class Signal(str, Enum):
    """Trade signal derived from a pair bias."""
    STRONG_BUY = "STRONG_BUY"
    BUY = "BUY"
    NEUTRAL = "NEUTRAL"
    SELL = "SELL"
    STRONG_SELL = "STRONG_SELL"

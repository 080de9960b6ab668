"""
Mock FX pricing and margin arithmetic for the demo trading engine.

Prices are simulated around fixed base quotes; the random source is
injectable so tests can pin the jitter.
"""
import random
from typing import Optional

from pricetalk.config import get_settings

BASE_PRICES = {
    "EURUSD": 1.0892,
    "GBPUSD": 1.2734,
    "USDJPY": 149.85,
    "AUDUSD": 0.6543,
    "USDCAD": 1.3621,
    "USDCHF": 0.8934,
    "NZDUSD": 0.5987,
}

SPREADS = {
    "EURUSD": 0.00015,
    "GBPUSD": 0.0002,
    "USDJPY": 0.015,
    "AUDUSD": 0.00018,
    "USDCAD": 0.00022,
    "USDCHF": 0.00025,
    "NZDUSD": 0.0003,
}

DEFAULT_BASE_PRICE = 1.0
DEFAULT_SPREAD = 0.0002
PRICE_JITTER = 0.005

_rng = random.Random()


def market_price(instrument: str, rng: Optional[random.Random] = None) -> float:
    """Current mock mid price: base quote plus uniform jitter."""
    rng = rng or _rng
    base = BASE_PRICES.get(instrument.upper(), DEFAULT_BASE_PRICE)
    return base + rng.uniform(-PRICE_JITTER, PRICE_JITTER)


def spread(instrument: str) -> float:
    return SPREADS.get(instrument.upper(), DEFAULT_SPREAD)


def pip_size(instrument: str) -> float:
    """JPY pairs quote to two decimals, everything else to four."""
    return 0.01 if "JPY" in instrument.upper() else 0.0001


def open_price(instrument: str, side: str, rng: Optional[random.Random] = None) -> float:
    """Buys fill at the ask (market + spread), sells at the bid."""
    price = market_price(instrument, rng)
    return price + spread(instrument) if side == "buy" else price


def close_price(instrument: str, side: str, rng: Optional[random.Random] = None) -> float:
    """Buys close at the bid, sells close at the ask."""
    price = market_price(instrument, rng)
    return price if side == "buy" else price + spread(instrument)


def required_margin(volume: float, price: float) -> float:
    """Margin reserved for a position of `volume` lots at `price`."""
    settings = get_settings()
    return volume * settings.demo_contract_size * price / settings.demo_leverage


def position_pnl(
    instrument: str,
    side: str,
    volume: float,
    entry_price: float,
    exit_price: float,
    commission: float = 0.0,
    swap: float = 0.0,
) -> float:
    """
    P&L in USD of a closed demo position.

    pips * pip value * lots, net of commission and swap.
    """
    diff = exit_price - entry_price if side == "buy" else entry_price - exit_price
    pips = diff / pip_size(instrument)
    return pips * get_settings().demo_pip_value_usd * volume - commission - swap


def margin_level(equity: float, margin_used: float) -> float:
    """Equity as a percentage of used margin, 0 when nothing is used."""
    if margin_used > 0:
        return equity / margin_used * 100
    return 0.0

"""
Demo (simulated) trading models.
"""
from enum import Enum


class OrderType(str, Enum):
    MARKET = "market"
    LIMIT = "limit"
    STOP = "stop"


class DemoTradeStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"

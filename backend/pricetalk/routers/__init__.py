"""
API Routers module.
"""
from pricetalk.routers import (
    auth,
    community,
    demo,
    forum,
    health,
    learning,
    macro,
    payments,
    risk,
    stripe,
    trading,
    users,
    ws,
)

__all__ = [
    "auth",
    "community",
    "demo",
    "forum",
    "health",
    "learning",
    "macro",
    "payments",
    "risk",
    "stripe",
    "trading",
    "users",
    "ws",
]

"""
Subscription tier and level gates for premium content.
"""
from typing import Callable

from fastapi import Depends, HTTPException, status

from pricetalk.dependencies.auth import get_current_active_user
from pricetalk.models.user import SubscriptionTier, User


def require_subscription(*allowed_tiers: SubscriptionTier) -> Callable:
    """
    Dependency factory restricting a route to some subscription tiers.

    Usage:
        @router.get("/premium-feature")
        async def premium_route(user: User = Depends(require_subscription(SubscriptionTier.PREMIUM))):
            ...
    """
    allowed = {tier.value for tier in allowed_tiers}

    async def tier_checker(
        current_user: User = Depends(get_current_active_user)
    ) -> User:
        if current_user.subscription_tier not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Subscription upgrade required",
            )
        return current_user

    return tier_checker


def require_level(min_level: int) -> Callable:
    """Dependency factory restricting a route to users at or above a level."""

    async def level_checker(
        current_user: User = Depends(get_current_active_user)
    ) -> User:
        if current_user.level < min_level:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient level",
            )
        return current_user

    return level_checker

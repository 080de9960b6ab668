"""
Dependencies for dependency injection in routes.
"""
from pricetalk.dependencies.auth import CurrentUser, get_current_active_user, get_current_user
from pricetalk.dependencies.access import require_level, require_subscription

__all__ = [
    "CurrentUser",
    "get_current_user",
    "get_current_active_user",
    "require_level",
    "require_subscription",
]

"""
User model for authentication database.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class SubscriptionTier(str, Enum):
    """Billing tiers, ordered from lowest to highest."""
    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


XP_PER_LEVEL = 1000


def level_for_xp(xp: int) -> int:
    """Level reached with the given amount of XP."""
    return 1 + max(0, xp) // XP_PER_LEVEL


class UserProfile(BaseModel):
    """Profile embedded in the user document."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    timezone: Optional[str] = "UTC"
    theme: Theme = Theme.DARK
    language: Optional[str] = "en"
    notifications_enabled: bool = True

    model_config = ConfigDict(use_enum_values=True)


class User(BaseModel):
    """
    User document model for MongoDB auth_db.users collection.
    """
    id: Optional[str] = Field(None, alias="_id", description="MongoDB ObjectId as string")
    email: EmailStr = Field(..., description="Unique email address")
    username: str = Field(..., description="Unique public handle")
    hashed_password: str = Field(..., description="Bcrypt hashed password")
    subscription_tier: SubscriptionTier = Field(
        default=SubscriptionTier.FREE,
        description="Current billing tier"
    )
    subscription_status: Optional[str] = Field(None, description="Mirrors the Stripe status")
    subscription_start_date: Optional[datetime] = None
    stripe_customer_id: Optional[str] = None
    xp: int = Field(default=0, ge=0, description="Experience points")
    level: int = Field(default=1, ge=1, description="Level derived from XP")
    is_active: bool = Field(default=True, description="Deactivated users cannot log in")
    profile: UserProfile = Field(default_factory=UserProfile)
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

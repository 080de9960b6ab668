"""
User profile and account request/response schemas.
"""
from typing import Optional

from pydantic import BaseModel, Field

from pricetalk.models.user import Theme, UserProfile


class ProfileUpdate(BaseModel):
    """Profile update request, every field optional."""
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    timezone: Optional[str] = Field(None, max_length=50)
    theme: Optional[Theme] = None
    language: Optional[str] = Field(None, max_length=10)
    notifications_enabled: Optional[bool] = None


class ProfileResponse(BaseModel):
    id: str
    email: str
    username: str
    subscription_tier: str
    xp: int
    level: int
    profile: UserProfile


class ChangePasswordRequest(BaseModel):
    """Password change; lengths are checked by the service for explicit messages."""
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class TradingStats(BaseModel):
    total_trades: int
    winning_trades: int
    losing_trades: int
    win_rate: float
    total_pnl: float
    avg_pnl: float


class LearningStats(BaseModel):
    total_modules: int
    completed_modules: int
    completion_rate: int


class ChallengeStats(BaseModel):
    total_challenges: int
    completed_challenges: int
    avg_rank: Optional[int] = None


class UserStats(BaseModel):
    trading: TradingStats
    learning: LearningStats
    challenges: ChallengeStats

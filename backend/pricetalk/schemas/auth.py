"""
Authentication request/response schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from pricetalk.models.user import UserProfile


class RegisterRequest(BaseModel):
    """Registration request body."""
    email: EmailStr = Field(..., description="User email address")
    username: str = Field(..., min_length=3, max_length=50, description="Public handle")
    password: str = Field(..., min_length=8, description="User password (min 8 characters)")


class LoginRequest(BaseModel):
    """Login request body."""
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=1, description="User password")


class UserPublic(BaseModel):
    """User information safe to return to clients."""
    id: str
    email: str
    username: str
    subscription_tier: str
    subscription_status: Optional[str] = None
    xp: int
    level: int
    is_active: bool = True
    profile: Optional[UserProfile] = None
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None


class AuthResult(BaseModel):
    """Register/login payload."""
    user: UserPublic
    token: str = Field(..., description="JWT bearer token")

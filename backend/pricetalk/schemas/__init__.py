"""
Request and response schemas for API endpoints.
"""
from pricetalk.schemas.common import ApiResponse, Page, Pagination
from pricetalk.schemas.auth import AuthResult, LoginRequest, RegisterRequest, UserPublic
from pricetalk.schemas.user import ChangePasswordRequest, ProfileUpdate, UserStats

__all__ = [
    # Envelope
    "ApiResponse",
    "Page",
    "Pagination",
    # Auth
    "AuthResult",
    "LoginRequest",
    "RegisterRequest",
    "UserPublic",
    # User
    "ChangePasswordRequest",
    "ProfileUpdate",
    "UserStats",
]

"""
Authentication router for registration, login and session info.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from pricetalk.core.rate_limit import enforce_rate_limit
from pricetalk.database.connections import get_mongo_client
from pricetalk.database.databases import auth_db
from pricetalk.dependencies.auth import CurrentUser
from pricetalk.schemas.auth import AuthResult, LoginRequest, RegisterRequest, UserPublic
from pricetalk.schemas.common import ApiResponse
from pricetalk.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/auth",
    tags=["Authentication"],
    dependencies=[Depends(enforce_rate_limit)],
)


async def get_auth_service() -> AuthService:
    """Dependency to get AuthService instance."""
    client = await get_mongo_client()
    return AuthService(client[auth_db.DB_NAME])


@router.post(
    "/register",
    response_model=ApiResponse[AuthResult],
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(
    body: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Register a new user account.

    - **email**: Valid email address (must be unique)
    - **username**: Public handle, 3-50 characters (must be unique)
    - **password**: Password (minimum 8 characters)
    """
    try:
        result = await auth_service.register_user(body)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ApiResponse(data=result, message="User registered successfully")


@router.post(
    "/login",
    response_model=ApiResponse[AuthResult],
    summary="Login and get access token",
)
async def login(
    body: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Authenticate with email and password to receive a JWT token.

    Send the token as `Authorization: Bearer <token>` to protected endpoints.
    """
    try:
        result = await auth_service.login(body)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    return ApiResponse(data=result, message="Login successful")


@router.get(
    "/me",
    response_model=ApiResponse[UserPublic],
    summary="Get current user info",
)
async def get_current_user_info(
    current_user: CurrentUser,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Get the currently authenticated user with profile."""
    user = await auth_service.get_public_user(current_user.id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return ApiResponse(data=user)


@router.post(
    "/logout",
    response_model=ApiResponse[None],
    summary="Logout",
)
async def logout(current_user: CurrentUser):
    """Tokens are stateless; the client discards its token."""
    logger.info("User %s logged out", current_user.id)
    return ApiResponse(message="Logged out successfully")

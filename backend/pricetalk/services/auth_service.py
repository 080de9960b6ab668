"""
Authentication service for user registration, login and password changes.
"""
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from pricetalk.core.security import create_access_token, hash_password, verify_password
from pricetalk.database.databases import auth_db
from pricetalk.database.documents import parse_object_id, serialize, utcnow
from pricetalk.models.user import SubscriptionTier, User, UserProfile
from pricetalk.schemas.auth import LoginRequest, RegisterRequest

logger = logging.getLogger(__name__)

DUPLICATE_USER_MESSAGE = "User with this email or username already exists"
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
DEACTIVATED_MESSAGE = "Account is deactivated"

# Never leaves the service layer
PRIVATE_USER_FIELDS = ("hashed_password", "stripe_customer_id")


def public_user(user_doc: dict) -> dict:
    """Client-safe view of a stored user document."""
    return serialize(user_doc, exclude=PRIVATE_USER_FIELDS)


class AuthService:
    """Service for authentication operations."""

    def __init__(self, db: AsyncIOMotorDatabase):
        """Initialize with auth database."""
        self.db = db
        self.users = db[auth_db.Collections.USERS]

    async def register_user(self, request: RegisterRequest) -> dict:
        """
        Register a new user.

        Args:
            request: Registration request with email, username and password

        Returns:
            Dict with the public user and a JWT token

        Raises:
            ValueError: If the email or username is already taken
        """
        existing = await self.users.find_one(
            {"$or": [{"email": request.email}, {"username": request.username}]}
        )
        if existing:
            raise ValueError(DUPLICATE_USER_MESSAGE)

        now = utcnow()
        user_doc = {
            "email": request.email,
            "username": request.username,
            "hashed_password": hash_password(request.password),
            "subscription_tier": SubscriptionTier.FREE.value,
            "subscription_status": None,
            "subscription_start_date": None,
            "stripe_customer_id": None,
            "xp": 0,
            "level": 1,
            "is_active": True,
            "profile": UserProfile().model_dump(),
            "last_login": None,
            "created_at": now,
            "updated_at": now,
        }

        try:
            result = await self.users.insert_one(user_doc)
        except DuplicateKeyError:
            # Lost a race against a concurrent registration
            raise ValueError(DUPLICATE_USER_MESSAGE)

        user_doc["_id"] = result.inserted_id
        logger.info("Registered user %s", result.inserted_id)

        user = public_user(user_doc)
        return {"user": user, "token": create_access_token(user)}

    async def login(self, request: LoginRequest) -> dict:
        """
        Authenticate user and return a JWT token.

        Raises:
            ValueError: If credentials are invalid or the account is deactivated
        """
        user_doc = await self.users.find_one({"email": request.email})
        if not user_doc or not verify_password(request.password, user_doc["hashed_password"]):
            raise ValueError(INVALID_CREDENTIALS_MESSAGE)

        if not user_doc.get("is_active", True):
            raise ValueError(DEACTIVATED_MESSAGE)

        now = utcnow()
        await self.users.update_one(
            {"_id": user_doc["_id"]},
            {"$set": {"last_login": now}},
        )
        user_doc["last_login"] = now

        user = public_user(user_doc)
        return {"user": user, "token": create_access_token(user)}

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        """
        Get user by ID.

        Returns:
            User model or None if not found or the id is malformed
        """
        oid = parse_object_id(user_id)
        if oid is None:
            return None

        user_doc = await self.users.find_one({"_id": oid})
        if not user_doc:
            return None

        user_doc["_id"] = str(user_doc["_id"])
        return User(**user_doc)

    async def get_public_user(self, user_id: str) -> Optional[dict]:
        oid = parse_object_id(user_id)
        if oid is None:
            return None
        user_doc = await self.users.find_one({"_id": oid})
        return public_user(user_doc) if user_doc else None

    async def change_password(
        self,
        user_id: str,
        current_password: Optional[str],
        new_password: Optional[str],
    ) -> None:
        """
        Change user password after verifying the current one.

        Raises:
            ValueError: On missing fields, a short new password or a wrong current password
            LookupError: If the user does not exist
        """
        if not current_password or not new_password:
            raise ValueError("Current password and new password are required")

        if len(new_password) < 8:
            raise ValueError("New password must be at least 8 characters")

        user_doc = await self.users.find_one({"_id": parse_object_id(user_id)})
        if not user_doc:
            raise LookupError("User not found")

        if not verify_password(current_password, user_doc["hashed_password"]):
            raise ValueError("Current password is incorrect")

        await self.users.update_one(
            {"_id": user_doc["_id"]},
            {"$set": {"hashed_password": hash_password(new_password), "updated_at": utcnow()}},
        )
        logger.info("Password changed for user %s", user_id)

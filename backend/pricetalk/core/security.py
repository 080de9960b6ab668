"""
Password hashing and JWT helpers.

Tokens are stateless: logout is acknowledged by the API but a token stays
valid until `exp`.
"""
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

from jose import jwt
from passlib.context import CryptContext

from pricetalk.config import get_settings

# Claims copied from the user document into every token
IDENTITY_CLAIMS = ("email", "username", "subscription_tier", "xp", "level")
CLAIM_DEFAULTS = {"subscription_tier": "free", "xp": 0, "level": 1}


@lru_cache
def get_pwd_context() -> CryptContext:
    settings = get_settings()
    return CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__rounds=settings.bcrypt_rounds,
    )


def hash_password(plain_password: str) -> str:
    return get_pwd_context().hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """False on mismatch; never raises for a wrong password."""
    return get_pwd_context().verify(plain_password, hashed_password)


def create_access_token(
    user: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Sign a token for a user document.

    Args:
        user: Stored or serialized user (`_id` or `id` plus the identity claims)
        expires_delta: Lifetime; defaults to JWT_ACCESS_TOKEN_EXPIRE_MINUTES (7 days)
    """
    settings = get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_access_token_expire_minutes)

    issued_at = datetime.now(timezone.utc)
    claims = {name: user.get(name, CLAIM_DEFAULTS.get(name)) for name in IDENTITY_CLAIMS}
    claims.update(
        sub=str(user.get("id") or user.get("_id")),
        iat=issued_at,
        exp=issued_at + expires_delta,
    )

    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any]:
    """
    Verify signature and expiry and return the claims.

    Raises:
        JWTError: If the token is malformed, tampered with or expired
    """
    settings = get_settings()
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])

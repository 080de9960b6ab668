"""
Core module - Security, rate limiting, logging and error handling.
"""
from pricetalk.core.security import (
    create_access_token,
    decode_token,
    hash_password,
    verify_password,
)
from pricetalk.core.rate_limit import check_rate_limit, enforce_rate_limit

__all__ = [
    "hash_password",
    "verify_password",
    "create_access_token",
    "decode_token",
    "check_rate_limit",
    "enforce_rate_limit",
]

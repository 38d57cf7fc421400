"""
Secret generation and validation for the n8n security keys.

n8n needs an encryption key of exactly 32 characters and a JWT secret
of at least 16. Generated values come from the OS random source; when
that source is missing the generators return ``None`` and the caller
falls back to a manual prompt that only accepts conforming values.
"""

from __future__ import annotations

import base64
import logging
import secrets as _secrets

logger = logging.getLogger(__name__)

ENCRYPTION_KEY_LENGTH = 32
JWT_SECRET_MIN_LENGTH = 16
JWT_SECRET_RECOMMENDED_LENGTH = 32


def generate_encryption_key() -> str | None:
    """32 hex characters from 16 random bytes, or None without a random source."""
    try:
        return _secrets.token_hex(ENCRYPTION_KEY_LENGTH // 2)
    except NotImplementedError:
        logger.warning("No secure random source available for the encryption key")
        return None


def generate_jwt_secret() -> str | None:
    """Base64 of 32 random bytes (44 characters), or None without a random source."""
    try:
        raw = _secrets.token_bytes(JWT_SECRET_RECOMMENDED_LENGTH)
    except NotImplementedError:
        logger.warning("No secure random source available for the JWT secret")
        return None
    return base64.b64encode(raw).decode("ascii")


def encryption_key_error(value: str) -> str | None:
    """Why ``value`` is not a valid encryption key, or None if it is."""
    if len(value) != ENCRYPTION_KEY_LENGTH:
        return f"Encryption key must be exactly {ENCRYPTION_KEY_LENGTH} characters"
    return None


def jwt_secret_error(value: str) -> str | None:
    """Why ``value`` is not a valid JWT secret, or None if it is."""
    if len(value) < JWT_SECRET_MIN_LENGTH:
        return f"JWT secret should be at least {JWT_SECRET_MIN_LENGTH} characters"
    return None

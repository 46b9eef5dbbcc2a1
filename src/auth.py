"""
DesignDesk Authentication Module
Gateway API-key validation and caller identity for HTTP endpoints

The service sits behind an auth gateway which forwards a shared key
(X-API-Key) and the authenticated user's id (X-User-Id).
Security-critical: Uses constant-time comparison to prevent timing attacks
"""

import secrets
import logging
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from src.config import settings
from src.errors import UnauthorizedError, ForbiddenError
from src.models import User, get_db

logger = logging.getLogger("designdesk.auth")

if not settings.MARKETPLACE_API_KEY:
    logger.warning(
        "MARKETPLACE_API_KEY not set - gateway key check DISABLED (development mode only)"
    )


async def verify_api_key(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key")
) -> str:
    """
    FastAPI dependency - validates the gateway key from the X-API-Key header.

    Returns:
        str: The validated API key (or "dev-bypass" when no key is configured)

    Raises:
        UnauthorizedError: key missing
        ForbiddenError: key invalid
    """
    expected = settings.MARKETPLACE_API_KEY
    if not expected:
        return "dev-bypass"

    if not x_api_key:
        logger.warning("Request rejected - missing X-API-Key header")
        raise UnauthorizedError("Missing X-API-Key header")

    if not secrets.compare_digest(x_api_key.encode("utf-8"), expected.encode("utf-8")):
        key_preview = x_api_key[:8] if len(x_api_key) >= 8 else x_api_key
        logger.warning(f"Request rejected - invalid API key: {key_preview}...")
        raise ForbiddenError("Invalid API key")

    return x_api_key


async def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    api_key: str = Depends(verify_api_key),
    db: Session = Depends(get_db)
) -> User:
    """Resolve the caller forwarded by the gateway"""
    if not x_user_id:
        raise UnauthorizedError("Missing X-User-Id header")

    user = db.query(User).filter(User.id == x_user_id).first()
    if user is None:
        logger.warning(f"Request rejected - unknown user {x_user_id}")
        raise UnauthorizedError("Unknown user")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != "ADMIN":
        logger.warning(f"Admin endpoint denied for user {user.id} (role={user.role})")
        raise ForbiddenError("Admin access required")
    return user


def generate_api_key(length: int = 32) -> str:
    """
    Generate a cryptographically secure gateway key.

    Usage:
        python -c "from src.auth import generate_api_key; print(generate_api_key())"
    """
    return secrets.token_urlsafe(length)


def is_auth_enabled() -> bool:
    """Check if the gateway key check is enabled"""
    return bool(settings.MARKETPLACE_API_KEY)

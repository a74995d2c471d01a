"""
JWT token utilities.

WHY: Survey analytics are only served to the survey's owner. Tokens are
issued by the platform's auth service; this module verifies them and
extracts the acting user's identity.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from survey_insights.core.config import settings
from survey_insights.core.exceptions import (
    TokenExpiredError,
    TokenInvalidError,
)

DEFAULT_EXPIRATION = timedelta(hours=24)


def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed JWT access token.

    WHY: Used by tooling and tests; production tokens come from the auth
    service and carry the same claims.

    Args:
        data: Claims to encode (normally "sub" with the user ID)
        expires_delta: Optional custom lifetime (default 24 hours)

    Returns:
        JWT token string
    """
    now = datetime.now(timezone.utc)
    to_encode = data.copy()
    to_encode.update(
        {
            "exp": now + (expires_delta or DEFAULT_EXPIRATION),
            "iat": now,
            "nbf": now,
        }
    )
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> Dict[str, Any]:
    """
    Verify and decode a JWT token.

    Args:
        token: JWT token string

    Returns:
        Decoded token payload

    Raises:
        TokenExpiredError: If token has expired
        TokenInvalidError: If token is malformed or signature invalid
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except jwt.ExpiredSignatureError:
        # Expired tokens get their own error so clients can refresh
        raise TokenExpiredError() from None
    except JWTError as e:
        raise TokenInvalidError(error=str(e)) from None


def subject_from_payload(payload: Dict[str, Any]) -> str:
    """
    Get the acting user ID from a decoded token.

    The "sub" claim wins; older tokens carry "user_id" instead.

    Raises:
        TokenInvalidError: If neither claim is present
    """
    subject = payload.get("sub")
    if subject in (None, ""):
        subject = payload.get("user_id")
    if subject in (None, ""):
        raise TokenInvalidError(message="Token has no subject")
    return str(subject)

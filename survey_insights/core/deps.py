"""
FastAPI dependencies for authentication and services.

WHY: Dependencies provide reusable authentication logic that can be
injected into route handlers, ensuring consistent security across the API.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from survey_insights.core.auth import subject_from_payload, verify_token
from survey_insights.core.exceptions import AuthenticationError
from survey_insights.db.session import get_db
from survey_insights.services.survey_service import SurveyInsightsService

# HTTP Bearer token security scheme
# Format: "Authorization: Bearer <token>"
# auto_error is off so a missing header maps to our 401 response
security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Get the authenticated user's ID from the JWT bearer token.

    Usage:
        @router.get("/protected")
        async def protected_route(user_id: str = Depends(get_current_user_id)):
            return {"user_id": user_id}

    Args:
        credentials: JWT token from Authorization header

    Returns:
        User ID ("sub" or "user_id" claim)

    Raises:
        AuthenticationError: If the token is missing, invalid or expired
    """
    if credentials is None:
        raise AuthenticationError(message="Not authenticated")

    payload = verify_token(credentials.credentials)
    return subject_from_payload(payload)


async def get_insights_service(
    db: AsyncSession = Depends(get_db),
) -> SurveyInsightsService:
    """Provide a SurveyInsightsService bound to the request's session."""
    return SurveyInsightsService(db)

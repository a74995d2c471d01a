"""
Survey API Routes.

WHAT: FastAPI router for survey analytics and response exports.

WHY: Survey owners need:
1. A dashboard summary of how each question was answered
2. A submission trend over time
3. Downloadable CSV / JSON copies of the raw responses

HOW: Thin handlers; lookups, ownership checks and serialization live in
SurveyInsightsService. Errors surface as AppException subclasses and are
rendered by the registered exception handlers.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from survey_insights.core.deps import get_current_user_id, get_insights_service
from survey_insights.core.exceptions import ResponsesNotFoundError
from survey_insights.schemas.survey import SurveyAnalytics
from survey_insights.services.survey_service import SurveyInsightsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/surveys", tags=["surveys"])


# ============================================================================
# Analytics Endpoints
# ============================================================================


@router.get(
    "/{survey_id}/analytics",
    response_model=SurveyAnalytics,
    summary="Get survey analytics",
    description="""
    Per-question analytics, submission trend and survey-level figures.

    Only the survey's owner may read its analytics; other users get 404.
    """,
)
async def get_survey_analytics(
    survey_id: str,
    text_limit: Optional[int] = Query(
        None, ge=1, le=100, description="Text answers surfaced per question"
    ),
    user_id: str = Depends(get_current_user_id),
    service: SurveyInsightsService = Depends(get_insights_service),
) -> SurveyAnalytics:
    """
    Get survey analytics.

    WHAT: Aggregates all responses of one survey.

    Args:
        survey_id: Survey ID
        text_limit: Override for the text answer cap
        user_id: Authenticated user ID
        service: Insights service

    Returns:
        SurveyAnalytics

    Raises:
        SurveyNotFoundError (404): If survey not found or not owned
    """
    return await service.get_analytics(
        survey_id=survey_id,
        owner_id=user_id,
        text_limit=text_limit,
    )


# ============================================================================
# Export Endpoints
# ============================================================================


@router.get(
    "/{survey_id}/export",
    summary="Export survey responses",
    description="""
    Download all responses of a survey.

    Formats:
    - csv (default): UTF-8 with byte-order mark, one row per response
    - json: survey definition, responses and export metadata
    """,
    responses={
        200: {"content": {"text/csv": {}, "application/json": {}}},
    },
)
async def export_survey_responses(
    survey_id: str,
    export_format: str = Query("csv", alias="format", description="csv or json"),
    user_id: str = Depends(get_current_user_id),
    service: SurveyInsightsService = Depends(get_insights_service),
) -> Response:
    """
    Export survey responses.

    Args:
        survey_id: Survey ID
        export_format: "csv" or "json"
        user_id: Authenticated user ID
        service: Insights service

    Returns:
        Downloadable document

    Raises:
        UnsupportedExportFormatError (400): If format is invalid
        SurveyNotFoundError (404): If survey not found or not owned
        ResponsesNotFoundError (404): If the survey has no responses
    """
    document = await service.export_responses(
        survey_id=survey_id,
        export_format=export_format,
        owner_id=user_id,
    )

    if document.is_empty:
        raise ResponsesNotFoundError(survey_id=survey_id)

    logger.info("Survey %s exported by user %s", survey_id, user_id)
    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={
            "Content-Disposition": document.content_disposition(),
        },
    )

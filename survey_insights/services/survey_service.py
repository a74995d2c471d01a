"""
Survey Insights Service.

WHAT: Business logic behind the analytics and export endpoints.

WHY: The service layer:
1. Fetches the survey and its responses through the DAOs
2. Turns missing or foreign surveys into SurveyNotFoundError
3. Fixes "now" once per request and hands everything to the pure
   analytics / export engine

HOW: Orchestrates SurveyDAO, SurveyResponseDAO, AnalyticsService and
ExportService. Holds no state beyond the request's session.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from survey_insights.core.config import settings
from survey_insights.core.exceptions import SurveyNotFoundError
from survey_insights.dao.survey import SurveyDAO, SurveyResponseDAO
from survey_insights.schemas.survey import Survey, SurveyAnalytics, SurveyResponse
from survey_insights.services.analytics_service import AggregationOptions, AnalyticsService
from survey_insights.services.export_service import (
    ExportDocument,
    ExportService,
    parse_export_format,
)

logger = logging.getLogger(__name__)


class SurveyInsightsService:
    """
    Service for survey analytics and exports.

    WHAT: Loads inputs and runs the engine for one survey.

    WHY: Keeps the routes free of lookups and the engine free of I/O.

    HOW: Coordinates DAOs and the engine services.
    """

    def __init__(
        self,
        session: AsyncSession,
        options: Optional[AggregationOptions] = None,
    ):
        """
        Initialize SurveyInsightsService.

        Args:
            session: Async database session
            options: Aggregation tunables (from settings when omitted)
        """
        self.session = session
        self.survey_dao = SurveyDAO(session)
        self.response_dao = SurveyResponseDAO(session)
        self.options = options or AggregationOptions.from_settings(settings)

    async def get_survey(
        self,
        survey_id: str,
        owner_id: Optional[str] = None,
    ) -> Survey:
        """
        Get a survey by ID.

        Args:
            survey_id: Survey ID
            owner_id: When given, the survey must belong to this user

        Returns:
            Survey

        Raises:
            SurveyNotFoundError: If not found (or not owned by owner_id)
        """
        if owner_id is None:
            survey = await self.survey_dao.find_survey_by_id(survey_id)
        else:
            survey = await self.survey_dao.find_survey_for_owner(survey_id, owner_id)

        if not survey:
            raise SurveyNotFoundError(survey_id=survey_id)
        return survey

    async def load_inputs(
        self,
        survey_id: str,
        owner_id: Optional[str] = None,
    ) -> Tuple[Survey, List[SurveyResponse]]:
        """
        Load a survey and its responses in submission order.

        Raises:
            SurveyNotFoundError: If the survey is not found
        """
        survey = await self.get_survey(survey_id, owner_id)
        responses = await self.response_dao.find_responses_by_survey_id(survey.id)
        logger.debug("Loaded %d responses for survey %s", len(responses), survey.id)
        return survey, responses

    async def get_analytics(
        self,
        survey_id: str,
        owner_id: Optional[str] = None,
        text_limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> SurveyAnalytics:
        """
        Compute analytics for a survey.

        WHAT: Per-question analytics, trend and survey-level figures.

        WHY: Feeds the analytics dashboard.

        Args:
            survey_id: Survey ID
            owner_id: Acting user ID
            text_limit: Override for the number of text answers surfaced
            now: Instant of this request (defaults to the current UTC time)

        Returns:
            SurveyAnalytics

        Raises:
            SurveyNotFoundError: If the survey is not found
        """
        survey, responses = await self.load_inputs(survey_id, owner_id)

        options = self.options
        if text_limit is not None:
            options = replace(options, text_summary_limit=text_limit)

        return AnalyticsService(options).analyze_survey(
            survey,
            responses,
            now=now or datetime.now(timezone.utc),
        )

    async def export_responses(
        self,
        survey_id: str,
        export_format: Any,
        owner_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ExportDocument:
        """
        Export a survey's responses.

        WHAT: CSV or JSON document plus filename.

        WHY: Offline analysis in spreadsheets and scripts.

        Args:
            survey_id: Survey ID
            export_format: "csv" or "json"
            owner_id: Acting user ID
            now: Instant of this request (defaults to the current UTC time)

        Returns:
            ExportDocument (the sentinel document when there are no responses)

        Raises:
            UnsupportedExportFormatError: If the format is invalid
            SurveyNotFoundError: If the survey is not found
        """
        # Format errors are reported before any lookup
        fmt = parse_export_format(export_format)
        survey, responses = await self.load_inputs(survey_id, owner_id)

        return ExportService().serialize(
            survey,
            responses,
            fmt,
            now=now or datetime.now(timezone.utc),
        )

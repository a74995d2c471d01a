"""
Survey Data Access Object (DAO).

WHAT: Database reads for surveys and survey responses.

WHY: The DAO pattern:
1. Separates data access from the analytics engine
2. Implements the repository contract the engine relies on
   (find survey by id, find responses by survey id)
3. Scopes surveys to their owner for the HTTP layer

HOW: Extends BaseDAO; every public finder returns pydantic domain
schemas, never ORM rows.
"""

import logging
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from survey_insights.dao.base import BaseDAO
from survey_insights.models.survey import SurveyRecord, SurveyResponseRecord
from survey_insights.schemas.survey import Survey, SurveyResponse

logger = logging.getLogger(__name__)


class SurveyDAO(BaseDAO[SurveyRecord]):
    """
    Data Access Object for surveys.

    WHAT: Provides survey lookups.

    HOW: Extends BaseDAO with owner-scoped lookups.
    """

    def __init__(self, session: AsyncSession):
        """Initialize SurveyDAO."""
        super().__init__(SurveyRecord, session)

    async def find_survey_by_id(self, survey_id: str) -> Optional[Survey]:
        """
        Find a survey by ID.

        Args:
            survey_id: Survey ID

        Returns:
            Survey, or None if it does not exist
        """
        record = await self.get_by_id(survey_id)
        return record.to_domain() if record else None

    async def find_survey_for_owner(
        self,
        survey_id: str,
        owner_id: str,
    ) -> Optional[Survey]:
        """
        Find a survey owned by a given user.

        WHY: Survey owners may only see analytics for their own surveys;
        other users get the same answer as for a missing survey.

        Args:
            survey_id: Survey ID
            owner_id: Acting user ID

        Returns:
            Survey, or None if missing or owned by someone else
        """
        result = await self.session.execute(
            select(SurveyRecord).where(
                SurveyRecord.id == survey_id,
                SurveyRecord.owner_id == owner_id,
            )
        )
        record = result.scalar_one_or_none()
        return record.to_domain() if record else None


class SurveyResponseDAO(BaseDAO[SurveyResponseRecord]):
    """
    Data Access Object for survey responses.

    WHAT: Provides response collection reads.

    HOW: Extends BaseDAO with a survey-scoped, submission-ordered finder.
    """

    def __init__(self, session: AsyncSession):
        """Initialize SurveyResponseDAO."""
        super().__init__(SurveyResponseRecord, session)

    async def find_responses_by_survey_id(self, survey_id: str) -> List[SurveyResponse]:
        """
        Get all responses for a survey in submission order.

        WHAT: Oldest first; responses submitted at the same instant are
        ordered by ID.

        WHY: Analytics tie-breaks (most common answer, text samples) and
        export row order both follow this order, so it must be stable.
        Rows whose stored answers do not fit the schema are coerced (see
        coerce_answers) and logged rather than failing the whole read.

        Args:
            survey_id: Survey ID

        Returns:
            List of responses
        """
        result = await self.session.execute(
            select(SurveyResponseRecord)
            .where(SurveyResponseRecord.survey_id == survey_id)
            .order_by(SurveyResponseRecord.submitted_at.asc(), SurveyResponseRecord.id.asc())
        )
        responses = []
        for record in result.scalars().all():
            try:
                responses.append(record.to_domain())
            except ValidationError:
                logger.warning(
                    "Response %s has non-conforming stored data; coercing it",
                    record.id,
                )
                responses.append(record.to_domain(lenient=True))
        return responses

"""
Data Access Object (DAO) package.

WHY: DAOs provide a clean separation between database operations and business logic,
making the codebase more testable and maintainable.
"""

from survey_insights.dao.base import BaseDAO
from survey_insights.dao.survey import SurveyDAO, SurveyResponseDAO

__all__ = [
    "BaseDAO",
    "SurveyDAO",
    "SurveyResponseDAO",
]

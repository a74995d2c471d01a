"""
Database models package.

WHY: Centralizing model imports ensures Alembic can discover all models
for migration generation and makes it easier to import models elsewhere.
"""

from survey_insights.models.base import Base
from survey_insights.models.survey import SurveyRecord, SurveyResponseRecord

__all__ = [
    "Base",
    "SurveyRecord",
    "SurveyResponseRecord",
]

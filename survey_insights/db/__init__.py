"""Database package"""

from survey_insights.db.session import AsyncSessionLocal, engine, get_db
from survey_insights.models.base import Base

__all__ = ["Base", "AsyncSessionLocal", "engine", "get_db"]

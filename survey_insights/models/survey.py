"""
Survey and Response models.

WHAT: SQLAlchemy models for stored surveys and their responses.

WHY: The analytics engine works on materialized, in-memory inputs; these
tables are where those inputs are read from.

HOW: Uses SQLAlchemy 2.0 with:
- Questions and answers stored as JSON documents (JSONB on PostgreSQL)
- String identifiers, as issued by the survey authoring service
- to_domain() converting rows into the pydantic domain schemas
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from survey_insights.models.base import Base
from survey_insights.schemas.survey import Survey, SurveyResponse, coerce_answers

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class SurveyRecord(Base):
    """
    Stored survey definition.

    WHAT: Survey metadata plus fixed and dynamically generated questions.

    WHY: Dynamic questions are appended during sessions (AI follow-ups)
    and live in their own column so fixed-question order is never
    disturbed.
    """

    __tablename__ = "surveys"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    owner_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    target_language: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    # Question lists (JSON arrays of question objects)
    # Example item:
    #   {"id": "q1", "text": "How satisfied are you?", "type": "rating",
    #    "options": [], "isRequired": true}
    questions: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONDocument, default=list, nullable=False
    )
    dynamic_questions: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONDocument, default=list, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, onupdate=func.now(), nullable=True
    )

    responses: Mapped[List["SurveyResponseRecord"]] = relationship(
        "SurveyResponseRecord", back_populates="survey", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("ix_surveys_owner_id", "owner_id"),)

    def __repr__(self) -> str:
        return f"<SurveyRecord(id={self.id!r}, title={self.title!r})>"

    def to_domain(self) -> Survey:
        """Convert to the Survey schema used by the analytics engine."""
        return Survey(
            id=self.id,
            owner_id=self.owner_id,
            title=self.title,
            description=self.description or "",
            target_language=self.target_language,
            questions=self.questions or [],
            dynamic_questions=self.dynamic_questions or [],
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class SurveyResponseRecord(Base):
    """
    Stored survey response.

    WHAT: One respondent's answers, keyed by question ID.

    HOW: Answers are stored as a JSON object; values are strings, numbers,
    booleans or string arrays depending on the question type.
    """

    __tablename__ = "survey_responses"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    survey_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False
    )

    # Respondent (nullable for anonymous)
    user_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    language: Mapped[str] = mapped_column(String(16), default="en", nullable=False)

    submitted_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    completion_time_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    answers: Mapped[Dict[str, Any]] = mapped_column(JSONDocument, default=dict, nullable=False)

    survey: Mapped["SurveyRecord"] = relationship("SurveyRecord", back_populates="responses")

    __table_args__ = (
        Index("ix_survey_responses_survey_id", "survey_id"),
        Index("ix_survey_responses_submitted_at", "submitted_at"),
    )

    def __repr__(self) -> str:
        return f"<SurveyResponseRecord(id={self.id!r}, survey_id={self.survey_id!r})>"

    def to_domain(self, lenient: bool = False) -> SurveyResponse:
        """
        Convert to the SurveyResponse schema used by the analytics engine.

        Args:
            lenient: Coerce non-conforming answers to JSON text and drop a
                negative completion time instead of failing validation

        Raises:
            pydantic.ValidationError: If the row does not fit the schema and
                lenient is False
        """
        answers = self.answers or {}
        completion_time = self.completion_time_ms
        if lenient:
            answers = coerce_answers(answers)
            if completion_time is not None and completion_time < 0:
                completion_time = None
        return SurveyResponse(
            id=self.id,
            survey_id=self.survey_id,
            user_id=self.user_id,
            language=self.language,
            submitted_at=self.submitted_at,
            completion_time=completion_time,
            answers=answers,
        )

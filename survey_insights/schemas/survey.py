"""
Survey Pydantic Schemas.

WHAT: Domain types consumed and produced by the analytics/export engine.

WHY: Pydantic schemas provide:
1. Validation of survey and response records coming from storage
2. The canonical external (camelCase) representation used by the JSON
   export and the analytics API
3. A closed set of question types and answer shapes

HOW: Defines schemas for:
- Questions, surveys and responses (inputs)
- Question analytics, trend points and survey analytics (derived outputs)
"""

import json
from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    TypeAdapter,
    ValidationError,
)
from pydantic.alias_generators import to_camel


def as_utc(value: datetime) -> datetime:
    """Return `value` as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_instant(value: datetime) -> str:
    """
    Render an ISO-8601 UTC instant with millisecond precision.

    Example:
        >>> format_instant(datetime(2024, 5, 1, 9, 30))
        '2024-05-01T09:30:00.000Z'
    """
    value = as_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


# Datetimes are emitted as "...T09:30:00.000Z" in JSON output
Instant = Annotated[
    datetime, PlainSerializer(format_instant, return_type=str, when_used="json")
]

# Answers are a closed union. StrictBool comes first so True is never read as 1.
AnswerValue = Union[
    StrictBool,
    StrictInt,
    StrictFloat,
    StrictStr,
    List[StrictStr],
    Dict[str, Any],
]

_ANSWER_ADAPTER = TypeAdapter(Optional[AnswerValue])


def coerce_answers(answers: Dict[str, Any]) -> Dict[str, Optional[AnswerValue]]:
    """
    Fit stored answers into AnswerValue.

    WHAT: Values that already conform are kept as-is; anything else (for
    example a list of numbers) becomes its compact JSON text.

    WHY: Answers are written by other services and stored as free-form
    JSON. One odd value should not hide a whole survey's analytics.
    """
    coerced: Dict[str, Optional[AnswerValue]] = {}
    for question_id, value in answers.items():
        try:
            coerced[question_id] = _ANSWER_ADAPTER.validate_python(value)
        except ValidationError:
            coerced[question_id] = json.dumps(
                value, ensure_ascii=False, separators=(",", ":"), default=str
            )
    return coerced


class CamelModel(BaseModel):
    """Base schema: snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuestionType(str, Enum):
    """Question types."""

    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    SCALE = "scale"
    RATING = "rating"
    YES_NO = "yes_no"
    BOOLEAN = "boolean"
    TEXT = "text"

    @property
    def is_boolean(self) -> bool:
        return self in (QuestionType.YES_NO, QuestionType.BOOLEAN)


class ExportFormat(str, Enum):
    """Export document formats (case-sensitive)."""

    CSV = "csv"
    JSON = "json"


class TrendDirection(str, Enum):
    """Direction of recent response activity."""

    UPWARD = "upward"
    DOWNWARD = "downward"
    STEADY = "steady"


# ============================================================================
# Input Schemas
# ============================================================================


class Question(CamelModel):
    """
    Schema for a survey question.

    WHAT: A single prompt; its type governs how answers are aggregated.

    WHY: Questions are immutable once attached to a survey, so the model
    is frozen.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Question ID, unique within a survey")
    text: str = Field(..., description="Display text")
    type: QuestionType = Field(..., description="Question type")
    options: List[str] = Field(default_factory=list, description="Choices / scale labels")
    is_required: bool = Field(default=True, description="Is required")
    is_ai_generated: bool = Field(
        default=False, alias="isAIGenerated", description="Generated during a session"
    )
    order: int = Field(default=0, description="Display order")


class Survey(CamelModel):
    """
    Schema for a survey definition.

    WHAT: Fixed questions plus questions generated during sessions.

    WHY: The engine treats both lists uniformly, fixed questions first.
    """

    id: str = Field(..., description="Survey ID")
    title: str = Field(..., description="Survey title")
    description: str = Field(default="", description="Survey description")
    target_language: Optional[str] = Field(None, description="Target locale tag")
    questions: List[Question] = Field(default_factory=list)
    dynamic_questions: List[Question] = Field(default_factory=list)
    created_at: Optional[Instant] = None
    updated_at: Optional[Instant] = None
    owner_id: Optional[str] = Field(None, description="Owning user")

    def all_questions(self) -> List[Question]:
        """Fixed questions in definition order, then dynamic questions."""
        return [*self.questions, *self.dynamic_questions]


class SurveyResponse(CamelModel):
    """
    Schema for one respondent's submission.

    WHAT: Answers keyed by question ID plus submission metadata.

    WHY: Keys that match no question and missing keys are both tolerated;
    the engine treats them as absent answers.
    """

    id: str = Field(..., description="Response ID")
    survey_id: str = Field(..., description="Survey this response belongs to")
    user_id: Optional[str] = Field(None, description="Respondent (null if anonymous)")
    language: str = Field(default="en", description="Locale tag")
    submitted_at: Instant = Field(..., description="Submission instant")
    completion_time: Optional[int] = Field(
        None, ge=0, description="Time to complete in milliseconds"
    )
    answers: Dict[str, Optional[AnswerValue]] = Field(default_factory=dict)


# ============================================================================
# Derived Schemas
# ============================================================================


class QuestionAnalytics(CamelModel):
    """
    Per-question statistics for dashboard rendering.

    WHAT: Distribution, most common answer, average rating or text samples
    depending on the question type.
    """

    question_id: str
    question_text: str
    question_type: QuestionType
    total_responses: int = Field(..., description="Responses with a present answer")
    response_distribution: Dict[str, int] = Field(default_factory=dict)
    most_common_answer: Optional[str] = None
    average_rating: Optional[float] = None
    text_response_summary: List[str] = Field(default_factory=list)


class TrendPoint(CamelModel):
    """Responses submitted on one UTC calendar day."""

    date: date
    responses: int


class TrendSummary(CamelModel):
    """Daily trend points with their classification and headline numbers."""

    points: List[TrendPoint] = Field(default_factory=list)
    direction: TrendDirection = TrendDirection.STEADY
    total_responses: int = 0
    average_per_day: float = 0.0
    peak_day_responses: int = 0


class QuestionPath(CamelModel):
    """A sequence of answered question IDs and how many responses followed it."""

    sequence: List[str]
    frequency: int


class DynamicQuestionStats(CamelModel):
    """Statistics about which (possibly generated) questions respondents answered."""

    total_questions_generated: int = 0
    average_questions_per_user: float = 0.0
    most_common_question_paths: List[QuestionPath] = Field(default_factory=list)
    ai_question_effectiveness: float = 0.0


class SurveyAnalytics(CamelModel):
    """
    Response schema for the analytics endpoint.

    WHAT: Survey-level figures plus one QuestionAnalytics per question.
    """

    survey_id: str
    survey_title: str
    total_questions: int
    total_responses: int
    average_completion_minutes: Optional[float] = None
    language_distribution: Dict[str, int] = Field(default_factory=dict)
    questions: List[QuestionAnalytics] = Field(default_factory=list)
    trend: TrendSummary = Field(default_factory=TrendSummary)
    dynamic_question_stats: DynamicQuestionStats = Field(
        default_factory=DynamicQuestionStats
    )
    generated_at: Instant

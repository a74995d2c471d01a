"""
Analytics Service.

WHAT: Turns a survey and its materialized response set into per-question
statistics, a daily response trend and survey-level figures.

WHY: The dashboard renders bar charts for choice questions, histograms for
ratings, a yes/no split for booleans and sampled quotes for text questions.
All of that is derived here, recomputed on every call, from the inputs only.

HOW: One accumulator per question, chosen from a closed mapping keyed by
QuestionType. Responses are walked once, in the order supplied, and each
present answer is fed to every question's accumulator. Malformed answers
are absorbed into the statistics rather than aborting the run.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple, Type

from survey_insights.core.exceptions import InvalidInputError
from survey_insights.schemas.survey import (
    AnswerValue,
    DynamicQuestionStats,
    Question,
    QuestionAnalytics,
    QuestionPath,
    QuestionType,
    Survey,
    SurveyAnalytics,
    SurveyResponse,
    TrendDirection,
    TrendPoint,
    TrendSummary,
    as_utc,
)
from survey_insights.services.answer_extractor import (
    as_number,
    display_label,
    extract,
    format_number,
    is_absent,
)

logger = logging.getLogger(__name__)

# Trend classification: the last RECENT_WINDOW points are compared with
# everything before them.
RECENT_WINDOW = 3
UPWARD_FACTOR = 1.2
DOWNWARD_FACTOR = 0.8

MAX_QUESTION_PATHS = 5
MS_PER_MINUTE = 60_000


@dataclass(frozen=True)
class AggregationOptions:
    """
    Tunables for aggregation.

    Attributes:
        text_summary_limit: Text answers surfaced per text question
        rating_min: Lowest in-range rating
        rating_max: Highest in-range rating
        reject_out_of_range_ratings: Drop out-of-range ratings instead of
            recording them under their literal value
        average_precision: Decimal places for average ratings
    """

    text_summary_limit: int = 5
    rating_min: float = 1
    rating_max: float = 10
    reject_out_of_range_ratings: bool = False
    average_precision: int = 2

    @classmethod
    def from_settings(cls, settings, **overrides) -> "AggregationOptions":
        """Build options from application settings, with keyword overrides."""
        values = {
            "text_summary_limit": settings.TEXT_SUMMARY_LIMIT,
            "rating_min": settings.RATING_MIN,
            "rating_max": settings.RATING_MAX,
            "reject_out_of_range_ratings": settings.REJECT_OUT_OF_RANGE_RATINGS,
            "average_precision": settings.AVERAGE_PRECISION,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


# ============================================================================
# Accumulators
# ============================================================================


class _Accumulator:
    """Collects the present answers to one question."""

    def __init__(self, question: Question, options: AggregationOptions):
        self.question = question
        self.options = options
        self.total = 0
        self.counts: Dict[str, int] = {}

    def add(self, value: AnswerValue) -> None:
        self.total += 1
        self._add(value)

    def _add(self, value: AnswerValue) -> None:
        raise NotImplementedError

    def _count(self, label: str) -> None:
        self.counts[label] = self.counts.get(label, 0) + 1

    def most_common(self) -> Optional[str]:
        """Label with the highest count; ties go to the first label seen."""
        best_label, best_count = None, 0
        for label, count in self.counts.items():
            if count > best_count:
                best_label, best_count = label, count
        return best_label

    def result(self) -> QuestionAnalytics:
        return QuestionAnalytics(
            question_id=self.question.id,
            question_text=self.question.text,
            question_type=self.question.type,
            total_responses=self.total,
            response_distribution=dict(self.counts),
            most_common_answer=self.most_common(),
        )


class ChoiceAccumulator(_Accumulator):
    """single_choice, multiple_choice, scale, yes_no and boolean questions."""

    def _add(self, value: AnswerValue) -> None:
        if isinstance(value, list):
            for option in value:
                if not is_absent(option):
                    self._count(display_label(option, self.question.type))
        else:
            self._count(display_label(value, self.question.type))


class RatingAccumulator(_Accumulator):
    """Rating questions: histogram of values plus their mean."""

    def __init__(self, question: Question, options: AggregationOptions):
        super().__init__(question, options)
        self.rating_sum = 0.0
        self.rating_count = 0

    def _add(self, value: AnswerValue) -> None:
        number = as_number(value)
        if number is None:
            # Kept under its literal label so the chart can show the anomaly
            self._count(display_label(value, self.question.type))
            return

        if not self.options.rating_min <= number <= self.options.rating_max:
            if self.options.reject_out_of_range_ratings:
                logger.warning(
                    "Ignoring out-of-range rating %s for question %s",
                    format_number(number),
                    self.question.id,
                )
                return

        self.rating_sum += number
        self.rating_count += 1
        self._count(format_number(number))

    def average(self) -> Optional[float]:
        if self.rating_count == 0:
            return None
        return round(self.rating_sum / self.rating_count, self.options.average_precision)

    def result(self) -> QuestionAnalytics:
        analytics = super().result()
        analytics.average_rating = self.average()
        return analytics


class TextAccumulator(_Accumulator):
    """Free-text questions: the first few raw answers, no distribution."""

    def __init__(self, question: Question, options: AggregationOptions):
        super().__init__(question, options)
        self.samples: List[str] = []

    def _add(self, value: AnswerValue) -> None:
        if len(self.samples) >= self.options.text_summary_limit:
            return
        if isinstance(value, str):
            self.samples.append(value)
        else:
            self.samples.append(display_label(value, self.question.type))

    def result(self) -> QuestionAnalytics:
        analytics = super().result()
        analytics.text_response_summary = list(self.samples)
        return analytics


ACCUMULATORS: Dict[QuestionType, Type[_Accumulator]] = {
    QuestionType.SINGLE_CHOICE: ChoiceAccumulator,
    QuestionType.MULTIPLE_CHOICE: ChoiceAccumulator,
    QuestionType.SCALE: ChoiceAccumulator,
    QuestionType.YES_NO: ChoiceAccumulator,
    QuestionType.BOOLEAN: ChoiceAccumulator,
    QuestionType.RATING: RatingAccumulator,
    QuestionType.TEXT: TextAccumulator,
}


# ============================================================================
# Trend helpers
# ============================================================================


def build_trend_points(responses: Sequence[SurveyResponse]) -> List[TrendPoint]:
    """
    Count responses per UTC calendar day.

    Only days with at least one response appear; points are ordered
    chronologically.
    """
    per_day = Counter(as_utc(response.submitted_at).date() for response in responses)
    return [TrendPoint(date=day, responses=count) for day, count in sorted(per_day.items())]


def classify_trend(points: Sequence[TrendPoint]) -> TrendDirection:
    """
    Classify recent response activity.

    The last three points form the recent window and everything before it
    the earlier window. With no earlier points the earlier average equals
    the recent one, which yields STEADY.

    Example:
        daily counts [10, 10, 10, 10, 15, 15, 15] -> UPWARD (15 > 12)
    """
    if not points:
        return TrendDirection.STEADY

    recent = points[-RECENT_WINDOW:]
    earlier = points[:-RECENT_WINDOW]
    recent_avg = sum(p.responses for p in recent) / len(recent)
    earlier_avg = (
        sum(p.responses for p in earlier) / len(earlier) if earlier else recent_avg
    )

    if recent_avg > earlier_avg * UPWARD_FACTOR:
        return TrendDirection.UPWARD
    if recent_avg < earlier_avg * DOWNWARD_FACTOR:
        return TrendDirection.DOWNWARD
    return TrendDirection.STEADY


def summarize_trend(points: Sequence[TrendPoint]) -> TrendSummary:
    """Attach the direction, total, daily average and peak day to trend points."""
    if not points:
        return TrendSummary()

    total = sum(p.responses for p in points)
    return TrendSummary(
        points=list(points),
        direction=classify_trend(points),
        total_responses=total,
        average_per_day=round(total / len(points), 1),
        peak_day_responses=max(p.responses for p in points),
    )


def dynamic_question_stats(responses: Sequence[SurveyResponse]) -> DynamicQuestionStats:
    """
    Describe which questions respondents actually answered.

    WHY: Follow-up questions are generated per session, so the answered
    question set (and its order) differs between respondents.
    """
    if not responses:
        return DynamicQuestionStats()

    answered_ids = set()
    answered_total = 0
    engaged = 0
    paths: Counter = Counter()

    for response in responses:
        sequence = tuple(
            question_id
            for question_id, value in response.answers.items()
            if not is_absent(value)
        )
        answered_ids.update(sequence)
        answered_total += len(sequence)
        if len(sequence) >= 2:
            engaged += 1
        if sequence:
            paths[sequence] += 1

    return DynamicQuestionStats(
        total_questions_generated=len(answered_ids),
        average_questions_per_user=round(answered_total / len(responses), 2),
        most_common_question_paths=[
            QuestionPath(sequence=list(sequence), frequency=frequency)
            for sequence, frequency in paths.most_common(MAX_QUESTION_PATHS)
        ],
        ai_question_effectiveness=round(engaged / len(responses) * 100, 2),
    )


def validate_inputs(survey: Survey, responses: Sequence[SurveyResponse]) -> None:
    """
    Reject collections that are not collections.

    Raises:
        InvalidInputError: If survey or responses is structurally invalid
    """
    if not isinstance(survey, Survey):
        raise InvalidInputError(
            message="Survey must be a Survey instance",
            received=type(survey).__name__,
        )
    if not isinstance(responses, (list, tuple)):
        raise InvalidInputError(
            message="Responses must be a list of survey responses",
            received=type(responses).__name__,
        )
    for index, response in enumerate(responses):
        if not isinstance(response, SurveyResponse):
            raise InvalidInputError(
                message="Response collection contains an invalid record",
                index=index,
                received=type(response).__name__,
            )


# ============================================================================
# Service
# ============================================================================


class AnalyticsService:
    """
    Service for survey analytics.

    WHAT: Computes QuestionAnalytics, trend data and survey-level figures.

    WHY: A pure, synchronous computation over in-memory inputs; concurrent
    calls share nothing.

    HOW: Instantiated with AggregationOptions; holds no other state.
    """

    def __init__(self, options: Optional[AggregationOptions] = None):
        """
        Initialize AnalyticsService.

        Args:
            options: Aggregation tunables (defaults when omitted)
        """
        self.options = options or AggregationOptions()

    def aggregate(
        self,
        survey: Survey,
        responses: Sequence[SurveyResponse],
    ) -> Tuple[List[QuestionAnalytics], List[TrendPoint]]:
        """
        Compute per-question analytics and daily trend points.

        WHAT: One QuestionAnalytics per question (fixed, then dynamic).

        WHY: Feeds the dashboard's per-question cards and trend chart.

        Args:
            survey: Survey definition
            responses: Responses in the order they should be counted

        Returns:
            Tuple of (question analytics, trend points)

        Raises:
            InvalidInputError: If the survey or response collection is malformed
        """
        validate_inputs(survey, responses)

        accumulators = [
            ACCUMULATORS[question.type](question, self.options)
            for question in survey.all_questions()
        ]

        for response in responses:
            for accumulator in accumulators:
                value = extract(response, accumulator.question.id)
                if value is not None:
                    accumulator.add(value)

        logger.debug(
            "Aggregated %d responses over %d questions for survey %s",
            len(responses),
            len(accumulators),
            survey.id,
        )
        return [a.result() for a in accumulators], build_trend_points(responses)

    def analyze_survey(
        self,
        survey: Survey,
        responses: Sequence[SurveyResponse],
        now: datetime,
    ) -> SurveyAnalytics:
        """
        Compute the full analytics payload for a survey.

        Args:
            survey: Survey definition
            responses: Responses scoped to this survey
            now: Instant of this invocation, reported as generated_at

        Returns:
            SurveyAnalytics
        """
        questions, points = self.aggregate(survey, responses)

        completion_times = [
            r.completion_time for r in responses if r.completion_time is not None
        ]
        average_completion = (
            round(sum(completion_times) / len(completion_times) / MS_PER_MINUTE, 2)
            if completion_times
            else None
        )

        return SurveyAnalytics(
            survey_id=survey.id,
            survey_title=survey.title,
            total_questions=len(questions),
            total_responses=len(responses),
            average_completion_minutes=average_completion,
            language_distribution=dict(Counter(r.language for r in responses)),
            questions=questions,
            trend=summarize_trend(points),
            dynamic_question_stats=dynamic_question_stats(responses),
            generated_at=now,
        )


def aggregate(
    survey: Survey,
    responses: Sequence[SurveyResponse],
    options: Optional[AggregationOptions] = None,
) -> Tuple[List[QuestionAnalytics], List[TrendPoint]]:
    """Module-level shortcut for AnalyticsService(options).aggregate()."""
    return AnalyticsService(options).aggregate(survey, responses)


def analyze_survey(
    survey: Survey,
    responses: Sequence[SurveyResponse],
    now: datetime,
    options: Optional[AggregationOptions] = None,
) -> SurveyAnalytics:
    """Module-level shortcut for AnalyticsService(options).analyze_survey()."""
    return AnalyticsService(options).analyze_survey(survey, responses, now)

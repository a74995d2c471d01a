"""
Answer Extractor.

WHAT: Resolves a response's answer for one question and turns answer
values into display labels and numbers.

WHY: Responses are sparse. A missing key, a null and an empty string all
mean "the respondent did not answer", which must be told apart from real
answers that happen to be falsy (0, False, an empty selection).

HOW: Plain functions; nothing here raises for any answer value.
"""

import json
import math
from typing import Optional

from survey_insights.schemas.survey import AnswerValue, QuestionType, SurveyResponse

YES_LABEL = "Yes"
NO_LABEL = "No"

_TRUE_STRINGS = {"true", "yes"}
_FALSE_STRINGS = {"false", "no"}


def is_absent(value: object) -> bool:
    """Return True for values that count as "no answer"."""
    return value is None or value == ""


def extract(
    response: SurveyResponse,
    question_id: str,
    normalize_booleans: bool = True,
) -> Optional[AnswerValue]:
    """
    Get the answer a response gave to a question.

    Args:
        response: Response record
        question_id: Question to look up
        normalize_booleans: Render True/False as "Yes"/"No"

    Returns:
        The answer value, or None when the answer is absent
    """
    value = response.answers.get(question_id)
    if is_absent(value):
        return None
    if normalize_booleans and isinstance(value, bool):
        return YES_LABEL if value else NO_LABEL
    return value


def format_number(value: float) -> str:
    """Render a number without a trailing ".0" for integral values."""
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def display_label(value: AnswerValue, question_type: QuestionType) -> str:
    """
    Turn a scalar answer into the label used as a distribution key.

    Args:
        value: A present, non-list answer
        question_type: Type of the question being answered

    Returns:
        Display label
    """
    if isinstance(value, bool):
        return YES_LABEL if value else NO_LABEL
    if isinstance(value, (int, float)):
        return format_number(value)
    if isinstance(value, str):
        if question_type.is_boolean:
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return YES_LABEL
            if lowered in _FALSE_STRINGS:
                return NO_LABEL
        return value
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def as_number(value: AnswerValue) -> Optional[float]:
    """
    Read a rating answer as a number.

    Numeric strings ("4", " 7.5 ") are accepted; booleans, lists and
    non-numeric strings are not numbers, nor are integers too large for
    a float.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None

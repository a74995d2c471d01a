"""
Export Service.

WHAT: Serializes a survey and its responses to a CSV or JSON document.

WHY: Survey owners analyze responses offline in spreadsheets and scripts.
The documents must be byte-for-byte reproducible and must survive
arbitrary Unicode, embedded quotes, commas and newlines.

HOW: Rows are re-derived from the raw responses (not from the analytics
output). CSV is written with the csv module in QUOTE_ALL mode behind a
UTF-8 byte-order mark; JSON is built from the camelCase schema dumps.
"""

import csv
import io
import json
import logging
import math
import re
import unicodedata
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

from survey_insights.core.exceptions import UnsupportedExportFormatError
from survey_insights.schemas.survey import (
    AnswerValue,
    ExportFormat,
    Survey,
    SurveyResponse,
    as_utc,
    format_instant,
)
from survey_insights.services.analytics_service import validate_inputs
from survey_insights.services.answer_extractor import extract, format_number

logger = logging.getLogger(__name__)

UTF8_BOM = "\ufeff"
NO_RESPONSES_CSV = "No responses found"
NO_RESPONSES_JSON = {"error": "No responses available for export"}

CSV_FIXED_HEADERS = [
    "Response ID",
    "Submitted At",
    "User ID",
    "Language",
    "Completion Time (minutes)",
]

MEDIA_TYPES = {
    ExportFormat.CSV: "text/csv; charset=utf-8",
    ExportFormat.JSON: "application/json; charset=utf-8",
}

# RFC 5987 attr-char, minus ALPHA / DIGIT which quote() never escapes
_ATTR_CHAR_SAFE = "!#$&+-.^_`|~"
_UNSAFE_PLAIN_CHARS = re.compile(r'[^\x20-\x7e]|["\\/;]')


@dataclass(frozen=True)
class ExportFilename:
    """
    Filename pair for a Content-Disposition header.

    Attributes:
        plain: ASCII-only fallback for `filename="..."`
        encoded: Percent-encoded UTF-8 value for `filename*=UTF-8''...`
    """

    plain: str
    encoded: str


@dataclass(frozen=True)
class ExportDocument:
    """
    A serialized export.

    Attributes:
        content: Document bytes
        filename: Suggested filename (both forms, with extension)
        format: Export format
        is_empty: True for the "no responses" sentinel document
    """

    content: bytes
    filename: ExportFilename
    format: ExportFormat
    is_empty: bool = False

    @property
    def media_type(self) -> str:
        return MEDIA_TYPES[self.format]

    def content_disposition(self) -> str:
        """Header value offering both the plain and the RFC 5987 filename."""
        return (
            f'attachment; filename="{self.filename.plain}"; '
            f"filename*=UTF-8''{self.filename.encoded}"
        )


def build_filename(title: str, now: datetime, extension: str) -> ExportFilename:
    """
    Build the `{title}_responses_{YYYY-MM-DD}.{ext}` filename pair.

    Args:
        title: Survey title, possibly non-ASCII
        now: Export instant (its UTC date is used)
        extension: File extension without the dot

    Returns:
        ExportFilename
    """
    base = f"{title}_responses_{as_utc(now).date().isoformat()}"

    encoded = quote(f"{base}.{extension}", safe=_ATTR_CHAR_SAFE, encoding="utf-8")

    ascii_title = (
        unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii")
    )
    ascii_title = _UNSAFE_PLAIN_CHARS.sub("_", ascii_title).strip()
    if not ascii_title.strip("_ "):
        ascii_title = "survey"
    plain = f"{ascii_title}_responses_{as_utc(now).date().isoformat()}.{extension}"

    return ExportFilename(plain=plain, encoded=encoded)


def parse_export_format(export_format: Any) -> ExportFormat:
    """
    Parse an export format name.

    Raises:
        UnsupportedExportFormatError: For anything but exactly "csv" or "json"
    """
    if isinstance(export_format, ExportFormat):
        return export_format
    try:
        return ExportFormat(export_format)
    except ValueError:
        raise UnsupportedExportFormatError(format=str(export_format)) from None


def completion_minutes(completion_time_ms: Optional[int]) -> str:
    """Milliseconds to whole minutes, rounding halves up; "" when absent."""
    if completion_time_ms is None:
        return ""
    return str(math.floor(completion_time_ms / 60_000 + 0.5))


def format_cell(value: Optional[AnswerValue]) -> str:
    """
    Render one answer cell.

    Composite values (lists, objects) become their JSON text; booleans are
    written as true/false; absent answers are empty.
    """
    if value is None:
        return ""
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return format_number(value)
    return str(value)


class ExportService:
    """
    Service for export documents.

    WHAT: Builds CSV and JSON exports of survey responses.

    WHY: The HTTP layer only attaches headers; everything that has to be
    byte-exact lives here.

    HOW: Stateless; "now" is supplied once per call so the filename date
    and `exportedAt` always agree.
    """

    def serialize(
        self,
        survey: Survey,
        responses: Sequence[SurveyResponse],
        export_format: Any,
        now: Optional[datetime] = None,
    ) -> ExportDocument:
        """
        Serialize a survey's responses.

        Args:
            survey: Survey definition
            responses: Responses in export order
            export_format: "csv" or "json" (or an ExportFormat)
            now: Export instant (defaults to the current UTC time)

        Returns:
            ExportDocument; for an empty response set the sentinel document

        Raises:
            UnsupportedExportFormatError: If the format is not csv/json
            InvalidInputError: If the survey or responses are malformed
        """
        fmt = parse_export_format(export_format)
        validate_inputs(survey, responses)
        now = now or datetime.now(timezone.utc)

        filename = build_filename(survey.title, now, fmt.value)

        if fmt is ExportFormat.CSV:
            text = self.render_csv(survey, responses)
        else:
            text = self.render_json(survey, responses, now)

        logger.info(
            "Exported %d responses for survey %s as %s",
            len(responses),
            survey.id,
            fmt.value,
        )
        return ExportDocument(
            content=text.encode("utf-8"),
            filename=filename,
            format=fmt,
            is_empty=not responses,
        )

    # ------------------------------------------------------------------------
    # CSV
    # ------------------------------------------------------------------------

    def csv_rows(
        self, survey: Survey, responses: Sequence[SurveyResponse]
    ) -> List[List[str]]:
        """Header row followed by one row per response."""
        questions = survey.all_questions()
        rows = [CSV_FIXED_HEADERS + [q.text for q in questions]]

        for response in responses:
            row = [
                response.id,
                format_instant(response.submitted_at),
                response.user_id or "",
                response.language or "",
                completion_minutes(response.completion_time),
            ]
            row.extend(
                format_cell(extract(response, q.id, normalize_booleans=False))
                for q in questions
            )
            rows.append(row)

        return rows

    def render_csv(self, survey: Survey, responses: Sequence[SurveyResponse]) -> str:
        """
        Render the CSV text, BOM included.

        Every field is quoted and inner quotes are doubled; rows are joined
        with "\\n" and the last row has no terminator.
        """
        if not responses:
            return UTF8_BOM + NO_RESPONSES_CSV

        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerows(self.csv_rows(survey, responses))
        return UTF8_BOM + buffer.getvalue()[: -len("\n")]

    # ------------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------------

    def export_payload(
        self,
        survey: Survey,
        responses: Sequence[SurveyResponse],
        now: datetime,
    ) -> Dict[str, Any]:
        """Build the JSON export object (survey projection, responses, metadata)."""
        if not responses:
            return dict(NO_RESPONSES_JSON)

        survey_data = survey.model_dump(
            mode="json",
            by_alias=True,
            include={
                "id",
                "title",
                "description",
                "target_language",
                "questions",
                "dynamic_questions",
                "created_at",
                "updated_at",
            },
        )
        return {
            "survey": survey_data,
            "responses": [r.model_dump(mode="json", by_alias=True) for r in responses],
            "metadata": {
                "totalResponses": len(responses),
                "exportedAt": format_instant(now),
                "format": ExportFormat.JSON.value,
            },
        }

    def render_json(
        self,
        survey: Survey,
        responses: Sequence[SurveyResponse],
        now: datetime,
    ) -> str:
        """Pretty-printed JSON text; key order follows the schema declarations."""
        return json.dumps(
            self.export_payload(survey, responses, now),
            indent=2,
            ensure_ascii=False,
        )


def serialize(
    survey: Survey,
    responses: Sequence[SurveyResponse],
    export_format: Any,
    now: Optional[datetime] = None,
) -> ExportDocument:
    """Module-level shortcut for ExportService().serialize()."""
    return ExportService().serialize(survey, responses, export_format, now)

"""
Tests for CSV / JSON exports.

WHY: Exports are opened in spreadsheets and parsed by scripts; they must
survive commas, quotes, newlines and non-ASCII text, and their filenames
must be usable in a Content-Disposition header.
"""

import csv
import io
import json
from datetime import datetime, timezone

import pytest

from survey_insights.core.exceptions import UnsupportedExportFormatError
from survey_insights.schemas.survey import ExportFormat, QuestionType
from survey_insights.services.export_service import (
    CSV_FIXED_HEADERS,
    ExportService,
    build_filename,
    completion_minutes,
    parse_export_format,
    serialize,
)
from tests.factories import QuestionFactory, ResponseFactory, SurveyFactory

NOW = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)
BOM = "\ufeff"


@pytest.fixture
def survey():
    return SurveyFactory.build(
        title="Café Survey",
        questions=[
            QuestionFactory.build("q1", QuestionType.TEXT, text="Comments, please"),
            QuestionFactory.build("q2", QuestionType.MULTIPLE_CHOICE, text="Features"),
            QuestionFactory.build("q3", QuestionType.YES_NO, text="Recommend?"),
        ],
        dynamic_questions=[
            QuestionFactory.build("q4", QuestionType.RATING, text="Follow-up rating"),
        ],
    )


@pytest.fixture
def responses():
    return [
        ResponseFactory.build(
            "r1",
            {
                "q1": 'Great, "really"\nsecond line: Ünïcødé ✓',
                "q2": ["Speed", "Price"],
                "q3": True,
                "q4": 4.0,
            },
            submitted_at=datetime(2024, 5, 1, 9, 30),
            user_id="u-1",
            completion_time=90_000,
        ),
        ResponseFactory.build(
            "r2",
            {"q3": False},
            submitted_at=datetime(2024, 5, 2, 10, 0, 0, 250_000),
            language="fr",
        ),
    ]


def parse_csv(document):
    text = document.content.decode("utf-8")
    assert text.startswith(BOM)
    return text, list(csv.reader(io.StringIO(text[len(BOM):])))


class TestCsvExport:
    """Test CSV rendering."""

    def test_round_trip(self, survey, responses):
        document = serialize(survey, responses, "csv", now=NOW)

        _, rows = parse_csv(document)

        assert rows[0] == CSV_FIXED_HEADERS + [
            "Comments, please",
            "Features",
            "Recommend?",
            "Follow-up rating",
        ]
        assert rows[1] == [
            "r1",
            "2024-05-01T09:30:00.000Z",
            "u-1",
            "en",
            "2",
            'Great, "really"\nsecond line: Ünïcødé ✓',
            '["Speed","Price"]',
            "true",
            "4",
        ]
        assert rows[2] == [
            "r2",
            "2024-05-02T10:00:00.250Z",
            "",
            "fr",
            "",
            "",
            "",
            "false",
            "",
        ]
        assert len(rows) == 3

    def test_every_field_quoted(self, survey, responses):
        text, _ = parse_csv(serialize(survey, responses, "csv", now=NOW))

        assert text.startswith(BOM + '"Response ID","Submitted At"')
        assert '"Great, ""really""' in text
        assert not text.endswith("\n")

    def test_empty_sentinel(self, survey):
        document = serialize(survey, [], "csv", now=NOW)

        assert document.content == (BOM + "No responses found").encode("utf-8")
        assert document.is_empty

    def test_media_type(self, survey, responses):
        document = serialize(survey, responses, ExportFormat.CSV, now=NOW)

        assert document.media_type == "text/csv; charset=utf-8"
        assert document.filename.plain == "Cafe Survey_responses_2024-05-10.csv"

    @pytest.mark.parametrize(
        "milliseconds,expected",
        [(None, ""), (0, "0"), (29_999, "0"), (30_000, "1"), (89_999, "1"), (90_000, "2")],
    )
    def test_completion_minutes(self, milliseconds, expected):
        assert completion_minutes(milliseconds) == expected


class TestJsonExport:
    """Test JSON rendering."""

    def test_document_shape(self, survey, responses):
        document = serialize(survey, responses, "json", now=NOW)

        data = json.loads(document.content.decode("utf-8"))

        assert list(data) == ["survey", "responses", "metadata"]
        assert data["metadata"] == {
            "totalResponses": 2,
            "exportedAt": "2024-05-10T12:00:00.000Z",
            "format": "json",
        }
        assert data["survey"]["title"] == "Café Survey"
        assert data["survey"]["dynamicQuestions"][0]["id"] == "q4"
        assert "ownerId" not in data["survey"]
        assert data["responses"][0]["surveyId"] == "survey-1"
        assert data["responses"][0]["completionTime"] == 90_000
        assert data["responses"][1]["submittedAt"] == "2024-05-02T10:00:00.250Z"

    def test_total_matches_input(self, survey):
        many = [ResponseFactory.build(f"r{i}") for i in range(7)]

        data = json.loads(serialize(survey, many, "json", now=NOW).content)

        assert data["metadata"]["totalResponses"] == 7
        assert len(data["responses"]) == 7

    def test_pretty_printed_unescaped(self, survey, responses):
        document = serialize(survey, responses, "json", now=NOW)
        text = document.content.decode("utf-8")

        assert text.startswith('{\n  "survey": {')
        assert "Café Survey" in text
        assert document.media_type == "application/json; charset=utf-8"

    def test_empty_sentinel(self, survey):
        document = serialize(survey, [], "json", now=NOW)

        assert json.loads(document.content) == {"error": "No responses available for export"}
        assert document.is_empty


class TestFormatAndFilename:
    """Test format parsing and filename encoding."""

    @pytest.mark.parametrize("value", ["xml", "CSV", "", None])
    def test_invalid_format(self, survey, responses, value):
        with pytest.raises(UnsupportedExportFormatError) as exc_info:
            ExportService().serialize(survey, responses, value, now=NOW)

        assert exc_info.value.status_code == 400

    def test_parse_accepts_enum(self):
        assert parse_export_format(ExportFormat.JSON) is ExportFormat.JSON
        assert parse_export_format("csv") is ExportFormat.CSV

    def test_non_ascii_title(self):
        filename = build_filename("Café Survey", NOW, "csv")

        assert filename.plain == "Cafe Survey_responses_2024-05-10.csv"
        assert filename.encoded == "Caf%C3%A9%20Survey_responses_2024-05-10.csv"

    def test_title_without_ascii(self):
        filename = build_filename("満足度調査", NOW, "json")

        assert filename.plain == "survey_responses_2024-05-10.json"
        assert filename.encoded.startswith("%E6%BA%80")

    def test_quotes_never_reach_plain_filename(self):
        filename = build_filename('The "Best" Survey', NOW, "csv")

        assert '"' not in filename.plain
        assert "%22Best%22" in filename.encoded

    def test_separators_never_reach_plain_filename(self):
        filename = build_filename("Q1/Q2; results", NOW, "csv")

        assert filename.plain == "Q1_Q2_ results_responses_2024-05-10.csv"
        assert "%2F" in filename.encoded
        assert "%3B" in filename.encoded

    def test_content_disposition(self, survey, responses):
        document = serialize(survey, responses, "csv", now=NOW)

        assert document.content_disposition() == (
            'attachment; filename="Cafe Survey_responses_2024-05-10.csv"; '
            "filename*=UTF-8''Caf%C3%A9%20Survey_responses_2024-05-10.csv"
        )

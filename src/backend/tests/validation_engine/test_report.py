import html
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Optional

import pytest
from pydantic import BaseModel

from common.validation_engine.declarations import InlineValidation
from common.validation_engine.errors import ConfigurationError
from common.validation_engine.models import ReportFormat, RowFilter, RowStatus, ValidationFailure
from common.validation_engine.report import ReportBuilder, default_report_filename


class Employee(BaseModel):
    name: Annotated[str, InlineValidation("len(name) > 1", rule_name="NameLength")]
    age: Annotated[int, InlineValidation("age >= 18", error_message="Must be an adult", rule_name="Adult")]
    hired: Optional[date] = None
    salary: Optional[Decimal] = None
    note: Optional[str] = None


@pytest.fixture
def employees():
    return [
        (Employee(name="Alice", age=30, hired=date(2024, 1, 31), salary=Decimal("1200.50")), 1),
        (Employee(name="B", age=16), 2),
        (Employee(name="Carol", age=45, note="remote"), 3),
        (Employee(name="Dan", age=12), 4),
    ]


@pytest.fixture
def report(make_engine, employees):
    engine = make_engine(Employee, rows=employees)
    engine.validate()
    return engine.report()


def test_summary_counts(report):
    summary = report.summary()

    assert summary.total_rows == 4
    assert summary.valid_rows == 2
    assert summary.invalid_rows == 2
    assert summary.total_errors == 3
    assert summary.rules_evaluated == 2
    assert summary.valid_rows + summary.invalid_rows == summary.total_rows


def test_failures_group_by_rule_in_first_appearance_order(report):
    groups = report.by_rule()

    assert [(g.rule, g.count) for g in groups] == [("NameLength", 1), ("Adult", 2)]
    assert sum(g.count for g in groups) == report.summary().total_errors
    assert [entry.row_number for entry in groups[1].failures] == [2, 4]
    assert groups[1].failures[0].error_message == "Must be an adult"


def test_row_filters_partition_rows(report):
    everything = report.filtered_rows(RowFilter.ALL)
    valid = report.filtered_rows(RowFilter.VALID)
    invalid = report.filtered_rows(RowFilter.INVALID)

    assert [n for _, n in valid] == [1, 3]
    assert [n for _, n in invalid] == [2, 4]
    assert sorted(n for _, n in valid + invalid) == [n for _, n in everything]
    assert report.row_status(2) is RowStatus.INVALID
    assert report.row_status(3) is RowStatus.VALID


def test_structured_report_layout(report):
    payload = json.loads(report.render(ReportFormat.STRUCTURED))

    assert set(payload) == {"Summary", "ValidationErrorsByRule", "Rows"}
    assert payload["Summary"] == {
        "TotalRows": 4,
        "ValidRows": 2,
        "InvalidRows": 2,
        "TotalErrors": 3,
        "RulesEvaluated": 2,
    }
    group = payload["ValidationErrorsByRule"][1]
    assert set(group) == {"Rule", "Count", "Failures"}
    assert group["Failures"][0] == {"RowNumber": 2, "FieldName": "age", "ErrorMessage": "Must be an adult"}


def test_structured_rows_omit_missing_values_and_errors_on_valid_rows(report):
    rows = json.loads(report.render(ReportFormat.STRUCTURED))["Rows"]

    first = rows[0]
    assert first == {
        "name": "Alice",
        "age": 30,
        "hired": "2024-01-31",
        "salary": "1200.50",
        "RowNumber": 1,
        "Status": "Valid",
    }
    assert "note" not in rows[1]
    assert rows[2]["note"] == "remote"
    assert "Errors" not in rows[2]
    assert rows[1]["Errors"] == [
        {"RuleName": "NameLength", "FieldName": "name", "ErrorMessage": "Expression failed for name: len(name) > 1"},
        {"RuleName": "Adult", "FieldName": "age", "ErrorMessage": "Must be an adult"},
    ]


def test_invalid_filter_keeps_only_failing_rows(make_engine):
    rows = [
        (Employee(name="Ann", age=20), 1),
        (Employee(name="Bob", age=3), 2),
        (Employee(name="Cid", age=40), 3),
    ]
    engine = make_engine(Employee, rows=rows)
    engine.validate()

    payload = json.loads(engine.report().render(ReportFormat.STRUCTURED, RowFilter.INVALID))

    assert len(payload["Rows"]) == 1
    (only,) = payload["Rows"]
    assert only["Status"] == "Invalid"
    assert only["RowNumber"] == 2
    assert only["Errors"]
    # Summary always describes the whole run.
    assert payload["Summary"]["TotalRows"] == 3


def test_html_report_contents(report):
    generated = datetime(2025, 3, 4, 5, 6, 7)
    page = report.render(ReportFormat.HUMAN_READABLE, generated_at=generated)

    assert page.startswith("<!DOCTYPE html>")
    assert "<title>Import Validation Report</title>" in page
    assert "Generated: 2025-03-04 05:06:07" in page
    assert "<span>Total Rows: 4</span>" in page
    assert "<span>Rules Evaluated: 2</span>" in page
    assert "<th>Row#</th><th>Status</th><th>name</th><th>age</th>" in page
    assert "status-Invalid" in page
    assert "status-Valid" in page
    assert page.count("<tr class='row-") == 4


def test_html_report_honours_filter(report):
    page = report.render(ReportFormat.HUMAN_READABLE, RowFilter.VALID)
    assert page.count("<tr class='row-Valid'>") == 2
    assert "<tr class='row-Invalid'>" not in page


def test_html_escapes_values_rule_names_and_messages():
    class Comment(BaseModel):
        body: str

    hostile = "<script>alert('x')</script> & \"quoted\""
    failure = ValidationFailure(
        row_number=1,
        rule_name="<Rule & Co>",
        field_name="body",
        error_message="Body must not contain <tags> & \"quotes\"",
    )
    page = ReportBuilder([(Comment(body=hostile), 1)], [failure]).render_html()

    assert "<script>" not in page
    assert "<Rule & Co>" not in page
    assert "<tags>" not in page
    assert html.escape(hostile) in page
    unescaped = html.unescape(page)
    assert hostile in unescaped
    assert "<Rule & Co>" in unescaped
    assert "Body must not contain <tags> & \"quotes\"" in unescaped


def test_row_type_is_inferred_from_rows():
    class Tag(BaseModel):
        label: str

    builder = ReportBuilder([(Tag(label="a"), 1)], [])
    assert json.loads(builder.render_json())["Rows"] == [{"label": "a", "RowNumber": 1, "Status": "Valid"}]


def test_status_is_keyed_on_row_number():
    class Tag(BaseModel):
        label: str

    failure = ValidationFailure(row_number=5, rule_name="r", field_name="label", error_message="bad")
    builder = ReportBuilder([(Tag(label="a"), 5), (Tag(label="b"), 5), (Tag(label="c"), 6)], [failure])

    summary = builder.summary()
    assert summary.invalid_rows == 2
    assert summary.valid_rows == 1


def test_default_report_filename():
    now = datetime(2025, 1, 2, 13, 14, 15)
    assert default_report_filename(ReportFormat.STRUCTURED, now) == "report_20250102_131415.json"
    assert default_report_filename(ReportFormat.HUMAN_READABLE, now) == "report_20250102_131415.html"


def test_render_rejects_unknown_format(report):
    with pytest.raises(ValueError):
        report.render("pdf")


def test_filters_and_formats_accept_plain_strings():
    class Tag(BaseModel):
        label: str

    failure = ValidationFailure(row_number=2, rule_name="r", field_name="label", error_message="bad")
    builder = ReportBuilder([(Tag(label="a"), 1), (Tag(label="b"), 2)], [failure])

    assert [n for _, n in builder.filtered_rows("Invalid")] == [2]
    assert [n for _, n in builder.filtered_rows("Valid")] == [1]
    payload = json.loads(builder.render("structured", "Invalid"))
    assert [row["RowNumber"] for row in payload["Rows"]] == [2]
    assert "<tr class='row-Valid'>" not in builder.render("html", "Invalid")
    assert default_report_filename("html", datetime(2025, 1, 2)).endswith(".html")


def test_unknown_filter_string_is_rejected(report):
    with pytest.raises(ValueError):
        report.filtered_rows("Broken")


class Ticket(BaseModel):
    Status: str
    RowNumber: int


def test_fields_named_like_report_keys_are_rejected(make_engine):
    with pytest.raises(ConfigurationError, match="Status, RowNumber clash with report keys"):
        ReportBuilder([(Ticket(Status="pending", RowNumber=99), 1)], [])
    with pytest.raises(ConfigurationError, match="clash with report keys"):
        make_engine(Ticket)

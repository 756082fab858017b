from __future__ import annotations

import html as html_lib
import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic_core import to_jsonable_python

from .errors import ConfigurationError
from .fields import RowField, field_values, row_fields
from .models import (
    ReportFormat,
    ReportSummary,
    RowError,
    RowFilter,
    RowStatus,
    RuleFailureEntry,
    RuleFailureGroup,
    StructuredReport,
    ValidationFailure,
)

Row = Tuple[Any, int]

# Keys the structured report adds to every row payload.
RESERVED_ROW_KEYS = ("RowNumber", "Status", "Errors")


def report_fields(row_type: type) -> Tuple[RowField, ...]:
    """Fields of `row_type` as report columns; names may not shadow report keys."""
    fields = row_fields(row_type)
    clashes = [f.name for f in fields if f.name in RESERVED_ROW_KEYS]
    if clashes:
        raise ConfigurationError(
            f"{row_type.__name__} field(s) {', '.join(clashes)} clash with report keys "
            f"{', '.join(RESERVED_ROW_KEYS)}; rename them."
        )
    return fields


def default_report_filename(fmt: ReportFormat, now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"report_{stamp}.{ReportFormat(fmt).extension}"


class ReportBuilder:
    """Read-only views over one validation run.

    Row status is keyed on row number: a row is invalid when any failure
    carries its number.
    """

    def __init__(
        self,
        rows: Iterable[Row],
        failures: Iterable[ValidationFailure],
        *,
        row_type: Optional[type] = None,
    ):
        self._rows: Tuple[Row, ...] = tuple(rows)
        self._failures: Tuple[ValidationFailure, ...] = tuple(failures)
        if row_type is None and self._rows:
            row_type = type(self._rows[0][0])
        self._fields: Tuple[RowField, ...] = report_fields(row_type) if row_type is not None else ()

        self._errors_by_row: Dict[int, List[ValidationFailure]] = {}
        for failure in self._failures:
            self._errors_by_row.setdefault(failure.row_number, []).append(failure)

    @property
    def failures(self) -> Tuple[ValidationFailure, ...]:
        return self._failures

    def row_status(self, row_number: int) -> RowStatus:
        return RowStatus.INVALID if row_number in self._errors_by_row else RowStatus.VALID

    def summary(self) -> ReportSummary:
        total = len(self._rows)
        valid = sum(1 for _, row_number in self._rows if row_number not in self._errors_by_row)
        return ReportSummary(
            total_rows=total,
            valid_rows=valid,
            invalid_rows=total - valid,
            total_errors=len(self._failures),
            rules_evaluated=len({f.rule_name for f in self._failures}),
        )

    def by_rule(self) -> List[RuleFailureGroup]:
        grouped: Dict[str, List[RuleFailureEntry]] = {}
        for failure in self._failures:
            grouped.setdefault(failure.rule_name, []).append(
                RuleFailureEntry(
                    row_number=failure.row_number,
                    field_name=failure.field_name,
                    error_message=failure.error_message,
                )
            )
        return [
            RuleFailureGroup(rule=rule, count=len(entries), failures=entries)
            for rule, entries in grouped.items()
        ]

    def filtered_rows(self, row_filter: RowFilter = RowFilter.ALL) -> Tuple[Row, ...]:
        row_filter = RowFilter(row_filter)
        if row_filter is RowFilter.VALID:
            return tuple(r for r in self._rows if r[1] not in self._errors_by_row)
        if row_filter is RowFilter.INVALID:
            return tuple(r for r in self._rows if r[1] in self._errors_by_row)
        return self._rows

    def to_structured(self, row_filter: RowFilter = RowFilter.ALL) -> StructuredReport:
        return StructuredReport(
            summary=self.summary(),
            validation_errors_by_rule=self.by_rule(),
            rows=[self._structured_row(item, row_number) for item, row_number in self.filtered_rows(row_filter)],
        )

    def render(
        self,
        fmt: ReportFormat,
        row_filter: RowFilter = RowFilter.ALL,
        *,
        generated_at: Optional[datetime] = None,
    ) -> str:
        fmt = ReportFormat(fmt)
        if fmt is ReportFormat.STRUCTURED:
            return self.render_json(row_filter)
        if fmt is ReportFormat.HUMAN_READABLE:
            return self.render_html(row_filter, generated_at=generated_at)

    def default_filename(self, fmt: ReportFormat, now: Optional[datetime] = None) -> str:
        return default_report_filename(fmt, now)

    def render_json(self, row_filter: RowFilter = RowFilter.ALL) -> str:
        report = self.to_structured(row_filter)
        return json.dumps(report.model_dump(mode="json", by_alias=True), indent=2)

    def _structured_row(self, item: Any, row_number: int) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        for name, value in field_values(item, self._fields).items():
            if value is None:
                continue
            payload[name] = to_jsonable_python(value, fallback=str)
        payload["RowNumber"] = row_number

        errors = self._errors_by_row.get(row_number)
        payload["Status"] = self.row_status(row_number).value
        if errors:
            payload["Errors"] = [
                RowError(
                    rule_name=e.rule_name,
                    field_name=e.field_name,
                    error_message=e.error_message,
                ).model_dump(by_alias=True)
                for e in errors
            ]
        return payload

    def render_html(
        self,
        row_filter: RowFilter = RowFilter.ALL,
        *,
        generated_at: Optional[datetime] = None,
    ) -> str:
        def _escape(value: object) -> str:
            return html_lib.escape(str(value))

        def _cell(value: object) -> str:
            return "" if value is None else _escape(value)

        summary = self.summary()
        generated = (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")

        lines: List[str] = []
        lines.append("<!DOCTYPE html>")
        lines.append("<html lang='en'>")
        lines.append("<head>")
        lines.append("<meta charset='utf-8'>")
        lines.append("<title>Import Validation Report</title>")
        lines.append("<style>")
        lines.append("body{font-family:Arial,sans-serif;margin:20px;color:#111;background:#fff;}")
        lines.append("h1,h2{margin:0 0 8px 0;}")
        lines.append(".meta{color:#444;margin-bottom:16px;font-size:12px;}")
        lines.append(
            ".summary span{display:inline-block;margin-right:10px;padding:4px 8px;"
            "background:#f2f2f2;border:1px solid #ddd;border-radius:4px;font-size:12px;}"
        )
        lines.append(
            "table{width:100%;border-collapse:collapse;margin-top:12px;}"
            "th,td{border:1px solid #ccc;padding:6px;text-align:left;vertical-align:top;font-size:12px;}"
        )
        lines.append("th{background:#f7f7f7;font-weight:600;}")
        lines.append(".rule-group{padding:8px 10px;border:1px solid #e5e5e5;border-radius:6px;margin-bottom:8px;}")
        lines.append(".rule-name{font-weight:600;color:#b00020;}")
        lines.append(".error-list{color:#b00020;margin:4px 0 0 18px;padding:0;}")
        lines.append(".status{display:inline-block;font-weight:600;padding:1px 6px;border-radius:3px;}")
        lines.append(".status-Valid{background:#d9ead3;}")
        lines.append(".status-Invalid{background:#f4cccc;}")
        lines.append("tr.row-Invalid td{background:#fdf2f2;}")
        lines.append("</style>")
        lines.append("</head>")
        lines.append("<body>")
        lines.append("<h1>Import Validation Report</h1>")
        lines.append(f"<div class='meta'>Generated: {_escape(generated)}</div>")

        lines.append("<div class='summary'>")
        lines.append(f"<span>Total Rows: {summary.total_rows}</span>")
        lines.append(f"<span>Valid: {summary.valid_rows}</span>")
        lines.append(f"<span>Invalid: {summary.invalid_rows}</span>")
        lines.append(f"<span>Total Errors: {summary.total_errors}</span>")
        lines.append(f"<span>Rules Evaluated: {summary.rules_evaluated}</span>")
        lines.append("</div>")

        groups = self.by_rule()
        if groups:
            lines.append("<h2>Validation Errors by Rule</h2>")
            for group in groups:
                lines.append("<div class='rule-group'>")
                lines.append(
                    f"<span class='rule-name'>{_escape(group.rule)}</span> "
                    f"<span class='rule-count'>({group.count} failure(s))</span>"
                )
                lines.append("<ul class='error-list'>")
                for entry in group.failures:
                    lines.append(
                        f"<li>Row {entry.row_number}, {_escape(entry.field_name)}: "
                        f"{_escape(entry.error_message)}</li>"
                    )
                lines.append("</ul>")
                lines.append("</div>")

        lines.append("<h2>Rows</h2>")
        lines.append("<table>")
        header = ["Row#", "Status"] + [f.name for f in self._fields] + ["Errors"]
        lines.append("<thead><tr>" + "".join(f"<th>{_escape(h)}</th>" for h in header) + "</tr></thead>")
        lines.append("<tbody>")
        for item, row_number in self.filtered_rows(row_filter):
            status = self.row_status(row_number).value
            values = field_values(item, self._fields)
            cells = [
                f"<td>{row_number}</td>",
                f"<td><span class='status status-{status}'>{status}</span></td>",
            ]
            cells.extend(f"<td>{_cell(values[f.name])}</td>" for f in self._fields)
            cells.append(f"<td>{self._html_errors(row_number, _escape)}</td>")
            lines.append(f"<tr class='row-{status}'>" + "".join(cells) + "</tr>")
        lines.append("</tbody>")
        lines.append("</table>")
        lines.append("</body>")
        lines.append("</html>")
        return "\n".join(lines) + "\n"

    def _html_errors(self, row_number: int, escape) -> str:
        errors: Sequence[ValidationFailure] = self._errors_by_row.get(row_number, ())
        if not errors:
            return ""
        items = "".join(f"<li>{escape(e.rule_name)}: {escape(e.error_message)}</li>" for e in errors)
        return f"<ul class='error-list'>{items}</ul>"

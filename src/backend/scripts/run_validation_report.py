from __future__ import annotations

import argparse
import sys
from pathlib import Path


def _ensure_backend_on_path() -> None:
    backend_dir = Path(__file__).resolve().parents[1]
    if str(backend_dir) not in sys.path:
        sys.path.insert(0, str(backend_dir))


def run_validation(
    input_path: Path,
    row_type: type,
    *,
    source_format: str | None = None,
    array_path: str | None = None,
    has_header: bool = True,
    row_element: str | None = None,
):
    _ensure_backend_on_path()
    from adapters.rows import read_rows
    from common.validation_engine import ValidationEngine

    engine = ValidationEngine(row_type)
    engine.load_rows(
        read_rows(
            input_path,
            row_type,
            source_format=source_format,
            array_path=array_path,
            has_header=has_header,
            row_element=row_element,
        )
    )
    engine.validate()
    return engine


def write_report(report, fmt, row_filter, *, output: Path | None, output_dir: Path) -> Path:
    out_path = output or output_dir / report.default_filename(fmt)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(report.render(fmt, row_filter), encoding="utf-8")
    return out_path


def main(argv: list[str] | None = None) -> int:
    _ensure_backend_on_path()
    from common.validation_engine import row_models
    from common.validation_engine.config import (
        configure_logging,
        get_engine_settings,
        parse_report_format,
        parse_row_filter,
    )

    parser = argparse.ArgumentParser(
        description="Validate a CSV/TSV/JSON/XML file against a row model and write a JSON or HTML report."
    )
    parser.add_argument("input", help="Path to the source file.")
    parser.add_argument(
        "--row-model",
        required=True,
        help="Registered row model name or 'package.module:ClassName'.",
    )
    parser.add_argument(
        "--source-format",
        choices=("csv", "tsv", "json", "xml"),
        default=None,
        help="Source format (defaults to the file extension).",
    )
    parser.add_argument(
        "--array-path",
        default=None,
        help="Dot-separated path to the array inside a JSON document (e.g. data.employees).",
    )
    parser.add_argument(
        "--row-element",
        default=None,
        help="XML element that holds one row (required for XML sources).",
    )
    parser.add_argument(
        "--no-header",
        action="store_false",
        dest="has_header",
        help="Delimited files have no header row; columns map to fields by position.",
    )
    parser.add_argument(
        "--format",
        default=None,
        help="Report format: structured|json|html (defaults to VALIDATION_REPORT_FORMAT).",
    )
    parser.add_argument(
        "--filter",
        default="all",
        help="Rows to include: all|valid|invalid (default: all).",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Report file path (defaults to report_<timestamp>.<ext> in the report dir).",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory for the default report file name (defaults to VALIDATION_REPORT_DIR).",
    )
    parser.add_argument(
        "--fail-on-invalid",
        action="store_true",
        help="Exit with status 1 when any row is invalid.",
    )
    args = parser.parse_args(argv)

    settings = get_engine_settings()
    configure_logging(settings.log_level)

    try:
        fmt = parse_report_format(args.format) if args.format else settings.report_format
        row_filter = parse_row_filter(args.filter)
        row_type = row_models.resolve(args.row_model)
    except (ValueError, ImportError) as exc:
        raise SystemExit(str(exc))

    engine = run_validation(
        Path(args.input).resolve(),
        row_type,
        source_format=args.source_format,
        array_path=args.array_path,
        has_header=args.has_header,
        row_element=args.row_element,
    )
    report = engine.report()
    out_path = write_report(
        report,
        fmt,
        row_filter,
        output=Path(args.output).resolve() if args.output else None,
        output_dir=Path(args.output_dir).resolve() if args.output_dir else settings.report_dir.resolve(),
    )

    summary = report.summary()
    print(f"Wrote {out_path}")
    print(
        f"Rows: {summary.total_rows} (valid {summary.valid_rows}, invalid {summary.invalid_rows}); "
        f"errors: {summary.total_errors}"
    )

    if args.fail_on_invalid and summary.invalid_rows:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

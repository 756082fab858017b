from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, HTTPException, Query
from fastapi.responses import HTMLResponse, Response

from adapters.rows import rows_from_json_document
from common.validation_engine import ConfigurationError, ReportFormat, ValidationEngine, row_models
from common.validation_engine.catalog import build_rule_catalog
from common.validation_engine.config import parse_report_format, parse_row_filter


router = APIRouter(prefix="/validation", tags=["validation"])


def _row_type(model: str) -> type:
    try:
        return row_models.get(model)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown row model: {model}")


def _parse(parser, value: str) -> Any:
    try:
        return parser(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/models")
def list_row_models():
    return {"models": sorted(row_models.names())}


@router.get("/{model}/rules")
def describe_rules(model: str):
    row_type = _row_type(model)
    try:
        catalog = build_rule_catalog(row_type)
    except ConfigurationError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    return [entry.model_dump(mode="json", exclude_none=True) for entry in catalog]


@router.post("/{model}/report")
def validation_report(
    model: str,
    payload: Any = Body(...),
    format: str = Query("structured"),
    filter: str = Query("all"),
    array_path: Optional[str] = Query(None),
):
    row_type = _row_type(model)
    report_format = _parse(parse_report_format, format)
    row_filter = _parse(parse_row_filter, filter)

    try:
        engine = ValidationEngine(row_type)
    except ConfigurationError as exc:
        raise HTTPException(status_code=500, detail=str(exc))

    try:
        rows = rows_from_json_document(payload, row_type, array_path=array_path)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    engine.load_rows(rows)
    engine.validate()
    body = engine.report().render(report_format, row_filter)

    if report_format is ReportFormat.HUMAN_READABLE:
        return HTMLResponse(content=body)
    return Response(content=body, media_type="application/json")

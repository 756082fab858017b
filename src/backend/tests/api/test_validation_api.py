from typing import Annotated

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from api.validation import router
from common.validation_engine import InlineValidation, register_row_model


@register_row_model("api-product")
@InlineValidation("price > 0 or not active", rule_name="ActivePricing")
class ApiProduct(BaseModel):
    sku: Annotated[str, InlineValidation("len(sku) == 6", error_message="SKU must have 6 characters")]
    price: float
    active: bool = True


@register_row_model("api-broken")
@InlineValidation("missing_field > 0")
class ApiBroken(BaseModel):
    name: str


@pytest.fixture
def client():
    app = FastAPI()
    app.include_router(router)
    return TestClient(app)


PRODUCTS = [
    {"sku": "ABC123", "price": 9.99},
    {"sku": "<b>1</b>", "price": 0},
    {"sku": "XYZ999", "price": 0, "active": False},
]


def test_lists_registered_models(client):
    res = client.get("/validation/models")
    assert res.status_code == 200
    assert "api-product" in res.json()["models"]


def test_describes_rules(client):
    res = client.get("/validation/api-product/rules")
    assert res.status_code == 200
    rules = res.json()
    assert [r["rule_name"] for r in rules] == ["ActivePricing", "len(sku) == 6"]
    assert rules[1]["scope"] == "sku"
    assert rules[1]["error_message"] == "SKU must have 6 characters"


def test_structured_report(client):
    res = client.post("/validation/api-product/report", json=PRODUCTS)

    assert res.status_code == 200
    assert res.headers["content-type"].startswith("application/json")
    payload = res.json()
    assert payload["Summary"]["TotalRows"] == 3
    assert payload["Summary"]["InvalidRows"] == 1
    assert payload["Summary"]["TotalErrors"] == 2
    assert [g["Rule"] for g in payload["ValidationErrorsByRule"]] == ["ActivePricing", "len(sku) == 6"]


def test_structured_report_invalid_filter_and_array_path(client):
    res = client.post(
        "/validation/api-product/report",
        params={"filter": "invalid", "array_path": "items"},
        json={"items": PRODUCTS},
    )

    assert res.status_code == 200
    rows = res.json()["Rows"]
    assert [row["RowNumber"] for row in rows] == [2]
    assert [e["RuleName"] for e in rows[0]["Errors"]] == ["ActivePricing", "len(sku) == 6"]


def test_html_report_is_escaped(client):
    res = client.post("/validation/api-product/report", params={"format": "html"}, json=PRODUCTS)

    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/html")
    assert "<b>1</b>" not in res.text
    assert "&lt;b&gt;1&lt;/b&gt;" in res.text


def test_unknown_model_is_404(client):
    res = client.post("/validation/does-not-exist/report", json=[])
    assert res.status_code == 404


@pytest.mark.parametrize("params", [{"format": "pdf"}, {"filter": "some"}])
def test_bad_query_parameters_are_400(client, params):
    res = client.post("/validation/api-product/report", params=params, json=PRODUCTS)
    assert res.status_code == 400


def test_unmappable_rows_are_422(client):
    res = client.post("/validation/api-product/report", json=[{"sku": "ABC123", "price": "free"}])
    assert res.status_code == 422
    assert "Row 1" in res.json()["detail"]


def test_non_array_payload_is_422(client):
    res = client.post("/validation/api-product/report", json={"sku": "ABC123"})
    assert res.status_code == 422


def test_misconfigured_model_is_500(client):
    res = client.post("/validation/api-broken/report", json=[{"name": "x"}])
    assert res.status_code == 500
    assert "missing_field" in res.json()["detail"]

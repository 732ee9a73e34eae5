import json

import pytest
from fastapi.testclient import TestClient

from kpi_dashboard.api.routes import app, store


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    store.clear()


@pytest.fixture
def dataset_id(client, sales_rows):
    response = client.post("/datasets", json={"rows": sales_rows, "name": "sales"})
    assert response.status_code == 200
    return response.json()["id"]


def test_health(client):
    assert client.get("/").json()["status"] == "online"

def test_upload_returns_schema(client, sales_rows):
    body = client.post("/datasets", json={"rows": sales_rows}).json()
    assert body["rows"] == 6
    assert [c["name"] for c in body["schema"]["measures"]] == ["revenue", "units"]

def test_upload_empty_dataset_is_400(client):
    response = client.post("/datasets", json={"rows": []})
    assert response.status_code == 400

def test_unknown_dataset_is_404(client):
    assert client.get("/datasets/missing/schema").status_code == 404

def test_kpis_with_filters(client, dataset_id):
    payload = {
        "kpis": [
            {"name": "Revenue", "calculation": "sum", "column": "revenue", "format": "currency"},
            {"name": "Bad", "calculation": "median", "column": "revenue"},
        ],
        "filters": {"region": ["EU"]},
    }
    body = client.post(f"/datasets/{dataset_id}/kpis", json=payload).json()
    assert body["total_records"] == 2
    assert len(body["kpis"]) == 1
    assert body["kpis"][0]["formatted_value"] == "$150"

def test_numeric_filter_values_are_accepted(client, dataset_id):
    payload = {
        "kpis": [{"name": "Revenue", "calculation": "sum", "column": "revenue"}],
        "filters": {"units": [5]},
    }
    response = client.post(f"/datasets/{dataset_id}/kpis", json=payload)
    assert response.status_code == 200
    assert response.json()["kpis"][0]["value"] == 250

def test_limit_caps_the_filtered_scan(client, dataset_id):
    payload = {
        "kpis": [{"name": "Revenue", "calculation": "sum", "column": "revenue"}],
        "filters": {"region": ["EU"]},
        "limit": 1,
    }
    body = client.post(f"/datasets/{dataset_id}/kpis", json=payload).json()
    kpi = body["kpis"][0]
    assert (kpi["value"], kpi["limited"], kpi["data_point_count"]) == (100, True, 1)
    assert (body["total_records"], body["limited"]) == (1, True)

def test_limit_covering_every_match_is_not_limited(client, dataset_id):
    payload = {
        "charts": [{"title": "By product", "type": "bar", "measures": ["revenue"], "dimensions": ["product"]}],
        "filters": {"region": ["EU"]},
        "limit": 2,
    }
    chart = client.post(f"/datasets/{dataset_id}/charts", json=payload).json()["charts"][0]
    assert chart["limited"] is False
    assert chart["data_point_count"] == 2

def test_charts_json(client, dataset_id):
    payload = {"charts": [{"title": "By region", "type": "bar", "measures": ["revenue"], "dimensions": ["region"]}]}
    body = client.post(f"/datasets/{dataset_id}/charts", json=payload).json()
    chart = body["charts"][0]
    assert chart["id"] == "chart_0"
    assert chart["data"][0] == {"region": "APAC", "revenue": 400}
    assert chart["hint"]["x_axis_key"] == "region"

def test_charts_plotly(client, dataset_id):
    payload = {
        "charts": [{"title": "Mix", "type": "pie", "measures": ["revenue"], "dimensions": ["product"]}],
        "format": "plotly",
    }
    body = client.post(f"/datasets/{dataset_id}/charts", json=payload).json()
    figure = json.loads(body["charts"][0]["figure"])
    assert figure["data"][0]["type"] == "pie"

def test_filter_and_limit_options(client, dataset_id):
    options = client.get(f"/datasets/{dataset_id}/filter-options").json()
    assert "region" in options
    limits = client.get("/data-limit-options").json()
    assert limits[-1] == {"label": "All Data", "value": None}

def test_delete_dataset(client, dataset_id):
    assert client.delete(f"/datasets/{dataset_id}").status_code == 200
    assert client.get(f"/datasets/{dataset_id}/schema").status_code == 404

def test_clear_cache_endpoint(client):
    assert "cleared" in client.post("/cache/clear").json()

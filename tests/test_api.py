import json

import pytest
from fastapi.testclient import TestClient

from stageflow.core.database import get_session
from stageflow.main import app

from tests.conftest import CUSTOMERS_CSV, ORDERS_CSV


@pytest.fixture
def api(session):
    app.dependency_overrides[get_session] = lambda: session
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _upload(api, name, content):
    r = api.post("/tables/upload", files={"file": (name, content, "text/csv")})
    assert r.status_code == 200, r.text
    return r.json()


def test_health_and_config(api):
    assert api.get("/health").json() == {"status": "ok"}
    assert api.get("/config").json() == {"llm_enabled": False}


def test_upload_and_list_tables(api):
    body = _upload(api, "orders.csv", ORDERS_CSV)
    assert body["table"]["name"] == "table_orders_csv"

    listing = api.get("/tables").json()
    assert [t["name"] for t in listing["tables"]] == ["table_orders_csv"]
    assert listing["active_table_id"] == body["table"]["id"]

    detail = api.get(f"/tables/{body['table']['id']}").json()
    assert len(detail["rows"]) == 4


def test_upload_rejects_non_csv(api):
    r = api.post("/tables/upload", files={"file": ("notes.txt", b"hello", "text/plain")})
    assert r.status_code == 400


def test_unknown_table_is_404(api):
    r = api.get("/tables/table_missing")
    assert r.status_code == 404
    assert r.json()["error"] == "not_found"


def test_create_table_from_definition(api):
    r = api.post("/tables", json={"name": "people", "columns": ["name"], "rows": [["Ada"]]})
    assert r.status_code == 200
    assert r.json()["row_count"] == 1


def test_incomplete_stage_is_422_with_missing_fields(api):
    _upload(api, "orders.csv", ORDERS_CSV)
    r = api.post("/stages", json={"type": "FILTER", "data": {"table": "table_orders_csv", "column": "amount"}})
    assert r.status_code == 422
    body = r.json()
    assert body["error"] == "validation"
    assert body["missing"] == ["operator", "value"]


def test_engine_failure_is_400(api):
    _upload(api, "orders.csv", ORDERS_CSV)
    r = api.post("/stages", json={"type": "CUSTOM", "description": "Broken", "data": {"sql": "SELECT nope FROM nowhere"}})
    assert r.status_code == 400
    assert r.json()["detail"].startswith("Stage 'Broken' failed:")


def test_stage_without_input_is_409(api):
    r = api.post("/stages", json={"type": "SELECT", "data": {"columns": ["a"]}})
    assert r.status_code == 409


def test_stage_lifecycle(api):
    _upload(api, "orders.csv", ORDERS_CSV)
    created = api.post("/stages", json={"type": "SELECT", "data": {"columns": ["amount"]}}).json()
    stage_id = created["stage"]["id"]
    assert created["table"]["name"] == "result_stage_1_select"

    updated = api.put(f"/stages/{stage_id}", json={"data": {"columns": ["order_id", "amount"]}}).json()
    assert updated["mapping_updated"] is True
    assert [c["name"] for c in updated["table"]["columns"]] == ["order_id", "amount"]

    listing = api.get("/stages").json()
    assert [s["id"] for s in listing["stages"]][-1] == stage_id

    assert api.delete(f"/stages/{stage_id}").status_code == 200
    assert api.delete(f"/stages/{stage_id}").status_code == 404


def test_validate_and_compile(api):
    _upload(api, "orders.csv", ORDERS_CSV)
    v = api.post("/stages/validate", json={"type": "UNION", "data": {}}).json()
    assert v == {"valid": False, "missing": ["tables"]}

    c = api.post("/stages/compile", json={"type": "SORT", "data": {"orderBy": ["amount"]}}).json()
    assert c == {"sql": "SELECT * FROM table_orders_csv ORDER BY amount ASC", "input_table": "table_orders_csv"}


def test_graph_endpoint(api):
    _upload(api, "customers.csv", CUSTOMERS_CSV)
    _upload(api, "orders.csv", ORDERS_CSV)
    api.post("/stages", json={"type": "JOIN", "data": {
        "leftTable": "table_orders_csv", "rightTable": "table_customers_csv", "leftKey": "cust_id", "rightKey": "id",
    }})
    graph = api.get("/stages/graph").json()
    assert [n["level"] for n in graph["nodes"]] == [0, 0, 1]
    assert len(graph["edges"]) == 2


def test_export_and_import(api):
    _upload(api, "orders.csv", ORDERS_CSV)
    api.post("/stages", json={"type": "SELECT", "data": {"columns": ["amount"]}})
    flow = api.get("/flows/export").json()
    assert [f["id"] for f in flow] == ["stage_1", "stage_2"]

    report = api.post("/flows/import", json={"stages": flow, "mode": "replace"}).json()
    assert report["failed_stage_id"] is None
    assert len(report["results"]) == 2


def test_import_stream_emits_sse(api):
    _upload(api, "orders.csv", ORDERS_CSV)
    flow = [{"type": "SELECT", "data": {"table": "table_orders_csv", "columns": ["amount"]}}]
    with api.stream("POST", "/flows/import_stream", json={"stages": flow, "mode": "append"}) as r:
        assert r.headers["content-type"].startswith("text/event-stream")
        text = "".join(r.iter_text())

    events = [line[len("event: "):] for line in text.splitlines() if line.startswith("event: ")]
    assert events[0] == "started"
    assert "materialized" in events
    assert events[-2:] == ["result", "done"]

    result_line = text.split("event: result\ndata: ")[1].split("\n")[0]
    assert json.loads(result_line)["data"]["results"][0]["table"]["name"] == "result_stage_1_select"


def test_suggestions_unavailable_is_503(api):
    r = api.post("/suggestions/transform", json={"prompt": "anything"})
    assert r.status_code == 503

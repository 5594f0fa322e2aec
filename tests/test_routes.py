from urllib.parse import quote

from fastapi.testclient import TestClient

from main import app
from catalog.store import store

client = TestClient(app)


def _path(key, suffix=""):
    return f"/manuscripts/{quote(key, safe='')}{suffix}"


def test_not_ready_returns_503():
    store.mark_loading()

    assert client.get("/health/ready").status_code == 503
    response = client.get("/facets/options")
    assert response.status_code == 503
    assert response.json()["detail"] == "Data is still being loaded. Please try again later."


def test_ready(ready_store):
    response = client.get("/health/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready", "dataset": "metadata"}


def test_facet_options(ready_store):
    response = client.get("/facets/options")
    assert response.status_code == 200
    assert response.json()["script"]["options"] == ["Cursiva", "Protogothic", "Textualis"]


def test_search_manuscripts(ready_store):
    response = client.post("/records/search", json={"selections": {"script": {"values": ["Cursiva"]}}})
    body = response.json()

    assert response.status_code == 200
    assert body["count"] == 1
    assert body["results"][0]["key"] == "ÖNB||Cod. 10"
    assert len(body["results"][0]["rows"]) == 3
    assert body["counts"]["script"]["All"] == 3
    assert body["counts"]["depository"]["All"] == 1


def test_search_rows_paginates_in_row_order(ready_store):
    response = client.post("/records/search", json={"mode": "row", "limit": 2, "offset": 1, "counts": False})
    body = response.json()

    assert body["count"] == 5
    assert body["counts"] == {}
    assert [r["Leaves/Pages"] for r in body["results"]] == ["21r-24v", "25r-60v"]
    assert body["results"][0]["manuscript_key"] == "ÖNB||Cod. 10"


def test_search_range_and_query(ready_store):
    payload = {"mode": "row", "selections": {"dating": {"minimum": 1400}}, "query": "sermons"}
    body = client.post("/records/search", json=payload).json()
    assert body["count"] == 1
    assert body["counts"]["dating"]["unparsed"] == 0


def test_search_rejects_unknown_facets_and_bad_paging(ready_store):
    assert client.post("/records/search", json={"selections": {"colour": {"values": ["red"]}}}).status_code == 422
    assert client.post("/records/search", json={"limit": 0}).status_code == 422


def test_manuscript_details(ready_store):
    response = client.get(_path("BSB||Clm 2"))
    assert response.status_code == 200
    assert response.json()["rows"][0]["Main text"] == "Breviary"


def test_unknown_manuscript_returns_404(ready_store):
    response = client.get(_path("BSB||Clm 999"))
    assert response.status_code == 404
    assert response.json()["detail"] == "No data available for this record"
    assert client.post(_path("||", "/spans"), json={}).status_code == 404


def test_span_plan_from_merge_metadata(ready_store):
    response = client.post(_path("ÖNB||Cod. 10", "/spans"), json={})
    body = response.json()

    assert response.status_code == 200
    assert body["fallback_reason"] is None
    origins = {(o["row"], o["col"]): (o["row_span"], o["col_span"]) for o in body["origins"]}
    columns = body["columns"]
    assert origins[(0, columns.index("Depository"))] == (3, 1)
    assert origins[(0, columns.index("Production Unit"))] == (2, 1)
    assert origins[(0, columns.index("Scribe"))] == (2, 2)
    assert origins[(0, columns.index("Literature"))] == (3, 1)


def test_span_plan_with_hidden_columns_is_cached(ready_store):
    visible = ["Shelf mark", "Scribe", "Main text"]
    first = client.post(_path("ÖNB||Cod. 10", "/spans"), json={"visible_columns": visible}).json()

    assert first["columns"] == visible
    assert {(o["row"], o["col"], o["row_span"], o["col_span"]) for o in first["origins"]} == {
        (0, 0, 3, 1), (0, 1, 2, 1),
    }
    assert ("ÖNB||Cod. 10", tuple(visible)) in store.span_cache


def test_tree(ready_store):
    response = client.get("/tree")
    assert response.status_code == 200
    assert len(response.json()) == 3


def test_load_unknown_dataset_returns_404():
    assert client.post("/datasets/missing/load").status_code == 404

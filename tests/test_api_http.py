import pytest
from fastapi.testclient import TestClient

import packages.config as config
from apps.api.deps import get_store
from apps.api.main import app
from apps.api.schemas import ActivitiesResponse, ActivitySummary, DiaryEntry
from packages.store import StoreError
from tests.fixtures.stores import RecordingStore

ROWS = [
    {
        "id": 1001,
        "date": "2013-05-09",
        "name": "Anniversary run",
        "activity_type": "running",
        "duration_sec": 1800,
        "distance_m": 5000.0,
        "elevation_gain_m": 20.5,
        "avg_hr": 150,
        "calories": 400,
        "avg_power": None,
        "start_lat": 50.1,
        "start_lon": 14.4,
    },
    {
        "id": 42,
        "date": "2012-05-09",
        "name": "Prag",
        "activity_type": "running",
        "duration_sec": 2945,
        "distance_m": 8344.0,
        "elevation_gain_m": 45.2,
        "avg_hr": 160,
        "calories": 612,
        "avg_power": 250,
    },
]


@pytest.fixture()
def store():
    return RecordingStore(rows=list(ROWS))


@pytest.fixture()
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def test_activities_contract_http(client, store):
    resp = client.get("/api/activities")
    assert resp.status_code == 200
    payload = ActivitiesResponse.model_validate(resp.json())
    assert [a.id for a in payload.activities] == [1001, 42]
    assert store.selects[0]["order"] == "date.desc"
    assert "start_lat" not in resp.json()["activities"][0]


def test_sort_allow_list_and_direction(client, store):
    client.get("/api/v1/activities?sortBy=distance_m&sortDir=asc")
    client.get("/api/v1/activities?sortBy=name&sortDir=asc")
    client.get("/api/v1/activities?sortBy=bogus&sortDir=sideways")
    assert [s["order"] for s in store.selects] == ["distance_m.asc", "date.asc", "date.desc"]


def test_search_and_date_range_filters(client, store):
    resp = client.get("/activities?search=Prag&dateFrom=2012-01-01&dateTo=2012-12-31")
    assert resp.status_code == 200
    filters = store.selects[0]["filters"]
    assert filters[0] == (
        "or",
        '(name.ilike."*Prag*",location_name.ilike."*Prag*",'
        'activity_type.ilike."*Prag*",description.ilike."*Prag*")',
    )
    assert ("date", "gte.2012-01-01") in filters
    assert ("date", "lte.2012-12-31") in filters


def test_blank_search_adds_no_filter(client, store):
    client.get("/api/activities?search=%20%20")
    assert store.selects[0]["filters"] == []


def test_invalid_date_is_rejected(client):
    resp = client.get("/api/activities?dateFrom=yesterday")
    assert resp.status_code == 422


def test_activity_detail(client, store):
    resp = client.get("/api/activities/1001")
    assert resp.status_code == 200
    body = resp.json()
    assert body["start_lat"] == 50.1
    assert store.selects[0]["filters"] == [("id", "eq.1001")]


def test_activity_detail_not_found(store):
    empty = RecordingStore(rows=[])
    app.dependency_overrides[get_store] = lambda: empty
    try:
        with TestClient(app) as client:
            resp = client.get("/api/activities/7")
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "http_404"


def test_summary(client):
    resp = client.get("/api/activities/summary")
    assert resp.status_code == 200
    summary = ActivitySummary.model_validate(resp.json())
    assert summary.count == 2
    assert summary.distance_m == 13344.0
    assert summary.duration_sec == 4745
    assert summary.calories == 1012
    assert summary.avg_hr == 155.0
    assert summary.avg_power == 250.0
    assert str(summary.first_date) == "2012-05-09"
    assert str(summary.last_date) == "2013-05-09"


def test_store_failure_maps_to_502():
    failing = RecordingStore(error=StoreError("JWT expired", status=401))
    app.dependency_overrides[get_store] = lambda: failing
    try:
        with TestClient(app) as client:
            resp = client.get("/api/activities")
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 502
    assert resp.json()["error"]["code"] == "store_error"
    assert resp.json()["error"]["message"] == "JWT expired"


def test_diary_roundtrip(client, store):
    resp = client.post("/api/diary", json={"date": "2024-03-01", "content": "Legs heavy"})
    assert resp.status_code == 201
    entry = DiaryEntry.model_validate(resp.json())
    assert entry.content == "Legs heavy"
    assert store.inserts == [("diary_entries", [{"date": "2024-03-01", "content": "Legs heavy"}])]

    client.get("/api/diary?dateFrom=2024-01-01")
    last = store.selects[-1]
    assert last["table"] == "diary_entries"
    assert last["order"] == "date.desc"
    assert last["filters"] == [("date", "gte.2024-01-01")]


def test_diary_requires_content(client):
    resp = client.post("/api/diary", json={"date": "2024-03-01", "content": ""})
    assert resp.status_code == 422


def test_unconfigured_store_returns_503(monkeypatch):
    monkeypatch.setattr(config, "SUPABASE_URL", None)
    monkeypatch.setattr(config, "SUPABASE_ANON_KEY", None)
    with TestClient(app) as client:
        resp = client.get("/api/activities")
        health = client.get("/api/health")
    assert resp.status_code == 503
    assert health.status_code == 200
    assert health.json()["store"] == "missing"


def test_health_reports_last_import(monkeypatch, tmp_path):
    cache = tmp_path / "activities.json"
    cache.write_text("[]")
    monkeypatch.setattr(config, "CACHE_PATH", cache)
    with TestClient(app) as client:
        body = client.get("/health").json()
    assert body["status"] == "ok"
    assert body["last_import"] is not None


def test_metrics_counts_requests(client):
    client.get("/api/activities")
    text = client.get("/metrics").text
    assert "http_requests_total" in text


def test_request_id_is_echoed(client):
    resp = client.get("/api/v1/activities", headers={"x-request-id": "smoke-123"})
    assert resp.status_code == 200
    assert resp.headers["x-request-id"] == "smoke-123"

import io
import json
import socket
from urllib import error, parse

import pytest

import packages.store as store_module
from packages.store import StoreError, SupabaseStore, quote_filter_value
from services.ingestion.garmin_import import UpsertError, upsert_in_batches
from services.processing.normalize import CanonicalActivity


class FakeResponse:
    def __init__(self, body: bytes = b""):
        self._body = body

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


@pytest.fixture()
def captured(monkeypatch):
    calls = []
    responses = []

    def fake_urlopen(req, timeout=None):
        calls.append(req)
        result = responses.pop(0) if responses else FakeResponse()
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(store_module.request, "urlopen", fake_urlopen)
    return calls, responses


def test_upsert_request_shape(captured):
    calls, _ = captured
    store = SupabaseStore("https://demo.supabase.co/", "service-key")
    rows = [{"id": 1, "date": "2020-01-01", "name": None}]

    store.upsert("activities", rows)

    req = calls[0]
    assert req.get_method() == "POST"
    assert req.full_url == "https://demo.supabase.co/rest/v1/activities?on_conflict=id"
    assert req.get_header("Prefer") == "resolution=merge-duplicates,return=minimal"
    assert req.get_header("Authorization") == "Bearer service-key"
    assert req.get_header("Apikey") == "service-key"
    assert json.loads(req.data) == rows


def test_upsert_skips_empty_batches(captured):
    calls, _ = captured
    SupabaseStore("https://demo.supabase.co", "k").upsert("activities", [])
    assert calls == []


def test_select_builds_query(captured):
    calls, responses = captured
    responses.append(FakeResponse(b'[{"id": 1}]'))
    store = SupabaseStore("https://demo.supabase.co", "anon")

    rows = store.select(
        "activities",
        ["id", "date"],
        filters=[("date", "gte.2020-01-01"), ("date", "lte.2020-12-31")],
        order="date.desc",
        limit=10,
    )

    assert rows == [{"id": 1}]
    query = parse.parse_qsl(parse.urlsplit(calls[0].full_url).query)
    assert query == [
        ("select", "id,date"),
        ("date", "gte.2020-01-01"),
        ("date", "lte.2020-12-31"),
        ("order", "date.desc"),
        ("limit", "10"),
    ]
    assert calls[0].get_method() == "GET"


def test_http_error_becomes_store_error(captured):
    _, responses = captured
    body = io.BytesIO(b'{"message": "duplicate key value violates unique constraint"}')
    responses.append(error.HTTPError("https://x", 409, "Conflict", {}, body))

    with pytest.raises(StoreError) as excinfo:
        SupabaseStore("https://demo.supabase.co", "k").upsert("activities", [{"id": 1}])

    assert excinfo.value.status == 409
    assert "duplicate key" in excinfo.value.message
    assert str(excinfo.value).startswith("HTTP 409")


def test_network_error_becomes_store_error(captured):
    _, responses = captured
    responses.append(error.URLError("connection refused"))
    with pytest.raises(StoreError) as excinfo:
        SupabaseStore("https://demo.supabase.co", "k").select("activities")
    assert excinfo.value.status is None
    assert "connection refused" in str(excinfo.value)


def test_timeout_mid_request_becomes_store_error(captured):
    _, responses = captured
    responses.append(socket.timeout("timed out"))
    with pytest.raises(StoreError) as excinfo:
        SupabaseStore("https://demo.supabase.co", "k").select("activities")
    assert excinfo.value.status is None
    assert "timed out" in str(excinfo.value)


def test_invalid_json_body_becomes_store_error(captured):
    _, responses = captured
    responses.append(FakeResponse(b"<html>gateway</html>"))
    with pytest.raises(StoreError) as excinfo:
        SupabaseStore("https://demo.supabase.co", "k").select("activities")
    assert "invalid JSON" in str(excinfo.value)


def test_timeout_during_seed_reports_batch_number(captured):
    _, responses = captured
    responses.extend([FakeResponse(), ConnectionResetError("reset by peer")])
    activities = [CanonicalActivity(id=i, date="2024-01-01") for i in range(3)]
    with pytest.raises(UpsertError) as excinfo:
        upsert_in_batches(SupabaseStore("https://demo.supabase.co", "k"), activities, batch_size=2)
    assert excinfo.value.batch_number == 2
    assert isinstance(excinfo.value.cause, StoreError)


def test_insert_returns_representation(captured):
    calls, responses = captured
    responses.append(FakeResponse(b'[{"id": 3, "date": "2024-03-01", "content": "hi"}]'))
    created = SupabaseStore("https://demo.supabase.co", "anon").insert(
        "diary_entries", [{"date": "2024-03-01", "content": "hi"}]
    )
    assert created[0]["id"] == 3
    assert calls[0].get_header("Prefer") == "return=representation"


def test_requires_credentials():
    with pytest.raises(ValueError):
        SupabaseStore("", "key")


def test_quote_filter_value_escapes():
    assert quote_filter_value('*a,b*') == '"*a,b*"'
    assert quote_filter_value('say "hi"') == '"say \\"hi\\""'

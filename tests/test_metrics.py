import pytest

from packages import metrics


@pytest.fixture(autouse=True)
def clean_metrics():
    metrics.reset()
    yield
    metrics.reset()


def test_labelled_sorts_labels():
    assert metrics.labelled("import_records_total") == "import_records_total"
    assert (
        metrics.labelled("http_requests_total", status="200", path="/health")
        == 'http_requests_total{path="/health",status="200"}'
    )


def test_render_text_counters_and_timings():
    metrics.inc("upsert_batches_total")
    metrics.inc("upsert_batches_total", 2)
    metrics.observe("import_seconds", 0.5)
    metrics.observe("import_seconds", 0.25)

    counters, timings = metrics.snapshot()
    assert counters == {"upsert_batches_total": 3}
    assert timings == {"import_seconds": (0.75, 2)}
    assert metrics.render_text().splitlines() == [
        "upsert_batches_total 3",
        "import_seconds_sum 0.750000",
        "import_seconds_count 2",
    ]

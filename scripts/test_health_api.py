#!/usr/bin/env python3
"""Tests for the operator API (health and Prometheus endpoints)."""
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from fakes import FakeCloudWatch, FakeHost, throttling_error, wait_for  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from rq_cloudwatch import __version__  # noqa: E402
from rq_cloudwatch.config import PublisherConfig  # noqa: E402
from rq_cloudwatch.main import create_app  # noqa: E402


def test_health_reports_running_publisher():
    host = FakeHost()
    app = create_app(host=host, client=FakeCloudWatch(), config=PublisherConfig(namespace="Jobs"))

    with TestClient(app) as client:
        assert host.fetched.wait(5)
        assert wait_for(lambda: app.state.publisher.last_publish_at is not None)

        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["version"] == __version__
        assert body["publisher"]["state"] == "running"
        assert body["publisher"]["namespace"] == "Jobs"
        assert body["publisher"]["last_publish_at"] is not None
        assert body["publisher"]["last_error"] is None

        publisher = app.state.publisher

    # Lifespan shutdown stops the loop
    assert not publisher.running


def test_health_is_degraded_after_fatal_error():
    app = create_app(host=FakeHost(), client=FakeCloudWatch(failures=[throttling_error()]),
                     config=PublisherConfig())

    with TestClient(app) as client:
        assert wait_for(lambda: not app.state.publisher.running)

        body = client.get("/health").json()
        assert body["status"] == "degraded"
        assert body["publisher"]["state"] == "stopped"
        assert body["publisher"]["last_error"].startswith("ClientError")


def test_metrics_endpoint_exposes_publisher_counters():
    app = create_app(host=FakeHost(), client=FakeCloudWatch(), config=PublisherConfig())

    with TestClient(app) as client:
        assert wait_for(lambda: app.state.publisher.last_publish_at is not None)
        resp = client.get("/metrics")

    assert resp.status_code == 200
    assert "rq_cloudwatch_publish_cycles_total" in resp.text
    assert "rq_cloudwatch_batches_sent_total" in resp.text


if __name__ == "__main__":
    test_health_reports_running_publisher()
    test_health_is_degraded_after_fatal_error()
    test_metrics_endpoint_exposes_publisher_counters()
    print("ok - test_health_api")

#!/usr/bin/env python3
"""Tests for batching and the expired-token retry policy."""
import os
import sys
from datetime import datetime, timezone

import pytest

sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from fakes import FakeCloudWatch, RecordingLogger, expired_token_error, throttling_error  # noqa: E402
from prometheus_client import REGISTRY  # noqa: E402

from rq_cloudwatch.models import MetricRecord, MetricUnit  # noqa: E402
from rq_cloudwatch.transport import BatchTransport, RetryDecision, chunked, classify  # noqa: E402

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_records(count):
    return [
        MetricRecord(metric_name=f"Metric{i}", timestamp=NOW, value=i, unit=MetricUnit.COUNT)
        for i in range(count)
    ]


def sent_names(client):
    return [[d["metric_name"] for d in call["metric_data"]] for call in client.calls]


def test_classify_expired_token_is_retryable():
    assert classify(expired_token_error()) is RetryDecision.RETRY_WITH_REFRESH


def test_classify_everything_else_is_fatal():
    assert classify(throttling_error()) is RetryDecision.FATAL
    assert classify(RuntimeError("boom")) is RetryDecision.FATAL


def test_chunked_preserves_order():
    records = make_records(45)
    chunks = list(chunked(records))

    assert [len(c) for c in chunks] == [20, 20, 5]
    assert [r for chunk in chunks for r in chunk] == records
    assert list(chunked([])) == []


def test_25_metrics_are_sent_as_20_and_5():
    client = FakeCloudWatch()
    transport = BatchTransport(client, "RQ")

    assert transport.send(make_records(25)) == 2
    assert [len(call["metric_data"]) for call in client.calls] == [20, 5]
    assert all(call["namespace"] == "RQ" for call in client.calls)
    assert [name for names in sent_names(client) for name in names] == [f"Metric{i}" for i in range(25)]


def test_records_are_sent_in_wire_format():
    client = FakeCloudWatch()
    BatchTransport(client, "RQ").send(make_records(1))

    assert client.calls[0]["metric_data"] == [{
        "metric_name": "Metric0",
        "timestamp": "2024-05-01T12:00:00+00:00",
        "value": 0.0,
        "unit": "Count",
        "dimensions": [],
    }]


def test_expired_token_is_retried_after_refresh():
    client = FakeCloudWatch(failures=[expired_token_error(), expired_token_error(), None])
    transport = BatchTransport(client, "RQ")

    assert transport.send(make_records(3)) == 1
    assert client.refreshes == 2
    assert len(client.calls) == 3


def test_four_expired_tokens_refresh_three_times_then_raise():
    client = FakeCloudWatch(failures=[expired_token_error()] * 4)
    transport = BatchTransport(client, "RQ")
    before = REGISTRY.get_sample_value("rq_cloudwatch_credential_refreshes_total") or 0.0

    with pytest.raises(Exception) as excinfo:
        transport.send(make_records(30))

    assert classify(excinfo.value) is RetryDecision.RETRY_WITH_REFRESH
    assert client.refreshes == 3
    assert len(client.calls) == 4
    # The second chunk is never attempted
    assert all(len(call["metric_data"]) == 20 for call in client.calls)
    assert REGISTRY.get_sample_value("rq_cloudwatch_credential_refreshes_total") == before + 3


def test_retry_count_is_per_chunk():
    failures = [expired_token_error()] * 3 + [None] + [expired_token_error()] * 3 + [None]
    client = FakeCloudWatch(failures=failures)

    assert BatchTransport(client, "RQ").send(make_records(40)) == 2
    assert client.refreshes == 6


def test_other_errors_are_not_retried():
    client = FakeCloudWatch(failures=[None, throttling_error()])
    transport = BatchTransport(client, "RQ")

    with pytest.raises(Exception) as excinfo:
        transport.send(make_records(50))

    assert excinfo.value.response["Error"]["Code"] == "Throttling"
    assert client.refreshes == 0
    assert len(client.calls) == 2


def test_credential_events_are_forwarded_to_external_logger():
    external = RecordingLogger()
    client = FakeCloudWatch(failures=[expired_token_error()] * 4)
    transport = BatchTransport(client, "RQ", external_logger=external)

    with pytest.raises(Exception):
        transport.send(make_records(1))

    levels = [level for level, _, _ in external.events]
    assert levels == ["warning", "info"] * 3 + ["error"]
    assert all(fields == {"topic": "aws_credentials"} for _, _, fields in external.events)
    assert "attempt 1" in external.events[0][1]
    assert "Exceeded retry limit" in external.events[-1][1]


if __name__ == "__main__":
    test_classify_expired_token_is_retryable()
    test_classify_everything_else_is_fatal()
    test_chunked_preserves_order()
    test_25_metrics_are_sent_as_20_and_5()
    test_records_are_sent_in_wire_format()
    test_expired_token_is_retried_after_refresh()
    test_four_expired_tokens_refresh_three_times_then_raise()
    test_retry_count_is_per_chunk()
    test_other_errors_are_not_retried()
    test_credential_events_are_forwarded_to_external_logger()
    print("ok - test_transport")
